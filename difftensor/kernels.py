# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Registry of external forward kernels.

An accelerated routine (BLAS, a compiled extension, ...) can take over the
forward evaluation of an operator for a given shape/dtype signature. Kernels
must be synchronous and side-effect free and return a buffer of exactly the
declared output shape.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatch

logger = logging.getLogger(__name__)

ShapeSignature = Tuple[Tuple[int, ...], ...]
KernelKey = Tuple[str, Optional[ShapeSignature], Optional[str]]
Kernel = Callable[..., Any]

_KERNEL_LOCK = RLock()
_KERNELS: Dict[KernelKey, Kernel] = {}


def _key(op_name: str, shapes: Optional[Sequence[Sequence[int]]], dtype: Optional[str]) -> KernelKey:
    signature = None if shapes is None else tuple(tuple(int(d) for d in s) for s in shapes)
    return (op_name, signature, dtype)


def register_kernel(
    op_name: str,
    fn: Kernel,
    *,
    shapes: Optional[Sequence[Sequence[int]]] = None,
    dtype: Optional[str] = None,
    replace: bool = False,
) -> None:
    """
    Install ``fn`` as the forward routine of ``op_name``.

    ``shapes`` (one shape per input) and ``dtype`` narrow the signature the
    kernel applies to; omitted parts match anything. ``fn`` is called as
    ``fn(*arrays, out_shape=shape, **params)``.
    """

    key = _key(op_name, shapes, dtype)
    with _KERNEL_LOCK:
        if key in _KERNELS and not replace:
            raise ValueError(f"a kernel is already registered for {key}")
        _KERNELS[key] = fn
    logger.debug("registered kernel %r for %s", fn, key)


def unregister_kernel(
    op_name: str,
    *,
    shapes: Optional[Sequence[Sequence[int]]] = None,
    dtype: Optional[str] = None,
) -> bool:
    """Remove a kernel; returns ``True`` if one was registered."""

    with _KERNEL_LOCK:
        return _KERNELS.pop(_key(op_name, shapes, dtype), None) is not None


def clear_kernels() -> None:
    with _KERNEL_LOCK:
        _KERNELS.clear()


def lookup_kernel(
    op_name: str, shapes: Sequence[Sequence[int]], dtype: str
) -> Optional[Kernel]:
    """Most specific kernel for the signature: exact, then dtype-only, then any."""

    if not _KERNELS:
        return None
    with _KERNEL_LOCK:
        for key in (
            _key(op_name, shapes, dtype),
            _key(op_name, None, dtype),
            _key(op_name, None, None),
        ):
            kernel = _KERNELS.get(key)
            if kernel is not None:
                return kernel
    return None


def run_kernel(
    kernel: Kernel,
    op_name: str,
    arrays: Sequence[np.ndarray],
    out_shape: Tuple[int, ...],
    params: Dict[str, Any],
) -> np.ndarray:
    """Call ``kernel`` and check its result against the declared output shape."""

    logger.debug("dispatching %s to kernel %r (out_shape=%s)", op_name, kernel, out_shape)
    result = np.asarray(kernel(*arrays, out_shape=out_shape, **params))
    if result.shape != tuple(out_shape):
        raise ShapeMismatch(
            f"kernel for '{op_name}' returned shape {result.shape}, "
            f"expected {tuple(out_shape)}"
        )
    return np.array(result, copy=True)


__all__ = [
    "register_kernel",
    "unregister_kernel",
    "clear_kernels",
    "lookup_kernel",
    "run_kernel",
]
