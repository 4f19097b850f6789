# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Operator contract, registry and the single dispatch point ``apply``.

An :class:`Operator` bundles three functions:

``forward(*arrays, **params)``
    Evaluates the primitive on NumPy arrays and returns an array.
``vjp(ctx, g)``
    Given the adjoint ``g`` of the output, returns one adjoint per input
    (``None`` for a zero contribution).
``jvp(ctx, tangents)``
    Given one tangent per input (``None`` for zero), returns the output
    tangent (or ``None``).

Derivative rules only see the :class:`~difftensor.trace.OpContext` (captured
primal inputs, primal output, parameters) and must be written with
differentiable operations so that nested differentiation traces them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from .kernels import lookup_kernel, run_kernel
from .tensor import Tensor, as_tensor
from .trace import OpContext, innermost_trace

logger = logging.getLogger(__name__)

ForwardRule = Callable[..., np.ndarray]
VjpRule = Callable[[OpContext, Tensor], Sequence[Optional[Tensor]]]
JvpRule = Callable[[OpContext, Sequence[Optional[Tensor]]], Optional[Tensor]]
ShapeRule = Callable[..., Tuple[int, ...]]


@dataclass(frozen=True)
class Operator:
    """A primitive differentiable operation."""

    name: str
    forward: ForwardRule
    vjp: Optional[VjpRule] = None
    jvp: Optional[JvpRule] = None
    # Output shape from input shapes and params; required for kernel dispatch.
    shape: Optional[ShapeRule] = None
    # The output is a view sharing storage with the first input.
    view: bool = False

    def __call__(self, *args: Any, **params: Any) -> Tensor:
        return apply(self, *args, **params)

    def __repr__(self) -> str:
        return f"Operator({self.name!r})"


_REGISTRY_LOCK = RLock()
_REGISTRY: Dict[str, Operator] = {}


def register_operator(op: Operator, replace: bool = False) -> Operator:
    """Add ``op`` to the registry under its name."""

    with _REGISTRY_LOCK:
        if op.name in _REGISTRY and not replace:
            raise ValueError(f"operator '{op.name}' is already registered")
        _REGISTRY[op.name] = op
    logger.debug("registered operator %s", op.name)
    return op


def defop(
    name: str,
    forward: ForwardRule,
    vjp: Optional[VjpRule] = None,
    jvp: Optional[JvpRule] = None,
    *,
    shape: Optional[ShapeRule] = None,
    view: bool = False,
    replace: bool = False,
) -> Operator:
    """Build and register an operator in one step."""

    return register_operator(
        Operator(name=name, forward=forward, vjp=vjp, jvp=jvp, shape=shape, view=view),
        replace=replace,
    )


def get_operator(name: str) -> Operator:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"no operator named '{name}' is registered") from None


def registered_operators() -> Tuple[str, ...]:
    with _REGISTRY_LOCK:
        return tuple(sorted(_REGISTRY))


def _evaluate(op: Operator, tensors: Tuple[Tensor, ...], params: Dict[str, Any]) -> Tensor:
    arrays = tuple(t._data for t in tensors)
    kernel = None
    if op.shape is not None and arrays:
        kernel = lookup_kernel(
            op.name, [a.shape for a in arrays], np.result_type(*arrays).name
        )
    if kernel is not None:
        out_shape = tuple(op.shape(*(a.shape for a in arrays), **params))
        result = run_kernel(kernel, op.name, arrays, out_shape, params)
    else:
        result = op.forward(*arrays, **params)
    base = tensors[0] if op.view else None
    return Tensor._from_array(np.asarray(result), base=base)


def apply(op: Union[Operator, str], *args: Any, **params: Any) -> Tensor:
    """
    Apply ``op`` to ``args``.

    Untracked inputs are evaluated directly. If any input is tracked, the
    primitive is evaluated on the primal values and recorded as a node of the
    innermost trace, and a tracked output is returned.
    """

    if isinstance(op, str):
        op = get_operator(op)
    like = next((a for a in args if isinstance(a, Tensor)), None)
    tensors = tuple(as_tensor(a, like) for a in args)

    trace = innermost_trace(tensors)
    if trace is None:
        return _evaluate(op, tensors, params)

    primals = tuple(trace.lower(t) for t in tensors)
    output = apply(op, *primals, **params)
    return trace.record(op, params, tensors, primals, output)


__all__ = [
    "Operator",
    "register_operator",
    "defop",
    "get_operator",
    "registered_operators",
    "apply",
]
