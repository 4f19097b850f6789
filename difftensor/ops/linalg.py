# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Matrix products."""

from __future__ import annotations

from typing import Any, Tuple

import numpy as np

from ..errors import ShapeMismatch
from ..operators import defop
from ..shape import broadcast_shapes
from ..tensor import Tensor
from .arithmetic import add, mul
from .indexing import permute, squeeze, unsqueeze
from .reduction import sum, sum_to


def _matmul_shape(sa: Tuple[int, ...], sb: Tuple[int, ...]) -> Tuple[int, ...]:
    if len(sa) < 2 or len(sb) < 2:
        raise ShapeMismatch("matmul primitive expects operands of rank >= 2")
    if sa[-1] != sb[-2]:
        raise ShapeMismatch(
            f"matmul inner dimensions differ: {tuple(sa)} @ {tuple(sb)}"
        )
    batch = broadcast_shapes(sa[:-2], sb[:-2])
    return tuple(batch) + (sa[-2], sb[-1])


def _matmul_forward(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _matmul_shape(a.shape, b.shape)
    return np.matmul(a, b)


def _swap_last(x: Tensor) -> Tensor:
    axes = list(range(x.ndim))
    axes[-1], axes[-2] = axes[-2], axes[-1]
    return permute(x, axes)


def _matmul_vjp(ctx, g):
    a, b = ctx.inputs
    grad_a = sum_to(_MATMUL(g, _swap_last(b)), a.shape) if ctx.requires[0] else None
    grad_b = sum_to(_MATMUL(_swap_last(a), g), b.shape) if ctx.requires[1] else None
    return (grad_a, grad_b)


def _matmul_jvp(ctx, tangents):
    a, b = ctx.inputs
    ta, tb = tangents
    terms = []
    if ta is not None:
        terms.append(_MATMUL(ta, b))
    if tb is not None:
        terms.append(_MATMUL(a, tb))
    return terms[0] if len(terms) == 1 else add(*terms)


_MATMUL = defop("matmul", _matmul_forward, _matmul_vjp, _matmul_jvp, shape=_matmul_shape)


def matmul(a: Any, b: Any) -> Tensor:
    """
    Matrix product with NumPy's promotion rules.

    Rank-1 operands are treated as a row (left) or column (right) vector and
    the added axis is removed again; leading batch axes broadcast.
    """

    if not isinstance(a, Tensor) or not isinstance(b, Tensor):
        raise TypeError("matmul() expects two tensors")
    if a.ndim == 0 or b.ndim == 0:
        raise ShapeMismatch("matmul() does not accept scalar operands")

    left = unsqueeze(a, 0) if a.ndim == 1 else a
    right = unsqueeze(b, -1) if b.ndim == 1 else b
    out = _MATMUL(left, right)
    if b.ndim == 1:
        out = squeeze(out, -1)
    if a.ndim == 1:
        out = squeeze(out, -2 if b.ndim > 1 else -1)
    return out


def dot(a: Any, b: Any) -> Tensor:
    """Inner product of two vectors of equal length."""

    if not isinstance(a, Tensor) or not isinstance(b, Tensor):
        raise TypeError("dot() expects two tensors")
    if a.ndim != 1 or b.ndim != 1:
        raise ShapeMismatch("dot() expects 1-D tensors")
    if a.shape != b.shape:
        raise ShapeMismatch(f"dot() length mismatch: {a.shape[0]} vs {b.shape[0]}")
    return sum(mul(a, b))


__all__ = ["matmul", "dot"]
