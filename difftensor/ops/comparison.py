# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Comparisons and conditional selection.

Both are recorded on the trace like any other primitive. Comparisons have a
zero derivative; ``where`` routes the adjoint (or tangent) only through the
branch each element selected, so the other branch receives nothing. At a tie
the choice is whatever the condition says: there is no subgradient averaging.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..operators import defop
from ..shape import broadcast_shapes
from ..tensor import Tensor, as_tensor, zeros_like
from .reduction import broadcast_to, sum_to


def _no_vjp(ctx, g):
    return (None,) * len(ctx.inputs)


def _no_jvp(ctx, tangents):
    return None


def _comparison(name: str, fn) -> Any:
    def forward(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        broadcast_shapes(a.shape, b.shape)
        return fn(a, b)

    return defop(
        name,
        forward,
        _no_vjp,
        _no_jvp,
        shape=lambda sa, sb: tuple(broadcast_shapes(sa, sb)),
    )


_EQ = _comparison("eq", np.equal)
_NE = _comparison("ne", np.not_equal)
_LT = _comparison("lt", np.less)
_LE = _comparison("le", np.less_equal)
_GT = _comparison("gt", np.greater)
_GE = _comparison("ge", np.greater_equal)


def _ordered_operands(a: Any, b: Any):
    like = a if isinstance(a, Tensor) else b if isinstance(b, Tensor) else None
    a = as_tensor(a, like)
    b = as_tensor(b, like)
    if a.dtype == "bool" or b.dtype == "bool":
        raise ValueError("ordering comparisons are not supported for bool tensors")
    return a, b


def eq(a: Any, b: Any) -> Tensor:
    return _EQ(a, b)


def ne(a: Any, b: Any) -> Tensor:
    return _NE(a, b)


def lt(a: Any, b: Any) -> Tensor:
    return _LT(*_ordered_operands(a, b))


def le(a: Any, b: Any) -> Tensor:
    return _LE(*_ordered_operands(a, b))


def gt(a: Any, b: Any) -> Tensor:
    return _GT(*_ordered_operands(a, b))


def ge(a: Any, b: Any) -> Tensor:
    return _GE(*_ordered_operands(a, b))


# ---------------------------------------------------------------------------
# where
# ---------------------------------------------------------------------------


def _where_forward(condition: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    broadcast_shapes(condition.shape, a.shape, b.shape)
    return np.where(condition, a, b)


def _where_vjp(ctx, g):
    condition, a, b = ctx.inputs
    zeros = zeros_like(g)
    grad_a = sum_to(_WHERE(condition, g, zeros), a.shape) if ctx.requires[1] else None
    grad_b = sum_to(_WHERE(condition, zeros, g), b.shape) if ctx.requires[2] else None
    return (None, grad_a, grad_b)


def _where_jvp(ctx, tangents):
    condition = ctx.inputs[0]
    _, ta, tb = tangents
    if ta is None and tb is None:
        return None
    shape = ctx.output.shape
    ta = zeros_like(ctx.output) if ta is None else broadcast_to(ta, shape)
    tb = zeros_like(ctx.output) if tb is None else broadcast_to(tb, shape)
    return _WHERE(condition, ta, tb)


_WHERE = defop(
    "where",
    _where_forward,
    _where_vjp,
    _where_jvp,
    shape=lambda sc, sa, sb: tuple(broadcast_shapes(sc, sa, sb)),
)


def where(condition: Any, a: Any, b: Any) -> Tensor:
    """Elementwise ``a`` where ``condition`` holds, else ``b``."""

    condition = as_tensor(condition)
    if condition.dtype != "bool":
        raise TypeError(f"where() expects a bool condition, got {condition.dtype}")
    like = a if isinstance(a, Tensor) else b if isinstance(b, Tensor) else None
    return _WHERE(condition, as_tensor(a, like), as_tensor(b, like))


__all__ = ["eq", "ne", "lt", "le", "gt", "ge", "where"]
