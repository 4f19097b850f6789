# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Elementwise arithmetic and transcendental primitives."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ..operators import defop
from ..shape import broadcast_shapes
from ..tensor import Tensor, _validate_dtype, as_tensor
from .comparison import eq, gt, where
from .reduction import broadcast_to, sum_to


def _binary_forward(fn):
    def forward(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        broadcast_shapes(a.shape, b.shape)
        return fn(a, b)

    return forward


def _binary_shape(sa, sb):
    return tuple(broadcast_shapes(sa, sb))


def _unary_shape(s):
    return tuple(s)


def _reduce(g: Optional[Tensor], ctx, i: int) -> Optional[Tensor]:
    """Unbroadcast an adjoint contribution to input ``i``'s shape."""
    if g is None or not ctx.requires[i]:
        return None
    return sum_to(g, ctx.inputs[i].shape)


def _expand(t: Optional[Tensor], ctx) -> Optional[Tensor]:
    return None if t is None else broadcast_to(t, ctx.output.shape)


# ---------------------------------------------------------------------------
# add / sub / mul / div
# ---------------------------------------------------------------------------


def _add_vjp(ctx, g):
    return (_reduce(g, ctx, 0), _reduce(g, ctx, 1))


def _add_jvp(ctx, tangents):
    ta, tb = tangents
    if ta is None:
        return _expand(tb, ctx)
    if tb is None:
        return _expand(ta, ctx)
    return add(ta, tb)


def _sub_vjp(ctx, g):
    return (_reduce(g, ctx, 0), _reduce(neg(g), ctx, 1) if ctx.requires[1] else None)


def _sub_jvp(ctx, tangents):
    ta, tb = tangents
    if tb is None:
        return _expand(ta, ctx)
    if ta is None:
        return _expand(neg(tb), ctx)
    return sub(ta, tb)


def _mul_vjp(ctx, g):
    a, b = ctx.inputs
    grad_a = _reduce(mul(g, b), ctx, 0) if ctx.requires[0] else None
    grad_b = _reduce(mul(g, a), ctx, 1) if ctx.requires[1] else None
    return (grad_a, grad_b)


def _mul_jvp(ctx, tangents):
    a, b = ctx.inputs
    ta, tb = tangents
    terms = []
    if ta is not None:
        terms.append(mul(ta, b))
    if tb is not None:
        terms.append(mul(a, tb))
    return _expand(terms[0] if len(terms) == 1 else add(*terms), ctx)


def _div_vjp(ctx, g):
    a, b = ctx.inputs
    grad_a = _reduce(div(g, b), ctx, 0) if ctx.requires[0] else None
    grad_b = (
        _reduce(neg(div(mul(g, ctx.output), b)), ctx, 1) if ctx.requires[1] else None
    )
    return (grad_a, grad_b)


def _div_jvp(ctx, tangents):
    a, b = ctx.inputs
    ta, tb = tangents
    if tb is None:
        return _expand(div(ta, b), ctx)
    numerator = neg(mul(ctx.output, tb))
    if ta is not None:
        numerator = add(ta, numerator)
    return _expand(div(numerator, b), ctx)


_ADD = defop("add", _binary_forward(np.add), _add_vjp, _add_jvp, shape=_binary_shape)
_SUB = defop("sub", _binary_forward(np.subtract), _sub_vjp, _sub_jvp, shape=_binary_shape)
_MUL = defop("mul", _binary_forward(np.multiply), _mul_vjp, _mul_jvp, shape=_binary_shape)
_DIV = defop("div", _binary_forward(np.true_divide), _div_vjp, _div_jvp, shape=_binary_shape)


def add(a: Any, b: Any) -> Tensor:
    return _ADD(a, b)


def sub(a: Any, b: Any) -> Tensor:
    return _SUB(a, b)


def mul(a: Any, b: Any) -> Tensor:
    return _MUL(a, b)


def div(a: Any, b: Any) -> Tensor:
    return _DIV(a, b)


# ---------------------------------------------------------------------------
# pow
# ---------------------------------------------------------------------------


def _safe_log(a: Tensor) -> Tensor:
    """log(a) where a > 0, zero elsewhere (the exponent adjoint vanishes there)."""
    positive = gt(a, 0)
    return where(positive, log(where(positive, a, 1)), 0)


def _pow_slope(a: Tensor, b: Tensor) -> Tensor:
    """b * a**(b - 1), taken as zero where the exponent is zero."""
    constant = eq(b, 0)
    return where(constant, 0, mul(b, pow(where(constant, 1, a), sub(b, 1))))


def _pow_vjp(ctx, g):
    a, b = ctx.inputs
    grad_a = grad_b = None
    if ctx.requires[0]:
        grad_a = _reduce(mul(g, _pow_slope(a, b)), ctx, 0)
    if ctx.requires[1]:
        grad_b = _reduce(mul(g, mul(ctx.output, _safe_log(a))), ctx, 1)
    return (grad_a, grad_b)


def _pow_jvp(ctx, tangents):
    a, b = ctx.inputs
    ta, tb = tangents
    terms = []
    if ta is not None:
        terms.append(mul(ta, _pow_slope(a, b)))
    if tb is not None:
        terms.append(mul(tb, mul(ctx.output, _safe_log(a))))
    return _expand(terms[0] if len(terms) == 1 else add(*terms), ctx)


_POW = defop("pow", _binary_forward(np.power), _pow_vjp, _pow_jvp, shape=_binary_shape)


def pow(a: Any, b: Any) -> Tensor:
    return _POW(a, b)


# ---------------------------------------------------------------------------
# unary functions
# ---------------------------------------------------------------------------

_NEG = defop(
    "neg",
    np.negative,
    lambda ctx, g: (neg(g),),
    lambda ctx, tangents: neg(tangents[0]),
    shape=_unary_shape,
)

_EXP = defop(
    "exp",
    np.exp,
    lambda ctx, g: (mul(g, ctx.output),),
    lambda ctx, tangents: mul(tangents[0], ctx.output),
    shape=_unary_shape,
)

_LOG = defop(
    "log",
    np.log,
    lambda ctx, g: (div(g, ctx.inputs[0]),),
    lambda ctx, tangents: div(tangents[0], ctx.inputs[0]),
    shape=_unary_shape,
)

_SIN = defop(
    "sin",
    np.sin,
    lambda ctx, g: (mul(g, cos(ctx.inputs[0])),),
    lambda ctx, tangents: mul(tangents[0], cos(ctx.inputs[0])),
    shape=_unary_shape,
)

_COS = defop(
    "cos",
    np.cos,
    lambda ctx, g: (neg(mul(g, sin(ctx.inputs[0]))),),
    lambda ctx, tangents: neg(mul(tangents[0], sin(ctx.inputs[0]))),
    shape=_unary_shape,
)


def _tanh_derivative(ctx) -> Tensor:
    return sub(1, mul(ctx.output, ctx.output))


_TANH = defop(
    "tanh",
    np.tanh,
    lambda ctx, g: (mul(g, _tanh_derivative(ctx)),),
    lambda ctx, tangents: mul(tangents[0], _tanh_derivative(ctx)),
    shape=_unary_shape,
)


def _sign(x: Tensor) -> Tensor:
    # Piecewise constant, so a constant tensor is exact at every level.
    return Tensor._from_array(np.sign(x.numpy()))


_ABS = defop(
    "abs",
    np.abs,
    lambda ctx, g: (mul(g, _sign(ctx.inputs[0])),),
    lambda ctx, tangents: mul(tangents[0], _sign(ctx.inputs[0])),
    shape=_unary_shape,
)


def neg(x: Any) -> Tensor:
    return _NEG(x)


def exp(x: Any) -> Tensor:
    return _EXP(x)


def log(x: Any) -> Tensor:
    return _LOG(x)


def sin(x: Any) -> Tensor:
    return _SIN(x)


def cos(x: Any) -> Tensor:
    return _COS(x)


def tanh(x: Any) -> Tensor:
    return _TANH(x)


def abs(x: Any) -> Tensor:
    return _ABS(x)



_CAST = defop(
    "cast",
    lambda a, *, dtype: a.astype(dtype),
    lambda ctx, g: (cast(g, ctx.inputs[0].dtype),),
    lambda ctx, tangents: cast(tangents[0], ctx.params["dtype"]),
    shape=lambda s, *, dtype: tuple(s),
)


def cast(x: Any, dtype: str) -> Tensor:
    """Differentiable dtype conversion; a no-op when the dtype already matches."""
    x = as_tensor(x)
    dtype = _validate_dtype(dtype)
    if x.dtype == dtype:
        return x
    return _CAST(x, dtype=dtype)


__all__ = [
    "add",
    "sub",
    "mul",
    "div",
    "pow",
    "neg",
    "exp",
    "log",
    "sin",
    "cos",
    "tanh",
    "abs",
    "cast",
]
