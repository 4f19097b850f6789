# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Functional surface: the built-in primitives plus functions composed from them.

Everything here is differentiable in both modes because the composed
functions only call primitives.
"""

from __future__ import annotations

from numbers import Real
from typing import Any, Optional

from .ops import *  # noqa: F401,F403
from .ops import __all__ as _OPS_ALL
from .ops.arithmetic import add, div, exp, mul, neg, pow, sub
from .ops.comparison import ge, gt, le, where
from .ops.reduction import mean, sum
from .tensor import Tensor, as_tensor


def square(x: Any) -> Tensor:
    x = as_tensor(x)
    return mul(x, x)


def sqrt(x: Any) -> Tensor:
    return pow(x, 0.5)


def relu(x: Any) -> Tensor:
    """Rectified linear unit; the derivative at zero is zero."""
    x = as_tensor(x)
    return where(gt(x, 0), x, 0)


def sigmoid(x: Any) -> Tensor:
    return div(1, add(1, exp(neg(as_tensor(x)))))


def maximum(a: Any, b: Any) -> Tensor:
    """Elementwise maximum; ties select ``a``."""
    like = a if isinstance(a, Tensor) else b if isinstance(b, Tensor) else None
    a, b = as_tensor(a, like), as_tensor(b, like)
    return where(ge(a, b), a, b)


def minimum(a: Any, b: Any) -> Tensor:
    """Elementwise minimum; ties select ``a``."""
    like = a if isinstance(a, Tensor) else b if isinstance(b, Tensor) else None
    a, b = as_tensor(a, like), as_tensor(b, like)
    return where(le(a, b), a, b)


def clamp(x: Any, min: Optional[Real] = None, max: Optional[Real] = None) -> Tensor:
    if min is None and max is None:
        raise ValueError("clamp() expects at least one of min or max")
    out = as_tensor(x)
    if min is not None:
        out = maximum(out, min)
    if max is not None:
        out = minimum(out, max)
    return out


clip = clamp


def mse_loss(prediction: Any, target: Any, reduction: str = "mean") -> Tensor:
    """Squared error between ``prediction`` and ``target``."""

    diff = sub(prediction, target)
    squared = mul(diff, diff)
    if reduction == "mean":
        return mean(squared)
    if reduction == "sum":
        return sum(squared)
    if reduction == "none":
        return squared
    raise ValueError(f"unknown reduction '{reduction}'")


__all__ = list(_OPS_ALL) + [
    "square",
    "sqrt",
    "relu",
    "sigmoid",
    "maximum",
    "minimum",
    "clamp",
    "clip",
    "mse_loss",
]
