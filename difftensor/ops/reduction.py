# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Reductions and the broadcast/unbroadcast pair used by adjoint rules."""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ShapeMismatch
from ..operators import defop
from ..shape import Shape, broadcast_shapes, normalize_axes, reduction_axes
from ..tensor import Tensor, as_tensor
from .indexing import reshape

Axes = Union[int, Sequence[int], None]


def _kept_shape(shape: Tuple[int, ...], axes: Optional[Tuple[int, ...]]) -> Tuple[int, ...]:
    if axes is None:
        return (1,) * len(shape)
    return tuple(1 if i in axes else d for i, d in enumerate(shape))


def _sum_shape(shape, *, axes, keepdims):
    kept = _kept_shape(tuple(shape), axes)
    if keepdims:
        return kept
    if axes is None:
        return ()
    return tuple(d for i, d in enumerate(shape) if i not in axes)


def _sum_vjp(ctx, g):
    source = tuple(ctx.inputs[0].shape)
    kept = reshape(g, _kept_shape(source, ctx.params["axes"]))
    return (broadcast_to(kept, source),)


def _sum_jvp(ctx, tangents):
    return _SUM(tangents[0], **ctx.params)


_SUM = defop(
    "sum",
    lambda a, *, axes, keepdims: np.sum(a, axis=axes, keepdims=keepdims),
    _sum_vjp,
    _sum_jvp,
    shape=_sum_shape,
)


def sum(x: Any, axis: Axes = None, keepdims: bool = False) -> Tensor:
    """Sum over ``axis`` (all axes by default)."""

    x = as_tensor(x)
    return _SUM(x, axes=normalize_axes(axis, x.ndim), keepdims=bool(keepdims))


def mean(x: Any, axis: Axes = None, keepdims: bool = False) -> Tensor:
    x = as_tensor(x)
    axes = normalize_axes(axis, x.ndim)
    count = x.size if axes is None else int(np.prod([x.shape[a] for a in axes]))
    return sum(x, axes, keepdims) / count


# ---------------------------------------------------------------------------
# broadcast_to / sum_to
# ---------------------------------------------------------------------------


def _broadcast_forward(a: np.ndarray, *, shape: Tuple[int, ...]) -> np.ndarray:
    # Read-only view with zero strides along replicated axes.
    return np.broadcast_to(a, shape)


def _sum_to_forward(a: np.ndarray, *, shape: Tuple[int, ...]) -> np.ndarray:
    axes = reduction_axes(a.shape, shape)
    if not axes:
        return a.reshape(shape)
    return np.sum(a, axis=axes, keepdims=True).reshape(shape)


_BROADCAST_TO = defop(
    "broadcast_to",
    _broadcast_forward,
    lambda ctx, g: (sum_to(g, ctx.inputs[0].shape),),
    lambda ctx, tangents: broadcast_to(tangents[0], ctx.params["shape"]),
    shape=lambda s, *, shape: shape,
    view=True,
)

_SUM_TO = defop(
    "sum_to",
    _sum_to_forward,
    lambda ctx, g: (broadcast_to(g, ctx.inputs[0].shape),),
    lambda ctx, tangents: sum_to(tangents[0], ctx.params["shape"]),
    shape=lambda s, *, shape: shape,
)


def broadcast_to(x: Any, shape: Sequence[int]) -> Tensor:
    """Virtually replicate ``x`` to ``shape`` without copying storage."""

    x = as_tensor(x)
    target = Shape(shape)
    if tuple(x.shape) == tuple(target):
        return x
    if broadcast_shapes(x.shape, target) != target:
        raise ShapeMismatch(f"cannot broadcast shape {tuple(x.shape)} to {tuple(target)}")
    return _BROADCAST_TO(x, shape=tuple(target))


def sum_to(x: Any, shape: Sequence[int]) -> Tensor:
    """Sum ``x`` over its broadcast axes so the result has ``shape``."""

    x = as_tensor(x)
    target = Shape(shape)
    if tuple(x.shape) == tuple(target):
        return x
    reduction_axes(x.shape, target)
    return _SUM_TO(x, shape=tuple(target))


__all__ = ["sum", "mean", "broadcast_to", "sum_to"]
