# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Indexing, views and layout primitives."""

from __future__ import annotations

import math
import operator
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import IndexOutOfRange, ShapeMismatch
from ..operators import defop
from ..shape import Shape, normalize_axis
from ..tensor import Tensor, as_tensor, zeros_like

IndexComponent = Union[int, slice]
NormalizedIndex = Tuple[IndexComponent, ...]


def _normalize_component(component: Any, size: int, axis: int) -> IndexComponent:
    if isinstance(component, range):
        if component.step != 1:
            raise ValueError("only contiguous (step 1) ranges can be viewed")
        start, stop = component.start, component.stop
    elif isinstance(component, slice):
        if component.step not in (None, 1):
            raise ValueError("only step-1 slices can be viewed")
        start = 0 if component.start is None else operator.index(component.start)
        stop = size if component.stop is None else operator.index(component.stop)
    else:
        if isinstance(component, (bool, np.bool_)):
            raise TypeError("boolean indices are not supported")
        try:
            index = operator.index(component)
        except TypeError:
            raise TypeError(
                f"unsupported index component of type {type(component).__name__}"
            ) from None
        if not 0 <= index < size:
            raise IndexOutOfRange(
                f"index {index} is out of range for axis {axis} with size {size}"
            )
        return index

    if not 0 <= start <= stop <= size:
        raise IndexOutOfRange(
            f"range {start}:{stop} is out of range for axis {axis} with size {size}"
        )
    return slice(start, stop)


def normalize_index(shape: Sequence[int], key: Any) -> NormalizedIndex:
    """Validate ``key`` against ``shape``; components address leading axes."""

    if not isinstance(key, tuple):
        key = (key,)
    if len(key) > len(shape):
        raise IndexOutOfRange(
            f"too many indices ({len(key)}) for a tensor of rank {len(shape)}"
        )
    return tuple(
        _normalize_component(component, size, axis)
        for axis, (component, size) in enumerate(zip(key, shape))
    )


# ---------------------------------------------------------------------------
# view / scatter_view
# ---------------------------------------------------------------------------


def _view_forward(a: np.ndarray, *, index: NormalizedIndex) -> np.ndarray:
    # The trailing Ellipsis keeps full indices as 0-d views instead of scalars.
    return a[index + (Ellipsis,)]


def _view_vjp(ctx, g):
    return (scatter_view(g, ctx.params["index"], ctx.inputs[0].shape),)


def _view_jvp(ctx, tangents):
    return _VIEW(tangents[0], index=ctx.params["index"])


def _scatter_forward(g: np.ndarray, *, index: NormalizedIndex, shape: Tuple[int, ...]) -> np.ndarray:
    out = np.zeros(shape, dtype=g.dtype)
    out[index + (Ellipsis,)] = g
    return out


def _scatter_vjp(ctx, g):
    return (_VIEW(g, index=ctx.params["index"]),)


def _scatter_jvp(ctx, tangents):
    return scatter_view(tangents[0], ctx.params["index"], ctx.params["shape"])


_VIEW = defop("view", _view_forward, _view_vjp, _view_jvp, view=True)
_SCATTER_VIEW = defop("scatter_view", _scatter_forward, _scatter_vjp, _scatter_jvp)


def index(x: Any, key: Any) -> Tensor:
    """Index leading axes of ``x`` (ints and step-1 slices)."""

    x = as_tensor(x)
    return _VIEW(x, index=normalize_index(x.shape, key))


def view(x: Any, index_: Any, axis: Optional[int] = None) -> Tensor:
    """Leading-axis view, or an axis-qualified one when ``axis`` is given."""

    x = as_tensor(x)
    if axis is None:
        key = tuple(index_) if isinstance(index_, (list, tuple)) else (index_,)
    else:
        axis = normalize_axis(axis, x.ndim)
        key = (slice(None),) * axis + (index_,)
    return index(x, key)


def scatter_view(g: Any, index_: NormalizedIndex, shape: Sequence[int]) -> Tensor:
    """Zeros of ``shape`` with ``g`` placed at ``index_``."""

    return _SCATTER_VIEW(g, index=tuple(index_), shape=tuple(shape))


# ---------------------------------------------------------------------------
# permute / reshape
# ---------------------------------------------------------------------------


def _permute_vjp(ctx, g):
    inverse = tuple(int(i) for i in np.argsort(ctx.params["axes"]))
    return (_PERMUTE(g, axes=inverse),)


def _permute_jvp(ctx, tangents):
    return _PERMUTE(tangents[0], axes=ctx.params["axes"])


_PERMUTE = defop(
    "permute",
    lambda a, *, axes: np.transpose(a, axes),
    _permute_vjp,
    _permute_jvp,
    shape=lambda s, *, axes: tuple(s[i] for i in axes),
    view=True,
)


def permute(x: Any, axes: Sequence[int]) -> Tensor:
    x = as_tensor(x)
    normalized = tuple(normalize_axis(a, x.ndim) for a in axes)
    if sorted(normalized) != list(range(x.ndim)):
        raise ValueError(f"axes {tuple(axes)} are not a permutation of a rank-{x.ndim} tensor")
    return _PERMUTE(x, axes=normalized)


def transpose(x: Any) -> Tensor:
    """Reverse all axes: ``transpose(x)[a, b, c] == x[c, b, a]``."""

    x = as_tensor(x)
    return _PERMUTE(x, axes=tuple(reversed(range(x.ndim))))


_RESHAPE = defop(
    "reshape",
    lambda a, *, shape: np.reshape(a, shape),
    lambda ctx, g: (_RESHAPE(g, shape=tuple(ctx.inputs[0].shape)),),
    lambda ctx, tangents: _RESHAPE(tangents[0], shape=ctx.params["shape"]),
    shape=lambda s, *, shape: shape,
)


def _resolve_shape(shape: Sequence[int], numel: int) -> Tuple[int, ...]:
    dims = [operator.index(d) for d in shape]
    unknown = [i for i, d in enumerate(dims) if d == -1]
    if len(unknown) > 1:
        raise ShapeMismatch("only one dimension can be inferred")
    if unknown:
        known = math.prod(d for d in dims if d != -1)
        if known == 0 or numel % known:
            raise ShapeMismatch(f"cannot reshape {numel} elements into {tuple(dims)}")
        dims[unknown[0]] = numel // known
    resolved = Shape(dims)
    if resolved.numel != numel:
        raise ShapeMismatch(f"cannot reshape {numel} elements into {tuple(resolved)}")
    return tuple(resolved)


def reshape(x: Any, shape: Sequence[int]) -> Tensor:
    x = as_tensor(x)
    target = _resolve_shape(shape, x.size)
    if target == tuple(x.shape):
        return x
    return _RESHAPE(x, shape=target)


def flatten(x: Any, start_dim: int = 0, end_dim: int = -1) -> Tensor:
    x = as_tensor(x)
    if x.ndim == 0:
        return reshape(x, (1,))
    start = normalize_axis(start_dim, x.ndim)
    end = normalize_axis(end_dim, x.ndim)
    if start > end:
        raise ValueError("flatten() start_dim cannot come after end_dim")
    dims = tuple(x.shape)
    merged = math.prod(dims[start : end + 1])
    return reshape(x, dims[:start] + (merged,) + dims[end + 1 :])


def squeeze(x: Any, dim: Optional[int] = None) -> Tensor:
    x = as_tensor(x)
    dims = tuple(x.shape)
    if dim is None:
        return reshape(x, tuple(d for d in dims if d != 1))
    axis = normalize_axis(dim, x.ndim)
    if dims[axis] != 1:
        return x
    return reshape(x, dims[:axis] + dims[axis + 1 :])


def unsqueeze(x: Any, dim: int) -> Tensor:
    x = as_tensor(x)
    axis = normalize_axis(dim, x.ndim + 1)
    dims = tuple(x.shape)
    return reshape(x, dims[:axis] + (1,) + dims[axis:])


# ---------------------------------------------------------------------------
# stack
# ---------------------------------------------------------------------------


def _stack_vjp(ctx, g):
    axis = ctx.params["axis"]
    return tuple(
        _VIEW(g, index=normalize_index(g.shape, (slice(None),) * axis + (i,)))
        for i in range(len(ctx.inputs))
    )


def _stack_jvp(ctx, tangents):
    filled = [
        zeros_like(primal) if t is None else t
        for primal, t in zip(ctx.inputs, tangents)
    ]
    return _STACK(*filled, axis=ctx.params["axis"])


_STACK = defop(
    "stack",
    lambda *arrays, axis: np.stack(arrays, axis=axis),
    _stack_vjp,
    _stack_jvp,
)


def stack(tensors: Sequence[Any], axis: int = 0) -> Tensor:
    """Join same-shaped tensors along a new axis."""

    tensors = [as_tensor(t) for t in tensors]
    if not tensors:
        raise ValueError("stack() expects a non-empty sequence of tensors")
    first = tuple(tensors[0].shape)
    for t in tensors[1:]:
        if tuple(t.shape) != first:
            raise ShapeMismatch(
                f"stack() expects equal shapes, got {first} and {tuple(t.shape)}"
            )
    return _STACK(*tensors, axis=normalize_axis(axis, len(first) + 1))


__all__ = [
    "normalize_index",
    "index",
    "view",
    "scatter_view",
    "permute",
    "transpose",
    "reshape",
    "flatten",
    "squeeze",
    "unsqueeze",
    "stack",
]
