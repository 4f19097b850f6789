# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Shape representation and broadcasting rules."""

from __future__ import annotations

import math
import operator
from numbers import Integral
from typing import Iterable, List, Tuple, Union

from .errors import IndexOutOfRange, ShapeMismatch

ShapeLike = Union["Shape", Tuple[int, ...], List[int], int]


class Shape(tuple):
    """Immutable sequence of non-negative dimension sizes."""

    def __new__(cls, dims: ShapeLike = ()) -> "Shape":
        if isinstance(dims, Shape):
            return dims
        if isinstance(dims, Integral):
            dims = (dims,)
        values = tuple(operator.index(d) for d in dims)
        for size in values:
            if size < 0:
                raise ValueError(f"negative dimension size {size} in shape {values}")
        return super().__new__(cls, values)

    @property
    def rank(self) -> int:
        return len(self)

    @property
    def numel(self) -> int:
        return math.prod(self)

    @property
    def is_scalar(self) -> bool:
        return len(self) == 0

    def broadcast(self, other: ShapeLike) -> "Shape":
        """Return the broadcast of ``self`` and ``other``."""
        return broadcast_shapes(self, other)

    def __repr__(self) -> str:
        return f"Shape({', '.join(str(d) for d in self)})"


def broadcast_shapes(*shapes: ShapeLike) -> Shape:
    """Broadcast shapes right-aligned, NumPy style.

    Each aligned column may only contain one size other than 1; the result
    holds that size (or 1). Raises :class:`ShapeMismatch` otherwise.
    """

    normalized = [Shape(s) for s in shapes]
    if not normalized:
        return Shape(())
    rank = max(len(s) for s in normalized)
    padded = [(1,) * (rank - len(s)) + tuple(s) for s in normalized]

    result = []
    for position, column in enumerate(zip(*padded)):
        sizes = {d for d in column if d != 1}
        if len(sizes) > 1:
            listed = " and ".join(str(tuple(s)) for s in normalized)
            raise ShapeMismatch(
                f"shapes {listed} are not broadcast-compatible "
                f"(dimension {position} has sizes {sorted(sizes)})"
            )
        result.append(sizes.pop() if sizes else 1)
    return Shape(result)


def reduction_axes(source: ShapeLike, target: ShapeLike) -> Tuple[int, ...]:
    """Axes of ``source`` to sum over so the result has shape ``target``.

    ``target`` must broadcast to ``source``.
    """

    source = Shape(source)
    target = Shape(target)
    if broadcast_shapes(source, target) != source:
        raise ShapeMismatch(f"shape {tuple(target)} does not broadcast to {tuple(source)}")
    lead = len(source) - len(target)
    axes = list(range(lead))
    for i, size in enumerate(target):
        if size == 1 and source[lead + i] != 1:
            axes.append(lead + i)
    return tuple(axes)


def normalize_axis(axis: int, rank: int) -> int:
    axis = operator.index(axis)
    if not -rank <= axis < rank:
        raise IndexOutOfRange(f"axis {axis} is out of range for a tensor of rank {rank}")
    return axis % rank


def normalize_axes(axes: Union[int, Iterable[int], None], rank: int) -> Union[Tuple[int, ...], None]:
    if axes is None:
        return None
    if isinstance(axes, Integral):
        axes = (axes,)
    normalized = tuple(sorted({normalize_axis(a, rank) for a in axes}))
    return normalized


__all__ = [
    "Shape",
    "ShapeLike",
    "broadcast_shapes",
    "reduction_axes",
    "normalize_axis",
    "normalize_axes",
]
