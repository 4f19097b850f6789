# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Structural wrap protocol for differentiable aggregates.

Differentiation needs to visit every tensor leaf of an input, replace it (by a
tracked leaf, an adjoint, a tangent, ...) and rebuild an aggregate of the same
shape. User types take part by subclassing :class:`Differentiable` and
implementing ``wrap``::

    class Affine(Differentiable):
        def __init__(self, weight, bias):
            self.weight = weight
            self.bias = bias

        def wrap(self, wrapper):
            return Affine(wrapper.wrap(self.weight), wrapper.wrap(self.bias))

Built-in tuples (including namedtuples), lists and dicts are handled
automatically; Python numbers become scalar tensors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from numbers import Integral, Real
from typing import Any, Callable, Iterator, List, Optional

from ._config import debug_checks_enabled
from .errors import StructuralWrapMismatch
from .tensor import Tensor


class Differentiable(ABC):
    """An aggregate whose tensor leaves can be visited and replaced."""

    @abstractmethod
    def wrap(self, wrapper: "Wrapper") -> "Differentiable":
        """
        Return a new instance with every field passed through ``wrapper.wrap``.

        Fields must be visited in a fixed declaration order and ``self`` must
        not be modified.
        """


class Wrapper:
    """
    Dispatcher handed to :meth:`Differentiable.wrap`.

    Subclasses override :meth:`wrap_tensor` to decide what a leaf becomes.
    """

    def __init__(self, check: Optional[bool] = None):
        self.check = debug_checks_enabled() if check is None else check
        self._recorders: List[List[Tensor]] = []

    def wrap_tensor(self, value: Tensor) -> Tensor:
        return value

    def wrap(self, value: Any) -> Any:
        if isinstance(value, Tensor):
            return self._leaf(value)
        if isinstance(value, Real) and not isinstance(value, bool):
            return self._leaf(Tensor(value))
        if isinstance(value, Differentiable):
            return self._aggregate(value)
        if isinstance(value, tuple):
            items = [self.wrap(v) for v in value]
            if hasattr(value, "_fields"):
                return type(value)(*items)
            return type(value)(items)
        if isinstance(value, list):
            return [self.wrap(v) for v in value]
        if isinstance(value, dict):
            items = [(k, self.wrap(v)) for k, v in value.items()]
            return dict(items) if type(value) is dict else type(value)(items)
        if value is None:
            return None
        raise TypeError(
            f"cannot wrap a value of type {type(value).__name__}; "
            "subclass Differentiable to make it participate in differentiation"
        )

    def _leaf(self, value: Tensor) -> Tensor:
        out = self.wrap_tensor(value)
        if self._recorders:
            self._recorders[-1].append(out)
        return out

    def _aggregate(self, value: Differentiable) -> Any:
        if not self.check:
            return value.wrap(self)

        self._recorders.append([])
        try:
            result = value.wrap(self)
        finally:
            produced = self._recorders.pop()
        if self._recorders:
            self._recorders[-1].extend(produced)

        name = type(value).__name__
        if type(result) is not type(value):
            raise StructuralWrapMismatch(
                f"{name}.wrap returned {type(result).__name__}, expected {name}"
            )
        observed = leaves(result)
        if len(observed) != len(produced):
            raise StructuralWrapMismatch(
                f"{name}.wrap produced {len(produced)} leaves but the result "
                f"holds {len(observed)}"
            )
        for position, (seen, made) in enumerate(zip(observed, produced)):
            if seen is not made:
                raise StructuralWrapMismatch(
                    f"{name}.wrap rebuilt leaf {position} out of order or "
                    "without the wrapped value"
                )
        made_ids = {id(leaf) for leaf in produced}
        for field, held in _held_values(result):
            if isinstance(held, Tensor) and id(held) in made_ids:
                continue
            raise StructuralWrapMismatch(
                f"{name}.wrap left field '{field}' without passing it through the wrapper"
            )
        return result


def _fields(obj: Any) -> Iterator[tuple]:
    if hasattr(obj, "__dict__"):
        yield from vars(obj).items()
    for cls in type(obj).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        for slot in (slots,) if isinstance(slots, str) else slots:
            if slot not in ("__dict__", "__weakref__") and hasattr(obj, slot):
                yield slot, getattr(obj, slot)


def _held_values(obj: Any) -> Iterator[tuple]:
    """
    Tensors and floating-point numbers stored on ``obj``, looking through
    built-in containers but not into nested ``Differentiable`` fields, which
    check themselves.
    """

    def walk(field: str, value: Any) -> Iterator[tuple]:
        if isinstance(value, Tensor):
            yield field, value
        elif isinstance(value, Real) and not isinstance(value, (bool, Integral)):
            yield field, value
        elif isinstance(value, (tuple, list)):
            for item in value:
                yield from walk(field, item)
        elif isinstance(value, dict):
            for item in value.values():
                yield from walk(field, item)

    for field, value in _fields(obj):
        yield from walk(field, value)


class FunctionWrapper(Wrapper):
    """Apply a function to every leaf."""

    def __init__(self, fn: Callable[[Tensor], Tensor], check: Optional[bool] = None):
        super().__init__(check)
        self.fn = fn

    def wrap_tensor(self, value: Tensor) -> Tensor:
        return self.fn(value)


class _LeafCollector(Wrapper):
    def __init__(self):
        super().__init__(check=False)
        self.found: List[Tensor] = []

    def wrap_tensor(self, value: Tensor) -> Tensor:
        self.found.append(value)
        return value


def wrap(entity: Any, fn: Callable[[Tensor], Tensor]) -> Any:
    """Rebuild ``entity`` with ``fn`` applied to each tensor leaf."""

    return FunctionWrapper(fn).wrap(entity)


def leaves(entity: Any) -> List[Tensor]:
    """Tensor leaves of ``entity`` in wrap order."""

    collector = _LeafCollector()
    collector.wrap(entity)
    return collector.found


__all__ = ["Differentiable", "Wrapper", "FunctionWrapper", "wrap", "leaves"]
