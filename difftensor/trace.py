# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Call-scoped computation traces.

A :class:`Trace` records every primitive applied to its tracked leaves while
one differentiation call runs the user function. Tracked values are
:class:`TracedTensor` instances: ordinary tensors (their storage is the
primal value's storage) that additionally carry the trace and a leaf id.

Nested calls get increasing levels so a derivative computed inside another
differentiation call is itself traced by the outer call. The only ambient
state is the current nesting depth, held in a :class:`~contextvars.ContextVar`
so threads and asyncio tasks never observe each other's calls.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from .tensor import Tensor

if TYPE_CHECKING:  # pragma: no cover
    from .operators import Operator

logger = logging.getLogger(__name__)

_LEVEL: ContextVar[int] = ContextVar("difftensor_trace_level", default=0)


@dataclass(frozen=True)
class OpContext:
    """What a derivative rule may see: captured primals, output and parameters."""

    inputs: Tuple[Tensor, ...]
    output: Tensor
    params: Dict[str, Any]
    requires: Tuple[bool, ...]


@dataclass(frozen=True)
class TraceNode:
    """One recorded primitive application."""

    op: "Operator"
    params: Dict[str, Any]
    # Leaf id per input, ``None`` for inputs that are constants of this trace.
    inputs: Tuple[Optional[int], ...]
    primals: Tuple[Tensor, ...]
    output: Tensor
    output_id: int

    @property
    def context(self) -> OpContext:
        return OpContext(
            inputs=self.primals,
            output=self.output,
            params=self.params,
            requires=tuple(i is not None for i in self.inputs),
        )


class TracedTensor(Tensor):
    """A tensor tracked by a :class:`Trace`."""

    def __init__(self, primal: Tensor, trace: "Trace", leaf_id: int):
        self._data = primal._data
        self._base = None
        self.primal = primal
        self.trace = trace
        self.leaf_id = leaf_id

    def __repr__(self) -> str:
        return (
            f"TracedTensor(leaf={self.leaf_id}, level={self.trace.level}, "
            f"primal={self.primal!r})"
        )

    __str__ = __repr__


@dataclass(eq=False)
class Trace:
    """Node sequence of one differentiation call."""

    level: int
    nodes: List[TraceNode] = field(default_factory=list)
    active: bool = True
    _next_id: int = 0

    def _allocate(self) -> int:
        leaf_id = self._next_id
        self._next_id += 1
        return leaf_id

    def check_active(self) -> None:
        if not self.active:
            raise RuntimeError(
                "a traced value was used after its differentiation call finished"
            )

    def new_leaf(self, primal: Tensor) -> TracedTensor:
        """Install a fresh tracked leaf with a unique id."""

        self.check_active()
        return TracedTensor(primal, self, self._allocate())

    def owns(self, value: Any) -> bool:
        return isinstance(value, TracedTensor) and value.trace is self

    def lower(self, value: Any) -> Any:
        """Strip this trace's tracking from ``value``."""

        return value.primal if self.owns(value) else value

    def record(
        self,
        op: "Operator",
        params: Dict[str, Any],
        inputs: Tuple[Tensor, ...],
        primals: Tuple[Tensor, ...],
        output: Tensor,
    ) -> TracedTensor:
        self.check_active()
        leaf_id = self._allocate()
        self.nodes.append(
            TraceNode(
                op=op,
                params=params,
                inputs=tuple(t.leaf_id if self.owns(t) else None for t in inputs),
                primals=primals,
                output=output,
                output_id=leaf_id,
            )
        )
        return TracedTensor(output, self, leaf_id)


def innermost_trace(values: Tuple[Any, ...]) -> Optional[Trace]:
    """The highest-level trace among ``values``, or ``None`` if none is tracked."""

    found: Optional[Trace] = None
    for value in values:
        if not isinstance(value, TracedTensor):
            continue
        trace = value.trace
        trace.check_active()
        if found is None or trace.level > found.level:
            found = trace
        elif trace.level == found.level and trace is not found:
            raise RuntimeError(
                "tracked values from different differentiation calls cannot be combined"
            )
    return found


@contextmanager
def new_trace() -> Iterator[Trace]:
    """Create a trace one level above the current one; discard it on exit."""

    level = _LEVEL.get() + 1
    token = _LEVEL.set(level)
    trace = Trace(level=level)
    logger.debug("opened trace at level %d", level)
    try:
        yield trace
    finally:
        trace.active = False
        _LEVEL.reset(token)
        logger.debug("discarded trace at level %d (%d nodes)", level, len(trace.nodes))


__all__ = [
    "OpContext",
    "TraceNode",
    "TracedTensor",
    "Trace",
    "innermost_trace",
    "new_trace",
]
