# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Exported traces.

:func:`export_trace` runs a function once and keeps the recorded node plan so
a caching or compiling layer can re-evaluate it on new inputs of the same
shapes without calling the Python function again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .engine import primal_and_reverse_derivative
from .errors import ShapeMismatch
from .operators import apply
from .tensor import Tensor, as_tensor
from .trace import TraceNode, new_trace
from .wrap import leaves, wrap

logger = logging.getLogger(__name__)

Signature = Tuple[Tuple[Tuple[int, ...], str], ...]


def signature(x: Any) -> Signature:
    """Shape and dtype of every leaf of ``x`` in wrap order."""

    return tuple((tuple(leaf.shape), leaf.dtype) for leaf in leaves(x))


@dataclass(frozen=True)
class TraceExport:
    """The node plan recorded for one function and input signature."""

    key: Tuple[Callable[[Any], Any], Signature]
    nodes: Tuple[TraceNode, ...]
    input_ids: Tuple[int, ...]
    # ``None`` when the output does not depend on the input.
    output_id: Optional[int]
    output_constant: Optional[Tensor] = None

    @property
    def function(self) -> Callable[[Any], Any]:
        return self.key[0]

    def replay(self, x: Any) -> Tensor:
        """Re-evaluate the plan on ``x`` (same signature as the export)."""

        got = signature(x)
        if got != self.key[1]:
            raise ShapeMismatch(
                f"input signature {got} does not match exported signature {self.key[1]}"
            )
        if self.output_id is None:
            return self.output_constant

        values: Dict[int, Tensor] = dict(zip(self.input_ids, leaves(x)))
        for node in self.nodes:
            args = tuple(
                primal if leaf_id is None else values[leaf_id]
                for leaf_id, primal in zip(node.inputs, node.primals)
            )
            values[node.output_id] = apply(node.op, *args, **node.params)
        return values[self.output_id]

    def replay_reverse(self, x: Any, seed: Any = None) -> Tuple[Tensor, Any]:
        """Replay under a fresh trace and return ``(primal, derivative)``."""

        return primal_and_reverse_derivative(x, self.replay, seed=seed)


def export_trace(f: Callable[[Any], Any], x: Any) -> TraceExport:
    """Trace ``f`` at ``x`` once and return its node plan."""

    with new_trace() as trace:
        tracked = wrap(x, trace.new_leaf)
        output = as_tensor(f(tracked))
        input_ids = tuple(leaf.leaf_id for leaf in leaves(tracked))
        owned = trace.owns(output)
        exported = TraceExport(
            key=(f, signature(x)),
            nodes=tuple(trace.nodes),
            input_ids=input_ids,
            output_id=output.leaf_id if owned else None,
            output_constant=None if owned else output,
        )
    logger.debug(
        "exported %d nodes for %s", len(exported.nodes), getattr(f, "__name__", f)
    )
    return exported


__all__ = ["TraceExport", "export_trace", "signature"]
