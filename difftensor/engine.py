# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Reverse- and forward-mode derivative extraction.

Every call follows the same life cycle: open a fresh trace, wrap the input so
each leaf is tracked, run the user function exactly once, replay the recorded
nodes to extract derivatives, and discard the trace.

Reverse mode replays nodes from last to first, applying each operator's VJP
and summing the contributions that reach a leaf in the order they are
produced. Forward mode replays nodes first to last, applying JVPs. Because
the derivative rules are themselves built from traced primitives, a call made
inside another differentiation call is recorded by the outer trace, which
gives higher-order derivatives.
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ._config import debug_checks_enabled
from .errors import ShapeMismatch, UnsupportedOperator
from .ops.arithmetic import cast
from .ops.indexing import permute, reshape, stack
from .tensor import Tensor, as_tensor, ones_like, zeros, zeros_like
from .trace import Trace, TracedTensor, new_trace
from .wrap import leaves, wrap

logger = logging.getLogger(__name__)

AdjointOf = Callable[[TracedTensor], Tensor]
Extractor = Callable[[Any, Tensor, AdjointOf], Any]


def primal(value: Any) -> Any:
    """Strip all tracking from ``value``."""

    while isinstance(value, TracedTensor):
        value = value.primal
    return value


def _run(trace: Trace, x: Any, f: Callable[[Any], Any]) -> Tuple[Any, Tensor]:
    tracked = wrap(x, trace.new_leaf)
    output = f(tracked)
    if isinstance(output, Real) and not isinstance(output, bool):
        output = as_tensor(output)
    if not isinstance(output, Tensor):
        raise TypeError(
            f"differentiated function must return a tensor, got {type(output).__name__}"
        )
    logger.debug("traced %d nodes at level %d", len(trace.nodes), trace.level)
    return tracked, output


def _check_rule_output(node, position: int, value: Tensor) -> None:
    expected = node.primals[position].shape
    if value.shape != expected:
        raise ShapeMismatch(
            f"{node.op.name} rule produced shape {tuple(value.shape)} for an input "
            f"of shape {tuple(expected)}"
        )


# ---------------------------------------------------------------------------
# reverse mode
# ---------------------------------------------------------------------------


def _backpropagate(trace: Trace, output: Tensor, seed: Tensor) -> Dict[int, Tensor]:
    adjoints: Dict[int, Tensor] = {}
    if not trace.owns(output):
        return adjoints
    adjoints[output.leaf_id] = seed
    check = debug_checks_enabled()
    for node in reversed(trace.nodes):
        g = adjoints.pop(node.output_id, None)
        if g is None:
            continue
        if node.op.vjp is None:
            raise UnsupportedOperator(node.op.name, "vjp")
        contributions = node.op.vjp(node.context, g)
        for position, (leaf_id, grad) in enumerate(zip(node.inputs, contributions)):
            if leaf_id is None or grad is None:
                continue
            if check:
                _check_rule_output(node, position, grad)
            previous = adjoints.get(leaf_id)
            adjoints[leaf_id] = grad if previous is None else previous + grad
    return adjoints


def _default_extract(tracked_input: Any, tracked_output: Tensor, adjoint_of: AdjointOf) -> Any:
    return wrap(tracked_input, adjoint_of)


def _match_leaf(value: Tensor, leaf: TracedTensor) -> Tensor:
    if np.dtype(leaf.dtype).kind == "f":
        return cast(value, leaf.dtype)
    return value


def _seed_for(output: Tensor, seed: Any) -> Tensor:
    value = primal(output)
    seed = as_tensor(seed, value)
    if seed.shape != value.shape:
        raise ShapeMismatch(
            f"seed shape {tuple(seed.shape)} does not match output shape {tuple(value.shape)}"
        )
    return seed


def _one_hot(shape: Tuple[int, ...], flat_index: int, dtype: str) -> Tensor:
    data = np.zeros(shape, dtype=dtype)
    data.reshape(-1)[flat_index] = 1
    return Tensor._from_array(data)


def primal_and_reverse_derivative(
    x: Any,
    f: Callable[[Any], Any],
    extract: Optional[Extractor] = None,
    seed: Any = None,
) -> Tuple[Tensor, Any]:
    """
    Evaluate ``f(x)`` and its reverse-mode derivative with respect to ``x``.

    ``x`` may be a tensor, a number or any aggregate the wrap protocol
    understands. For a scalar output the result is the gradient structured
    like ``x``. With ``seed`` (a cotangent shaped like the output) it is the
    vector-Jacobian product. For a non-scalar output without a seed every leaf
    receives the full Jacobian of shape ``output.shape + leaf.shape``.

    ``extract(tracked_input, tracked_output, adjoint_of)`` customises how the
    derivative is assembled; ``adjoint_of(leaf)`` returns a tracked leaf's
    adjoint.
    """

    extract = extract or _default_extract
    with new_trace() as trace:
        tracked, output = _run(trace, x, f)
        out_primal = trace.lower(output)
        out_shape = tuple(out_primal.shape)

        if seed is not None or not out_shape:
            start = ones_like(out_primal) if seed is None else _seed_for(output, seed)
            adjoints = _backpropagate(trace, output, start)

            def adjoint_of(leaf: TracedTensor) -> Tensor:
                found = adjoints.get(leaf.leaf_id)
                if found is None:
                    return zeros_like(leaf.primal)
                return _match_leaf(found, leaf)

        else:
            sweeps: List[Dict[int, Tensor]] = [
                _backpropagate(
                    trace, output, _one_hot(out_shape, i, out_primal.dtype)
                )
                for i in range(out_primal.size)
            ]
            logger.debug("reverse jacobian over %d output elements", len(sweeps))

            def adjoint_of(leaf: TracedTensor) -> Tensor:
                rows = [
                    sweep.get(leaf.leaf_id, None) for sweep in sweeps
                ]
                rows = [
                    zeros_like(leaf.primal) if r is None else _match_leaf(r, leaf)
                    for r in rows
                ]
                shape = out_shape + tuple(leaf.shape)
                if not rows:
                    return zeros(shape, dtype=leaf.dtype)
                return reshape(stack(rows), shape)

        derivative = extract(tracked, output, adjoint_of)
        logger.debug("reverse pass finished over %d nodes", len(trace.nodes))
    return out_primal, derivative


def reverse_derivative(
    x: Any,
    f: Callable[[Any], Any],
    extract: Optional[Extractor] = None,
    seed: Any = None,
) -> Any:
    """Reverse-mode derivative of ``f`` at ``x``, without the primal value."""

    return primal_and_reverse_derivative(x, f, extract=extract, seed=seed)[1]


def vjp(x: Any, f: Callable[[Any], Any], cotangent: Any) -> Tuple[Tensor, Any]:
    return primal_and_reverse_derivative(x, f, seed=cotangent)


# ---------------------------------------------------------------------------
# forward mode
# ---------------------------------------------------------------------------


def _propagate(trace: Trace, tangents: Dict[int, Tensor]) -> Dict[int, Tensor]:
    check = debug_checks_enabled()
    for node in trace.nodes:
        incoming = tuple(
            None if leaf_id is None else tangents.get(leaf_id) for leaf_id in node.inputs
        )
        if all(t is None for t in incoming):
            continue
        if node.op.jvp is None:
            raise UnsupportedOperator(node.op.name, "jvp")
        out = node.op.jvp(node.context, incoming)
        if out is None:
            continue
        if check and out.shape != node.output.shape:
            raise ShapeMismatch(
                f"{node.op.name} jvp produced shape {tuple(out.shape)} for an output "
                f"of shape {tuple(node.output.shape)}"
            )
        tangents[node.output_id] = out
    return tangents


def _output_tangent(trace: Trace, output: Tensor, tangents: Dict[int, Tensor]) -> Tensor:
    found = tangents.get(output.leaf_id) if trace.owns(output) else None
    return zeros_like(primal(output)) if found is None else found


def primal_and_forward_derivative(
    x: Any, f: Callable[[Any], Any], tangent: Any = None
) -> Tuple[Tensor, Any]:
    """
    Evaluate ``f(x)`` and its forward-mode derivative.

    With ``tangent`` (structured like ``x``) the derivative is the
    Jacobian-vector product, shaped like the output. Without one it is the
    full Jacobian structured like ``x``, each leaf entry of shape
    ``output.shape + leaf.shape``.
    """

    with new_trace() as trace:
        tracked, output = _run(trace, x, f)
        out_primal = trace.lower(output)
        tracked_leaves = leaves(tracked)

        if tangent is not None:
            given = leaves(tangent)
            if len(given) != len(tracked_leaves):
                raise ValueError(
                    f"tangent has {len(given)} leaves but the input has {len(tracked_leaves)}"
                )
            seeds: Dict[int, Tensor] = {}
            for leaf, t in zip(tracked_leaves, given):
                t = as_tensor(t, leaf.primal)
                if t.shape != leaf.shape:
                    raise ShapeMismatch(
                        f"tangent shape {tuple(t.shape)} does not match input leaf "
                        f"shape {tuple(leaf.shape)}"
                    )
                seeds[leaf.leaf_id] = t
            derivative = _output_tangent(trace, output, _propagate(trace, seeds))
        else:
            out_shape = tuple(out_primal.shape)
            jacobians: Dict[int, Tensor] = {}
            for leaf in tracked_leaves:
                leaf_shape = tuple(leaf.shape)
                columns = [
                    _output_tangent(
                        trace,
                        output,
                        _propagate(
                            trace, {leaf.leaf_id: _one_hot(leaf_shape, i, leaf.dtype)}
                        ),
                    )
                    for i in range(leaf.size)
                ]
                if not columns:
                    jacobians[leaf.leaf_id] = zeros(
                        out_shape + leaf_shape, dtype=out_primal.dtype
                    )
                    continue
                # (leaf elements, *out) -> (*out, *leaf)
                stacked = reshape(stack(columns), leaf_shape + out_shape)
                rank_out, rank_leaf = len(out_shape), len(leaf_shape)
                order = tuple(range(rank_leaf, rank_leaf + rank_out)) + tuple(
                    range(rank_leaf)
                )
                jacobians[leaf.leaf_id] = permute(stacked, order)
            derivative = wrap(tracked, lambda leaf: jacobians[leaf.leaf_id])
        logger.debug("forward pass finished over %d nodes", len(trace.nodes))
    return out_primal, derivative


def forward_derivative(x: Any, f: Callable[[Any], Any], tangent: Any = None) -> Any:
    """Forward-mode derivative of ``f`` at ``x``, without the primal value."""

    return primal_and_forward_derivative(x, f, tangent=tangent)[1]


def jvp(x: Any, f: Callable[[Any], Any], tangent: Any) -> Tuple[Tensor, Any]:
    return primal_and_forward_derivative(x, f, tangent=tangent)


__all__ = [
    "primal",
    "primal_and_reverse_derivative",
    "reverse_derivative",
    "vjp",
    "primal_and_forward_derivative",
    "forward_derivative",
    "jvp",
]
