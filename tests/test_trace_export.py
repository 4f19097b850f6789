# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import difftensor as dt


def loss(v):
    return (v * v).sum()


def test_export_records_plan_and_key():
    x = dt.tensor([1.0, 2.0, 3.0])
    exported = dt.export_trace(loss, x)
    assert exported.key[0] is loss
    assert exported.function is loss
    assert exported.key[1] == dt.signature(x) == (((3,), "float32"),)
    assert [node.op.name for node in exported.nodes] == ["mul", "sum"]
    assert len(exported.input_ids) == 1


def test_replay_matches_direct_evaluation():
    exported = dt.export_trace(loss, dt.tensor([1.0, 2.0, 3.0]))
    other = dt.tensor([4.0, 5.0, 6.0])
    assert exported.replay(other).item() == loss(other).item()


def test_replay_reverse_matches_retracing():
    exported = dt.export_trace(loss, dt.tensor([1.0, 2.0, 3.0]))
    other = dt.tensor([-1.0, 0.5, 2.0])
    primal, grad = exported.replay_reverse(other)
    expected_primal, expected_grad = dt.primal_and_reverse_derivative(other, loss)
    assert primal.item() == pytest.approx(expected_primal.item())
    np.testing.assert_allclose(grad.numpy(), expected_grad.numpy())


def test_replay_keeps_captured_constants():
    scale = dt.tensor([1.0, 10.0])
    exported = dt.export_trace(lambda v: (v * scale).sum(), dt.ones(2))
    assert exported.replay(dt.tensor([2.0, 3.0])).item() == 32.0


def test_replay_with_aggregate_input():
    def f(p):
        return (p["w"] * p["x"]).sum() + p["b"]

    template = {"w": dt.ones(2), "x": dt.ones(2), "b": dt.tensor(0.0)}
    exported = dt.export_trace(f, template)
    values = {"w": dt.tensor([1.0, 2.0]), "x": dt.tensor([3.0, 4.0]), "b": dt.tensor(0.5)}
    assert exported.replay(values).item() == 11.5
    _, grad = exported.replay_reverse(values)
    np.testing.assert_allclose(grad["w"].numpy(), [3.0, 4.0])
    assert grad["b"].item() == 1.0


def test_replay_rejects_different_signature():
    exported = dt.export_trace(loss, dt.ones(3))
    with pytest.raises(dt.ShapeMismatch):
        exported.replay(dt.ones(4))
    with pytest.raises(dt.ShapeMismatch):
        exported.replay(dt.ones(3, dtype="float64"))


def test_constant_output_export():
    exported = dt.export_trace(lambda v: dt.tensor(7.0), dt.ones(2))
    assert exported.output_id is None
    assert exported.replay(dt.zeros(2)).item() == 7.0
