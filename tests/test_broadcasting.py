# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import difftensor as dt


def test_scalar_broadcasting_addition():
    a = dt.Tensor([[1.0, 2.0], [3.0, 4.0]])
    b = dt.Tensor(1.0)
    c = a + b
    expected = np.array([[2.0, 3.0], [4.0, 5.0]])
    np.testing.assert_allclose(c.numpy(), expected)


def test_scalar_broadcasting_subtraction():
    a = dt.Tensor([[1.0, 2.0], [3.0, 4.0]])
    c = a - 1.0
    expected = np.array([[0.0, 1.0], [2.0, 3.0]])
    np.testing.assert_allclose(c.numpy(), expected)


def test_scalar_broadcasting_division():
    a = dt.Tensor([[2.0, 4.0], [6.0, 8.0]])
    c = a / dt.Tensor(2.0)
    expected = np.array([[1.0, 2.0], [3.0, 4.0]])
    np.testing.assert_allclose(c.numpy(), expected)


def test_broadcast_incompatible_shapes_error():
    a = dt.Tensor([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    b = dt.Tensor([1.0, 2.0])
    with pytest.raises(dt.ShapeMismatch):
        _ = a + b


def test_multi_dimensional_broadcasting():
    a = dt.Tensor(np.ones((2, 1, 3), dtype=np.float32))
    b = dt.Tensor(np.ones((1, 4, 1), dtype=np.float32) * 2)
    c = a + b
    expected = np.ones((2, 4, 3), dtype=np.float32) * 3
    np.testing.assert_allclose(c.numpy(), expected)


def test_broadcast_to_is_a_view():
    a = dt.tensor([1.0, 2.0, 3.0])
    b = a.broadcast_to(4, 3)
    assert b.shape == (4, 3)
    assert b.is_view
    assert np.shares_memory(a.numpy(), b.numpy())
    np.testing.assert_allclose(b.numpy(), np.tile([1.0, 2.0, 3.0], (4, 1)))


def test_broadcast_to_incompatible_shape():
    with pytest.raises(dt.ShapeMismatch):
        dt.tensor([1.0, 2.0]).broadcast_to(3, 3)


def test_broadcast_adjoint_sums_replicated_axes():
    a = dt.ones(2, 3)
    b = dt.tensor([1.0, 2.0, 3.0])
    grad_a, grad_b = dt.reverse_derivative((a, b), lambda ab: (ab[0] * ab[1]).sum())
    assert grad_a.shape == (2, 3)
    assert grad_b.shape == (3,)
    np.testing.assert_allclose(grad_a.numpy(), np.tile([1.0, 2.0, 3.0], (2, 1)))
    np.testing.assert_allclose(grad_b.numpy(), [2.0, 2.0, 2.0])
