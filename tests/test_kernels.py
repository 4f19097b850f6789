# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import difftensor as dt


@pytest.fixture(autouse=True)
def _clean_kernels():
    dt.clear_kernels()
    yield
    dt.clear_kernels()


def test_registered_kernel_is_used():
    calls = []

    def add_kernel(a, b, *, out_shape):
        calls.append(out_shape)
        return np.add(a, b)

    dt.register_kernel("add", add_kernel)
    result = dt.tensor([1.0, 2.0]) + dt.tensor([3.0, 4.0])
    np.testing.assert_allclose(result.numpy(), [4.0, 6.0])
    assert calls == [(2,)]


def test_kernel_result_is_copied_and_read_only():
    buffer = np.zeros(2, dtype=np.float32)

    def into_buffer(a, b, *, out_shape):
        np.add(a, b, out=buffer)
        return buffer

    dt.register_kernel("add", into_buffer)
    result = dt.tensor([1.0, 2.0]) + 1.0
    buffer[:] = -1.0
    np.testing.assert_allclose(result.numpy(), [2.0, 3.0])
    assert not result.numpy().flags.writeable


def test_kernel_with_wrong_shape_raises():
    dt.register_kernel("mul", lambda a, b, *, out_shape: np.zeros(5, dtype=a.dtype))
    with pytest.raises(dt.ShapeMismatch):
        dt.ones(2, 2) * dt.ones(2, 2)


def test_flat_kernel_result_is_rejected():
    dt.register_kernel(
        "matmul",
        lambda a, b, *, out_shape: (a @ b).ravel(),
        shapes=[(2, 3), (3, 2)],
        dtype="float32",
    )
    with pytest.raises(dt.ShapeMismatch):
        dt.ones(2, 3) @ dt.ones(3, 2)


def test_kernel_matching_output_shape_is_accepted():
    dt.register_kernel(
        "matmul",
        lambda a, b, *, out_shape: a @ b,
        shapes=[(2, 3), (3, 2)],
        dtype="float32",
    )
    result = dt.ones(2, 3) @ dt.ones(3, 2)
    assert result.shape == (2, 2)
    np.testing.assert_allclose(result.numpy(), np.full((2, 2), 3.0))


def test_lookup_prefers_most_specific_kernel():
    generic = lambda *arrays, out_shape: None  # noqa: E731
    by_dtype = lambda *arrays, out_shape: None  # noqa: E731
    exact = lambda *arrays, out_shape: None  # noqa: E731
    dt.register_kernel("exp", generic)
    dt.register_kernel("exp", by_dtype, dtype="float64")
    dt.register_kernel("exp", exact, shapes=[(3,)], dtype="float64")
    assert dt.lookup_kernel("exp", [(3,)], "float64") is exact
    assert dt.lookup_kernel("exp", [(4,)], "float64") is by_dtype
    assert dt.lookup_kernel("exp", [(3,)], "float32") is generic
    assert dt.lookup_kernel("log", [(3,)], "float32") is None


def test_duplicate_registration_and_unregister():
    kernel = lambda a, *, out_shape: np.exp(a)  # noqa: E731
    dt.register_kernel("exp", kernel)
    with pytest.raises(ValueError):
        dt.register_kernel("exp", kernel)
    dt.register_kernel("exp", kernel, replace=True)
    assert dt.unregister_kernel("exp") is True
    assert dt.unregister_kernel("exp") is False


def test_kernels_do_not_change_derivatives():
    dt.register_kernel("mul", lambda a, b, *, out_shape: np.multiply(a, b))
    grad = dt.reverse_derivative(dt.tensor([1.0, 2.0]), lambda v: (v * v).sum())
    np.testing.assert_allclose(grad.numpy(), [2.0, 4.0])


def test_kernel_receives_operator_params():
    seen = {}

    def sum_kernel(a, *, out_shape, axes, keepdims):
        seen["axes"] = axes
        return np.sum(a, axis=axes, keepdims=keepdims)

    dt.register_kernel("sum", sum_kernel)
    assert dt.ones(2, 3).sum(axis=1).tolist() == [3.0, 3.0]
    assert seen["axes"] == (1,)
