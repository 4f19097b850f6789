# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import difftensor as dt


def test_tensor_from_list_uses_default_dtype():
    t = dt.tensor([1, 2, 3])
    assert t.dtype == "float32"
    assert t.shape == (3,)
    np.testing.assert_allclose(t.numpy(), [1.0, 2.0, 3.0])


def test_tensor_explicit_dtype():
    t = dt.Tensor([[1, 2], [3, 4]], dtype="float64")
    assert t.dtype == "float64"
    assert t.ndim == 2
    assert t.size == 4


def test_bool_and_integer_arrays_keep_kind():
    assert dt.tensor([True, False]).dtype == "bool"
    assert dt.Tensor(np.array([1, 2], dtype=np.int64)).dtype == "int64"
    assert dt.Tensor(np.array([1, 2], dtype=np.int32)).dtype == "int32"


def test_unsupported_dtype():
    with pytest.raises(ValueError):
        dt.Tensor([1.0], dtype="complex64")


def test_storage_is_copied_and_read_only():
    source = np.array([1.0, 2.0, 3.0], dtype=np.float32)
    t = dt.Tensor(source)
    source[0] = 100.0
    assert t.numpy()[0] == 1.0
    assert not t.numpy().flags.writeable
    with pytest.raises(ValueError):
        t.numpy()[0] = 5.0


def test_operations_return_new_values():
    a = dt.tensor([1.0, 2.0])
    b = a + 1
    assert b is not a
    np.testing.assert_allclose(a.numpy(), [1.0, 2.0])
    np.testing.assert_allclose(b.numpy(), [2.0, 3.0])


def test_factories():
    assert dt.zeros(2, 3).shape == (2, 3)
    assert dt.ones((4,)).tolist() == [1.0, 1.0, 1.0, 1.0]
    np.testing.assert_allclose(dt.full((2, 2), 7.0).numpy(), np.full((2, 2), 7.0))
    np.testing.assert_allclose(dt.eye(3).numpy(), np.eye(3))
    assert dt.arange(5).tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]
    np.testing.assert_allclose(dt.linspace(0.0, 1.0, 5).numpy(), [0, 0.25, 0.5, 0.75, 1.0])
    assert dt.zeros_like(dt.ones(2, dtype="float64")).dtype == "float64"


def test_scalar_conversions():
    s = dt.tensor(3.5)
    assert s.shape == ()
    assert s.item() == 3.5
    assert float(s) == 3.5
    assert int(dt.tensor(2.0)) == 2


def test_item_requires_single_element():
    with pytest.raises(RuntimeError):
        dt.tensor([1.0, 2.0]).item()


def test_truth_value_of_multi_element_tensor_is_ambiguous():
    with pytest.raises(ValueError):
        bool(dt.tensor([1.0, 2.0]))


def test_len_and_iteration():
    t = dt.tensor([[1.0, 2.0], [3.0, 4.0]])
    assert len(t) == 2
    rows = [row.tolist() for row in t]
    assert rows == [[1.0, 2.0], [3.0, 4.0]]
    with pytest.raises(TypeError):
        len(dt.tensor(1.0))


def test_repr():
    assert repr(dt.tensor([1.0])).startswith("tensor(")
    assert "float32" in repr(dt.tensor([1.0]))


def test_astype():
    t = dt.tensor([1.5, 2.5]).astype("int64")
    assert t.dtype == "int64"
    assert t.tolist() == [1, 2]


def test_numpy_interop():
    t = dt.tensor([1.0, 2.0])
    np.testing.assert_allclose(np.asarray(t), [1.0, 2.0])
    assert dt.from_numpy(np.arange(3.0)).shape == (3,)
