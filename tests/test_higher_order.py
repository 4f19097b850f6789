# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import difftensor as dt


def cube(v):
    return v**3


def test_second_derivative_reverse_over_reverse():
    x = dt.tensor(2.0)
    second = dt.reverse_derivative(x, lambda v: dt.reverse_derivative(v, cube))
    assert second.item() == pytest.approx(12.0)


def test_second_derivative_forward_over_reverse():
    x = dt.tensor(2.0)
    second = dt.forward_derivative(x, lambda v: dt.reverse_derivative(v, cube))
    assert second.item() == pytest.approx(12.0)


def test_second_derivative_reverse_over_forward():
    x = dt.tensor(2.0)
    second = dt.reverse_derivative(x, lambda v: dt.forward_derivative(v, cube))
    assert second.item() == pytest.approx(12.0)


def test_third_derivative():
    x = dt.tensor(2.0)

    def d1(v):
        return dt.reverse_derivative(v, cube)

    def d2(v):
        return dt.reverse_derivative(v, d1)

    assert dt.reverse_derivative(x, d2).item() == pytest.approx(6.0)


def test_second_derivative_of_sin():
    x = dt.Tensor(0.7, dtype="float64")
    second = dt.reverse_derivative(
        x, lambda v: dt.reverse_derivative(v, lambda u: u.sin())
    )
    assert second.item() == pytest.approx(-np.sin(0.7))


def test_hessian_of_vector_function():
    values = np.array([1.0, 2.0, 3.0])
    x = dt.Tensor(values, dtype="float64")
    hessian = dt.reverse_derivative(
        x, lambda v: dt.reverse_derivative(v, lambda u: (u**3).sum())
    )
    assert hessian.shape == (3, 3)
    np.testing.assert_allclose(hessian.numpy(), np.diag(6.0 * values))


def test_mixed_partial_derivative():
    p = (dt.Tensor(2.0, dtype="float64"), dt.Tensor(3.0, dtype="float64"))

    def df_dx(q):
        # d/dx (x^2 * y) = 2xy
        return dt.reverse_derivative(q, lambda r: r[0] ** 2 * r[1])[0]

    d2x, d2y = dt.reverse_derivative(p, df_dx)
    assert d2x.item() == pytest.approx(6.0)
    assert d2y.item() == pytest.approx(4.0)


def test_inner_derivative_of_closure_over_outer_value():
    # d/dx [ d/dy (x * y) ] = 1
    x = dt.tensor(5.0)
    result = dt.reverse_derivative(
        x, lambda v: dt.reverse_derivative(dt.tensor(1.0), lambda y: v * y)
    )
    assert result.item() == pytest.approx(1.0)
