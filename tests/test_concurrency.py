# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

from concurrent.futures import ThreadPoolExecutor

import numpy as np

import difftensor as dt


def _reverse(k):
    x = dt.Tensor([float(k), 1.0], dtype="float64")
    return dt.reverse_derivative(x, lambda v: (v * v * k).sum()).numpy()


def _forward(k):
    x = dt.Tensor([float(k), 2.0], dtype="float64")
    _, tangent = dt.jvp(x, lambda v: v * v + k, dt.ones(2, dtype="float64"))
    return tangent.numpy()


def _second(k):
    x = dt.tensor(float(k), dtype="float64")
    return dt.reverse_derivative(
        x, lambda v: dt.reverse_derivative(v, lambda w: w * w * w)
    ).item()


def test_reverse_mode_in_threads():
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_reverse, range(64)))
    for k, grad in enumerate(results):
        np.testing.assert_allclose(grad, [2.0 * k * k, 2.0 * k])


def test_forward_mode_in_threads():
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_forward, range(64)))
    for k, tangent in enumerate(results):
        np.testing.assert_allclose(tangent, [2.0 * k, 4.0])


def test_nested_derivatives_in_threads():
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_second, range(32)))
    for k, value in enumerate(results):
        assert value == 6.0 * k
