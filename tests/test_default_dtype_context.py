# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import os
import subprocess
import sys

import pytest

import difftensor as dt


def test_default_dtype_context_restores():
    original = dt.get_default_dtype()
    with dt.default_dtype("float64"):
        assert dt.get_default_dtype() == "float64"
        t = dt.Tensor([1.0, 2.0])
        assert t.dtype == "float64"
    assert dt.get_default_dtype() == original


def test_default_dtype_context_restores_on_exception():
    original = dt.get_default_dtype()
    with pytest.raises(RuntimeError):
        with dt.default_dtype("float64"):
            raise RuntimeError("boom")
    assert dt.get_default_dtype() == original


def test_default_dtype_context_invalid_dtype():
    original = dt.get_default_dtype()
    with pytest.raises(ValueError):
        with dt.default_dtype("not-a-real-dtype"):
            pass
    assert dt.get_default_dtype() == original


def test_default_dtype_must_be_floating_point():
    with pytest.raises(ValueError):
        dt.set_default_dtype("int32")


def test_set_default_dtype_affects_factories():
    original = dt.get_default_dtype()
    try:
        dt.set_default_dtype("float64")
        assert dt.zeros(2).dtype == "float64"
        assert dt.tensor(1.0).dtype == "float64"
    finally:
        dt.set_default_dtype(original)


def test_debug_checks_context_restores():
    original = dt.debug_checks_enabled()
    with dt.debug_checks(not original):
        assert dt.debug_checks_enabled() is (not original)
    assert dt.debug_checks_enabled() is original


def test_environment_overrides_default_dtype():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env = dict(os.environ, DIFFTENSOR_DEFAULT_DTYPE="float64", PYTHONPATH=root)
    out = subprocess.run(
        [sys.executable, "-c", "import difftensor as dt; print(dt.get_default_dtype())"],
        capture_output=True,
        text=True,
        env=env,
        check=True,
    )
    assert out.stdout.strip() == "float64"
