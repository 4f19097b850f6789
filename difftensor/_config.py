# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Process-wide settings: default dtype, debug checks and the random generator."""

from __future__ import annotations

import os
from contextlib import contextmanager
from threading import RLock
from typing import Iterator, Optional

import numpy as np

SUPPORTED_DTYPES = ("float32", "float64", "int32", "int64", "bool")
FLOAT_DTYPES = ("float32", "float64")

_CONFIG_LOCK = RLock()

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def _validate_float_dtype(dtype: str) -> str:
    if dtype not in FLOAT_DTYPES:
        raise ValueError(
            f"Unsupported default dtype '{dtype}'; expected one of {', '.join(FLOAT_DTYPES)}"
        )
    return dtype


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f"{name} must be one of 0/1/true/false, got {raw!r}")


_default_dtype: str = _validate_float_dtype(
    os.environ.get("DIFFTENSOR_DEFAULT_DTYPE", "float32")
)
_debug_checks: bool = _env_flag("DIFFTENSOR_DEBUG_CHECKS", __debug__)
_generator: np.random.Generator = np.random.default_rng()


def set_default_dtype(dtype: str) -> None:
    """Set the global default floating point dtype for new tensors."""

    global _default_dtype
    with _CONFIG_LOCK:
        _default_dtype = _validate_float_dtype(dtype)


def get_default_dtype() -> str:
    """Get the current global default data type."""

    return _default_dtype


@contextmanager
def default_dtype(dtype: str) -> Iterator[None]:
    """Temporarily switch the default dtype, restoring it on exit."""

    with _CONFIG_LOCK:
        previous = _default_dtype
        set_default_dtype(dtype)
    try:
        yield
    finally:
        set_default_dtype(previous)


def set_debug_checks(enabled: bool) -> None:
    """Enable or disable structural assertions in the wrap protocol."""

    global _debug_checks
    with _CONFIG_LOCK:
        _debug_checks = bool(enabled)


def debug_checks_enabled() -> bool:
    return _debug_checks


@contextmanager
def debug_checks(enabled: bool = True) -> Iterator[None]:
    """Temporarily enable (or disable) debug checks."""

    with _CONFIG_LOCK:
        previous = _debug_checks
        set_debug_checks(enabled)
    try:
        yield
    finally:
        set_debug_checks(previous)


def manual_seed(seed: Optional[int]) -> None:
    """Reseed the generator used by ``rand`` and ``randn``."""

    global _generator
    with _CONFIG_LOCK:
        _generator = np.random.default_rng(seed)


def get_generator() -> np.random.Generator:
    return _generator


__all__ = [
    "SUPPORTED_DTYPES",
    "FLOAT_DTYPES",
    "set_default_dtype",
    "get_default_dtype",
    "default_dtype",
    "set_debug_checks",
    "debug_checks_enabled",
    "debug_checks",
    "manual_seed",
    "get_generator",
]
