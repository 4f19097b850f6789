# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Exception hierarchy raised by difftensor.

Every error also derives from the matching builtin so callers written
against NumPy conventions (``except ValueError`` / ``except IndexError``)
keep working.
"""

from __future__ import annotations


class DifftensorError(Exception):
    """Base class for all difftensor errors."""


class ShapeMismatch(DifftensorError, ValueError):
    """Shapes are incompatible for broadcasting, reshaping or matmul."""


class IndexOutOfRange(DifftensorError, IndexError):
    """An index or view range lies outside a dimension's bounds."""


class UnsupportedOperator(DifftensorError, RuntimeError):
    """An operator on the trace has no derivative rule for the requested mode."""

    def __init__(self, operator_name: str, rule: str = "vjp"):
        self.operator_name = operator_name
        self.rule = rule
        super().__init__(
            f"operator '{operator_name}' has no registered {rule} rule"
        )


class StructuralWrapMismatch(DifftensorError, RuntimeError):
    """A ``Differentiable.wrap`` implementation changed the aggregate's structure."""


__all__ = [
    "DifftensorError",
    "ShapeMismatch",
    "IndexOutOfRange",
    "UnsupportedOperator",
    "StructuralWrapMismatch",
]
