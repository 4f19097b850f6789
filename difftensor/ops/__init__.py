# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Built-in primitive operators, each with forward, VJP and JVP rules."""

from . import arithmetic, comparison, indexing, linalg, reduction
from .arithmetic import abs, add, cast, cos, div, exp, log, mul, neg, pow, sin, sub, tanh
from .comparison import eq, ge, gt, le, lt, ne, where
from .indexing import (
    flatten,
    index,
    normalize_index,
    permute,
    reshape,
    scatter_view,
    squeeze,
    stack,
    transpose,
    unsqueeze,
    view,
)
from .linalg import dot, matmul
from .reduction import broadcast_to, mean, sum, sum_to

__all__ = (
    arithmetic.__all__
    + comparison.__all__
    + indexing.__all__
    + linalg.__all__
    + reduction.__all__
)
