# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

import logging

# The tensor module binds the functional layer, so it is imported first.
from .tensor import (
    Tensor,
    arange,
    as_tensor,
    eye,
    from_numpy,
    full,
    linspace,
    ones,
    ones_like,
    rand,
    randn,
    tensor,
    zeros,
    zeros_like,
)
from . import functional
from ._config import (
    debug_checks,
    debug_checks_enabled,
    default_dtype,
    get_default_dtype,
    manual_seed,
    set_debug_checks,
    set_default_dtype,
)
from .engine import (
    forward_derivative,
    jvp,
    primal,
    primal_and_forward_derivative,
    primal_and_reverse_derivative,
    reverse_derivative,
    vjp,
)
from .errors import (
    DifftensorError,
    IndexOutOfRange,
    ShapeMismatch,
    StructuralWrapMismatch,
    UnsupportedOperator,
)
from .export import TraceExport, export_trace, signature
from .kernels import clear_kernels, lookup_kernel, register_kernel, unregister_kernel
from .operators import (
    Operator,
    apply,
    defop,
    get_operator,
    register_operator,
    registered_operators,
)
from .shape import Shape, broadcast_shapes
from .trace import OpContext, TracedTensor
from .wrap import Differentiable, FunctionWrapper, Wrapper, leaves, wrap

try:
    from ._version import __version__
except ImportError:  # pragma: no cover - fallback for source checkouts
    __version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

_FUNCTIONAL_FORWARDERS = (
    "matmul",
    "dot",
    "sum",
    "mean",
    "exp",
    "log",
    "sqrt",
    "sin",
    "cos",
    "tanh",
    "cast",
    "relu",
    "sigmoid",
    "maximum",
    "minimum",
    "clamp",
    "where",
    "reshape",
    "view",
    "flatten",
    "transpose",
    "permute",
    "squeeze",
    "unsqueeze",
    "stack",
    "broadcast_to",
    "sum_to",
    "mse_loss",
)

for _name in _FUNCTIONAL_FORWARDERS:
    globals()[_name] = getattr(functional, _name)

__all__ = [
    "Tensor",
    "TracedTensor",
    "Shape",
    "broadcast_shapes",
    "tensor",
    "as_tensor",
    "zeros",
    "ones",
    "full",
    "zeros_like",
    "ones_like",
    "rand",
    "randn",
    "eye",
    "arange",
    "linspace",
    "from_numpy",
    "functional",
    "set_default_dtype",
    "get_default_dtype",
    "default_dtype",
    "set_debug_checks",
    "debug_checks_enabled",
    "debug_checks",
    "manual_seed",
    "DifftensorError",
    "ShapeMismatch",
    "IndexOutOfRange",
    "UnsupportedOperator",
    "StructuralWrapMismatch",
    "Operator",
    "OpContext",
    "defop",
    "register_operator",
    "get_operator",
    "registered_operators",
    "apply",
    "register_kernel",
    "unregister_kernel",
    "clear_kernels",
    "lookup_kernel",
    "Differentiable",
    "Wrapper",
    "FunctionWrapper",
    "wrap",
    "leaves",
    "primal",
    "primal_and_reverse_derivative",
    "reverse_derivative",
    "vjp",
    "primal_and_forward_derivative",
    "forward_derivative",
    "jvp",
    "TraceExport",
    "export_trace",
    "signature",
    *_FUNCTIONAL_FORWARDERS,
]
