# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Immutable tensor values with NumPy storage, indexing and views.
"""

from __future__ import annotations

from numbers import Integral, Real
from typing import Any, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from ._config import SUPPORTED_DTYPES, get_default_dtype, get_generator
from .shape import Shape, ShapeLike

Scalar = Union[float, int, bool]
IndexLike = Union[int, slice, range, Sequence[int]]


def _validate_dtype(dtype: str) -> str:
    name = np.dtype(dtype).name if not isinstance(dtype, str) else dtype
    if name not in SUPPORTED_DTYPES:
        raise ValueError(f"Unsupported dtype '{dtype}'")
    return name


def _as_storage(data: Any, dtype: Optional[str]) -> np.ndarray:
    """Copy ``data`` into a fresh NumPy buffer with a supported dtype."""

    if dtype is not None:
        return np.array(data, dtype=_validate_dtype(dtype))

    if isinstance(data, (np.ndarray, np.generic)):
        kind = data.dtype.kind
        if data.dtype.name in SUPPORTED_DTYPES:
            return np.array(data)
        if kind == "f":
            return np.array(data, dtype=get_default_dtype())
        if kind in "iu":
            return np.array(data, dtype="int64")
        raise TypeError(f"unsupported array dtype '{data.dtype}'")

    array = np.array(data)
    if array.dtype.kind == "b":
        return array
    if array.dtype.kind in "iuf":
        return array.astype(get_default_dtype())
    raise TypeError(f"cannot build a tensor from {type(data).__name__}")


def _freeze(array: np.ndarray) -> np.ndarray:
    if array.flags.writeable:
        array.setflags(write=False)
    return array


class Tensor:
    """
    An immutable multi-dimensional array.

    Storage is a read-only NumPy buffer. Operations never modify a tensor in
    place; they return new tensors. Indexing, transposition and slicing return
    views that share storage with (and keep a reference to) their base.
    """

    # Ensure NumPy defers to Tensor's reflected operators.
    __array_priority__ = 1000
    __hash__ = object.__hash__

    def __init__(self, data: Any, dtype: Optional[str] = None):
        """
        Initialize a tensor.

        Args:
            data: Input data (nested lists, NumPy array, scalar or another tensor)
            dtype: Data type ('float32', 'float64', 'int32', 'int64', 'bool')

        Examples:
            >>> t1 = Tensor([1, 2, 3])
            >>> t2 = Tensor([[1, 2], [3, 4]], dtype='float64')
        """
        if isinstance(data, Tensor):
            array = data._data
            if dtype is not None and _validate_dtype(dtype) != array.dtype.name:
                array = array.astype(dtype)
        else:
            array = _as_storage(data, dtype)
        self._data = _freeze(array)
        self._base: Optional[Tensor] = None

    @classmethod
    def _from_array(cls, array: np.ndarray, base: Optional["Tensor"] = None) -> "Tensor":
        """Wrap ``array`` without copying. ``base`` is set for views."""

        instance = cls.__new__(cls)
        instance._data = _freeze(np.asarray(array))
        instance._base = base
        return instance

    # Core properties
    @property
    def shape(self) -> Shape:
        """Get tensor shape."""
        return Shape(self._data.shape)

    @property
    def dtype(self) -> str:
        """Get tensor data type."""
        return self._data.dtype.name

    @property
    def ndim(self) -> int:
        """Number of dimensions."""
        return self._data.ndim

    rank = ndim

    @property
    def size(self) -> int:
        """Total number of elements."""
        return int(self._data.size)

    @property
    def base(self) -> Optional["Tensor"]:
        """The tensor this view shares storage with, or ``None``."""
        return self._base

    @property
    def is_view(self) -> bool:
        return self._base is not None

    @property
    def T(self) -> "Tensor":
        """Transpose (all axes reversed)."""
        return self.transpose()

    def numel(self) -> int:
        return self.size

    def dim(self) -> int:
        return self.ndim

    # Data conversion methods
    def numpy(self) -> np.ndarray:
        """Return the (read-only) storage as a NumPy array without copying."""
        return self._data

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        array = self._data if dtype is None else self._data.astype(dtype, copy=False)
        if copy:
            array = array.copy()
        return array

    def tolist(self) -> Any:
        return self._data.tolist()

    def item(self) -> Scalar:
        """Return the Python scalar value for a single-element tensor."""
        if self._data.size != 1:
            raise RuntimeError(
                "only one element tensors can be converted to Python scalars"
            )
        return self._data.reshape(()).item()

    def __float__(self) -> float:
        return float(self.item())

    def __int__(self) -> int:
        return int(self.item())

    def __bool__(self) -> bool:
        if self._data.size != 1:
            raise ValueError(
                "the truth value of a tensor with more than one element is ambiguous"
            )
        return bool(self.item())

    def __len__(self) -> int:
        if self._data.ndim == 0:
            raise TypeError("len() of a 0-d tensor")
        return self._data.shape[0]

    def __iter__(self) -> Iterator["Tensor"]:
        for i in range(len(self)):
            yield self[i]

    def astype(self, dtype: str) -> "Tensor":
        """Convert to a different dtype (returns a new, untracked tensor)."""
        return Tensor._from_array(self._data.astype(_validate_dtype(dtype)))

    def allclose(self, other: Any, rtol: float = 1e-5, atol: float = 1e-8) -> bool:
        return bool(np.allclose(self._data, np.asarray(other), rtol=rtol, atol=atol))

    def array_equal(self, other: Any) -> bool:
        return bool(np.array_equal(self._data, np.asarray(other)))

    # String representations
    def __repr__(self) -> str:
        body = np.array2string(self._data, separator=", ", prefix="tensor(")
        return f"tensor({body}, dtype={self.dtype})"

    __str__ = __repr__

    # Indexing and views
    def __getitem__(self, key: Any) -> "Tensor":
        """Index leading axes; a full index yields a scalar, a partial one a view."""
        return _functional.index(self, key)

    def view(self, index: IndexLike, axis: Optional[int] = None) -> "Tensor":
        """
        Return a view selected by ``index``.

        Without ``axis``, ``index`` is an int or a sequence of ints consumed
        from the leading axes (``x.view([1, 2]) == x[1, 2]``). With ``axis``,
        an int collapses that axis and a ``range`` or step-1 ``slice``
        restricts it.
        """
        return _functional.view(self, index, axis)

    def transpose(self) -> "Tensor":
        """Reverse the order of all axes."""
        return _functional.transpose(self)

    def permute(self, *axes: Union[int, Sequence[int]]) -> "Tensor":
        if len(axes) == 1 and isinstance(axes[0], (list, tuple)):
            axes = tuple(axes[0])
        return _functional.permute(self, axes)

    def reshape(self, *shape: Union[int, Sequence[int]]) -> "Tensor":
        if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
            shape = tuple(shape[0])
        return _functional.reshape(self, shape)

    def flatten(self, start_dim: int = 0, end_dim: int = -1) -> "Tensor":
        return _functional.flatten(self, start_dim, end_dim)

    def squeeze(self, dim: Optional[int] = None) -> "Tensor":
        return _functional.squeeze(self, dim)

    def unsqueeze(self, dim: int) -> "Tensor":
        return _functional.unsqueeze(self, dim)

    def broadcast_to(self, *shape: Union[int, Sequence[int]]) -> "Tensor":
        if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
            shape = tuple(shape[0])
        return _functional.broadcast_to(self, shape)

    # Arithmetic operations with broadcasting support
    def __neg__(self) -> "Tensor":
        return _functional.neg(self)

    def __pos__(self) -> "Tensor":
        return self

    def __abs__(self) -> "Tensor":
        return _functional.abs(self)

    def __add__(self, other: Any) -> "Tensor":
        return _functional.add(self, other)

    def __radd__(self, other: Any) -> "Tensor":
        return _functional.add(other, self)

    def __sub__(self, other: Any) -> "Tensor":
        return _functional.sub(self, other)

    def __rsub__(self, other: Any) -> "Tensor":
        return _functional.sub(other, self)

    def __mul__(self, other: Any) -> "Tensor":
        return _functional.mul(self, other)

    def __rmul__(self, other: Any) -> "Tensor":
        return _functional.mul(other, self)

    def __truediv__(self, other: Any) -> "Tensor":
        return _functional.div(self, other)

    def __rtruediv__(self, other: Any) -> "Tensor":
        return _functional.div(other, self)

    def __pow__(self, exponent: Any) -> "Tensor":
        """Element-wise power operation."""
        return _functional.pow(self, exponent)

    def __rpow__(self, base: Any) -> "Tensor":
        return _functional.pow(base, self)

    def pow(self, exponent: Any) -> "Tensor":
        """Alias for the ``**`` operator."""
        return self.__pow__(exponent)

    def __matmul__(self, other: "Tensor") -> "Tensor":
        """Matrix multiplication operator (@)."""
        return self.matmul(other)

    def __rmatmul__(self, other: Any) -> "Tensor":
        return _functional.matmul(other, self)

    # Matrix operations
    def matmul(self, other: "Tensor") -> "Tensor":
        return _functional.matmul(self, other)

    def dot(self, other: "Tensor") -> "Tensor":
        return _functional.dot(self, other)

    # Reductions
    def sum(self, axis: Union[int, Sequence[int], None] = None, keepdims: bool = False) -> "Tensor":
        return _functional.sum(self, axis, keepdims)

    def mean(self, axis: Union[int, Sequence[int], None] = None, keepdims: bool = False) -> "Tensor":
        return _functional.mean(self, axis, keepdims)

    # Element-wise functions
    def exp(self) -> "Tensor":
        return _functional.exp(self)

    def log(self) -> "Tensor":
        return _functional.log(self)

    def sqrt(self) -> "Tensor":
        return _functional.sqrt(self)

    def sin(self) -> "Tensor":
        return _functional.sin(self)

    def cos(self) -> "Tensor":
        return _functional.cos(self)

    def tanh(self) -> "Tensor":
        return _functional.tanh(self)

    def abs(self) -> "Tensor":
        return _functional.abs(self)

    def relu(self) -> "Tensor":
        return _functional.relu(self)

    def sigmoid(self) -> "Tensor":
        return _functional.sigmoid(self)

    def maximum(self, other: Any) -> "Tensor":
        return _functional.maximum(self, other)

    def minimum(self, other: Any) -> "Tensor":
        return _functional.minimum(self, other)

    def clamp(self, min: Optional[Real] = None, max: Optional[Real] = None) -> "Tensor":
        return _functional.clamp(self, min, max)

    clip = clamp

    # Comparisons and selection
    def eq(self, other: Any) -> "Tensor":
        return _functional.eq(self, other)

    def ne(self, other: Any) -> "Tensor":
        return _functional.ne(self, other)

    def lt(self, other: Any) -> "Tensor":
        return _functional.lt(self, other)

    def le(self, other: Any) -> "Tensor":
        return _functional.le(self, other)

    def gt(self, other: Any) -> "Tensor":
        return _functional.gt(self, other)

    def ge(self, other: Any) -> "Tensor":
        return _functional.ge(self, other)

    def __eq__(self, other: object) -> "Tensor":  # type: ignore[override]
        return self.eq(other)

    def __ne__(self, other: object) -> "Tensor":  # type: ignore[override]
        return self.ne(other)

    def __lt__(self, other: object) -> "Tensor":
        return self.lt(other)

    def __le__(self, other: object) -> "Tensor":
        return self.le(other)

    def __gt__(self, other: object) -> "Tensor":
        return self.gt(other)

    def __ge__(self, other: object) -> "Tensor":
        return self.ge(other)

    def where(self, condition: Any, other: Any) -> "Tensor":
        """Select ``self`` where ``condition`` holds, ``other`` elsewhere."""
        return _functional.where(condition, self, other)

    # Static tensor creation methods
    @staticmethod
    def zeros(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> "Tensor":
        """Create a tensor filled with zeros."""
        return Tensor._from_array(np.zeros(_shape_arg(shape), dtype=_dtype_or_default(dtype)))

    @staticmethod
    def ones(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> "Tensor":
        """Create a tensor filled with ones."""
        return Tensor._from_array(np.ones(_shape_arg(shape), dtype=_dtype_or_default(dtype)))

    @staticmethod
    def full(shape: ShapeLike, fill_value: Scalar, dtype: Optional[str] = None) -> "Tensor":
        """Create a tensor filled with ``fill_value``."""
        return Tensor._from_array(
            np.full(Shape(shape), fill_value, dtype=_dtype_or_default(dtype))
        )

    @staticmethod
    def rand(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> "Tensor":
        """Uniform samples in ``[0, 1)`` from the seeded generator."""
        values = get_generator().random(_shape_arg(shape))
        return Tensor._from_array(values.astype(_dtype_or_default(dtype)))

    @staticmethod
    def randn(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> "Tensor":
        """Standard normal samples from the seeded generator."""
        values = get_generator().standard_normal(_shape_arg(shape))
        return Tensor._from_array(values.astype(_dtype_or_default(dtype)))

    @staticmethod
    def eye(n: int, m: Optional[int] = None, dtype: Optional[str] = None) -> "Tensor":
        """Create an identity matrix."""
        return Tensor._from_array(np.eye(n, m, dtype=_dtype_or_default(dtype)))

    @staticmethod
    def arange(
        start: Real,
        end: Optional[Real] = None,
        step: Real = 1,
        dtype: Optional[str] = None,
    ) -> "Tensor":
        """Create a tensor with evenly spaced values in ``[start, end)``."""
        if end is None:
            start, end = 0, start
        return Tensor._from_array(
            np.arange(start, end, step, dtype=_dtype_or_default(dtype))
        )

    @staticmethod
    def linspace(start: Real, end: Real, steps: int, dtype: Optional[str] = None) -> "Tensor":
        """Create a tensor with ``steps`` linearly spaced values."""
        return Tensor._from_array(
            np.linspace(start, end, steps, dtype=_dtype_or_default(dtype))
        )

    @staticmethod
    def from_numpy(array: np.ndarray) -> "Tensor":
        """Create a tensor from a NumPy array (the data is copied)."""
        return Tensor(array)


def _dtype_or_default(dtype: Optional[str]) -> str:
    return get_default_dtype() if dtype is None else _validate_dtype(dtype)


def _shape_arg(shape: Tuple[Any, ...]) -> Shape:
    if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
        return Shape(shape[0])
    return Shape(shape)


def as_tensor(value: Any, like: Optional[Tensor] = None) -> Tensor:
    """
    Return ``value`` as a tensor.

    Python numbers adopt the dtype of ``like`` when it is a compatible kind,
    so ``x * 2.0`` keeps ``x``'s precision.
    """

    if isinstance(value, Tensor):
        return value
    if like is not None and isinstance(value, Real) and not isinstance(value, bool):
        kind = np.dtype(like.dtype).kind
        if kind == "f" or (kind in "iu" and isinstance(value, Integral)):
            return Tensor._from_array(np.asarray(value, dtype=like.dtype))
    return Tensor(value)


def tensor(data: Any, dtype: Optional[str] = None) -> Tensor:
    """Create a tensor from data."""
    return Tensor(data, dtype=dtype)


def zeros(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> Tensor:
    return Tensor.zeros(*shape, dtype=dtype)


def ones(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> Tensor:
    return Tensor.ones(*shape, dtype=dtype)


def full(shape: ShapeLike, fill_value: Scalar, dtype: Optional[str] = None) -> Tensor:
    return Tensor.full(shape, fill_value, dtype=dtype)


def zeros_like(other: Tensor, dtype: Optional[str] = None) -> Tensor:
    """Zeros with ``other``'s shape (and dtype unless given)."""
    return Tensor.zeros(other.shape, dtype=dtype or other.dtype)


def ones_like(other: Tensor, dtype: Optional[str] = None) -> Tensor:
    return Tensor.ones(other.shape, dtype=dtype or other.dtype)


def rand(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> Tensor:
    return Tensor.rand(*shape, dtype=dtype)


def randn(*shape: Union[int, Sequence[int]], dtype: Optional[str] = None) -> Tensor:
    return Tensor.randn(*shape, dtype=dtype)


def eye(n: int, m: Optional[int] = None, dtype: Optional[str] = None) -> Tensor:
    return Tensor.eye(n, m, dtype=dtype)


def arange(
    start: Real, end: Optional[Real] = None, step: Real = 1, dtype: Optional[str] = None
) -> Tensor:
    return Tensor.arange(start, end, step, dtype=dtype)


def linspace(start: Real, end: Real, steps: int, dtype: Optional[str] = None) -> Tensor:
    return Tensor.linspace(start, end, steps, dtype=dtype)


def from_numpy(array: np.ndarray) -> Tensor:
    return Tensor.from_numpy(array)


# Bound last: functional imports this module for the Tensor class.
from . import functional as _functional  # noqa: E402

__all__ = [
    "Tensor",
    "as_tensor",
    "tensor",
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
]
