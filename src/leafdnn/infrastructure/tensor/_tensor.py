"""
Concrete shared tensor (NumPy storage) and the data/gradient blob pair.

`SharedTensor` is the unit of data flow through the layer graph. It is a
contiguous float32 buffer with an explicit shape, referenced by every owner
that needs it: a weight tensor is held by its layer and reached by the
solver's update step, a blob name in a container registry resolves to the
very same object for every layer that reads it.

Design notes
------------
- Storage is a C-contiguous `np.float32` ndarray whose shape always equals
  the tensor's shape, so the buffer length always equals the capacity.
- All access goes through `read()` / `write()`, which hold the tensor's
  shared or exclusive lock for one operation. `read()` yields a read-only
  view.
- Tensors are allocated at graph-build time with a placeholder shape and
  resized lazily by each layer's shape-inference step.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple, Sequence, Union

import numpy as np

from ...domain._errors import ShapeMismatchError
from ...domain._tensor import ITensor
from ._rwlock import ReadWriteLock

ShapeLike = Union[int, Sequence[int]]


def _normalize_shape(shape: ShapeLike) -> tuple[int, ...]:
    """
    Convert `shape` into a tuple of positive ints.

    Parameters
    ----------
    shape : int | Sequence[int]
        A single dimension or a sequence of dimensions. An empty sequence
        describes a 0-d (scalar) tensor.

    Returns
    -------
    tuple[int, ...]
        Normalized shape.

    Raises
    ------
    ValueError
        If any dimension is not a positive integer.
    """
    if isinstance(shape, (int, np.integer)):
        dims = (int(shape),)
    else:
        dims = tuple(int(d) for d in shape)
    for d in dims:
        if d <= 0:
            raise ValueError(f"Tensor dimensions must be positive, got {dims}")
    return dims


def _capacity_of(shape: tuple[int, ...]) -> int:
    cap = 1
    for d in shape:
        cap *= d
    return cap


class SharedTensor(ITensor):
    """
    N-dimensional float32 buffer shared by reference.

    Parameters
    ----------
    shape : int | Sequence[int], optional
        Initial shape. Defaults to the placeholder shape ``(1,)``.

    Notes
    -----
    - New tensors are zero-filled.
    - `resize` preserves values when the capacity is unchanged and zeroes the
      buffer otherwise; `reshape` never reallocates.
    """

    __slots__ = ("_shape", "_data", "_lock")

    def __init__(self, shape: ShapeLike = (1,)) -> None:
        self._shape = _normalize_shape(shape)
        self._data = np.zeros(self._shape, dtype=np.float32)
        self._lock = ReadWriteLock()

    @classmethod
    def from_numpy(cls, arr: Any) -> "SharedTensor":
        """
        Build a tensor holding a float32 copy of `arr`.

        Parameters
        ----------
        arr : array_like
            Source values. Its shape becomes the tensor's shape.

        Returns
        -------
        SharedTensor
            A new tensor.
        """
        a = np.asarray(arr, dtype=np.float32)
        t = cls(a.shape if a.ndim else ())
        t.copy_from_numpy(a)
        return t

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def capacity(self) -> int:
        return _capacity_of(self._shape)

    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def lock(self) -> ReadWriteLock:
        """The shared/exclusive lock guarding this tensor."""
        return self._lock

    def resize(self, shape: ShapeLike) -> None:
        """
        Give the tensor a new shape.

        Parameters
        ----------
        shape : int | Sequence[int]
            Target shape.

        Notes
        -----
        If the capacity is unchanged, values are kept and reinterpreted in
        row-major order. Otherwise a zero buffer of the new capacity replaces
        the old one.
        """
        new_shape = _normalize_shape(shape)
        with self._lock.write_locked():
            if new_shape == self._shape:
                return
            if _capacity_of(new_shape) == self._data.size:
                self._data = self._data.reshape(new_shape)
            else:
                self._data = np.zeros(new_shape, dtype=np.float32)
            self._shape = new_shape

    def reshape(self, shape: ShapeLike) -> None:
        """
        Reinterpret the buffer under a new shape of identical capacity.

        Raises
        ------
        ShapeMismatchError
            If the capacity of `shape` differs from the tensor's capacity.
        """
        new_shape = _normalize_shape(shape)
        with self._lock.write_locked():
            if _capacity_of(new_shape) != self._data.size:
                raise ShapeMismatchError(
                    "reshape",
                    expected=(self._data.size,),
                    actual=(_capacity_of(new_shape),),
                    message=(
                        f"cannot reshape tensor of shape {self._shape} "
                        f"into {new_shape}"
                    ),
                )
            self._data = self._data.reshape(new_shape)
            self._shape = new_shape

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    @contextmanager
    def read(self) -> Iterator[np.ndarray]:
        """
        Hold the shared lock and yield a read-only view of the buffer.
        """
        with self._lock.read_locked():
            view = self._data.view()
            view.flags.writeable = False
            yield view

    @contextmanager
    def write(self) -> Iterator[np.ndarray]:
        """
        Hold the exclusive lock and yield the writable buffer.

        The yielded array must be modified in place (e.g. ``arr[...] = v``);
        rebinding the name has no effect on the tensor.
        """
        with self._lock.write_locked():
            yield self._data

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the buffer in the tensor's shape."""
        with self._lock.read_locked():
            return self._data.copy()

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Overwrite the buffer with the values of `arr`.

        Parameters
        ----------
        arr : array_like
            Source values. Must hold exactly `capacity` elements; they are
            written in row-major order and the tensor keeps its shape.

        Raises
        ------
        ShapeMismatchError
            If the number of elements differs from the capacity.
        """
        a = np.asarray(arr, dtype=np.float32)
        with self._lock.write_locked():
            if a.size != self._data.size:
                raise ShapeMismatchError(
                    "copy_from_numpy", expected=self._shape, actual=a.shape
                )
            self._data[...] = a.reshape(self._shape)

    def fill(self, value: float) -> None:
        """Set every element to `value`."""
        with self._lock.write_locked():
            self._data.fill(float(value))

    def __repr__(self) -> str:
        return f"SharedTensor(shape={self._shape})"


class Blob(NamedTuple):
    """
    A (data, gradient) tensor pair attached to a named layer slot.

    Invariant: right after a layer's shape inference, and before any compute
    step, ``gradient.shape == data.shape``.
    """

    data: SharedTensor
    gradient: SharedTensor

    @classmethod
    def new(cls, shape: ShapeLike = (1,)) -> "Blob":
        """Allocate a zeroed data tensor and a gradient of the same shape."""
        return cls(SharedTensor(shape), SharedTensor(shape))
