"""
Tensor interface definitions.

This module defines the domain-level contract for the shared tensors that
flow through the layer graph. A tensor here is a plain N-dimensional float
buffer with an explicit shape; it carries no autograd state. Gradients live
in a second tensor of the same shape (see `Blob`).

Notes
-----
- The protocol is backend-agnostic and does not import NumPy. The buffer
  yielded by `read()` / `write()` is typed as `Any`; the native
  implementation yields a NumPy array.
- Tensors are shared by reference between several owners (a layer and the
  solver, or two layers sharing a weight). Access is mediated by a
  shared/exclusive lock held for the duration of a single operation.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ITensor(Protocol):
    """
    Shared tensor interface.

    Invariants
    ----------
    - `capacity` is the product of `shape` (1 for a 0-d tensor).
    - After any `resize`, the backing buffer holds exactly `capacity`
      elements.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """Return the tensor's shape."""
        ...

    @property
    def capacity(self) -> int:
        """Return the number of elements implied by `shape`."""
        ...

    def resize(self, shape: Sequence[int]) -> None:
        """
        Give the tensor a new shape.

        Values are preserved (reinterpreted row-major) when the capacity does
        not change; otherwise the buffer is reallocated and zeroed.
        """
        ...

    def reshape(self, shape: Sequence[int]) -> None:
        """
        Reinterpret the buffer under a new shape of identical capacity.
        """
        ...

    def read(self) -> AbstractContextManager[Any]:
        """
        Acquire the shared lock and yield a read view of the buffer.
        """
        ...

    def write(self) -> AbstractContextManager[Any]:
        """
        Acquire the exclusive lock and yield a writable view of the buffer.
        """
        ...

    def to_numpy(self) -> Any:
        """Return a copy of the buffer in the tensor's shape."""
        ...

    def copy_from_numpy(self, arr: Any) -> None:
        """Overwrite the buffer with `arr` (same capacity)."""
        ...

    def fill(self, value: float) -> None:
        """Set every element to `value`."""
        ...
