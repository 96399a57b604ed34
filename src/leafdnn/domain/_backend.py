"""
Backend interface definitions.

A backend is the injected provider of numeric primitives. Layers and solvers
receive the backend instance through their constructors or method arguments
and call only the operations listed here; they never inspect device
placement and never reach for a global backend.

Contract
--------
- Every operation is synchronous and writes its result into the destination
  tensor(s) passed by the caller.
- Operations raise `ShapeMismatchError` when operand shapes are incompatible
  and `BackendError` when the operation is unsupported on the active device.
- Softmax-family operations normalize along the last axis, so a
  `(batch, classes)` tensor is treated as `batch` independent rows.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._tensor import ITensor
from .device._device import Device


@runtime_checkable
class IBackend(Protocol):
    """
    Numeric primitive provider consumed by the layer graph and the solver.
    """

    @property
    def device(self) -> Device:
        """Return the device this backend executes on."""
        ...

    # ------------------------------------------------------------------
    # Activations: y = f(x), dx = f'(x) * dy
    # ------------------------------------------------------------------
    def relu(self, x: ITensor, y: ITensor) -> None: ...

    def relu_grad(self, y: ITensor, dy: ITensor, x: ITensor, dx: ITensor) -> None: ...

    def sigmoid(self, x: ITensor, y: ITensor) -> None: ...

    def sigmoid_grad(
        self, y: ITensor, dy: ITensor, x: ITensor, dx: ITensor
    ) -> None: ...

    def tanh(self, x: ITensor, y: ITensor) -> None: ...

    def tanh_grad(self, y: ITensor, dy: ITensor, x: ITensor, dx: ITensor) -> None: ...

    # ------------------------------------------------------------------
    # Softmax family
    # ------------------------------------------------------------------
    def softmax(self, x: ITensor, y: ITensor) -> None: ...

    def softmax_grad(self, y: ITensor, dy: ITensor, dx: ITensor) -> None: ...

    def log_softmax(self, x: ITensor, y: ITensor) -> None: ...

    def log_softmax_grad(self, y: ITensor, dy: ITensor, dx: ITensor) -> None: ...

    # ------------------------------------------------------------------
    # BLAS-style primitives
    # ------------------------------------------------------------------
    def axpby(self, alpha: float, x: ITensor, beta: float, y: ITensor) -> None:
        """Compute `y := alpha * x + beta * y` in place."""
        ...

    def axpy(self, alpha: float, x: ITensor, y: ITensor) -> None:
        """Compute `y := alpha * x + y` in place."""
        ...

    def scal(self, alpha: float, x: ITensor) -> None:
        """Compute `x := alpha * x` in place."""
        ...

    def copy(self, src: ITensor, dst: ITensor) -> None:
        """Copy the elements of `src` into `dst` (equal capacity)."""
        ...

    def dot(self, x: ITensor, y: ITensor) -> float: ...

    def asum(self, x: ITensor) -> float: ...

    def nrm2(self, x: ITensor) -> float: ...

    def gemm(
        self,
        alpha: float,
        trans_a: bool,
        a: ITensor,
        trans_b: bool,
        b: ITensor,
        beta: float,
        c: ITensor,
    ) -> None:
        """Compute `c := alpha * op(a) @ op(b) + beta * c` on 2-d views."""
        ...
