"""
Native (NumPy, host-resident) backend.

`NativeBackend` implements every primitive of the `IBackend` contract with
NumPy on the CPU. Each operation:

1. validates operand shapes (raising `ShapeMismatchError`),
2. acquires the read lock of every source tensor and the write lock of every
   destination tensor for the duration of the single operation,
3. writes its result into the destination buffer in place.

A tensor passed both as source and destination is locked once, on its write
side, so in-place calls such as ``axpby(a, x, b, x)`` do not deadlock.

Softmax-family kernels normalize along the last axis; every leading axis is
an independent sample.
"""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np

from ...domain._backend import IBackend
from ...domain._errors import ShapeMismatchError
from ...domain.device._device import Device
from ..tensor._tensor import SharedTensor


@contextmanager
def _access(
    reads: Sequence[SharedTensor], writes: Sequence[SharedTensor] = ()
) -> Iterator[Tuple[List[np.ndarray], List[np.ndarray]]]:
    """
    Lock `reads` for reading and `writes` for writing, yielding their buffers.
    """
    with ExitStack() as stack:
        w: Dict[int, np.ndarray] = {}
        for t in writes:
            if id(t) not in w:
                w[id(t)] = stack.enter_context(t.write())
        r: Dict[int, np.ndarray] = {}
        for t in reads:
            key = id(t)
            if key in w:
                r[key] = w[key]
            elif key not in r:
                r[key] = stack.enter_context(t.read())
        yield [r[id(t)] for t in reads], [w[id(t)] for t in writes]


def _require_same_shape(op: str, *tensors: SharedTensor) -> None:
    first = tensors[0].shape
    for t in tensors[1:]:
        if t.shape != first:
            raise ShapeMismatchError(op, expected=first, actual=t.shape)


def _require_same_capacity(op: str, *tensors: SharedTensor) -> None:
    first = tensors[0].capacity
    for t in tensors[1:]:
        if t.capacity != first:
            raise ShapeMismatchError(
                op,
                expected=(first,),
                actual=(t.capacity,),
                message=(
                    f"capacity mismatch, {tensors[0].shape} has {first} "
                    f"elements, {t.shape} has {t.capacity}"
                ),
            )


def _require_rank(op: str, t: SharedTensor) -> None:
    if t.ndim < 1:
        raise ShapeMismatchError(
            op, message=f"expected a tensor with at least one axis, got {t.shape}"
        )


def _as_matrix(arr: np.ndarray) -> np.ndarray:
    """View `arr` as 2-d: vectors become one row, higher ranks keep axis 0."""
    if arr.ndim == 0:
        return arr.reshape(1, 1)
    if arr.ndim == 1:
        return arr.reshape(1, -1)
    if arr.ndim == 2:
        return arr
    return arr.reshape(arr.shape[0], -1)


class NativeBackend(IBackend):
    """
    NumPy implementation of the backend contract.

    Notes
    -----
    - All arithmetic is carried out in float32, matching tensor storage.
    - There is no NaN/overflow guard; values propagate as NumPy produces them.
    """

    def __init__(self) -> None:
        self._device = Device("cpu")

    @property
    def device(self) -> Device:
        return self._device

    def __repr__(self) -> str:
        return "NativeBackend(device='cpu')"

    # ------------------------------------------------------------------
    # Activations
    # ------------------------------------------------------------------
    def relu(self, x: SharedTensor, y: SharedTensor) -> None:
        _require_same_shape("relu", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            ya[...] = np.maximum(xa, 0.0)

    def relu_grad(
        self, y: SharedTensor, dy: SharedTensor, x: SharedTensor, dx: SharedTensor
    ) -> None:
        _require_same_shape("relu_grad", y, dy, x, dx)
        with _access((y, dy), (dx,)) as ((ya, dya), (dxa,)):
            dxa[...] = np.where(ya > 0.0, dya, 0.0)

    def sigmoid(self, x: SharedTensor, y: SharedTensor) -> None:
        _require_same_shape("sigmoid", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            # 1 / (1 + exp(-x)) written through tanh to avoid exp overflow
            ya[...] = 0.5 * (1.0 + np.tanh(0.5 * xa))

    def sigmoid_grad(
        self, y: SharedTensor, dy: SharedTensor, x: SharedTensor, dx: SharedTensor
    ) -> None:
        _require_same_shape("sigmoid_grad", y, dy, x, dx)
        with _access((y, dy), (dx,)) as ((ya, dya), (dxa,)):
            dxa[...] = dya * ya * (1.0 - ya)

    def tanh(self, x: SharedTensor, y: SharedTensor) -> None:
        _require_same_shape("tanh", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            ya[...] = np.tanh(xa)

    def tanh_grad(
        self, y: SharedTensor, dy: SharedTensor, x: SharedTensor, dx: SharedTensor
    ) -> None:
        _require_same_shape("tanh_grad", y, dy, x, dx)
        with _access((y, dy), (dx,)) as ((ya, dya), (dxa,)):
            dxa[...] = dya * (1.0 - ya * ya)

    # ------------------------------------------------------------------
    # Softmax family (last axis)
    # ------------------------------------------------------------------
    def softmax(self, x: SharedTensor, y: SharedTensor) -> None:
        _require_rank("softmax", x)
        _require_same_shape("softmax", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            shifted = xa - np.max(xa, axis=-1, keepdims=True)
            e = np.exp(shifted)
            ya[...] = e / np.sum(e, axis=-1, keepdims=True)

    def softmax_grad(self, y: SharedTensor, dy: SharedTensor, dx: SharedTensor) -> None:
        _require_rank("softmax_grad", y)
        _require_same_shape("softmax_grad", y, dy, dx)
        with _access((y, dy), (dx,)) as ((ya, dya), (dxa,)):
            dot = np.sum(dya * ya, axis=-1, keepdims=True)
            dxa[...] = ya * (dya - dot)

    def log_softmax(self, x: SharedTensor, y: SharedTensor) -> None:
        _require_rank("log_softmax", x)
        _require_same_shape("log_softmax", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            shifted = xa - np.max(xa, axis=-1, keepdims=True)
            ya[...] = shifted - np.log(np.sum(np.exp(shifted), axis=-1, keepdims=True))

    def log_softmax_grad(
        self, y: SharedTensor, dy: SharedTensor, dx: SharedTensor
    ) -> None:
        _require_rank("log_softmax_grad", y)
        _require_same_shape("log_softmax_grad", y, dy, dx)
        with _access((y, dy), (dx,)) as ((ya, dya), (dxa,)):
            dxa[...] = dya - np.exp(ya) * np.sum(dya, axis=-1, keepdims=True)

    # ------------------------------------------------------------------
    # BLAS-style primitives
    # ------------------------------------------------------------------
    def axpby(
        self, alpha: float, x: SharedTensor, beta: float, y: SharedTensor
    ) -> None:
        _require_same_capacity("axpby", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            ya[...] = float(alpha) * xa.reshape(ya.shape) + float(beta) * ya

    def axpy(self, alpha: float, x: SharedTensor, y: SharedTensor) -> None:
        _require_same_capacity("axpy", x, y)
        with _access((x,), (y,)) as ((xa,), (ya,)):
            ya += float(alpha) * xa.reshape(ya.shape)

    def scal(self, alpha: float, x: SharedTensor) -> None:
        with _access((), (x,)) as (_, (xa,)):
            xa *= float(alpha)

    def copy(self, src: SharedTensor, dst: SharedTensor) -> None:
        _require_same_capacity("copy", src, dst)
        if src is dst:
            return
        with _access((src,), (dst,)) as ((sa,), (da,)):
            da[...] = sa.reshape(da.shape)

    def dot(self, x: SharedTensor, y: SharedTensor) -> float:
        _require_same_capacity("dot", x, y)
        with _access((x, y)) as ((xa, ya), _):
            return float(np.dot(xa.reshape(-1), ya.reshape(-1)))

    def asum(self, x: SharedTensor) -> float:
        with _access((x,)) as ((xa,), _):
            return float(np.sum(np.abs(xa)))

    def nrm2(self, x: SharedTensor) -> float:
        with _access((x,)) as ((xa,), _):
            return float(np.sqrt(np.sum(xa.astype(np.float64) ** 2)))

    def gemm(
        self,
        alpha: float,
        trans_a: bool,
        a: SharedTensor,
        trans_b: bool,
        b: SharedTensor,
        beta: float,
        c: SharedTensor,
    ) -> None:
        with _access((a, b), (c,)) as ((aa, ba), (ca,)):
            am = _as_matrix(aa)
            bm = _as_matrix(ba)
            if trans_a:
                am = am.T
            if trans_b:
                bm = bm.T
            if am.shape[1] != bm.shape[0]:
                raise ShapeMismatchError(
                    "gemm",
                    message=f"inner dimensions differ: {am.shape} @ {bm.shape}",
                )
            rows, cols = am.shape[0], bm.shape[1]
            if ca.size != rows * cols:
                raise ShapeMismatchError("gemm", expected=(rows, cols), actual=ca.shape)
            cm = ca.reshape(rows, cols)
            cm[...] = float(alpha) * (am @ bm) + float(beta) * cm
