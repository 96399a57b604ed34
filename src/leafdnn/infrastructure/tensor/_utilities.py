"""
Helpers for filling minibatch tensors sample by sample.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ...domain._errors import ShapeMismatchError
from ._tensor import SharedTensor


def write_batch_sample(tensor: SharedTensor, data: Any, i: int) -> None:
    """
    Write the `i`th sample of a batch into `tensor`.

    The first dimension of `tensor` is the batch size; the size of a single
    sample is ``capacity // shape[0]``. Values are written row-major starting
    at offset ``i * sample_size``.

    Parameters
    ----------
    tensor : SharedTensor
        Batch tensor, e.g. ``(batch, 1, 28, 28)`` or ``(batch, 1)``.
    data : array_like
        Values of one sample (any numeric dtype; cast to float32).
    i : int
        Index of the sample inside the batch.

    Raises
    ------
    ShapeMismatchError
        If `data` does not hold exactly one sample.
    IndexError
        If `i` is outside ``[0, batch)``.
    """
    batch = tensor.shape[0] if tensor.ndim else 1
    sample_size = tensor.capacity // batch
    values = np.asarray(data, dtype=np.float32).reshape(-1)
    if values.size != sample_size:
        raise ShapeMismatchError(
            "write_batch_sample", expected=(sample_size,), actual=(values.size,)
        )
    if not 0 <= i < batch:
        raise IndexError(f"sample index {i} out of range for batch of {batch}")

    with tensor.write() as buf:
        flat = buf.reshape(-1)
        flat[i * sample_size : (i + 1) * sample_size] = values
