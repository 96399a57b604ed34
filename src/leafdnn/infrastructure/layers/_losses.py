"""
Loss layers.

`NegativeLogLikelihood` consumes log-probabilities and integer class labels
and produces the mean negative log-likelihood as a single-element tensor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ...domain._backend import IBackend
from ...domain._errors import ShapeMismatchError
from ..tensor._tensor import SharedTensor
from ._core import LayerWorker, require_blob
from ._registry import register_layer


@dataclass(frozen=True)
class NegativeLogLikelihoodConfig:
    """
    Attributes
    ----------
    num_classes : int
        Number of classes, i.e. the width of one probability row.
    """

    num_classes: int

    def __post_init__(self) -> None:
        if int(self.num_classes) <= 0:
            raise ValueError(f"num_classes must be > 0, got {self.num_classes}")


def _batch_size(labels: SharedTensor) -> int:
    if labels.ndim == 1:
        return 1
    if labels.ndim == 2:
        return labels.shape[0]
    raise ShapeMismatchError(
        "negative_log_likelihood",
        message=f"labels must have rank 1 or 2, got shape {labels.shape}",
    )


@register_layer(NegativeLogLikelihoodConfig, "negative_log_likelihood")
class NegativeLogLikelihood(LayerWorker):
    """
    Negative log-likelihood loss.

    Inputs are ``(log_probabilities, labels)``. Probabilities are read
    row-major with `num_classes` values per sample; the batch size comes
    from the rank of the label tensor (rank 1: one sample, rank 2: first
    dimension).

    Forward:
        ``loss = (1 / batch) * sum_b -p[b * num_classes + label_b]``

    Backward writes ``-1`` at ``num_classes * b + label_b`` of the
    probability gradient and 0 everywhere else. The mean is not applied
    here; the solver divides by the minibatch size before the update.
    """

    def __init__(self, num_classes: int) -> None:
        self.num_classes = int(num_classes)

    @classmethod
    def from_config(cls, cfg: NegativeLogLikelihoodConfig) -> "NegativeLogLikelihood":
        return cls(cfg.num_classes)

    def get_config(self) -> dict:
        return {"num_classes": self.num_classes}

    def exact_num_input_blobs(self) -> Optional[int]:
        return 2

    def exact_num_output_blobs(self) -> Optional[int]:
        return 1

    def auto_output_blobs(self) -> bool:
        return True

    def sync_native(self) -> bool:
        return True

    def loss_weight(self, output_id: int) -> Optional[float]:
        return 1.0 if output_id == 0 else None

    def reshape(
        self,
        backend: IBackend,
        input_data: List[SharedTensor],
        input_gradient: List[SharedTensor],
        weights_data: List[SharedTensor],
        weights_gradient: List[SharedTensor],
        output_data: List[SharedTensor],
        output_gradient: List[SharedTensor],
    ) -> None:
        for data, grad in zip(input_data, input_gradient):
            grad.resize(data.shape)
        for t in output_data:
            t.resize((1,))
        for t in output_gradient:
            t.resize((1,))

    def _targets(self, probabilities: SharedTensor, labels: SharedTensor) -> np.ndarray:
        batch = _batch_size(labels)
        if probabilities.capacity < batch * self.num_classes:
            raise ShapeMismatchError(
                "negative_log_likelihood",
                expected=(batch, self.num_classes),
                actual=probabilities.shape,
            )
        targets = np.rint(labels.to_numpy().reshape(-1)[:batch]).astype(np.int64)
        bad = (targets < 0) | (targets >= self.num_classes)
        if bad.any():
            raise ValueError(
                f"label {int(targets[bad][0])} outside [0, {self.num_classes})"
            )
        return np.arange(batch) * self.num_classes + targets

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None:
        probabilities = require_blob(input_data, "NegativeLogLikelihood", "input")
        labels = input_data[1]
        index = self._targets(probabilities, labels)
        p = probabilities.to_numpy().reshape(-1)
        loss = -float(np.sum(p[index], dtype=np.float64)) / len(index)
        output_data[0].copy_from_numpy(np.array([loss], dtype=np.float32))

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None:
        probabilities = require_blob(input_data, "NegativeLogLikelihood", "input")
        index = self._targets(probabilities, input_data[1])
        grad = np.zeros(probabilities.capacity, dtype=np.float32)
        grad[index] = -1.0
        input_gradients[0].copy_from_numpy(grad)

    def __repr__(self) -> str:
        return f"NegativeLogLikelihood(num_classes={self.num_classes})"
