"""
Fully connected layer.

`Linear` computes ``y = x @ W.T + b`` for an input of shape ``(batch, ...)``
whose trailing axes are flattened into ``in_features``. The weight has shape
``(output_size, in_features)`` and the bias ``(output_size,)``.

The input width is only known once the first input is bound, so the weights
are shaped in `reshape`; the runtime layer fills them exactly once right
after (Glorot for the weight, zeros for the bias, unless the weight config
names another filler).

Gradients
---------
- ``dx = dy @ W``
- ``dW = dy.T @ x``
- ``db = sum over the batch of dy``

Parameter gradients are overwritten, not accumulated, every round.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ...domain._backend import IBackend
from ..tensor._tensor import SharedTensor
from ..utils.weight_initializer import ConstantFiller, GlorotFiller
from ._core import LayerWorker, require_blob
from ._registry import register_layer


@dataclass(frozen=True)
class LinearConfig:
    """
    Attributes
    ----------
    output_size : int
        Number of output features per sample.
    """

    output_size: int

    def __post_init__(self) -> None:
        if int(self.output_size) <= 0:
            raise ValueError(f"output_size must be > 0, got {self.output_size}")


def _in_features(x: SharedTensor) -> int:
    if x.ndim < 2:
        return x.capacity
    return x.capacity // x.shape[0]


def _batch(x: SharedTensor) -> int:
    return x.shape[0] if x.ndim >= 2 else 1


@register_layer(LinearConfig, "linear")
class Linear(LayerWorker):
    """
    Fully connected (affine) layer.

    Parameters
    ----------
    output_size : int
        Number of output features.
    """

    def __init__(self, output_size: int) -> None:
        self.output_size = int(output_size)
        # column of ones used to broadcast the bias and to sum over the batch
        self._bias_multiplier = SharedTensor((1, 1))
        self._bias_multiplier.fill(1.0)

    @classmethod
    def from_config(cls, cfg: LinearConfig) -> "Linear":
        return cls(cfg.output_size)

    def get_config(self) -> dict:
        return {"output_size": self.output_size}

    def exact_num_input_blobs(self) -> Optional[int]:
        return 1

    def exact_num_output_blobs(self) -> Optional[int]:
        return 1

    def auto_output_blobs(self) -> bool:
        return True

    def weight_names(self) -> Sequence[str]:
        return ("weight", "bias")

    def default_weight_fillers(self, input_data: Sequence[SharedTensor]) -> list:
        in_features = _in_features(input_data[0])
        return [
            GlorotFiller(input_size=in_features, output_size=self.output_size),
            ConstantFiller(0.0),
        ]

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
        if not input_data:
            return
        x = input_data[0]
        batch = _batch(x)
        in_features = _in_features(x)

        for t in input_gradient[:1]:
            t.resize(x.shape)
        for t in output_data[:1] + output_gradient[:1]:
            t.resize((batch, self.output_size))

        weight_shapes = [(self.output_size, in_features), (self.output_size,)]
        for shape, data, grad in zip(weight_shapes, weights_data, weights_gradient):
            capacity = shape[0] * (shape[1] if len(shape) > 1 else 1)
            if data.capacity != capacity:
                data.resize(shape)
            if grad.capacity != data.capacity:
                grad.resize(data.shape)

        if self._bias_multiplier.shape != (batch, 1):
            self._bias_multiplier.resize((batch, 1))
            self._bias_multiplier.fill(1.0)

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None:
        x = require_blob(input_data, "Linear", "input")
        y = require_blob(output_data, "Linear", "output")
        backend.gemm(1.0, False, x, True, weights[0], 0.0, y)
        if len(weights) > 1:
            backend.gemm(1.0, False, self._bias_multiplier, False, weights[1], 1.0, y)

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None:
        dy = require_blob(output_gradients, "Linear", "output gradient")
        dx = require_blob(input_gradients, "Linear", "input gradient")
        backend.gemm(1.0, False, dy, False, weights_data[0], 0.0, dx)

    def compute_parameters_gradient(
        self,
        backend: IBackend,
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        parameters_gradients: Sequence[SharedTensor],
    ) -> None:
        dy = require_blob(output_gradients, "Linear", "output gradient")
        x = require_blob(input_data, "Linear", "input")
        backend.gemm(1.0, True, dy, False, x, 0.0, parameters_gradients[0])
        if len(parameters_gradients) > 1:
            backend.gemm(
                1.0, True, self._bias_multiplier, False, dy, 0.0, parameters_gradients[1]
            )

    def __repr__(self) -> str:
        return f"Linear(output_size={self.output_size})"
