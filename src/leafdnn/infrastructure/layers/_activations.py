"""
Activation and softmax-family layers.

All layers here are stateless, take exactly one input and produce exactly
one output of the same shape, created automatically when the layer config
names none.

Forward runs the backend primitive ``f(x, y)`` and backward its gradient
counterpart. A missing input (forward) or missing output (backward) is a
configuration error and raises `MissingInputError`; there is no in-place
fallback path.

Softmax and LogSoftmax normalize over the last axis, treating every leading
axis as an independent sample.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ...domain._backend import IBackend
from ...domain.model._stateless_mixin import StatelessConfigMixin
from ..tensor._tensor import SharedTensor
from ._core import LayerWorker, require_blob, reshape_like_input
from ._registry import register_layer


@dataclass(frozen=True)
class ReLUConfig:
    """ReLU variant (no fields)."""


@dataclass(frozen=True)
class SigmoidConfig:
    """Sigmoid variant (no fields)."""


@dataclass(frozen=True)
class TanHConfig:
    """TanH variant (no fields)."""


@dataclass(frozen=True)
class SoftmaxConfig:
    """Softmax variant (no fields)."""


@dataclass(frozen=True)
class LogSoftmaxConfig:
    """LogSoftmax variant (no fields)."""


class _OneToOneLayer(StatelessConfigMixin, LayerWorker):
    """
    Shared structure of the single-input, single-output stateless layers.
    """

    label = "activation"

    def exact_num_input_blobs(self) -> Optional[int]:
        return 1

    def exact_num_output_blobs(self) -> Optional[int]:
        return 1

    def auto_output_blobs(self) -> bool:
        return True

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
        reshape_like_input(input_data, input_gradient, output_data, output_gradient)


class _ElementwiseActivation(_OneToOneLayer):
    """
    Elementwise activation ``y = f(x)`` with ``dx = f'(x) * dy``.

    Subclasses name the backend primitive through `op`; the gradient
    primitive is ``<op>_grad``.
    """

    op = ""

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None:
        x = require_blob(input_data, self.label, "input")
        y = require_blob(output_data, self.label, "output")
        getattr(backend, self.op)(x, y)

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None:
        y = require_blob(output_data, self.label, "output")
        dy = require_blob(output_gradients, self.label, "output gradient")
        x = require_blob(input_data, self.label, "input")
        dx = require_blob(input_gradients, self.label, "input gradient")
        getattr(backend, self.op + "_grad")(y, dy, x, dx)


@register_layer(ReLUConfig, "relu")
class ReLU(_ElementwiseActivation):
    """
    Rectified linear unit, ``y = max(0, x)``.

    The gradient passes where the output is positive: ``dx = dy`` if
    ``y > 0`` else 0.
    """

    label = "ReLU"
    op = "relu"


@register_layer(SigmoidConfig, "sigmoid")
class Sigmoid(_ElementwiseActivation):
    """Logistic sigmoid, ``y = 1 / (1 + exp(-x))``."""

    label = "Sigmoid"
    op = "sigmoid"


@register_layer(TanHConfig, "tanh")
class TanH(_ElementwiseActivation):
    """Hyperbolic tangent, ``dx = (1 - y^2) * dy``."""

    label = "TanH"
    op = "tanh"


class _SoftmaxFamily(_OneToOneLayer):
    op = ""

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None:
        x = require_blob(input_data, self.label, "input")
        y = require_blob(output_data, self.label, "output")
        getattr(backend, self.op)(x, y)

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None:
        y = require_blob(output_data, self.label, "output")
        dy = require_blob(output_gradients, self.label, "output gradient")
        dx = require_blob(input_gradients, self.label, "input gradient")
        getattr(backend, self.op + "_grad")(y, dy, dx)


@register_layer(SoftmaxConfig, "softmax")
class Softmax(_SoftmaxFamily):
    """Softmax over the last axis."""

    label = "Softmax"
    op = "softmax"


@register_layer(LogSoftmaxConfig, "log_softmax")
class LogSoftmax(_SoftmaxFamily):
    """
    Log-softmax over the last axis.

    Paired with `NegativeLogLikelihood`, whose backward writes ``-1`` at the
    target index, the backward here yields ``softmax(x) - onehot`` per
    sample: the cross-entropy gradient.
    """

    label = "LogSoftmax"
    op = "log_softmax"
