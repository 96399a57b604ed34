"""
Stochastic gradient descent solver workers.

`SGDSolver` turns the raw weight gradients of a network into final update
steps, in place, through four stages run for every iteration:

1. clip: if the global L2 norm of all gradients exceeds `clip_gradients`,
   every gradient is scaled by ``clip_gradients / norm``;
2. normalize: each gradient is divided by the minibatch size;
3. regularize: with L2 regularization,
   ``grad += weight_decay * decay_mult * weight``;
4. `compute_update_value`: the rule-specific step.

The network then applies ``weight := weight - grad``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import math
from typing import List

from ...domain._backend import IBackend
from ...domain._solver import ISolverWorker
from ..layers._layer import Layer
from ..tensor._tensor import SharedTensor
from ..utils.weight_initializer import WeightInitializer
from ._config import RegularizationMethod, SolverConfig

logger = logging.getLogger(__name__)


class SGDSolver(ISolverWorker, ABC):
    """
    Shared stages of the SGD family.

    Parameters
    ----------
    backend : IBackend
        Backend used for every update computation.
    """

    def __init__(self, backend: IBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> IBackend:
        return self._backend

    @abstractmethod
    def init(self, net: Layer) -> None: ...

    @abstractmethod
    def compute_update_value(
        self,
        config: SolverConfig,
        weight_index: int,
        grad: SharedTensor,
        iter: int,
        blob_lr: float,
    ) -> None:
        """
        Turn the prepared gradient of weight `weight_index` into its step.
        """
        ...

    def compute_update(self, config: SolverConfig, net: Layer, iter: int) -> None:
        """
        Run clip, normalize, regularize and the update rule on every weight.
        """
        gradients = net.learnable_weights_gradients()
        weights = net.learnable_weights_data()
        lrs = net.learnable_weights_lr()
        decays = net.learnable_weights_decay()

        self.clip_gradients(config, gradients)
        for i, grad in enumerate(gradients):
            self.normalize(config, grad)
            self.regularize(config, grad, weights[i], decays[i])
            self.compute_update_value(config, i, grad, iter, lrs[i])

    def clip_gradients(self, config: SolverConfig, gradients: List[SharedTensor]) -> None:
        if config.clip_gradients is None:
            return
        clip = float(config.clip_gradients)
        norm = math.sqrt(sum(self._backend.nrm2(g) ** 2 for g in gradients))
        if norm > clip:
            scale = clip / norm
            logger.debug(
                "Gradient clipping: scaling down gradients (L2 norm %s > %s) "
                "by scale factor %s",
                norm,
                clip,
                scale,
            )
            for g in gradients:
                self._backend.scal(scale, g)

    def normalize(self, config: SolverConfig, grad: SharedTensor) -> None:
        if config.minibatch_size > 1:
            self._backend.scal(1.0 / float(config.minibatch_size), grad)

    def regularize(
        self,
        config: SolverConfig,
        grad: SharedTensor,
        weight: SharedTensor,
        decay_mult: float,
    ) -> None:
        if config.weight_decay is None:
            return
        if config.regularization_method is RegularizationMethod.L2:
            self._backend.axpy(
                float(config.weight_decay) * float(decay_mult), weight, grad
            )


class Momentum(SGDSolver):
    """
    SGD with momentum.

    Keeps one velocity history per learnable weight, zero at start:

        history := (lr * blob_lr) * grad + momentum * history
        grad    := history
    """

    def __init__(self, backend: IBackend) -> None:
        super().__init__(backend)
        self.history: List[SharedTensor] = []

    def init(self, net: Layer) -> None:
        zeros = WeightInitializer("zeros")
        self.history = [
            zeros(SharedTensor(g.shape)) for g in net.learnable_weights_gradients()
        ]

    def compute_update_value(
        self,
        config: SolverConfig,
        weight_index: int,
        grad: SharedTensor,
        iter: int,
        blob_lr: float,
    ) -> None:
        history = self.history[weight_index]
        lr = config.get_learning_rate(iter) * float(blob_lr)
        self._backend.axpby(lr, grad, float(config.momentum), history)
        self._backend.copy(history, grad)
