"""
Training driver.

`Solver` owns the network, the objective (loss graph) and a solver worker,
and runs one optimization step per `train_minibatch` call:

1. network forward on the minibatch data,
2. objective forward on ``(network output, targets)``,
3. objective backward, then network backward with the gradient of the
   network output,
4. the worker turns the weight gradients into update steps,
5. the network subtracts the steps from its weights,
6. the iteration counter advances.
"""

from __future__ import annotations

import logging
from typing import Optional

from ...domain._backend import IBackend
from ...domain._errors import LayerConnectionError
from ..layers._layer import Layer
from ..tensor._tensor import SharedTensor
from ._config import SolverConfig, SolverKind
from ._sgd import Momentum, SGDSolver

logger = logging.getLogger(__name__)


def solver_worker_from_config(backend: IBackend, config: SolverConfig) -> SGDSolver:
    """
    Build the worker for ``config.solver``.

    Raises
    ------
    ValueError
        If the solver kind has no worker.
    """
    if config.solver is SolverKind.SGD_MOMENTUM:
        return Momentum(backend)
    raise ValueError(f"Unsupported solver kind: {config.solver!r}")


class Solver:
    """
    Network + objective + update rule.

    Use `Solver.from_config` to build one. Both the network and the
    objective must be containers that declare their inputs (e.g. a
    `SequentialConfig` layer), so they are fully connected on creation.
    """

    def __init__(
        self,
        net: Layer,
        objective: Layer,
        worker: SGDSolver,
        config: SolverConfig,
    ) -> None:
        self._net = net
        self._objective = objective
        self._worker = worker
        self._config = config
        self._iter = 0
        self._last_loss: Optional[float] = None

    @classmethod
    def from_config(
        cls,
        net_backend: IBackend,
        objective_backend: IBackend,
        config: SolverConfig,
    ) -> "Solver":
        """
        Build the network, the objective and the worker, then initialize the
        worker's per-weight state.

        Raises
        ------
        LayerConnectionError
            If the network or the objective is not connected after creation.
        UnsupportedLayerTypeError
            If a layer variant has no registered worker.
        """
        logger.info("Creating solver %s", config.name or "<unnamed>")
        net = Layer.from_config(net_backend, config.network)
        objective = Layer.from_config(objective_backend, config.objective)
        for layer in (net, objective):
            if not layer.connected:
                raise LayerConnectionError(
                    layer.name,
                    "top-level layers must be containers declaring their inputs",
                )

        worker = solver_worker_from_config(net_backend, config)
        worker.init(net)
        return cls(net, objective, worker, config)

    def train_minibatch(
        self, mb_data: SharedTensor, mb_target: SharedTensor
    ) -> SharedTensor:
        """
        Run one training iteration.

        Parameters
        ----------
        mb_data : SharedTensor
            Minibatch input, copied into the network's first input.
        mb_target : SharedTensor
            Minibatch targets, copied into the objective's second input.

        Returns
        -------
        SharedTensor
            The network output of this iteration (a shared reference, valid
            until the next call).
        """
        network_out = self._net.forward([mb_data])[0]
        loss = self._objective.forward([network_out, mb_target])
        objective_gradients = self._objective.backward()
        self._net.backward(objective_gradients[:1])

        self._worker.compute_update(self._config, self._net, self._iter)
        self._net.update_weights(self._worker.backend)

        if loss:
            self._last_loss = float(loss[0].to_numpy().reshape(-1)[0])
        logger.debug(
            "Iteration %d: lr=%s loss=%s",
            self._iter,
            self._config.get_learning_rate(self._iter),
            self._last_loss,
        )
        self._iter += 1
        return network_out

    def network(self) -> Layer:
        return self._net

    def objective(self) -> Layer:
        return self._objective

    @property
    def worker(self) -> SGDSolver:
        return self._worker

    @property
    def iter(self) -> int:
        """Number of completed iterations."""
        return self._iter

    @property
    def config(self) -> SolverConfig:
        return self._config

    @property
    def last_loss(self) -> Optional[float]:
        """Loss of the most recent iteration, or None before the first."""
        return self._last_loss
