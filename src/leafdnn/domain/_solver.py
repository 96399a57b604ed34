"""
Domain-level solver contracts for leafdnn.

This module defines `ISolverWorker`, the minimal interface an optimization
rule (e.g. SGD with momentum) implements so that the generic `Solver` can
drive it.

Notes
-----
- Domain contracts are backend-agnostic and must not depend on NumPy or
  infrastructure implementations.
- The worker never touches the weights themselves. It turns each raw weight
  gradient into the final step in place; the network then subtracts that
  step from its weights.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ._backend import IBackend


@runtime_checkable
class ISolverWorker(Protocol):
    """
    Solver worker contract.

    Lifecycle
    ---------
    `init(net)` moves the worker from uninitialized to ready by allocating
    whatever per-weight state the rule needs. `compute_update` is then
    called once per training iteration.
    """

    def init(self, net: Any) -> None:
        """
        Allocate per-weight state for the learnable weights of `net`.

        Parameters
        ----------
        net : Layer
            The network layer whose learnable weight gradients will be
            updated.
        """
        ...

    def compute_update(self, config: Any, net: Any, iter: int) -> None:
        """
        Turn the raw gradients of `net` into final update steps, in place.

        Parameters
        ----------
        config : SolverConfig
            Solver hyperparameters (learning-rate schedule, momentum, ...).
        net : Layer
            Network whose `learnable_weights_gradients()` are rewritten.
        iter : int
            Zero-based iteration index, used by the learning-rate schedule.
        """
        ...

    @property
    def backend(self) -> IBackend:
        """Return the backend the worker computes with."""
        ...
