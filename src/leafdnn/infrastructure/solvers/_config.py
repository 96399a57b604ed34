"""
Solver configuration and learning-rate schedules.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..layers._config import LayerConfig


class SolverKind(Enum):
    """Optimization rule run by the solver worker."""

    SGD_MOMENTUM = "sgd_momentum"


class LRPolicy(Enum):
    """
    Learning-rate schedule.

    - FIXED: ``base_lr``
    - STEP: ``base_lr * gamma ** (iter // stepsize)``
    - EXP: ``base_lr * gamma ** iter``
    """

    FIXED = "fixed"
    STEP = "step"
    EXP = "exp"


class RegularizationMethod(Enum):
    L2 = "l2"


@dataclass(frozen=True)
class SolverConfig:
    """
    Hyperparameters and graph description of a training run.

    Attributes
    ----------
    network : LayerConfig
        The model being trained (typically a `SequentialConfig` layer).
    objective : LayerConfig
        The loss graph. Its first input receives the network output and its
        second the minibatch targets.
    name : str
        Free-form run name used in logs.
    solver : SolverKind
        Update rule. Only SGD with momentum exists.
    minibatch_size : int
        Samples per minibatch; gradients are divided by it before the update.
    lr_policy : LRPolicy
        Learning-rate schedule, see `get_learning_rate`.
    base_lr : float
        Initial learning rate. Must be positive.
    gamma : float
        Decay factor of the STEP and EXP schedules.
    stepsize : int
        Iterations per decay step of the STEP schedule.
    clip_gradients : Optional[float]
        When set, gradients whose global L2 norm exceeds this value are
        scaled down to it.
    weight_decay : Optional[float]
        Global regularization strength.
    regularization_method : Optional[RegularizationMethod]
        Regularization applied when `weight_decay` is set.
    momentum : float
        Momentum of the velocity update. 0 gives plain SGD.
    """

    network: LayerConfig
    objective: LayerConfig
    name: str = ""
    solver: SolverKind = SolverKind.SGD_MOMENTUM
    minibatch_size: int = 1
    lr_policy: LRPolicy = LRPolicy.FIXED
    base_lr: float = 0.01
    gamma: float = 0.1
    stepsize: int = 10
    clip_gradients: Optional[float] = None
    weight_decay: Optional[float] = None
    regularization_method: Optional[RegularizationMethod] = None
    momentum: float = 0.0

    def __post_init__(self) -> None:
        if int(self.minibatch_size) <= 0:
            raise ValueError(f"minibatch_size must be > 0, got {self.minibatch_size}")
        if float(self.base_lr) <= 0.0:
            raise ValueError(f"base_lr must be > 0, got {self.base_lr}")
        if int(self.stepsize) <= 0:
            raise ValueError(f"stepsize must be > 0, got {self.stepsize}")
        if float(self.momentum) < 0.0:
            raise ValueError(f"momentum must be >= 0, got {self.momentum}")
        if self.clip_gradients is not None and float(self.clip_gradients) <= 0.0:
            raise ValueError(
                f"clip_gradients must be > 0 when set, got {self.clip_gradients}"
            )
        if self.weight_decay is not None and float(self.weight_decay) < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")

    def get_learning_rate(self, iter: int) -> float:
        """
        Learning rate for iteration `iter` under the configured schedule.
        """
        base = float(self.base_lr)
        if self.lr_policy is LRPolicy.FIXED:
            return base
        if self.lr_policy is LRPolicy.STEP:
            return base * float(self.gamma) ** (int(iter) // int(self.stepsize))
        if self.lr_policy is LRPolicy.EXP:
            return base * float(self.gamma) ** int(iter)
        raise ValueError(f"Unknown learning-rate policy: {self.lr_policy!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "network": self.network.to_dict(),
            "objective": self.objective.to_dict(),
            "solver": self.solver.value,
            "minibatch_size": int(self.minibatch_size),
            "lr_policy": self.lr_policy.value,
            "base_lr": float(self.base_lr),
            "gamma": float(self.gamma),
            "stepsize": int(self.stepsize),
            "clip_gradients": self.clip_gradients,
            "weight_decay": self.weight_decay,
            "regularization_method": (
                None
                if self.regularization_method is None
                else self.regularization_method.value
            ),
            "momentum": float(self.momentum),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SolverConfig":
        method = d.get("regularization_method")
        return cls(
            name=str(d.get("name", "")),
            network=LayerConfig.from_dict(d["network"]),
            objective=LayerConfig.from_dict(d["objective"]),
            solver=SolverKind(d.get("solver", SolverKind.SGD_MOMENTUM.value)),
            minibatch_size=int(d.get("minibatch_size", 1)),
            lr_policy=LRPolicy(d.get("lr_policy", LRPolicy.FIXED.value)),
            base_lr=float(d.get("base_lr", 0.01)),
            gamma=float(d.get("gamma", 0.1)),
            stepsize=int(d.get("stepsize", 10)),
            clip_gradients=d.get("clip_gradients"),
            weight_decay=d.get("weight_decay"),
            regularization_method=(
                None if method is None else RegularizationMethod(method)
            ),
            momentum=float(d.get("momentum", 0.0)),
        )
