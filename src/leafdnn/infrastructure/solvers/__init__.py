"""
Solver public API.

Exports
-------
- Solver: training driver.
- SolverConfig, SolverKind, LRPolicy, RegularizationMethod: configuration.
- SGDSolver, Momentum: update rules.
"""

from ._config import LRPolicy, RegularizationMethod, SolverConfig, SolverKind
from ._sgd import Momentum, SGDSolver
from ._solver import Solver, solver_worker_from_config

__all__ = [
    Solver.__name__,
    SolverConfig.__name__,
    SolverKind.__name__,
    LRPolicy.__name__,
    RegularizationMethod.__name__,
    SGDSolver.__name__,
    Momentum.__name__,
    solver_worker_from_config.__name__,
]
