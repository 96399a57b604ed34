"""
Concrete implementations: NumPy tensors and backend, layers, containers,
solvers and metrics.

Importing this package registers every built-in layer variant, including the
`Sequential` container.
"""

from . import tensor, backend, layers, models, solvers, metrics
from ._layer_types import LayerType
