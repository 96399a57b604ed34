"""
Glorot (Xavier) uniform initializer.

Registers ``glorot`` into the `WeightInitializer` registry. Samples are drawn
i.i.d. from ``U(-limit, +limit)`` with
``limit = sqrt(6 / (fan_in + fan_out))``.

Notes
-----
- Fan sizes are passed explicitly by the caller; they are never derived from
  the tensor shape.
- Sampling uses NumPy's global RNG, so `np.random.seed` makes it
  reproducible.
"""

import numpy as np

from ._base import WeightInitializer
from ...tensor._tensor import SharedTensor
from ....domain.utils._weight_initialization import _glorot_limit


@WeightInitializer.register_initializer("glorot")
def glorot(tensor: SharedTensor, fan_in: int, fan_out: int) -> SharedTensor:
    """
    Apply Glorot uniform initialization.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.
    fan_in:
        Number of input units.
    fan_out:
        Number of output units.

    Returns
    -------
    SharedTensor
        The initialized tensor (same object).
    """
    limit = _glorot_limit(fan_in, fan_out)
    w = np.asarray(
        np.random.uniform(-limit, limit, size=tensor.shape), dtype=np.float32
    )
    tensor.copy_from_numpy(w)
    return tensor
