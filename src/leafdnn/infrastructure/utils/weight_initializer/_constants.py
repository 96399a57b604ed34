"""
Constant weight initializers.

Provided initializers
---------------------
- ``constant``: every element set to a given value.
- ``zeros`` / ``ones``: shortcuts for ``constant`` with 0 and 1, typically
  used for biases and solver history buffers.
"""

from ._base import WeightInitializer
from ...tensor._tensor import SharedTensor


@WeightInitializer.register_initializer("constant")
def constant(tensor: SharedTensor, value: float = 0.0) -> SharedTensor:
    """
    Set every element of `tensor` to `value`.

    Parameters
    ----------
    tensor : SharedTensor
        The tensor to initialize in-place.
    value : float, optional
        Fill value. Defaults to 0.

    Returns
    -------
    SharedTensor
        The initialized tensor (same object).
    """
    tensor.fill(value)
    return tensor


@WeightInitializer.register_initializer("zeros")
def zeros(tensor: SharedTensor) -> SharedTensor:
    """Initialize a tensor with all elements set to zero."""
    return constant(tensor, 0.0)


@WeightInitializer.register_initializer("ones")
def ones(tensor: SharedTensor) -> SharedTensor:
    """Initialize a tensor with all elements set to one."""
    return constant(tensor, 1.0)
