"""
Filler contract shared by every weight initializer.

A filler function receives a freshly allocated weight tensor, writes its
initial values in place and returns the same tensor. Fillers run exactly
once per weight, when the owning layer creates it; shared weights are filled
by their owner only.

Fan-in and fan-out are explicit arguments in leafdnn and are never read from
a tensor's shape.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict
import math

from .._tensor import ITensor

FillFunction = Callable[..., ITensor]


class _WeightInitializer(ABC):
    """
    Named filler dispatcher.

    Concrete subclasses own the name -> function table in `INITIALIZERS` and
    bind one entry at construction; calling the instance fills a tensor.
    """

    INITIALIZERS: ClassVar[Dict[str, FillFunction]] = {}

    @abstractmethod
    def __call__(self, tensor: ITensor, *args: Any, **kwargs: Any) -> ITensor:
        """Fill `tensor` in place and return it."""
        ...


def _glorot_limit(fan_in: int, fan_out: int) -> float:
    """
    Half-width of the Glorot uniform range, ``sqrt(6 / (fan_in + fan_out))``.

    Raises
    ------
    ValueError
        If ``fan_in + fan_out`` is not positive.
    """
    total = int(fan_in) + int(fan_out)
    if total <= 0:
        raise ValueError(f"Glorot needs fan_in + fan_out > 0, got {fan_in} + {fan_out}")
    return math.sqrt(6.0 / total)
