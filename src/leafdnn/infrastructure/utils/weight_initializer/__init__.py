"""
Weight initialization public API.

Importing this package registers the built-in initializers (``constant``,
``zeros``, ``ones``, ``glorot``) into the `WeightInitializer` registry.

Exports
-------
- WeightInitializer: the registry-backed dispatcher.
- ConstantFiller, GlorotFiller, FillerType: filler configuration records.
- filler_from_dict: rebuild a filler from its dict form.
"""

from ._constants import *
from ._glorot import *
from ._base import WeightInitializer
from ._filler import ConstantFiller, FillerType, GlorotFiller, filler_from_dict

__all__ = [
    WeightInitializer.__name__,
    ConstantFiller.__name__,
    GlorotFiller.__name__,
    "FillerType",
    filler_from_dict.__name__,
]
