"""
The closed set of layer variants.

`LayerType` is the type of `LayerConfig.layer_type`: every registered variant
config record.
"""

from typing import Union

from .layers._activations import (
    LogSoftmaxConfig,
    ReLUConfig,
    SigmoidConfig,
    SoftmaxConfig,
    TanHConfig,
)
from .layers._linear import LinearConfig
from .layers._losses import NegativeLogLikelihoodConfig
from .layers._reshape import FlattenConfig, ReshapeConfig
from .models._sequential import SequentialConfig

LayerType = Union[
    LinearConfig,
    SigmoidConfig,
    TanHConfig,
    ReLUConfig,
    ReshapeConfig,
    FlattenConfig,
    LogSoftmaxConfig,
    SoftmaxConfig,
    NegativeLogLikelihoodConfig,
    SequentialConfig,
]
