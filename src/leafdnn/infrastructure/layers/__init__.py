"""
Layer public API.

Importing this package registers every built-in layer variant.

Exports
-------
- Layer, LayerConfig: runtime layer and its configuration record.
- LayerWorker, reshape_like_input: base class and shape helper for workers.
- WeightConfig, DimCheckMode: per-weight configuration.
- Variant configs and workers: Linear, ReLU, Sigmoid, TanH, Softmax,
  LogSoftmax, Reshape, Flatten, NegativeLogLikelihood.
- register_layer, worker_from_config: variant registry.
"""

from ._activations import (
    LogSoftmax,
    LogSoftmaxConfig,
    ReLU,
    ReLUConfig,
    Sigmoid,
    SigmoidConfig,
    Softmax,
    SoftmaxConfig,
    TanH,
    TanHConfig,
)
from ._config import LayerConfig
from ._core import LayerWorker, reshape_like_input
from ._layer import Layer
from ._linear import Linear, LinearConfig
from ._losses import NegativeLogLikelihood, NegativeLogLikelihoodConfig
from ._registry import register_layer, registered_variants, worker_from_config
from ._reshape import Flatten, FlattenConfig, Reshape, ReshapeConfig
from ._weight_config import DimCheckMode, WeightConfig

__all__ = [
    Layer.__name__,
    LayerConfig.__name__,
    LayerWorker.__name__,
    reshape_like_input.__name__,
    WeightConfig.__name__,
    DimCheckMode.__name__,
    Linear.__name__,
    LinearConfig.__name__,
    ReLU.__name__,
    ReLUConfig.__name__,
    Sigmoid.__name__,
    SigmoidConfig.__name__,
    TanH.__name__,
    TanHConfig.__name__,
    Softmax.__name__,
    SoftmaxConfig.__name__,
    LogSoftmax.__name__,
    LogSoftmaxConfig.__name__,
    Reshape.__name__,
    ReshapeConfig.__name__,
    Flatten.__name__,
    FlattenConfig.__name__,
    NegativeLogLikelihood.__name__,
    NegativeLogLikelihoodConfig.__name__,
    register_layer.__name__,
    registered_variants.__name__,
    worker_from_config.__name__,
]
