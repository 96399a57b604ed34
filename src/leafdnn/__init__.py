"""
leafdnn: a small layer-graph neural network training engine.

Typical use::

    from leafdnn import (
        LayerConfig, LinearConfig, LogSoftmaxConfig, NegativeLogLikelihoodConfig,
        SequentialConfig, Solver, SolverConfig, create_backend,
    )

    net = SequentialConfig(force_backward=True)
    net.add_input("data", (batch, 784))
    net.add_layer(LayerConfig("linear", LinearConfig(10)))
    net.add_layer(LayerConfig("log_softmax", LogSoftmaxConfig()))

    loss = SequentialConfig()
    loss.add_input("network_out", (batch, 10))
    loss.add_input("label", (batch, 1))
    loss.add_layer(LayerConfig("nll", NegativeLogLikelihoodConfig(10)))

    backend = create_backend("cpu")
    solver = Solver.from_config(
        backend,
        backend,
        SolverConfig(
            network=LayerConfig("network", net),
            objective=LayerConfig("classifier", loss),
            minibatch_size=batch,
            base_lr=0.01,
            momentum=0.9,
        ),
    )
    out = solver.train_minibatch(images, labels)
"""

from .domain._errors import (
    BackendError,
    DeviceNotSupportedError,
    LayerConnectionError,
    MissingInputError,
    ShapeMismatchError,
    UnsupportedLayerTypeError,
    WeightShareError,
)
from .domain.device import Device, DeviceType
from .infrastructure import LayerType
from .infrastructure.backend import NativeBackend, create_backend
from .infrastructure.layers import (
    DimCheckMode,
    Flatten,
    FlattenConfig,
    Layer,
    LayerConfig,
    LayerWorker,
    Linear,
    LinearConfig,
    LogSoftmax,
    LogSoftmaxConfig,
    NegativeLogLikelihood,
    NegativeLogLikelihoodConfig,
    ReLU,
    ReLUConfig,
    Reshape,
    ReshapeConfig,
    Sigmoid,
    SigmoidConfig,
    Softmax,
    SoftmaxConfig,
    TanH,
    TanHConfig,
    WeightConfig,
    reshape_like_input,
)
from .infrastructure.metrics import Accuracy, ConfusionMatrix, Sample
from .infrastructure.models import Sequential, SequentialConfig
from .infrastructure.solvers import (
    LRPolicy,
    Momentum,
    RegularizationMethod,
    Solver,
    SolverConfig,
    SolverKind,
)
from .infrastructure.tensor import Blob, SharedTensor, write_batch_sample
from .infrastructure.utils.weight_initializer import (
    ConstantFiller,
    FillerType,
    GlorotFiller,
    WeightInitializer,
)

__version__ = "0.1.0"
