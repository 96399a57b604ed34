"""
Sequential container.

`Sequential` is a layer worker that owns an ordered list of child layers and
a registry of named blobs. Because it is itself a worker, a `Sequential` can
be nested inside another one.

Wiring
------
- Each declared input gets a blob of its declared shape (or, when the
  container is nested, the blob of the enclosing graph it is connected to).
- A child that names no inputs reads the previous child's outputs; the
  first child reads the declared inputs.
- Every child is connected in declaration order, so an input name must be a
  declared input or an output of an earlier child.

Execution
---------
Forward runs the children in declaration order, each one re-running its
shape inference first, so a new batch size propagates through the graph.
Backward runs them in reverse; every child reads the output gradient its
downstream neighbour wrote into their shared blob.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...domain._backend import IBackend
from ...domain._errors import LayerConnectionError
from ..layers._config import LayerConfig
from ..layers._core import LayerWorker
from ..layers._layer import BlobRegistry, Layer, WeightRegistry
from ..layers._registry import register_layer
from ..tensor._tensor import Blob, SharedTensor

logger = logging.getLogger(__name__)


@dataclass
class SequentialConfig:
    """
    Configuration of a `Sequential` container.

    Attributes
    ----------
    layers : List[LayerConfig]
        Child layers in execution order.
    inputs : List[Tuple[str, Tuple[int, ...]]]
        Declared inputs as ``(name, shape)``.
    force_backward : bool
        Compute input gradients for every child, even those that neither
        have weights nor feed a layer that does.
    """

    layers: List[LayerConfig] = field(default_factory=list)
    inputs: List[Tuple[str, Tuple[int, ...]]] = field(default_factory=list)
    force_backward: bool = False

    def add_layer(self, layer: LayerConfig) -> "SequentialConfig":
        self.layers.append(layer)
        return self

    def add_input(self, name: str, shape: Sequence[int]) -> "SequentialConfig":
        self.inputs.append((name, tuple(int(d) for d in shape)))
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layers": [layer.to_dict() for layer in self.layers],
            "inputs": [[name, list(shape)] for name, shape in self.inputs],
            "force_backward": bool(self.force_backward),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SequentialConfig":
        return cls(
            layers=[LayerConfig.from_dict(x) for x in d.get("layers", [])],
            inputs=[
                (str(name), tuple(int(s) for s in shape))
                for name, shape in d.get("inputs", [])
            ],
            force_backward=bool(d.get("force_backward", False)),
        )


@register_layer(SequentialConfig, "sequential")
class Sequential(LayerWorker):
    """
    Container worker running child layers one after another.

    Parameters
    ----------
    config : SequentialConfig
        Container description. It is copied; later changes to the caller's
        object have no effect.
    """

    def __init__(self, config: SequentialConfig) -> None:
        self.config = copy.deepcopy(config)
        self.layers: List[Layer] = []
        self.registry: BlobRegistry = {}
        self._input_names: List[str] = []
        self._built = False

    @classmethod
    def from_config(cls, cfg: SequentialConfig) -> "Sequential":
        return cls(cfg)

    def get_config(self) -> dict:
        return self.config.to_dict()

    def is_container(self) -> bool:
        return True

    def exact_num_input_blobs(self) -> Optional[int]:
        return len(self.config.inputs)

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------
    def build(
        self,
        backend: IBackend,
        layer_name: str,
        input_blobs: Optional[List[Blob]] = None,
        weight_registry: Optional[WeightRegistry] = None,
    ) -> None:
        """
        Create and connect the child layers.

        Parameters
        ----------
        backend : IBackend
            Backend handed to every child.
        layer_name : str
            Name of the layer wrapping this container (for errors).
        input_blobs : List[Blob], optional
            Blobs of the enclosing graph to use as the declared inputs. When
            omitted, fresh blobs of the declared shapes are allocated.
        weight_registry : dict, optional
            Named weights shared across the graph.

        Raises
        ------
        LayerConnectionError
            If the container is built twice, the number of given input blobs
            differs from the declared inputs, or a child cannot be wired.
        """
        if self._built:
            raise LayerConnectionError(layer_name, "container is already built")
        if input_blobs is not None and len(input_blobs) != len(self.config.inputs):
            raise LayerConnectionError(
                layer_name,
                f"container declares {len(self.config.inputs)} inputs, "
                f"got {len(input_blobs)} blobs",
            )
        if weight_registry is None:
            weight_registry = {}

        for i, (name, shape) in enumerate(self.config.inputs):
            blob = input_blobs[i] if input_blobs is not None else Blob.new(shape)
            self.registry[name] = blob
            self._input_names.append(name)

        previous = list(self._input_names)
        produced_by: Dict[str, Layer] = {}
        for child_cfg in self.config.layers:
            cfg = copy.deepcopy(child_cfg)
            if not cfg.inputs:
                cfg.inputs = list(previous)
            child = Layer.from_config(backend, cfg)
            child.connect(self.registry, weight_registry)
            child.needs_backward = self._needs_backward(child, produced_by)
            logger.debug(
                "Layer %s needs backward: %s", child.name, child.needs_backward
            )
            for name in child.output_blob_names:
                produced_by[name] = child
            previous = list(child.output_blob_names)
            self.layers.append(child)

        self._built = True

    def _needs_backward(self, child: Layer, produced_by: Dict[str, Layer]) -> bool:
        if self.config.force_backward:
            return True
        if child.learnable_weights_data():
            return True
        if child.worker.loss_weight(0) is not None:
            return True
        return any(
            name in produced_by and produced_by[name].needs_backward
            for name in child.input_blob_names
        )

    # ------------------------------------------------------------------
    # Blob views
    # ------------------------------------------------------------------
    def input_blob_names(self) -> List[str]:
        return list(self._input_names)

    def input_blobs(self) -> List[Blob]:
        return [self.registry[name] for name in self._input_names]

    def output_blob_names(self) -> List[str]:
        if not self.layers:
            return list(self._input_names)
        return list(self.layers[-1].output_blob_names)

    def output_blobs(self) -> List[Blob]:
        if not self.layers:
            return self.input_blobs()
        last = self.layers[-1]
        return [
            Blob(data, grad)
            for data, grad in zip(last.output_blobs_data, last.output_blobs_gradient)
        ]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def reshape(
        self,
        backend: IBackend,
        input_data: List[SharedTensor],
        input_gradient: List[SharedTensor],
        weights_data: List[SharedTensor],
        weights_gradient: List[SharedTensor],
        output_data: List[SharedTensor],
        output_gradient: List[SharedTensor],
    ) -> None:
        for child in self.layers:
            child.reshape()

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None:
        for child in self.layers:
            child.forward()

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None:
        for child in reversed(self.layers):
            child.backward()

    # ------------------------------------------------------------------
    # Learnable weights, in declaration order
    # ------------------------------------------------------------------
    def learnable_weights_data(self) -> List[SharedTensor]:
        return [w for child in self.layers for w in child.learnable_weights_data()]

    def learnable_weights_gradients(self) -> List[SharedTensor]:
        return [
            g for child in self.layers for g in child.learnable_weights_gradients()
        ]

    def learnable_weights_names(self) -> List[str]:
        return [n for child in self.layers for n in child.learnable_weights_names()]

    def learnable_weights_lr(self) -> List[float]:
        return [lr for child in self.layers for lr in child.learnable_weights_lr()]

    def learnable_weights_decay(self) -> List[float]:
        return [d for child in self.layers for d in child.learnable_weights_decay()]

    def __repr__(self) -> str:
        return f"Sequential(layers={[child.name for child in self.layers]})"
