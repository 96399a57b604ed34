"""
Runtime layer.

`Layer` wraps one worker together with everything the worker needs at run
time: the backend, the input and output blobs it is wired to, and its
learnable weights. It is the single node type of a graph; containers such as
`Sequential` are layers whose worker owns child layers.

Lifecycle
---------
1. `Layer.from_config(backend, config)` builds the worker from the registry.
   A top-level container with no declared inputs is connected right away,
   against its own declared inputs.
2. `connect(registry, weight_registry)` resolves input names to blobs,
   creates or reuses output blobs, allocates (and, for named weights,
   shares) learnable weights and runs shape inference once.
3. `forward` / `backward` bind tensors into the blobs, run shape inference
   and the worker's compute steps, and return the blob tensors.
4. `update_weights` subtracts each weight's final gradient from the weight.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
import warnings

from ...domain._backend import IBackend
from ...domain._errors import LayerConnectionError, ShapeMismatchError
from ..tensor._tensor import Blob, SharedTensor
from ._checkpoint import CHECKPOINT_FORMAT, extract_state_payload, load_state_payload_
from ._config import LayerConfig
from ._registry import worker_from_config
from ._weight_config import WeightConfig

logger = logging.getLogger(__name__)

BlobRegistry = Dict[str, Blob]
WeightRegistry = Dict[str, Tuple[str, SharedTensor]]


class Layer:
    """
    A worker plus its blobs and weights.

    Attributes
    ----------
    name : str
        Layer name from the configuration.
    worker : LayerWorker
        The variant-specific implementation.
    needs_backward : bool
        Whether `backward` computes input gradients. Set by the enclosing
        container; True for a top-level layer.
    input_blob_names, output_blob_names : List[str]
        Names of the connected blobs, in order.
    """

    def __init__(self, backend: IBackend, config: LayerConfig) -> None:
        self.backend = backend
        self.config = copy.deepcopy(config)
        self.name = self.config.name
        self.worker = worker_from_config(self.config.layer_type)
        self.needs_backward = True

        self.input_blob_names: List[str] = []
        self.input_blobs_data: List[SharedTensor] = []
        self.input_blobs_gradient: List[SharedTensor] = []

        self.output_blob_names: List[str] = []
        self.output_blobs_data: List[SharedTensor] = []
        self.output_blobs_gradient: List[SharedTensor] = []

        self.weights_names: List[str] = []
        self.weights_data: List[SharedTensor] = []
        self.weights_gradient: List[SharedTensor] = []
        self.weights_lr: List[float] = []
        self.weights_decay: List[float] = []

        self._connected = False

    @classmethod
    def from_config(cls, backend: IBackend, config: LayerConfig) -> "Layer":
        """
        Build the layer described by `config`.

        Raises
        ------
        UnsupportedLayerTypeError
            If the variant of `config` has no registered worker.
        """
        logger.info("Creating layer %s", config.name)
        layer = cls(backend, config)
        if layer.is_container() and not layer.config.inputs:
            layer.connect({}, {})
        return layer

    def is_container(self) -> bool:
        return self.worker.is_container()

    @property
    def connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------
    def connect(
        self,
        registry: BlobRegistry,
        weight_registry: Optional[WeightRegistry] = None,
    ) -> None:
        """
        Wire the layer into a blob registry.

        Parameters
        ----------
        registry : Dict[str, Blob]
            Blobs produced so far, by name. Output blobs of this layer are
            added to it.
        weight_registry : Dict[str, Tuple[str, SharedTensor]], optional
            Named weights created so far, as ``(owner layer, data)``.

        Raises
        ------
        LayerConnectionError
            If an input name is not in `registry`, or the blob counts do not
            match what the worker requires.
        WeightShareError
            If a named weight cannot be shared with its owner.
        """
        if self._connected:
            raise LayerConnectionError(self.name, "layer is already connected")
        if weight_registry is None:
            weight_registry = {}

        inputs: List[Tuple[str, Blob]] = []
        for name in self.config.inputs:
            blob = registry.get(name)
            if blob is None:
                raise LayerConnectionError(
                    self.name,
                    f"input '{name}' is neither produced by an earlier layer "
                    f"nor a declared input",
                )
            inputs.append((name, blob))

        if self.is_container():
            self._connect_container(registry, weight_registry, inputs)
        else:
            expected = self.worker.exact_num_input_blobs()
            if expected is not None and len(inputs) != expected:
                raise LayerConnectionError(
                    self.name, f"expected {expected} input blobs, got {len(inputs)}"
                )
            for name, blob in inputs:
                self._append_input(name, blob)
            self._connect_outputs(registry)
            self._create_weights(weight_registry)

        self._connected = True
        self.reshape()

    def _append_input(self, name: str, blob: Blob) -> None:
        logger.debug("Layer %s: input %s", self.name, name)
        self.input_blob_names.append(name)
        self.input_blobs_data.append(blob.data)
        self.input_blobs_gradient.append(blob.gradient)

    def _append_output(self, name: str, blob: Blob, registry: BlobRegistry) -> None:
        logger.debug("Layer %s: output %s", self.name, name)
        registry[name] = blob
        self.output_blob_names.append(name)
        self.output_blobs_data.append(blob.data)
        self.output_blobs_gradient.append(blob.gradient)

    def _connect_container(
        self,
        registry: BlobRegistry,
        weight_registry: WeightRegistry,
        inputs: List[Tuple[str, Blob]],
    ) -> None:
        self.worker.build(
            self.backend,
            self.name,
            [blob for _, blob in inputs] if inputs else None,
            weight_registry,
        )
        if inputs:
            for name, blob in inputs:
                self._append_input(name, blob)
        else:
            for name, blob in zip(
                self.worker.input_blob_names(), self.worker.input_blobs()
            ):
                self._append_input(name, blob)

        inner_names = self.worker.output_blob_names()
        names = list(self.config.outputs) or list(inner_names)
        if len(names) != len(inner_names):
            raise LayerConnectionError(
                self.name,
                f"declares {len(names)} outputs, container produces "
                f"{len(inner_names)}",
            )
        for name, blob in zip(names, self.worker.output_blobs()):
            self._append_output(name, blob, registry)

    def _connect_outputs(self, registry: BlobRegistry) -> None:
        names = list(self.config.outputs)
        if self.worker.compute_in_place():
            if not self.input_blob_names:
                raise LayerConnectionError(self.name, "in-place layer has no input")
            shared = Blob(self.input_blobs_data[0], self.input_blobs_gradient[0])
            for name in names or [self.input_blob_names[0]]:
                self._append_output(name, shared, registry)
        else:
            for name in names:
                self._append_output(name, registry.get(name) or Blob.new(), registry)
            if self.worker.auto_output_blobs():
                needed = max(
                    self.worker.exact_num_output_blobs() or 0,
                    self.worker.min_output_blobs(),
                )
                while len(self.output_blob_names) < needed:
                    name = f"{self.name}_output_{len(self.output_blob_names)}"
                    self._append_output(name, Blob.new(), registry)

        expected = self.worker.exact_num_output_blobs()
        if expected is not None and len(self.output_blob_names) != expected:
            raise LayerConnectionError(
                self.name,
                f"expected {expected} output blobs, got {len(self.output_blob_names)}",
            )
        if len(self.output_blob_names) < self.worker.min_output_blobs():
            raise LayerConnectionError(
                self.name,
                f"expected at least {self.worker.min_output_blobs()} output blobs",
            )

    def _create_weights(self, weight_registry: WeightRegistry) -> None:
        names = list(self.worker.weight_names())
        params = list(self.config.params)
        if len(params) > len(names):
            warnings.warn(
                f"Layer '{self.name}' has {len(names)} weights but "
                f"{len(params)} weight configs; the extra configs are ignored.",
                RuntimeWarning,
                stacklevel=2,
            )
        configs = [
            params[i] if i < len(params) else WeightConfig() for i in range(len(names))
        ]
        if not names:
            return

        self.weights_data = [SharedTensor() for _ in names]
        self.weights_gradient = [SharedTensor() for _ in names]
        self.reshape()
        defaults = self.worker.default_weight_fillers(self.input_blobs_data)

        for i, (wname, cfg) in enumerate(zip(names, configs)):
            filler = cfg.filler or (defaults[i] if i < len(defaults) else None)
            if filler is not None:
                filler.fill(self.weights_data[i])

            if cfg.name:
                owner = weight_registry.get(cfg.name)
                if owner is None:
                    weight_registry[cfg.name] = (self.name, self.weights_data[i])
                else:
                    owner_layer, owner_data = owner
                    cfg.check_dimensions(
                        owner_data, self.weights_data[i], cfg.name, owner_layer, self.name
                    )
                    logger.debug(
                        "Layer %s: sharing weight %s owned by %s",
                        self.name,
                        cfg.name,
                        owner_layer,
                    )
                    self.weights_data[i] = owner_data

            self.weights_names.append(cfg.name or f"{self.name}-{wname}")
            self.weights_lr.append(cfg.get_lr_mult())
            self.weights_decay.append(cfg.get_decay_mult())

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def reshape(self) -> None:
        """Run the worker's shape inference on the connected blobs."""
        self.worker.reshape(
            self.backend,
            self.input_blobs_data,
            self.input_blobs_gradient,
            self.weights_data,
            self.weights_gradient,
            self.output_blobs_data,
            self.output_blobs_gradient,
        )

    def _bind_input(self, i: int, tensor: SharedTensor) -> None:
        target = self.input_blobs_data[i]
        if tensor is target:
            return
        if tensor.capacity != target.capacity:
            if not self._same_sample_size(tensor, target):
                raise ShapeMismatchError(
                    "bind_input",
                    expected=target.shape,
                    actual=tensor.shape,
                    message=(
                        f"layer '{self.name}' input '{self.input_blob_names[i]}' "
                        f"has shape {target.shape}, got {tensor.shape}"
                    ),
                )
            shape = (tensor.shape[0],) + tuple(target.shape[1:])
            target.resize(shape)
            self.input_blobs_gradient[i].resize(shape)
        self.backend.copy(tensor, target)

    @staticmethod
    def _same_sample_size(a: SharedTensor, b: SharedTensor) -> bool:
        if a.ndim < 2 or b.ndim < 2:
            return False
        return a.capacity // a.shape[0] == b.capacity // b.shape[0]

    def forward(self, inputs: Sequence[SharedTensor] = ()) -> List[SharedTensor]:
        """
        Run the layer forward.

        Parameters
        ----------
        inputs : Sequence[SharedTensor]
            Tensors copied into the input blobs, in order. May be shorter
            than the input list (or empty) when the blobs are already filled.

        Returns
        -------
        List[SharedTensor]
            The output data tensors (shared references, not copies).

        Raises
        ------
        ShapeMismatchError
            If an input's element count differs from its blob's and the
            difference is not a change of the leading batch dimension.
        """
        if len(inputs) > len(self.input_blobs_data):
            raise LayerConnectionError(
                self.name,
                f"got {len(inputs)} inputs, layer has "
                f"{len(self.input_blobs_data)} input blobs",
            )
        for i, tensor in enumerate(inputs):
            self._bind_input(i, tensor)
        self.reshape()
        self.worker.compute_output(
            self.backend,
            self.weights_data,
            self.input_blobs_data,
            self.output_blobs_data,
        )
        return list(self.output_blobs_data)

    def backward(
        self, output_gradients: Sequence[SharedTensor] = ()
    ) -> List[SharedTensor]:
        """
        Run the layer backward.

        Parameters
        ----------
        output_gradients : Sequence[SharedTensor]
            Tensors copied into the output-gradient blobs, in order.

        Returns
        -------
        List[SharedTensor]
            The input-gradient tensors (shared references).

        Raises
        ------
        ShapeMismatchError
            If a given gradient's element count differs from its blob's.
        """
        if len(output_gradients) > len(self.output_blobs_gradient):
            raise LayerConnectionError(
                self.name,
                f"got {len(output_gradients)} output gradients, layer has "
                f"{len(self.output_blobs_gradient)} outputs",
            )
        # an in-place layer downstream may have reshaped the shared blobs
        self.reshape()
        for tensor, target in zip(output_gradients, self.output_blobs_gradient):
            if tensor is not target:
                self.backend.copy(tensor, target)
        if self.needs_backward:
            self.backward_input()
        self.backward_parameters()
        return list(self.input_blobs_gradient)

    def backward_input(self) -> None:
        """Compute the input gradients from the output gradients."""
        flags = self.config.propagate_down
        if flags and not any(flags):
            return
        self.worker.compute_input_gradient(
            self.backend,
            self.weights_data,
            self.output_blobs_data,
            self.output_blobs_gradient,
            self.input_blobs_data,
            self.input_blobs_gradient,
        )

    def backward_parameters(self) -> None:
        """Compute the gradients of this layer's own learnable weights."""
        if not self.weights_gradient:
            return
        self.worker.compute_parameters_gradient(
            self.backend,
            self.output_blobs_data,
            self.output_blobs_gradient,
            self.input_blobs_data,
            self.weights_gradient,
        )

    # ------------------------------------------------------------------
    # Learnable weights
    # ------------------------------------------------------------------
    def learnable_weights_data(self) -> List[SharedTensor]:
        if self.is_container():
            return self.worker.learnable_weights_data()
        return list(self.weights_data)

    def learnable_weights_gradients(self) -> List[SharedTensor]:
        if self.is_container():
            return self.worker.learnable_weights_gradients()
        return list(self.weights_gradient)

    def learnable_weights_names(self) -> List[str]:
        if self.is_container():
            return self.worker.learnable_weights_names()
        return list(self.weights_names)

    def learnable_weights_lr(self) -> List[float]:
        """Per-weight learning-rate multipliers."""
        if self.is_container():
            return self.worker.learnable_weights_lr()
        return list(self.weights_lr)

    def learnable_weights_decay(self) -> List[float]:
        """Per-weight weight-decay multipliers."""
        if self.is_container():
            return self.worker.learnable_weights_decay()
        return list(self.weights_decay)

    def update_weights(self, backend: Optional[IBackend] = None) -> None:
        """
        Apply ``weight := weight - gradient`` to every learnable weight.

        The gradients are expected to already hold the final update step
        computed by the solver.
        """
        backend = backend or self.backend
        for grad, data in zip(
            self.learnable_weights_gradients(), self.learnable_weights_data()
        ):
            backend.axpy(-1.0, grad, data)

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------
    def save_json(self, path: str | Path) -> None:
        """
        Save the layer configuration and weight values into one JSON file.

        See `leafdnn.infrastructure.layers._checkpoint` for the format.

        Only a container that declares its own inputs (e.g. a top-level
        `Sequential`) can be saved, since `load_json` must rebuild and
        connect it without an enclosing graph.

        Raises
        ------
        ValueError
            If the layer is not such a container.
        """
        if not self.is_container() or self.config.inputs:
            raise ValueError(
                f"Layer '{self.name}' cannot be checkpointed: only containers "
                f"declaring their own inputs can be rebuilt by load_json"
            )
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "format": CHECKPOINT_FORMAT,
            "arch": self.config.to_dict(),
            "state": extract_state_payload(self),
        }
        p.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        logger.info("Saved layer %s to %s", self.name, p)

    @classmethod
    def load_json(cls, backend: IBackend, path: str | Path) -> "Layer":
        """
        Rebuild a layer from a checkpoint written by `save_json`.

        Raises
        ------
        ValueError
            If the checkpoint format is unsupported or the stored weights do
            not match the rebuilt layer.
        """
        p = Path(path)
        payload = json.loads(p.read_text(encoding="utf-8"))

        fmt = payload.get("format")
        if fmt != CHECKPOINT_FORMAT:
            raise ValueError(f"Unsupported checkpoint format: {fmt!r}")

        layer = cls.from_config(backend, LayerConfig.from_dict(payload["arch"]))
        load_state_payload_(layer, payload["state"])
        logger.info("Loaded layer %s from %s", layer.name, p)
        return layer

    def __repr__(self) -> str:
        return f"Layer(name={self.name!r}, worker={self.worker!r})"
