"""
JSON checkpoints for layer graphs.

A checkpoint stores the layer configuration and the values of every
learnable weight in one JSON file:

    {
      "format": "leafdnn.json.ckpt.v1",
      "arch": {<LayerConfig.to_dict()>},
      "state": [
        {"name": "linear1-weight", "b64": "...", "dtype": "<f4", "shape": [...]},
        ...
      ]
    }

Weights are listed in the order of `Layer.learnable_weights_data()`, which
is deterministic for a given configuration. Loading rebuilds the graph from
the stored configuration and copies the values back in that order.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ...domain._errors import ShapeMismatchError
from ..encoding._b64 import ndarray_to_payload, payload_to_ndarray

CHECKPOINT_FORMAT = "leafdnn.json.ckpt.v1"


def extract_state_payload(layer: Any) -> List[Dict[str, Any]]:
    """Serialize the learnable weights of `layer` in order."""
    out: List[Dict[str, Any]] = []
    names = layer.learnable_weights_names()
    for name, tensor in zip(names, layer.learnable_weights_data()):
        entry = {"name": name}
        entry.update(ndarray_to_payload(tensor.to_numpy()))
        out.append(entry)
    return out


def load_state_payload_(layer: Any, state: List[Dict[str, Any]]) -> None:
    """
    Copy serialized weight values into the learnable weights of `layer`.

    Raises
    ------
    ValueError
        If the number of stored weights differs from the layer's.
    ShapeMismatchError
        If a stored weight has a different element count.
    """
    weights = layer.learnable_weights_data()
    if len(state) != len(weights):
        raise ValueError(
            f"Checkpoint holds {len(state)} weights, layer '{layer.name}' has "
            f"{len(weights)}."
        )
    for entry, tensor in zip(state, weights):
        arr = payload_to_ndarray(entry)
        if arr.size != tensor.capacity:
            raise ShapeMismatchError(
                "load_json", expected=tensor.shape, actual=arr.shape
            )
        tensor.copy_from_numpy(arr)
