"""
Layer configuration record.

`LayerConfig` describes one layer of a graph: its name, its variant (a
registered variant config such as `LinearConfig` or `ReLUConfig`), the blob
names it reads and writes, and one `WeightConfig` per learnable weight.

It is a builder: `add_input` / `add_output` / `add_weight` are used while a
graph is being described. The runtime `Layer` takes a deep copy when it is
built and never reads the caller's object again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ._registry import variant_from_dict, variant_to_dict
from ._weight_config import WeightConfig


@dataclass
class LayerConfig:
    """
    Configuration of one layer.

    Attributes
    ----------
    name : str
        Layer name, used in logs, errors and automatic blob names.
    layer_type : LayerType
        Variant config selecting and parameterizing the worker.
    outputs : List[str]
        Names of the output blobs. May be left empty for layers that create
        their outputs automatically.
    inputs : List[str]
        Names of the input blobs. Inside a `Sequential`, an empty list wires
        the layer to the previous layer's outputs.
    params : List[WeightConfig]
        One entry per learnable weight, in the worker's weight order.
    propagate_down : List[bool]
        Per-input flags; when every flag is False the input gradient is not
        computed. Empty means "propagate to every input".
    """

    name: str
    layer_type: Any
    outputs: List[str] = field(default_factory=list)
    inputs: List[str] = field(default_factory=list)
    params: List[WeightConfig] = field(default_factory=list)
    propagate_down: List[bool] = field(default_factory=list)

    def add_input(self, name: str) -> "LayerConfig":
        self.inputs.append(name)
        return self

    def add_output(self, name: str) -> "LayerConfig":
        self.outputs.append(name)
        return self

    def add_weight(self, weight: WeightConfig) -> "LayerConfig":
        self.params.append(weight)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "layer_type": variant_to_dict(self.layer_type),
            "outputs": list(self.outputs),
            "inputs": list(self.inputs),
            "params": [p.to_dict() for p in self.params],
            "propagate_down": [bool(p) for p in self.propagate_down],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LayerConfig":
        return cls(
            name=str(d["name"]),
            layer_type=variant_from_dict(d["layer_type"]),
            outputs=[str(x) for x in d.get("outputs", [])],
            inputs=[str(x) for x in d.get("inputs", [])],
            params=[WeightConfig.from_dict(p) for p in d.get("params", [])],
            propagate_down=[bool(x) for x in d.get("propagate_down", [])],
        )
