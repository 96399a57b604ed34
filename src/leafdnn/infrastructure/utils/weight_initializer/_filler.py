"""
Filler configuration records.

A filler describes how a freshly created weight tensor is initialized. It is
plain configuration: `fill` dispatches to the named initializer in the
`WeightInitializer` registry and runs exactly once, when the weight is
allocated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from ._base import WeightInitializer
from ...tensor._tensor import SharedTensor


@dataclass(frozen=True)
class ConstantFiller:
    """
    Fill every element with `value`.
    """

    value: float = 0.0

    def fill(self, tensor: SharedTensor) -> SharedTensor:
        return WeightInitializer("constant")(tensor, float(self.value))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "constant", "value": float(self.value)}


@dataclass(frozen=True)
class GlorotFiller:
    """
    Glorot uniform filler with explicit fan sizes.

    Attributes
    ----------
    input_size : int
        Fan-in of the weight.
    output_size : int
        Fan-out of the weight.
    """

    input_size: int
    output_size: int

    def fill(self, tensor: SharedTensor) -> SharedTensor:
        return WeightInitializer("glorot")(
            tensor, int(self.input_size), int(self.output_size)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "glorot",
            "input_size": int(self.input_size),
            "output_size": int(self.output_size),
        }


FillerType = Union[ConstantFiller, GlorotFiller]


def filler_from_dict(d: Dict[str, Any]) -> FillerType:
    """
    Rebuild a filler from the output of its `to_dict`.

    Raises
    ------
    ValueError
        If the filler type is unknown.
    """
    kind = str(d.get("type"))
    if kind == "constant":
        return ConstantFiller(value=float(d.get("value", 0.0)))
    if kind == "glorot":
        return GlorotFiller(
            input_size=int(d["input_size"]), output_size=int(d["output_size"])
        )
    raise ValueError(f"Unknown filler type: {kind!r}")
