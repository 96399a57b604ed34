"""
Shape utility layers.

`Reshape` and `Flatten` only reinterpret their input: values are kept
index-for-index in row-major order. Both run in place, so the output blob is
the input blob itself and the compute steps have nothing left to do.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...domain._backend import IBackend
from ...domain.model._stateless_mixin import StatelessConfigMixin
from ..tensor._tensor import SharedTensor
from ._core import LayerWorker, require_blob
from ._registry import register_layer


@dataclass(frozen=True)
class ReshapeConfig:
    """
    Attributes
    ----------
    shape : Tuple[int, ...]
        Target shape. Its element count must equal the input's.
    """

    shape: Tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", tuple(int(d) for d in self.shape))

    def to_dict(self) -> Dict[str, Any]:
        return {"shape": list(self.shape)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ReshapeConfig":
        return cls(shape=tuple(int(x) for x in d["shape"]))


@dataclass(frozen=True)
class FlattenConfig:
    """Flatten variant (no fields)."""


class _InPlaceShapeLayer(LayerWorker):
    label = "Reshape"

    def exact_num_input_blobs(self) -> Optional[int]:
        return 1

    def exact_num_output_blobs(self) -> Optional[int]:
        return 1

    def compute_in_place(self) -> bool:
        return True

    @abstractmethod
    def target_shape(self, input_shape: Tuple[int, ...]) -> Tuple[int, ...]: ...

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
        if not input_data or not output_data:
            return
        x = input_data[0]
        target = self.target_shape(x.shape)
        y = output_data[0]
        if y is x:
            y.reshape(target)
        else:
            for t in input_gradient[:1]:
                t.resize(x.shape)
            y.resize(target)
        for t in output_gradient[:1]:
            t.resize(target)

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None:
        x = require_blob(input_data, self.label, "input")
        y = require_blob(output_data, self.label, "output")
        if y is not x:
            backend.copy(x, y)

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None:
        dy = require_blob(output_gradients, self.label, "output gradient")
        dx = require_blob(input_gradients, self.label, "input gradient")
        if dx is not dy:
            backend.copy(dy, dx)


@register_layer(ReshapeConfig, "reshape")
class Reshape(_InPlaceShapeLayer):
    """
    Reinterpret the input under a fixed target shape.

    Raises
    ------
    ShapeMismatchError
        At shape inference, if the target's element count differs from the
        input's.
    """

    def __init__(self, shape: Sequence[int]) -> None:
        self.shape = tuple(int(d) for d in shape)

    @classmethod
    def from_config(cls, cfg: ReshapeConfig) -> "Reshape":
        return cls(cfg.shape)

    def get_config(self) -> dict:
        return {"shape": list(self.shape)}

    def target_shape(self, input_shape: Tuple[int, ...]) -> Tuple[int, ...]:
        return self.shape

    def __repr__(self) -> str:
        return f"Reshape(shape={self.shape})"


@register_layer(FlattenConfig, "flatten")
class Flatten(StatelessConfigMixin, _InPlaceShapeLayer):
    """
    Collapse every axis after the first: ``N x C x H x W -> N x (C*H*W)``.

    Inputs of rank 0 or 1 pass through unchanged.
    """

    label = "Flatten"

    def target_shape(self, input_shape: Tuple[int, ...]) -> Tuple[int, ...]:
        if len(input_shape) < 2:
            return input_shape
        rest = 1
        for d in input_shape[1:]:
            rest *= d
        return (input_shape[0], rest)
