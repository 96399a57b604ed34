"""
Base class for concrete layer workers.

`LayerWorker` implements `ILayerWorker` with the defaults shared by most
layers, so a concrete worker only overrides what makes it different:

- no fixed blob counts (`exact_num_*_blobs` return None),
- no automatically created outputs, not in place, no host sync,
- a no-op parameter gradient and a no-op shape inference step.

Shape-preserving layers call `reshape_like_input` from their own `reshape`.
It is a plain function rather than a base-class default, so every layer
states its shape rule explicitly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ...domain._backend import IBackend
from ...domain._errors import MissingInputError
from ...domain._layer import ILayerWorker
from ..tensor._tensor import SharedTensor


def reshape_like_input(
    input_data: List[SharedTensor],
    input_gradient: List[SharedTensor],
    output_data: List[SharedTensor],
    output_gradient: List[SharedTensor],
) -> None:
    """
    Give the input gradient and every output blob the shape of input 0.

    Does nothing when no input is bound yet.
    """
    if not input_data:
        return
    shape = input_data[0].shape
    for t in input_gradient[:1]:
        t.resize(shape)
    for t in output_data:
        t.resize(shape)
    for t in output_gradient:
        t.resize(shape)


def require_blob(blobs: Sequence[SharedTensor], layer: str, what: str) -> SharedTensor:
    """Return the first tensor of `blobs` or raise `MissingInputError`."""
    if not blobs:
        raise MissingInputError(layer, what)
    return blobs[0]


class LayerWorker(ILayerWorker, ABC):
    """
    Abstract base class for layer workers.

    Subclasses must implement `compute_output` and `compute_input_gradient`.
    """

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
        return None

    @abstractmethod
    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
    ) -> None: ...

    @abstractmethod
    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[SharedTensor],
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        input_gradients: Sequence[SharedTensor],
    ) -> None: ...

    def compute_parameters_gradient(
        self,
        backend: IBackend,
        output_data: Sequence[SharedTensor],
        output_gradients: Sequence[SharedTensor],
        input_data: Sequence[SharedTensor],
        parameters_gradients: Sequence[SharedTensor],
    ) -> None:
        return None

    def exact_num_input_blobs(self) -> Optional[int]:
        return None

    def exact_num_output_blobs(self) -> Optional[int]:
        return None

    def min_output_blobs(self) -> int:
        return 0

    def auto_output_blobs(self) -> bool:
        return False

    def compute_in_place(self) -> bool:
        return False

    def sync_native(self) -> bool:
        return False

    def is_container(self) -> bool:
        return False

    def loss_weight(self, output_id: int) -> Optional[float]:
        return None

    def weight_names(self) -> Sequence[str]:
        return ()

    def default_weight_fillers(self, input_data: Sequence[SharedTensor]) -> list:
        """
        Return one default filler per entry of `weight_names()`.

        Called once, when the layer's weights are first allocated.
        """
        return []

    def get_config(self) -> dict:
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
