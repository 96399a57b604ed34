"""
Layer capability interfaces.

A layer is described by independent capabilities rather than by a single
`forward` method:

- `IComputeOutput`: the forward transform from inputs (and weights) to
  outputs.
- `IComputeInputGradient`: backpropagation of the output gradient to the
  input gradient through the layer's function.
- `IComputeParametersGradient`: the gradient with respect to the layer's own
  learnable weights (a no-op for stateless layers).

`ILayerWorker` combines the three with shape inference (`reshape`) and the
structural queries the graph builder needs. Concrete layers (activations,
losses, utility layers, containers) implement these structurally; nothing
here depends on NumPy or on a concrete backend.

All compute methods write into caller-provided tensors. Argument lists are
ordered sequences of tensors matching the layer's declared blobs.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ._backend import IBackend
from ._tensor import ITensor


@runtime_checkable
class IComputeOutput(Protocol):
    """Forward capability."""

    def compute_output(
        self,
        backend: IBackend,
        weights: Sequence[ITensor],
        input_data: Sequence[ITensor],
        output_data: Sequence[ITensor],
    ) -> None:
        """
        Compute the layer outputs from its inputs.

        Parameters
        ----------
        backend : IBackend
            Backend providing the numeric primitives.
        weights : Sequence[ITensor]
            The layer's weight data tensors (empty for stateless layers).
        input_data : Sequence[ITensor]
            Bound input data tensors.
        output_data : Sequence[ITensor]
            Output data tensors, already shaped by `reshape`.
        """
        ...


@runtime_checkable
class IComputeInputGradient(Protocol):
    """Input-gradient capability."""

    def compute_input_gradient(
        self,
        backend: IBackend,
        weights_data: Sequence[ITensor],
        output_data: Sequence[ITensor],
        output_gradients: Sequence[ITensor],
        input_data: Sequence[ITensor],
        input_gradients: Sequence[ITensor],
    ) -> None:
        """
        Backpropagate `output_gradients` into `input_gradients`.
        """
        ...


@runtime_checkable
class IComputeParametersGradient(Protocol):
    """Parameter-gradient capability."""

    def compute_parameters_gradient(
        self,
        backend: IBackend,
        output_data: Sequence[ITensor],
        output_gradients: Sequence[ITensor],
        input_data: Sequence[ITensor],
        parameters_gradients: Sequence[ITensor],
    ) -> None:
        """
        Compute the gradient with respect to the layer's learnable weights.
        """
        ...


@runtime_checkable
class ILayerWorker(
    IComputeOutput, IComputeInputGradient, IComputeParametersGradient, Protocol
):
    """
    Full layer contract consumed by the runtime `Layer` wrapper.

    Notes
    -----
    - `reshape` is the shape-inference step. It runs before every forward
      and backward round and must leave each gradient tensor shaped like its
      data tensor.
    - `exact_num_*_blobs` return `None` when the layer accepts any count.
    """

    def reshape(
        self,
        backend: IBackend,
        input_data: List[ITensor],
        input_gradient: List[ITensor],
        weights_data: List[ITensor],
        weights_gradient: List[ITensor],
        output_data: List[ITensor],
        output_gradient: List[ITensor],
    ) -> None: ...

    def exact_num_input_blobs(self) -> Optional[int]: ...

    def exact_num_output_blobs(self) -> Optional[int]: ...

    def min_output_blobs(self) -> int: ...

    def auto_output_blobs(self) -> bool: ...

    def compute_in_place(self) -> bool: ...

    def sync_native(self) -> bool: ...

    def is_container(self) -> bool: ...

    def loss_weight(self, output_id: int) -> Optional[float]: ...

    def weight_names(self) -> Sequence[str]: ...
