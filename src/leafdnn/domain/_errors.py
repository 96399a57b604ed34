"""
Engine-level exceptions for leafdnn.

This module defines the error types raised by the layer graph, the backends
and the solver. Two families exist:

- Fatal errors derive from `RuntimeError`. They signal a misconfigured graph
  (incompatible shapes, a missing input, an unknown layer variant) that
  cannot safely continue. The library never catches them; the current run
  aborts.
- Recoverable errors derive from `ValueError`. They are returned to the
  caller as a decision point, e.g. a weight that cannot be shared between
  two layers.
"""

from __future__ import annotations

from typing import Optional, Sequence


class BackendError(RuntimeError):
    """
    Raised when a backend cannot execute a primitive operation.

    Attributes
    ----------
    op : str
        Name of the backend primitive (e.g. "relu", "axpby").
    """

    def __init__(self, op: str, message: str) -> None:
        super().__init__(f"{op}: {message}")
        self.op = op


class ShapeMismatchError(BackendError):
    """
    Raised when tensor shapes or capacities are incompatible.

    This covers backend operands of different sizes, binding an input of the
    wrong size into a network, copying gradients between blobs of different
    capacity, an impossible Reshape target and unsupported loss input ranks.

    Attributes
    ----------
    op : str
        Operation during which the mismatch was detected.
    expected : Optional[tuple[int, ...]]
        The shape (or capacity, as a 1-tuple) that was required.
    actual : Optional[tuple[int, ...]]
        The shape (or capacity) that was found.
    """

    def __init__(
        self,
        op: str,
        expected: Optional[Sequence[int]] = None,
        actual: Optional[Sequence[int]] = None,
        *,
        message: Optional[str] = None,
    ) -> None:
        self.expected = tuple(expected) if expected is not None else None
        self.actual = tuple(actual) if actual is not None else None
        if message is None:
            message = f"shape mismatch, expected {self.expected}, got {self.actual}"
        super().__init__(op, message)


class DeviceNotSupportedError(RuntimeError):
    """
    Raised when a backend is requested for a device that has no implementation.

    Attributes
    ----------
    op : str
        The operation or factory that was attempted (e.g. "create_backend").
    device : str
        String representation of the requested device.
    """

    def __init__(self, op: str, device: str) -> None:
        """
        Initialize the DeviceNotSupportedError.

        Parameters
        ----------
        op : str
            The operation name that is not supported on the given device.
        device : str
            The device identifier (e.g., "cuda:0").
        """
        super().__init__(f"{op} is not implemented for device '{device}'.")
        self.op = op
        self.device = device


class MissingInputError(RuntimeError):
    """
    Raised when a layer runs without a required bound tensor.

    Activation layers have no fallback in-place path on the native backend,
    so forward without an input (or backward without an output) cannot
    proceed.
    """

    def __init__(self, layer: str, what: str = "input") -> None:
        super().__init__(f"No {what} provided for {layer} layer.")
        self.layer = layer
        self.what = what


class UnsupportedLayerTypeError(RuntimeError):
    """
    Raised at graph-construction time for a layer variant with no worker.
    """

    def __init__(self, layer_type: str) -> None:
        super().__init__(f"Unsupported layer variant '{layer_type}'.")
        self.layer_type = layer_type


class LayerConnectionError(RuntimeError):
    """
    Raised when a layer cannot be wired into its container.

    Typical causes are an input name that no earlier layer produces and that
    is not a declared container input, or a blob count that does not match
    what the layer requires.
    """

    def __init__(self, layer: str, message: str) -> None:
        super().__init__(f"Layer '{layer}': {message}")
        self.layer = layer


class WeightShareError(ValueError):
    """
    Raised when a named weight cannot be shared between two layers.

    Attributes
    ----------
    param_name : str
        Name of the shared weight.
    owner_name : str
        Layer that created (owns) the weight.
    layer_name : str
        Layer that requested to share it.
    owner_shape : tuple[int, ...]
        Shape of the owner's weight tensor.
    requested_shape : tuple[int, ...]
        Shape expected by the requesting layer.
    """

    def __init__(
        self,
        reason: str,
        param_name: str,
        owner_name: str,
        layer_name: str,
        owner_shape: Sequence[int],
        requested_shape: Sequence[int],
    ) -> None:
        self.param_name = param_name
        self.owner_name = owner_name
        self.layer_name = layer_name
        self.owner_shape = tuple(owner_shape)
        self.requested_shape = tuple(requested_shape)
        super().__init__(
            f"Cannot share weight '{param_name}' owned by layer '{owner_name}' "
            f"with layer '{layer_name}'; {reason}. "
            f"Owner layer weight shape is {self.owner_shape}; "
            f"sharing layer expects weight shape {self.requested_shape}."
        )
