"""
Per-weight configuration.

`WeightConfig` names a learnable weight (so another layer can share it),
selects how strictly a shared weight's dimensions are checked, and carries
the per-weight learning-rate and decay multipliers plus an optional filler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ...domain._errors import WeightShareError
from ...domain._tensor import ITensor
from ..utils.weight_initializer import FillerType, filler_from_dict


class DimCheckMode(Enum):
    """
    Dimension check applied when a named weight is shared.

    - STRICT: the two weight shapes must be identical.
    - PERMISSIVE: only the element counts must match.
    """

    STRICT = "strict"
    PERMISSIVE = "permissive"


@dataclass(frozen=True)
class WeightConfig:
    """
    Configuration of one learnable weight.

    Attributes
    ----------
    name : str
        Sharing key. Layers that declare the same non-empty name share one
        weight tensor; the first layer to declare it owns it.
    share_mode : DimCheckMode
        How dimensions are compared when the weight is shared.
    lr_mult : Optional[float]
        Multiplier on the global learning rate for this weight (default 1).
    decay_mult : Optional[float]
        Multiplier on the global weight decay for this weight (default 1).
    filler : Optional[FillerType]
        Overrides the layer's default initialization when set.
    """

    name: str = ""
    share_mode: DimCheckMode = DimCheckMode.STRICT
    lr_mult: Optional[float] = None
    decay_mult: Optional[float] = None
    filler: Optional[FillerType] = None

    def check_dimensions(
        self,
        tensor_one: ITensor,
        tensor_two: ITensor,
        param_name: str,
        owner_name: str,
        layer_name: str,
    ) -> None:
        """
        Check whether `tensor_two` may share the weight stored in `tensor_one`.

        Parameters
        ----------
        tensor_one : ITensor
            The owner's weight tensor.
        tensor_two : ITensor
            The weight tensor the sharing layer would have created.
        param_name, owner_name, layer_name : str
            Used in the error message.

        Raises
        ------
        WeightShareError
            STRICT mode with different shapes, or PERMISSIVE mode with
            different element counts.
        """
        if self.share_mode is DimCheckMode.STRICT:
            if tuple(tensor_one.shape) != tuple(tensor_two.shape):
                raise WeightShareError(
                    "shape mismatch",
                    param_name,
                    owner_name,
                    layer_name,
                    tensor_one.shape,
                    tensor_two.shape,
                )
        elif tensor_one.capacity != tensor_two.capacity:
            raise WeightShareError(
                "count mismatch",
                param_name,
                owner_name,
                layer_name,
                tensor_one.shape,
                tensor_two.shape,
            )

    def get_lr_mult(self) -> float:
        return 1.0 if self.lr_mult is None else float(self.lr_mult)

    def get_decay_mult(self) -> float:
        return 1.0 if self.decay_mult is None else float(self.decay_mult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "share_mode": self.share_mode.value,
            "lr_mult": self.lr_mult,
            "decay_mult": self.decay_mult,
            "filler": None if self.filler is None else self.filler.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WeightConfig":
        filler = d.get("filler")
        return cls(
            name=str(d.get("name", "")),
            share_mode=DimCheckMode(d.get("share_mode", DimCheckMode.STRICT.value)),
            lr_mult=d.get("lr_mult"),
            decay_mult=d.get("decay_mult"),
            filler=None if filler is None else filler_from_dict(filler),
        )
