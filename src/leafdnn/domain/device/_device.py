"""
Device descriptors.

`create_backend` picks the single backend of a run from a `Device`. The
descriptor is plain data: it holds no backend resources, and layers never
look at it.

Accepted spellings are ``"cpu"`` (also ``"native"``, the name of the CPU
backend) and ``"cuda:<n>"``.
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Optional, Union

_CUDA_ID = re.compile(r"^cuda:(\d+)$")
_CPU_NAMES = ("cpu", "native")


class DeviceType(Enum):
    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Validated device identifier.

    Parameters
    ----------
    device : str
        ``"cpu"``, ``"native"`` or ``"cuda:<n>"`` with ``n >= 0``.

    Attributes
    ----------
    type : DeviceType
    index : Optional[int]
        GPU ordinal; None for the CPU.

    Raises
    ------
    ValueError
        For any other spelling.
    """

    __slots__ = ("type", "index")

    def __init__(self, device: str) -> None:
        self.index: Optional[int] = None
        if device in _CPU_NAMES:
            self.type = DeviceType.CPU
            return
        match = _CUDA_ID.match(device)
        if match is None:
            raise ValueError(
                f"Unknown device {device!r}; use 'cpu', 'native' or 'cuda:<n>'"
            )
        self.type = DeviceType.CUDA
        self.index = int(match.group(1))

    @classmethod
    def parse(cls, device: Union[str, "Device"]) -> "Device":
        """Pass a `Device` through, parse anything else."""
        return device if isinstance(device, Device) else cls(str(device))

    def is_cpu(self) -> bool:
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        return self.type is DeviceType.CUDA

    def _key(self) -> tuple:
        return (self.type, self.index)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Device):
            return self._key() == other._key()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return "cpu" if self.is_cpu() else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device('{self}')"
