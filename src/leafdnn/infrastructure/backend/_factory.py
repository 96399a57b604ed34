"""
Backend selection.

A single backend is chosen at startup and injected into every layer and the
solver. There is no process-global backend.
"""

from __future__ import annotations

import logging
from typing import Union

from ...domain._backend import IBackend
from ...domain._errors import DeviceNotSupportedError
from ...domain.device._device import Device
from ._native import NativeBackend

logger = logging.getLogger(__name__)


def create_backend(device: Union[Device, str] = "cpu") -> IBackend:
    """
    Create the backend for `device`.

    Parameters
    ----------
    device : Device | str, optional
        Target device (``"cpu"``, ``"native"``, ``"cuda:<n>"``). Defaults to
        the CPU.

    Returns
    -------
    IBackend
        A backend whose `device` equals the requested device.

    Raises
    ------
    DeviceNotSupportedError
        If no backend implementation exists for `device`.
    ValueError
        If `device` is not a valid device string.
    """
    dev = Device.parse(device)
    if dev.is_cpu():
        logger.info("Using native backend on %s", dev)
        return NativeBackend()
    raise DeviceNotSupportedError("create_backend", str(dev))
