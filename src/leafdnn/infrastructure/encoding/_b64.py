"""
Base64 payloads for tensor values in JSON checkpoints.
"""

from __future__ import annotations

import base64
from typing import Any, Dict

import numpy as np


def bytes_to_b64_str(b: bytes) -> str:
    """Encode raw bytes as a base64 ASCII string."""
    return base64.b64encode(b).decode("ascii")


def b64_str_to_bytes(s: str) -> bytes:
    """Decode a base64 ASCII string back into raw bytes."""
    return base64.b64decode(s.encode("ascii"))


def ndarray_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize an array as little-endian float32 into a JSON-safe payload.

    Returns
    -------
    dict
        ``{"b64": "<base64>", "dtype": "<f4", "shape": [...]}``
    """
    a = np.ascontiguousarray(arr, dtype="<f4")
    return {
        "b64": bytes_to_b64_str(a.tobytes(order="C")),
        "dtype": a.dtype.str,
        "shape": list(a.shape),
    }


def payload_to_ndarray(payload: Dict[str, Any]) -> np.ndarray:
    """
    Decode a payload produced by `ndarray_to_payload` into a float32 array.

    Raises
    ------
    ValueError
        If the byte length does not match the recorded shape.
    """
    raw = b64_str_to_bytes(str(payload["b64"]))
    dtype = np.dtype(str(payload.get("dtype", "<f4")))
    shape = tuple(int(x) for x in payload["shape"])
    arr = np.frombuffer(raw, dtype=dtype)
    expected = 1
    for d in shape:
        expected *= d
    if arr.size != expected:
        raise ValueError(
            f"payload holds {arr.size} values, shape {shape} needs {expected}"
        )
    return np.array(arr.reshape(shape), dtype=np.float32, copy=True, order="C")
