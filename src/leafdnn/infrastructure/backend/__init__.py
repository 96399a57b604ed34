"""
Backend public API.

Exports
-------
- NativeBackend: NumPy implementation of the backend primitives.
- create_backend: select a backend for a device.
"""

from ._native import NativeBackend
from ._factory import create_backend

__all__ = [
    NativeBackend.__name__,
    create_backend.__name__,
]
