"""
Shared tensor public API.

Exports
-------
- SharedTensor: float32 buffer with explicit shape and a shared/exclusive lock.
- Blob: (data, gradient) tensor pair.
- ReadWriteLock: the lock type guarding every tensor.
- write_batch_sample: fill one sample of a minibatch tensor.
"""

from ._rwlock import ReadWriteLock
from ._tensor import Blob, SharedTensor
from ._utilities import write_batch_sample

__all__ = [
    SharedTensor.__name__,
    Blob.__name__,
    ReadWriteLock.__name__,
    write_batch_sample.__name__,
]
