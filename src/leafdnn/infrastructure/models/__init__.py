"""
Container layers.

Exports
-------
- Sequential: container worker running child layers in order.
- SequentialConfig: its configuration record.
"""

from ._sequential import Sequential, SequentialConfig

__all__ = [
    Sequential.__name__,
    SequentialConfig.__name__,
]
