"""
Registry of named filler functions.

Filler functions register under a string key and are looked up by that key
when a weight is created:

    @WeightInitializer.register_initializer("constant")
    def constant(tensor: SharedTensor, value: float) -> SharedTensor: ...

    WeightInitializer("glorot")(weight, fan_in, fan_out)

Extra arguments are forwarded unchanged to the function.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, TypeVar

from ....domain.utils._weight_initialization import _WeightInitializer
from ...tensor._tensor import SharedTensor

F = TypeVar("F", bound=Callable[..., SharedTensor])


class WeightInitializer(_WeightInitializer):
    """
    Filler bound by name.

    Parameters
    ----------
    initializer_name : str
        Key of a registered filler function.

    Raises
    ------
    ValueError
        If nothing is registered under `initializer_name`.
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., SharedTensor]]] = {}

    def __init__(self, initializer_name: str) -> None:
        self.name = initializer_name
        self._fill = self.get(initializer_name)

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[F], F]:
        """
        Decorator adding a filler function under `name`.

        Re-registering an existing name raises `ValueError` unless
        `overwrite` is True.
        """
        if not name:
            raise ValueError("filler name must be a non-empty string")

        def deco(func: F) -> F:
            if name in cls.INITIALIZERS and not overwrite:
                raise ValueError(f"filler {name!r} is already registered")
            cls.INITIALIZERS[name] = func
            return func

        return deco

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Registered filler names, sorted."""
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Callable[..., SharedTensor]:
        fill = cls.INITIALIZERS.get(name)
        if fill is None:
            raise ValueError(
                f"Unknown filler {name!r}; registered: {', '.join(cls.available())}"
            )
        return fill

    def __call__(self, tensor: SharedTensor, *args: Any, **kwargs: Any) -> SharedTensor:
        return self._fill(tensor, *args, **kwargs)

    def __repr__(self) -> str:
        return f"WeightInitializer({self.name!r})"
