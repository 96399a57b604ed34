"""
Layer variant registry.

Every layer variant is a small config record (e.g. `LinearConfig`) paired
with the worker class that executes it (e.g. `Linear`). Workers register
themselves with a decorator:

    @register_layer(LinearConfig, "linear")
    class Linear(LayerWorker):
        @classmethod
        def from_config(cls, cfg: LinearConfig) -> "Linear": ...

The runtime `Layer` builds its worker through `worker_from_config`, and the
dict (de)serialization of `LayerConfig` stores the variant under its
registered name.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Dict, Optional, Tuple, Type

from ...domain._errors import UnsupportedLayerTypeError

_WORKERS: Dict[type, Type[Any]] = {}
_NAMES: Dict[type, str] = {}
_CONFIG_TYPES: Dict[str, type] = {}


def register_layer(
    config_type: type, name: Optional[str] = None
) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator registering a worker class for the variant `config_type`.

    Parameters
    ----------
    config_type : type
        The variant config record handled by the decorated worker.
    name : str, optional
        Serialized variant name. Defaults to the worker class name.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _WORKERS[config_type] = cls
        _NAMES[config_type] = key
        _CONFIG_TYPES[key] = config_type
        return cls

    return deco


def variant_name(cfg: Any) -> str:
    """Return the registered name of a variant config instance."""
    try:
        return _NAMES[type(cfg)]
    except KeyError:
        raise UnsupportedLayerTypeError(type(cfg).__name__) from None


def worker_from_config(cfg: Any) -> Any:
    """
    Build the worker registered for the variant `cfg`.

    Raises
    ------
    UnsupportedLayerTypeError
        If no worker is registered for ``type(cfg)``.
    """
    cls = _WORKERS.get(type(cfg))
    if cls is None:
        raise UnsupportedLayerTypeError(type(cfg).__name__)
    return cls.from_config(cfg)


def variant_to_dict(cfg: Any) -> Dict[str, Any]:
    """
    Convert a variant config into ``{"type": <name>, "config": {...}}``.
    """
    to_dict = getattr(cfg, "to_dict", None)
    body = to_dict() if callable(to_dict) else dataclasses.asdict(cfg)
    return {"type": variant_name(cfg), "config": body}


def variant_from_dict(node: Dict[str, Any]) -> Any:
    """
    Rebuild a variant config from the output of `variant_to_dict`.

    Raises
    ------
    UnsupportedLayerTypeError
        If the stored variant name is not registered.
    """
    type_name = str(node["type"])
    config_type = _CONFIG_TYPES.get(type_name)
    if config_type is None:
        raise UnsupportedLayerTypeError(type_name)
    body = node.get("config", {}) or {}
    from_dict = getattr(config_type, "from_dict", None)
    if callable(from_dict):
        return from_dict(body)
    return config_type(**body)


def registered_variants() -> Tuple[str, ...]:
    """Return the registered variant names, sorted."""
    return tuple(sorted(_CONFIG_TYPES))
