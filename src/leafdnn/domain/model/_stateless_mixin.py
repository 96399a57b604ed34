"""
Stateless configuration mixin.

This module defines `StatelessConfigMixin`, a helper mixin for layer workers
whose behavior does not depend on any configurable hyperparameters (the
activation family, softmax layers, Flatten).

It gives those workers the same `from_config` / `get_config` hooks as the
configurable ones so that the layer factory can build every variant through
one code path.
"""

from typing import Any, Dict, Optional

from typing_extensions import Self


class StatelessConfigMixin:
    """
    Mixin providing configuration hooks for stateless layer workers.

    The variant config of a stateless layer carries no fields; it only
    selects the layer kind.
    """

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration dictionary.

        Returns
        -------
        Dict[str, Any]
            An empty configuration dictionary.
        """
        return {}

    @classmethod
    def from_config(cls, cfg: Optional[Any] = None) -> Self:
        """
        Construct the worker from its (empty) variant config.

        Parameters
        ----------
        cfg : Any, optional
            Variant configuration (unused).

        Returns
        -------
        StatelessConfigMixin
            A newly constructed instance of the worker.
        """
        return cls()
