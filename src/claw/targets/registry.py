# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Target registry.

Maps a target type name (as used in the configuration file) to a factory
building the target from its configured name and parameters.
"""

import logging
from typing import Callable, Optional

from ..exceptions import ConfigurationError
from .base import Target

logger = logging.getLogger(__name__)

TargetFactory = Callable[[str, dict[str, str]], Optional[Target]]


class TargetRegistry:
    """Name -> factory table for target types.

    A factory receives the target's configured name and a string parameter
    mapping and returns the target, or None when the parameters are
    unusable.
    """

    def __init__(self):
        self._factories: dict[str, TargetFactory] = {}

    def register(self, type_name: str, factory: TargetFactory) -> None:
        """Register a target factory.

        Raises:
            ValueError: If the type name is already registered.
        """
        if type_name in self._factories:
            raise ValueError(f"Target type '{type_name}' already registered")
        self._factories[type_name] = factory
        logger.debug(f"Registered target type: {type_name}")

    def create(
        self, type_name: str, name: str, params: Optional[dict[str, str]] = None
    ) -> Target:
        """Build a target of the given type.

        Raises:
            ConfigurationError: If the type is unknown or its factory rejects
                the parameters.
        """
        factory = self._factories.get(type_name)
        if factory is None:
            raise ConfigurationError(
                f"Target type '{type_name}' not registered. "
                f"Available: {self.types}"
            )
        target = factory(name, dict(params or {}))
        if target is None:
            raise ConfigurationError(
                f"Invalid parameters for target '{name}' of type '{type_name}'"
            )
        return target

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._factories

    @property
    def types(self) -> list[str]:
        """Registered target type names."""
        return sorted(self._factories)


def default_target_registry() -> TargetRegistry:
    """Create a registry holding the built-in target types."""
    from . import linux, onkyo, plex

    registry = TargetRegistry()
    linux.register(registry)
    onkyo.register(registry)
    plex.register(registry)
    return registry
