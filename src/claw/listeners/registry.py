# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Listener registry.

Maps a listener type name (as used in the configuration file) to a factory
building the listener from its parameters.
"""

import logging
from typing import Callable, Optional

from ..exceptions import ConfigurationError
from .base import Listener

logger = logging.getLogger(__name__)

ListenerFactory = Callable[[str, dict[str, str]], Optional[Listener]]


class ListenerRegistry:
    """Name -> factory table for listener types.

    A factory receives the type name and a string parameter mapping and
    returns a listener that is not yet set up, or None when the parameters
    are unusable.
    """

    def __init__(self):
        self._factories: dict[str, ListenerFactory] = {}

    def register(self, type_name: str, factory: ListenerFactory) -> None:
        """Register a listener factory.

        Raises:
            ValueError: If the type name is already registered.
        """
        if type_name in self._factories:
            raise ValueError(f"Listener type '{type_name}' already registered")
        self._factories[type_name] = factory
        logger.debug(f"Registered listener type: {type_name}")

    def create(self, type_name: str, params: Optional[dict[str, str]] = None) -> Listener:
        """Build a listener of the given type.

        Raises:
            ConfigurationError: If the type is unknown or its factory rejects
                the parameters.
        """
        factory = self._factories.get(type_name)
        if factory is None:
            raise ConfigurationError(
                f"Listener type '{type_name}' not registered. "
                f"Available: {self.types}"
            )
        listener = factory(type_name, dict(params or {}))
        if listener is None:
            raise ConfigurationError(
                f"Invalid parameters for listener type '{type_name}': {params}"
            )
        return listener

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._factories

    @property
    def types(self) -> list[str]:
        """Registered listener type names."""
        return sorted(self._factories)


def default_listener_registry() -> ListenerRegistry:
    """Create a registry holding the built-in listener types."""
    from . import lircsocket

    registry = ListenerRegistry()
    lircsocket.register(registry)
    return registry
