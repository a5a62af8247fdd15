# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Input listeners feeding the command stream."""

from .base import Listener
from .lircsocket import LircSocketListener, parse_line
from .registry import ListenerFactory, ListenerRegistry, default_listener_registry

__all__ = [
    "Listener",
    "ListenerFactory",
    "ListenerRegistry",
    "default_listener_registry",
    "LircSocketListener",
    "parse_line",
]
