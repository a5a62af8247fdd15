# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""claw - a home-automation command router.

Key presses from remote controls (read from lircd) are collected by
listeners into a single command stream, and the dispatcher routes each one
to a command on a target device: an Onkyo receiver, a Plex player or a
machine woken with wake-on-LAN.

Example usage:
    from claw import CommandStream, Dispatcher, load_config
    from claw.listeners import default_listener_registry
    from claw.targets import default_target_registry

    async def main():
        config = load_config("claw.yaml")
        dispatcher = Dispatcher(default_target_registry(), config.routes)
        await dispatcher.setup(config.targets)
        listeners = default_listener_registry()
        async with CommandStream() as stream:
            for cfg in config.listeners.values():
                stream.add_listener(listeners.create(cfg.type, cfg.params))
            async for event in stream:
                await dispatcher.dispatch(event)
        await dispatcher.stop()
"""

from .config import Config, ListenerConfig, TargetConfig, load_config, parse_config
from .dispatcher import Dispatcher, Route, RouteTable
from .exceptions import (
    ClawError,
    CommandDocumentError,
    ConfigurationError,
    TargetError,
    TargetUnavailableError,
    UnknownCommandError,
)
from .stream import CommandStream, RemoteCommand

__all__ = [
    # Pipeline
    "CommandStream",
    "RemoteCommand",
    "Dispatcher",
    "Route",
    "RouteTable",
    # Configuration
    "Config",
    "ListenerConfig",
    "TargetConfig",
    "load_config",
    "parse_config",
    # Errors
    "ClawError",
    "ConfigurationError",
    "CommandDocumentError",
    "TargetError",
    "TargetUnavailableError",
    "UnknownCommandError",
]
