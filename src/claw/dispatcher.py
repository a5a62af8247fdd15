# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Routes remote key events to target commands.

The dispatcher owns the configured targets. Which target command a key
press triggers is decided by a resolver, a callable mapping a RemoteCommand
to a Route (or None). RouteTable is the configuration-backed resolver:

    routes:
      living-room:
        KEY_POWER: {target: receiver, command: PowerToggle}
        KEY_VOLUMEUP: {target: receiver, command: Volume, args: ["+5"]}
      "*":
        KEY_SLEEP: {target: htpc, command: poweron, repeat: false}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .const import ROUTE_ANY_SOURCE
from .exceptions import ClawError, ConfigurationError
from .stream import RemoteCommand
from .targets.base import Target
from .targets.registry import TargetRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """The target command triggered by a key."""

    target: str
    command: str
    args: tuple[str, ...] = ()
    # Whether held-key repeats (repeat > 0) trigger the command again
    repeat: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Route:
        """Create from a routing configuration entry.

        Raises:
            ConfigurationError: If the entry is malformed.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"route must be a mapping, got {data!r}")
        try:
            target = data["target"]
            command = data["command"]
        except KeyError as e:
            raise ConfigurationError(f"route {dict(data)} is missing {e}") from None
        args = data.get("args")
        if args is None:
            args = ()
        elif isinstance(args, (str, int, float)):
            args = (args,)
        elif not isinstance(args, (list, tuple)):
            raise ConfigurationError(
                f"'args' of route {dict(data)} must be a value or a list"
            )
        return cls(
            target=str(target),
            command=str(command),
            args=tuple(str(a) for a in args),
            repeat=bool(data.get("repeat", True)),
        )


Resolver = Callable[[RemoteCommand], Optional[Route]]


class RouteTable:
    """Maps (source, key) pairs to routes.

    Routes registered for the ``*`` source match keys of any remote that has
    no route of its own for that key.
    """

    def __init__(self, routes: Optional[Mapping[tuple[str, str], Route]] = None):
        self._routes: dict[tuple[str, str], Route] = dict(routes or {})

    @classmethod
    def from_config(cls, data: Optional[Mapping[str, Any]]) -> RouteTable:
        """Build from the nested ``{source: {key: route}}`` configuration."""
        table = cls()
        if not data:
            return table
        if not isinstance(data, Mapping):
            raise ConfigurationError("routes must be a mapping of source -> keys")
        for source, keys in data.items():
            if not isinstance(keys, Mapping):
                raise ConfigurationError(
                    f"routes for source '{source}' must be a mapping of key -> route"
                )
            for key, entry in keys.items():
                table.add(str(source), str(key), Route.from_dict(entry))
        return table

    def add(self, source: str, key: str, route: Route) -> None:
        self._routes[(source, key)] = route

    def lookup(self, source: str, key: str) -> Optional[Route]:
        route = self._routes.get((source, key))
        if route is None:
            route = self._routes.get((ROUTE_ANY_SOURCE, key))
        return route

    def __call__(self, event: RemoteCommand) -> Optional[Route]:
        return self.lookup(event.source, event.key)

    def __len__(self) -> int:
        return len(self._routes)


class Dispatcher:
    """Owns the targets and forwards routed events to them.

    dispatch() is called from the single consumer loop, so dispatches never
    overlap. Failed commands are logged and not retried.
    """

    def __init__(self, registry: TargetRegistry, resolver: Optional[Resolver] = None):
        self.registry = registry
        self.resolver: Resolver = resolver or RouteTable()
        self._targets: dict[str, Target] = {}

    @property
    def targets(self) -> dict[str, Target]:
        return dict(self._targets)

    def get_target(self, name: str) -> Optional[Target]:
        return self._targets.get(name)

    async def setup(self, target_configs: Mapping[str, Any]) -> None:
        """Create and start one target per configuration entry.

        ``target_configs`` maps target names to objects with ``type`` and
        ``params`` attributes (see claw.config.TargetConfig).

        Raises:
            ConfigurationError: If any target cannot be created; targets
                created so far are stopped again.
        """
        for name, cfg in target_configs.items():
            try:
                target = self.registry.create(cfg.type, name, cfg.params)
            except ConfigurationError as e:
                logger.error(f"Failed to create target '{name}': {e}")
                await self.stop()
                raise
            self._targets[name] = target
            try:
                await target.start()
            except Exception as e:
                logger.error(f"Failed to start target '{name}': {e}")
                await self.stop()
                raise ConfigurationError(f"target '{name}': {e}") from e
            logger.info(f"Set up target {name} ({cfg.type})")

    async def dispatch(self, event: RemoteCommand) -> bool:
        """Forward an event to its routed target command.

        Returns:
            True if a target command was performed successfully.
        """
        route = self.resolver(event)
        if route is None:
            # Most keys are not mapped to anything
            return False
        if event.repeat > 0 and not route.repeat:
            return False

        target = self._targets.get(route.target)
        if target is None:
            logger.warning(
                f"Key {event.key} from {event.source} routed to unknown "
                f"target '{route.target}'"
            )
            return False

        args = list(route.args)
        vocabulary = target.commands()
        if vocabulary:
            cmd = vocabulary.get(route.command)
            if cmd is None:
                logger.error(f"Target {route.target} has no command '{route.command}'")
                return False
            args, error = cmd.validate(args)
            if error:
                logger.error(f"Invalid arguments for {route.target}: {error}")
                return False

        logger.debug(f"Dispatching {event.key} to {route.target}.{route.command}{tuple(args)}")
        try:
            await target.send_command(route.command, *args)
        except ClawError as e:
            logger.error(f"Command {route.command} on {route.target} failed: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected error sending {route.command} to {route.target}")
            return False
        return True

    async def stop(self) -> None:
        """Stop every target, continuing past failures."""
        for name, target in reversed(list(self._targets.items())):
            try:
                await target.stop()
            except Exception as e:
                logger.error(f"Error stopping target '{name}': {e}")
        self._targets.clear()
