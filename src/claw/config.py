# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Configuration file loading.

Example file:

    log_level: info
    listeners:
      lirc:
        type: lircsocket
        params: {path: /var/run/lirc/lircd}
    targets:
      receiver:
        type: onkyo
        params: {host: 192.168.1.20}
    routes:
      living-room:
        KEY_POWER: {target: receiver, command: PowerToggle}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .const import DEFAULT_LIRC_SOCKET, LISTENER_LIRC_SOCKET
from .dispatcher import RouteTable
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class PluginConfig:
    """A configured listener or target: its type and string parameters."""

    type: str
    params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Any) -> PluginConfig:
        if not isinstance(data, dict):
            raise ConfigurationError(f"'{name}' must be a mapping")
        plugin_type = data.get("type")
        if not plugin_type or not isinstance(plugin_type, str):
            raise ConfigurationError(f"'{name}' needs a 'type'")
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ConfigurationError(f"'params' of '{name}' must be a mapping")
        return cls(
            type=plugin_type,
            params={str(k): _param_str(v) for k, v in params.items()},
        )


class ListenerConfig(PluginConfig):
    """Configuration of one listener."""


class TargetConfig(PluginConfig):
    """Configuration of one target."""


@dataclass
class Config:
    """The whole router configuration."""

    listeners: dict[str, ListenerConfig] = field(default_factory=dict)
    targets: dict[str, TargetConfig] = field(default_factory=dict)
    routes: RouteTable = field(default_factory=RouteTable)
    log_level: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Config:
        """Create from parsed YAML.

        Raises:
            ConfigurationError: If the configuration is malformed.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("configuration must be a mapping")

        listeners = {
            name: ListenerConfig.from_dict(f"listeners.{name}", entry)
            for name, entry in _section(data, "listeners").items()
        }
        if not listeners:
            listeners["lirc"] = ListenerConfig(
                type=LISTENER_LIRC_SOCKET, params={"path": DEFAULT_LIRC_SOCKET}
            )

        targets = {
            name: TargetConfig.from_dict(f"targets.{name}", entry)
            for name, entry in _section(data, "targets").items()
        }

        log_level = data.get("log_level")
        if log_level is not None:
            log_level = str(log_level).upper()
            if not isinstance(logging.getLevelName(log_level), int):
                raise ConfigurationError(f"unknown log_level '{data['log_level']}'")

        return cls(
            listeners=listeners,
            targets=targets,
            routes=RouteTable.from_config(data.get("routes")),
            log_level=log_level,
        )


def parse_config(text: str) -> Config:
    """Parse a YAML configuration document."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e
    return Config.from_dict(data)


def load_config(path: Union[str, Path]) -> Config:
    """Load the configuration file at ``path``."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration {path}: {e}") from e
    logger.debug(f"Loading configuration from {path}")
    return parse_config(text)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return section


def _param_str(value: Any) -> str:
    # YAML turns "on", "yes" and numbers into non-strings
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)
