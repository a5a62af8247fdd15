# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Base class for controllable devices."""

import logging
from abc import ABC, abstractmethod

from .commands import Command


class Target(ABC):
    """A named device controller.

    Lifecycle:
    - start(): Launch background work such as discovery (optional).
    - send_command(): Perform one command, raising TargetError on failure.
    - stop(): Release resources. Must be idempotent.
    """

    def __init__(self, name: str):
        self.name = name
        self._logger = logging.getLogger(f"claw.target.{name}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @abstractmethod
    def commands(self) -> dict[str, Command]:
        """The command vocabulary.

        An empty mapping means the target validates its own arguments.
        """

    @abstractmethod
    async def send_command(self, command: str, *args: str) -> None:
        """Perform a command.

        Raises:
            UnknownCommandError: If the command is not supported.
            TargetUnavailableError: If the device cannot be reached yet.
            TargetError: If the device reported a failure.
        """

    async def start(self) -> None:
        """Start background tasks."""

    async def stop(self) -> None:
        """Release resources."""
