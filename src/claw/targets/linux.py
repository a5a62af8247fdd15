# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Linux host target: powers on a machine with wake-on-LAN."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .. import wol
from ..const import TARGET_LINUX
from ..exceptions import TargetError, UnknownCommandError
from .base import Target
from .commands import Command

if TYPE_CHECKING:
    from .registry import TargetRegistry

logger = logging.getLogger(__name__)

CMD_POWER_ON = "poweron"


class LinuxHost(Target):
    """A Linux machine that can be woken up over the network."""

    def __init__(
        self,
        name: str,
        wol_mac: str = "",
        broadcast: str = wol.DEFAULT_BROADCAST,
    ):
        super().__init__(name)
        self.wol_mac = wol_mac
        self.broadcast = broadcast

    def commands(self) -> dict[str, Command]:
        # Validates its own (argument-less) commands
        return {}

    async def send_command(self, command: str, *args: str) -> None:
        if command == CMD_POWER_ON:
            self._logger.debug(f"Power on {self.name}")
            await self.power_on()
            return
        raise UnknownCommandError(self.name, command)

    async def power_on(self) -> None:
        if not self.wol_mac:
            raise TargetError(f"do not know how to power on {self.name}")
        try:
            await wol.wake(self.wol_mac, self.broadcast)
        except (OSError, ValueError) as e:
            raise TargetError(f"can not power on {self.name}: {e}") from e


def create(name: str, params: dict[str, str]) -> Optional[Target]:
    mac = params.get("wol", "")
    if mac:
        try:
            wol.magic_packet(mac)
        except ValueError as e:
            logger.warning(f"Target {name}: {e}")
            return None
    return LinuxHost(
        name, wol_mac=mac, broadcast=params.get("broadcast", wol.DEFAULT_BROADCAST)
    )


def register(registry: TargetRegistry) -> None:
    registry.register(TARGET_LINUX, create)
