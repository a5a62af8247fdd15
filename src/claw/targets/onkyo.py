# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Onkyo AV receiver target speaking eISCP over TCP.

Every eISCP message is a 16-byte header followed by an ISCP payload:

    "ISCP" | header size (u32 BE, 16) | data size (u32 BE) | version (1) | 3 reserved
    "!1" + command + "\\r"

e.g. ``PWR01`` powers the receiver on, ``PWRQSTN`` queries the power state
and ``MVL2A`` sets the master volume to 0x2A. Replies use the same framing
and end with EOF (0x1a) and CR/LF.
"""
from __future__ import annotations

import asyncio
import logging
import struct
from typing import TYPE_CHECKING, Optional

from ..const import TARGET_ONKYO
from ..exceptions import TargetError, TargetUnavailableError, UnknownCommandError
from .base import Target
from .commands import Command, CommandParameter

if TYPE_CHECKING:
    from .registry import TargetRegistry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 60128
DEFAULT_VOLUME_MAX = 77
DEFAULT_TIMEOUT = 2.0

ISCP_MAGIC = b"ISCP"
ISCP_VERSION = 1
ISCP_UNIT_RECEIVER = "1"
_HEADER = struct.Struct(">4sIIB3x")

POWER_STATES = ("on", "off", "toggle")
MUTE_STATES = ("on", "off", "toggle")


def encode_message(command: str, unit: str = ISCP_UNIT_RECEIVER) -> bytes:
    """Frame an ISCP command as an eISCP packet."""
    payload = f"!{unit}{command}\r".encode("ascii")
    return _HEADER.pack(ISCP_MAGIC, _HEADER.size, len(payload), ISCP_VERSION) + payload


def decode_payload(payload: bytes) -> str:
    """Extract the ISCP command from an eISCP payload.

    Raises:
        TargetError: If the payload is not an ISCP message.
    """
    text = payload.decode("ascii", errors="replace").rstrip("\x1a\r\n")
    if len(text) < 2 or text[0] != "!":
        raise TargetError(f"malformed ISCP message: {text!r}")
    return text[2:]


async def read_message(reader: asyncio.StreamReader) -> str:
    """Read one eISCP packet and return its ISCP command."""
    header = await reader.readexactly(_HEADER.size)
    magic, header_size, data_size, _version = _HEADER.unpack(header)
    if magic != ISCP_MAGIC:
        raise TargetError(f"bad eISCP magic {magic!r}")
    if header_size > _HEADER.size:
        await reader.readexactly(header_size - _HEADER.size)
    return decode_payload(await reader.readexactly(data_size))


def build_commands(volume_max: int = DEFAULT_VOLUME_MAX) -> dict[str, Command]:
    """The receiver's vocabulary. The volume range depends on the model."""
    return {
        "PowerOn": Command("PowerOn", "Powers on the receiver"),
        "PowerOff": Command("PowerOff", "Powers off the receiver"),
        "PowerToggle": Command("PowerToggle", "Toggles the power of the receiver"),
        "Power": Command(
            "Power",
            "Controls the power state",
            [CommandParameter("powerstate", "The power state").set_list(*POWER_STATES)],
        ),
        "MuteOn": Command("MuteOn", "Mutes the sound"),
        "MuteOff": Command("MuteOff", "Unmutes the sound"),
        "MuteToggle": Command("MuteToggle", "Toggles the muting of the sound"),
        "Mute": Command(
            "Mute",
            "Controls the mute state",
            [CommandParameter("mutestate", "The mute state").set_list(*MUTE_STATES)],
        ),
        "VolumeUp": Command("VolumeUp", "Turns up the volume"),
        "VolumeDown": Command("VolumeDown", "Turns down the volume"),
        "Volume": Command(
            "Volume",
            "Sets the volume",
            [
                CommandParameter("volumelevel", "The volume level").set_range(
                    0, volume_max
                )
            ],
        ),
    }


class OnkyoReceiver(Target):
    """An Onkyo receiver on the network.

    A connection is opened per command. Commands are serialized so that a
    query always reads its own reply.
    """

    def __init__(
        self,
        name: str,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        volume_max: int = DEFAULT_VOLUME_MAX,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(name)
        self.host = host
        self.port = port
        self.timeout = timeout
        self._commands = build_commands(volume_max)
        self._lock = asyncio.Lock()

    def commands(self) -> dict[str, Command]:
        return self._commands

    async def send_command(self, command: str, *args: str) -> None:
        cmd = self._commands.get(command)
        if cmd is None:
            raise UnknownCommandError(self.name, command)
        values, error = cmd.validate(args)
        if error:
            raise TargetError(error)

        if command == "PowerOn":
            await self.power("on")
        elif command == "PowerOff":
            await self.power("off")
        elif command == "PowerToggle":
            await self.power("toggle")
        elif command == "Power":
            await self.power(values[0])
        elif command == "MuteOn":
            await self.mute("on")
        elif command == "MuteOff":
            await self.mute("off")
        elif command == "MuteToggle":
            await self.mute("toggle")
        elif command == "Mute":
            await self.mute(values[0])
        elif command == "VolumeUp":
            await self.send("MVLUP")
        elif command == "VolumeDown":
            await self.send("MVLDOWN")
        elif command == "Volume":
            await self.send(f"MVL{int(values[0]):02X}")

    async def power(self, state: str) -> None:
        if state == "on":
            await self.send("PWR01")
        elif state == "off":
            await self.send("PWR00")
        elif state == "toggle":
            current = await self.send("PWRQSTN", reply=True)
            self._logger.debug(f"Power state query: {current!r}")
            await self.send("PWR01" if current == "PWR00" else "PWR00")
        else:
            raise TargetError(f"unknown power state {state!r}")

    async def mute(self, state: str) -> None:
        codes = {"on": "AMT01", "off": "AMT00", "toggle": "AMTTG"}
        if state not in codes:
            raise TargetError(f"unknown mute state {state!r}")
        await self.send(codes[state])

    async def send(self, message: str, reply: bool = False) -> Optional[str]:
        """Send an ISCP command, optionally waiting for the matching reply.

        Raises:
            TargetUnavailableError: If the receiver cannot be reached.
            TargetError: If sending fails or no reply arrives in time.
        """
        async with self._lock:
            try:
                reader, writer = await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port), self.timeout
                )
            except (OSError, asyncio.TimeoutError) as e:
                raise TargetUnavailableError(
                    f"cannot connect to {self.name} at {self.host}:{self.port}: {e}"
                ) from e

            try:
                self._logger.debug(f">>> {self.name} {message}")
                writer.write(encode_message(message))
                await writer.drain()
                if not reply:
                    return None
                return await asyncio.wait_for(
                    self._read_reply(reader, message[:3]), self.timeout
                )
            except asyncio.TimeoutError as e:
                raise TargetError(f"no reply from {self.name} to {message}") from e
            except (OSError, asyncio.IncompleteReadError) as e:
                raise TargetError(f"error talking to {self.name}: {e}") from e
            finally:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError:
                    pass

    async def _read_reply(self, reader: asyncio.StreamReader, prefix: str) -> str:
        # The receiver also pushes unrelated status updates
        while True:
            message = await read_message(reader)
            self._logger.debug(f"<<< {self.name} {message}")
            if message.startswith(prefix):
                return message


def create(name: str, params: dict[str, str]) -> Optional[Target]:
    host = params.get("host")
    if not host:
        logger.warning(f"Target {name}: 'host' parameter is required")
        return None
    try:
        port = int(params.get("port", DEFAULT_PORT))
        volume_max = int(params.get("volume_max", DEFAULT_VOLUME_MAX))
        timeout = float(params.get("timeout", DEFAULT_TIMEOUT))
    except ValueError as e:
        logger.warning(f"Target {name}: invalid parameter: {e}")
        return None
    return OnkyoReceiver(name, host, port, volume_max=volume_max, timeout=timeout)


def register(registry: TargetRegistry) -> None:
    registry.register(TARGET_ONKYO, create)
