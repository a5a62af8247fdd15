# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Listener for the LIRC daemon socket.

lircd writes one line per decoded key press to every connected client:

    0000000000f40bf0 00 KEY_VOLUMEUP living-room

i.e. the raw code, the repeat count in hex, the key name and the name of
the remote. The listener connects to the daemon's UNIX socket (or its TCP
port when lircd runs with --listen), turns each line into a RemoteCommand
and reconnects on its own when the daemon goes away.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from ..const import (
    DEFAULT_LIRC_PORT,
    LIRC_FIELD_COUNT,
    LIRC_REPEAT_BASE,
    LISTENER_LIRC_SOCKET,
    LISTENER_LIRC_TCP,
    RECONNECT_DELAY,
    RETRY_DELAY,
)
from ..stream import RemoteCommand
from ..targets.validation import parse_int
from .base import Listener

if TYPE_CHECKING:
    from ..stream import CommandStream
    from .registry import ListenerRegistry

logger = logging.getLogger(__name__)


def parse_line(line: str, now: datetime) -> Optional[RemoteCommand]:
    """Parse one lircd line, returning None if it is malformed."""
    fields = line.split()
    if len(fields) != LIRC_FIELD_COUNT:
        logger.error(f"Length of split {line.strip()!r} is not {LIRC_FIELD_COUNT}!")
        return None
    code, repeat_str, key, source = fields
    try:
        repeat = parse_int(repeat_str, LIRC_REPEAT_BASE)
    except ValueError:
        logger.error(f"Could not parse {repeat_str!r}, not a number?")
        return None
    if repeat < 0:
        logger.error(f"Negative repeat count {repeat_str!r}")
        return None
    return RemoteCommand(code=code, repeat=repeat, key=key, source=source, time=now)


class LircSocketListener(Listener):
    """Reads key events from lircd.

    Connects to a UNIX socket when ``path`` is given, otherwise to
    ``host``:``port``.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        host: Optional[str] = None,
        port: int = DEFAULT_LIRC_PORT,
        reconnect_delay: float = RECONNECT_DELAY,
        retry_delay: float = RETRY_DELAY,
    ):
        """Initialize the listener.

        Args:
            path: Path of lircd's UNIX socket.
            host: Host of lircd's TCP listener (used when path is None).
            port: Port of lircd's TCP listener.
            reconnect_delay: Seconds to wait after a dropped connection or a
                read error.
            retry_delay: Seconds between failed reconnection attempts.
        """
        if path is None and host is None:
            raise ValueError("either path or host is required")
        self.path = path
        self.host = host
        self.port = port
        self.reconnect_delay = reconnect_delay
        self.retry_delay = retry_delay
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    def __repr__(self) -> str:
        return f"LircSocketListener({self.address!r})"

    @property
    def address(self) -> str:
        return self.path if self.path is not None else f"{self.host}:{self.port}"

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def _open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        if self.path is not None:
            return await asyncio.open_unix_connection(self.path)
        return await asyncio.open_connection(self.host, self.port)

    async def setup(self, stream: CommandStream) -> bool:
        """Open the socket unless it is already open."""
        if self.connected:
            return True
        logger.debug(f"Opening socket: {self.address}")
        try:
            self._reader, self._writer = await self._open()
        except OSError as e:
            logger.warning(f"Socket setup failed for {self.address}: {e}")
            stream.report_error(e)
            return False
        return True

    async def close(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # Peer already gone
            pass

    async def _reconnect(self, stream: CommandStream) -> None:
        await self.close()
        await asyncio.sleep(self.reconnect_delay)
        while not await self.setup(stream):
            await asyncio.sleep(self.retry_delay)
        logger.info(f"Reconnected to {self.address}")

    async def run(self, stream: CommandStream) -> None:
        # Not being able to connect at startup is a configuration problem
        if not await self.setup(stream):
            stream.set_fatal()
            return

        while True:
            now = datetime.now()
            try:
                data = await self._reader.readline()
            except (OSError, ValueError) as e:
                logger.error(f"Unknown error reading {self.address}: {e}")
                await asyncio.sleep(self.reconnect_delay)
                continue

            if not data:
                logger.error(f"Socket {self.address} closed by remote host")
                await self._reconnect(stream)
                continue

            event = parse_line(data.decode("ascii", errors="replace"), now)
            if event is not None:
                stream.put(event)


def create_socket_listener(type_name: str, params: dict[str, str]) -> Optional[Listener]:
    """Factory for the ``lircsocket`` type; needs a ``path`` parameter."""
    path = params.get("path")
    if not path:
        logger.warning(f"Incorrect parameters for {type_name}: 'path' is required")
        return None
    return LircSocketListener(path)


def create_tcp_listener(type_name: str, params: dict[str, str]) -> Optional[Listener]:
    """Factory for the ``lirctcp`` type; needs ``host``, ``port`` is optional."""
    host = params.get("host")
    if not host:
        logger.warning(f"Incorrect parameters for {type_name}: 'host' is required")
        return None
    try:
        port = int(params.get("port", DEFAULT_LIRC_PORT))
    except ValueError:
        logger.warning(f"Incorrect parameters for {type_name}: bad port {params['port']!r}")
        return None
    return LircSocketListener(host=host, port=port)


def register(registry: ListenerRegistry) -> None:
    registry.register(LISTENER_LIRC_SOCKET, create_socket_listener)
    registry.register(LISTENER_LIRC_TCP, create_tcp_listener)
