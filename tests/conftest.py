# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Pytest configuration and fixtures for claw tests."""
from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from datetime import datetime
from typing import Optional

import pytest

from claw.listeners.base import Listener
from claw.stream import CommandStream, RemoteCommand
from claw.targets.base import Target
from claw.targets.commands import Command
from claw.exceptions import TargetError, UnknownCommandError


# ============================================================================
# Fake Listeners and Targets
# ============================================================================

def make_event(
    key: str = "KEY_POWER",
    source: str = "remote",
    repeat: int = 0,
    code: str = "0000000000f40bf0",
) -> RemoteCommand:
    """Build a RemoteCommand for tests."""
    return RemoteCommand(
        code=code, repeat=repeat, key=key, source=source, time=datetime.now()
    )


class FakeListener(Listener):
    """Listener emitting a fixed list of events, then idling."""

    def __init__(
        self,
        events: Optional[list[RemoteCommand]] = None,
        *,
        setup_ok: bool = True,
        yield_every: int = 1,
    ):
        self.events = list(events or [])
        self.setup_ok = setup_ok
        self.yield_every = yield_every
        self.setup_calls = 0
        self.closed = False

    async def setup(self, stream: CommandStream) -> bool:
        self.setup_calls += 1
        if not self.setup_ok:
            stream.report_error(ConnectionRefusedError("fake setup failure"))
        return self.setup_ok

    async def run(self, stream: CommandStream) -> None:
        if not await self.setup(stream):
            stream.set_fatal()
            return
        for i, event in enumerate(self.events, 1):
            stream.put(event)
            if i % self.yield_every == 0:
                # Let other listeners interleave
                await asyncio.sleep(0)
        await asyncio.Event().wait()

    async def close(self) -> None:
        self.closed = True


class FakeTarget(Target):
    """Target recording every command it receives."""

    def __init__(
        self,
        name: str,
        commands: Optional[dict[str, Command]] = None,
        *,
        fail: bool = False,
    ):
        super().__init__(name)
        self._commands = commands or {}
        self.fail = fail
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.started = False
        self.stopped = 0

    def commands(self) -> dict[str, Command]:
        return self._commands

    async def send_command(self, command: str, *args: str) -> None:
        if self._commands and command not in self._commands:
            raise UnknownCommandError(self.name, command)
        self.calls.append((command, args))
        if self.fail:
            raise TargetError(f"{self.name} failed")

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped += 1


# ============================================================================
# In-process lircd
# ============================================================================

class LircServer:
    """A UNIX socket server standing in for lircd."""

    def __init__(self, path: str):
        self.path = path
        self.server: Optional[asyncio.AbstractServer] = None
        self.clients: list[asyncio.StreamWriter] = []
        self.connections = 0
        self._connected = asyncio.Event()

    async def start(self) -> None:
        self.server = await asyncio.start_unix_server(self._handle, path=self.path)

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.clients.append(writer)
        self.connections += 1
        self._connected.set()
        try:
            await reader.read()
        except (ConnectionError, asyncio.CancelledError):
            pass

    async def wait_for_client(self, timeout: float = 2.0) -> None:
        await asyncio.wait_for(self._connected.wait(), timeout)

    async def send(self, *lines: str) -> None:
        """Write lines to every connected client."""
        for writer in self.clients:
            for line in lines:
                writer.write(f"{line}\n".encode("ascii"))
            await writer.drain()

    async def drop_clients(self) -> None:
        """Close every client connection."""
        self._connected.clear()
        for writer in self.clients:
            writer.close()
            try:
                await writer.wait_closed()
            except Exception:
                pass
        self.clients.clear()

    async def stop(self) -> None:
        if self.server:
            self.server.close()
        await self.drop_clients()
        if self.server:
            await self.server.wait_closed()
            self.server = None
        if os.path.exists(self.path):
            os.unlink(self.path)


@pytest.fixture
def socket_dir():
    """A short temporary directory (UNIX socket paths are length limited)."""
    path = tempfile.mkdtemp(prefix="claw")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def socket_path(socket_dir):
    return os.path.join(socket_dir, "lircd")


@pytest.fixture
async def lirc_server(socket_path):
    """Create and start a fake lircd."""
    server = LircServer(socket_path)
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
async def stream():
    """Create a command stream, closed after the test."""
    cs = CommandStream()
    yield cs
    await cs.close()


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll until predicate() is true."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(interval)

    await asyncio.wait_for(_poll(), timeout)
