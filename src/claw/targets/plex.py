# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Plex media player target.

Players are found with GDM: a ``M-SEARCH * HTTP/1.0`` datagram sent to the
player multicast group is answered by every running player with a small
HTTP-like header block::

    HTTP/1.0 200 OK
    Name: yBox
    Port: 3005
    Resource-Identifier: 87615ee6-5b86-4a8d-abf6-e3b4f0e72311
    Protocol-Capabilities: navigation,playback,timeline

The player's address is learned in the background and commands are sent
through its HTTP remote control API. Until the player has answered,
commands fail with TargetUnavailableError.
"""
from __future__ import annotations

import asyncio
import logging
import socket
import threading
import uuid
from typing import TYPE_CHECKING, Callable, Optional

import httpx

from .. import wol
from ..const import TARGET_PLEX
from ..exceptions import TargetError, TargetUnavailableError, UnknownCommandError
from .base import Target
from .commands import Command, CommandParameter

if TYPE_CHECKING:
    from .registry import TargetRegistry

logger = logging.getLogger(__name__)

GDM_ADDRESS = "239.0.0.250"
GDM_PLAYER_PORT = 32412
GDM_SEARCH = b"M-SEARCH * HTTP/1.0\r\n\r\n"
GDM_OK = "HTTP/1.0 200"

DEFAULT_DISCOVERY_INTERVAL = 5.0
DEFAULT_TIMEOUT = 1.0
DEVICE_NAME = "claw"

CMD_POWER_ON = "PowerOn"
CMD_VOLUME = "Volume"

# name -> (capability, API path, description)
PLAYER_COMMANDS: dict[str, tuple[str, str, str]] = {
    "Up": ("navigation", "/player/navigation/moveUp", "Moves up"),
    "Down": ("navigation", "/player/navigation/moveDown", "Moves down"),
    "Left": ("navigation", "/player/navigation/moveLeft", "Moves left"),
    "Right": ("navigation", "/player/navigation/moveRight", "Moves right"),
    "Select": ("navigation", "/player/navigation/select", "Selects the current item"),
    "Back": ("navigation", "/player/navigation/back", "Goes back"),
    "Home": ("navigation", "/player/navigation/home", "Goes to the home screen"),
    "Menu": ("navigation", "/player/navigation/contextMenu", "Opens the context menu"),
    "Play": ("playback", "/player/playback/play", "Starts playback"),
    "Pause": ("playback", "/player/playback/pause", "Pauses playback"),
    "Stop": ("playback", "/player/playback/stop", "Stops playback"),
    "Next": ("playback", "/player/playback/skipNext", "Skips to the next item"),
    "Previous": ("playback", "/player/playback/skipPrevious", "Skips to the previous item"),
    "StepForward": ("playback", "/player/playback/stepForward", "Steps forward"),
    "StepBack": ("playback", "/player/playback/stepBack", "Steps back"),
    CMD_VOLUME: ("playback", "/player/playback/setParameters", "Sets the volume"),
}


def parse_gdm_response(data: bytes) -> Optional[dict[str, str]]:
    """Parse a GDM reply into its properties, or None if it is not a reply."""
    lines = data.decode("utf-8", errors="replace").splitlines()
    if not lines or not lines[0].startswith(GDM_OK):
        return None
    props = {}
    for line in lines[1:]:
        key, sep, value = line.partition(":")
        if sep:
            props[key.strip()] = value.strip()
    return props


class GDMProtocol(asyncio.DatagramProtocol):
    """Hands every GDM reply to ``on_player(address, props)``."""

    def __init__(self, on_player: Callable[[str, dict[str, str]], None]):
        self._on_player = on_player

    def datagram_received(self, data: bytes, addr) -> None:
        props = parse_gdm_response(data)
        if props is not None:
            self._on_player(addr[0], props)

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"GDM error: {exc}")


class PlexPlayer(Target):
    """A Plex player found by its GDM name, or reached at a fixed URL."""

    def __init__(
        self,
        name: str,
        client_name: str = "",
        *,
        url: str = "",
        wol_mac: str = "",
        client_id: Optional[str] = None,
        discovery_interval: float = DEFAULT_DISCOVERY_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(name)
        self.client_name = client_name
        self.wol_mac = wol_mac
        self.client_id = client_id or str(uuid.uuid4()).upper()
        self.discovery_interval = discovery_interval
        self._commands = self._build_commands()
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._watch_task: Optional[asyncio.Task] = None

        # Shared with the discovery task
        self._lock = threading.Lock()
        self._url = url
        self._capabilities: list[str] = []
        self._resource_id = ""
        self._command_id = 1

    def _build_commands(self) -> dict[str, Command]:
        cmds = {
            name: Command(name, description)
            for name, (_cap, _path, description) in PLAYER_COMMANDS.items()
        }
        cmds[CMD_VOLUME].parameters.append(
            CommandParameter("level", "The volume level").set_range(0, 100)
        )
        if self.wol_mac:
            cmds[CMD_POWER_ON] = Command(CMD_POWER_ON, "Wakes up the player")
        return cmds

    def commands(self) -> dict[str, Command]:
        return self._commands

    @property
    def url(self) -> str:
        """Base URL of the player, empty until it has been discovered."""
        with self._lock:
            return self._url

    def has_capability(self, capability: str) -> bool:
        """Whether the player announced a capability.

        Players reached at a fixed URL are assumed to support everything.
        """
        with self._lock:
            caps = self._capabilities
        return not caps or capability in caps

    def _next_command_id(self) -> int:
        with self._lock:
            command_id = self._command_id
            self._command_id += 1
        return command_id

    def _on_player(self, address: str, props: dict[str, str]) -> None:
        if props.get("Name") != self.client_name:
            return
        url = f"http://{address}:{props.get('Port', '')}"
        caps = [c for c in props.get("Protocol-Capabilities", "").split(",") if c]
        with self._lock:
            changed = url != self._url
            self._url = url
            self._capabilities = caps
            self._resource_id = props.get("Resource-Identifier", "")
        if changed:
            self._logger.info(f"Found Plex player {self.client_name} at {url}")

    async def start(self) -> None:
        if self.client_name and self._watch_task is None:
            self._watch_task = asyncio.create_task(self._watch())

    async def stop(self) -> None:
        if self._watch_task:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None
        await self._http.aclose()

    async def _watch(self) -> None:
        """Keep searching for the player."""
        loop = asyncio.get_running_loop()
        while True:
            try:
                transport, _ = await loop.create_datagram_endpoint(
                    lambda: GDMProtocol(self._on_player),
                    local_addr=("0.0.0.0", 0),
                    family=socket.AF_INET,
                )
                try:
                    transport.sendto(GDM_SEARCH, (GDM_ADDRESS, GDM_PLAYER_PORT))
                    await asyncio.sleep(self.discovery_interval)
                finally:
                    transport.close()
            except asyncio.CancelledError:
                raise
            except OSError as e:
                self._logger.error(f"Can't watch for plex: {e}")
                await asyncio.sleep(self.discovery_interval)

    async def send_command(self, command: str, *args: str) -> None:
        if command == CMD_POWER_ON and self.wol_mac:
            await self.power_on()
            return

        entry = PLAYER_COMMANDS.get(command)
        if entry is None:
            raise UnknownCommandError(self.name, command)
        capability, path, _description = entry
        values, error = self._commands[command].validate(args)
        if error:
            raise TargetError(error)
        params = {"volume": values[0]} if command == CMD_VOLUME else {}

        if not self.url:
            raise TargetUnavailableError(
                f"{self.name}: no url set, client not running?"
            )
        if not self.has_capability(capability):
            raise TargetError(f"{self.name} does not support {capability}")
        await self._get(path, params)

    async def power_on(self) -> None:
        try:
            await wol.wake(self.wol_mac)
        except (OSError, ValueError) as e:
            raise TargetError(f"can not power on {self.name}: {e}") from e

    async def _get(self, path: str, params: dict[str, str]) -> None:
        with self._lock:
            base_url = self._url
            resource_id = self._resource_id
        headers = {
            "X-Plex-Client-Identifier": self.client_id,
            "X-Plex-Device-Name": DEVICE_NAME,
        }
        if resource_id:
            headers["X-Plex-Target-Client-Identifier"] = resource_id
        query = {**params, "commandID": str(self._next_command_id())}

        self._logger.debug(f">>> Plex get {base_url}{path} {query}")
        try:
            response = await self._http.get(
                f"{base_url}{path}", params=query, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TargetError(f"{self.name}: request to {path} failed: {e}") from e


def create(name: str, params: dict[str, str]) -> Optional[Target]:
    client_name = params.get("name", "")
    url = params.get("url", "").rstrip("/")
    if not client_name and not url:
        logger.warning(f"Target {name}: either 'name' or 'url' is required")
        return None
    try:
        interval = float(params.get("interval", DEFAULT_DISCOVERY_INTERVAL))
        timeout = float(params.get("timeout", DEFAULT_TIMEOUT))
    except ValueError as e:
        logger.warning(f"Target {name}: invalid parameter: {e}")
        return None
    return PlexPlayer(
        name,
        client_name,
        url=url,
        wol_mac=params.get("wol", ""),
        client_id=params.get("client_id"),
        discovery_interval=interval,
        timeout=timeout,
    )


def register(registry: TargetRegistry) -> None:
    registry.register(TARGET_PLEX, create)
