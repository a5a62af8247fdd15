# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the Plex player target."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from claw.exceptions import TargetError, TargetUnavailableError, UnknownCommandError
from claw.targets import plex
from claw.targets.plex import GDMProtocol, PlexPlayer, parse_gdm_response


GDM_REPLY = (
    b"HTTP/1.0 200 OK\r\n"
    b"Content-Type: plex/media-player\r\n"
    b"Name: yBox\r\n"
    b"Port: 3005\r\n"
    b"Resource-Identifier: 87615ee6-5b86-4a8d-abf6-e3b4f0e72311\r\n"
    b"Protocol-Capabilities: navigation,playback,timeline\r\n"
)


class Recorder:
    """httpx transport handler recording requests."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text="<Response code=\"200\"/>")


async def use_transport(player: PlexPlayer, handler: Recorder) -> None:
    await player._http.aclose()
    player._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
async def player():
    target = PlexPlayer("player", "yBox", client_id="CLAW-TEST")
    yield target
    await target.stop()


# ============================================================================
# GDM
# ============================================================================

class TestGDM:
    """Tests for GDM reply parsing."""

    def test_parse_reply(self):
        props = parse_gdm_response(GDM_REPLY)
        assert props["Name"] == "yBox"
        assert props["Port"] == "3005"
        assert props["Protocol-Capabilities"] == "navigation,playback,timeline"

    def test_ignore_non_reply(self):
        assert parse_gdm_response(b"M-SEARCH * HTTP/1.0\r\n\r\n") is None
        assert parse_gdm_response(b"") is None

    def test_protocol_forwards_replies(self):
        seen = []
        protocol = GDMProtocol(lambda address, props: seen.append((address, props)))
        protocol.datagram_received(GDM_REPLY, ("10.0.0.7", 32412))
        protocol.datagram_received(b"garbage", ("10.0.0.8", 32412))
        assert len(seen) == 1
        assert seen[0][0] == "10.0.0.7"

    @pytest.mark.asyncio
    async def test_player_found(self, player):
        assert player.url == ""
        player._on_player("10.0.0.7", parse_gdm_response(GDM_REPLY))
        assert player.url == "http://10.0.0.7:3005"
        assert player.has_capability("navigation")
        assert not player.has_capability("mirror")

    @pytest.mark.asyncio
    async def test_other_player_ignored(self, player):
        props = parse_gdm_response(GDM_REPLY.replace(b"yBox", b"Kitchen"))
        player._on_player("10.0.0.9", props)
        assert player.url == ""


# ============================================================================
# Commands
# ============================================================================

class TestPlexPlayer:
    """Tests for sending commands."""

    @pytest.mark.asyncio
    async def test_unavailable_until_discovered(self, player):
        with pytest.raises(TargetUnavailableError, match="no url set"):
            await player.send_command("Play")

    @pytest.mark.asyncio
    async def test_send_navigation(self, player):
        handler = Recorder()
        await use_transport(player, handler)
        player._on_player("10.0.0.7", parse_gdm_response(GDM_REPLY))

        await player.send_command("Up")
        await player.send_command("Select")

        assert [r.url.path for r in handler.requests] == [
            "/player/navigation/moveUp",
            "/player/navigation/select",
        ]
        first, second = handler.requests
        assert first.url.host == "10.0.0.7"
        assert first.url.port == 3005
        assert first.headers["X-Plex-Client-Identifier"] == "CLAW-TEST"
        assert first.headers["X-Plex-Device-Name"] == "claw"
        assert (
            first.headers["X-Plex-Target-Client-Identifier"]
            == "87615ee6-5b86-4a8d-abf6-e3b4f0e72311"
        )
        assert first.url.params["commandID"] == "1"
        assert second.url.params["commandID"] == "2"

    @pytest.mark.asyncio
    async def test_volume(self, player):
        handler = Recorder()
        await use_transport(player, handler)
        player._on_player("10.0.0.7", parse_gdm_response(GDM_REPLY))

        await player.send_command("Volume", "30")

        request = handler.requests[0]
        assert request.url.path == "/player/playback/setParameters"
        assert request.url.params["volume"] == "30"

    @pytest.mark.asyncio
    async def test_volume_validated(self, player):
        handler = Recorder()
        await use_transport(player, handler)
        player._on_player("10.0.0.7", parse_gdm_response(GDM_REPLY))

        with pytest.raises(TargetError, match="too big"):
            await player.send_command("Volume", "101")
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_missing_capability(self, player):
        handler = Recorder()
        await use_transport(player, handler)
        reply = GDM_REPLY.replace(b"navigation,playback,timeline", b"timeline")
        player._on_player("10.0.0.7", parse_gdm_response(reply))

        with pytest.raises(TargetError, match="does not support playback"):
            await player.send_command("Play")
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_http_error(self, player):
        await use_transport(player, Recorder(status_code=500))
        player._on_player("10.0.0.7", parse_gdm_response(GDM_REPLY))
        with pytest.raises(TargetError, match="failed"):
            await player.send_command("Pause")

    @pytest.mark.asyncio
    async def test_unknown_command(self, player):
        with pytest.raises(UnknownCommandError):
            await player.send_command("Eject")

    @pytest.mark.asyncio
    async def test_fixed_url(self):
        target = PlexPlayer("player", url="http://10.0.0.2:3005")
        handler = Recorder()
        await use_transport(target, handler)
        try:
            await target.start()
            await target.send_command("Home")
        finally:
            await target.stop()
        assert str(handler.requests[0].url).startswith(
            "http://10.0.0.2:3005/player/navigation/home?"
        )
        assert "X-Plex-Target-Client-Identifier" not in handler.requests[0].headers

    @pytest.mark.asyncio
    async def test_power_on(self):
        target = PlexPlayer("player", "yBox", wol_mac="00:11:22:33:44:55")
        try:
            assert "PowerOn" in target.commands()
            with patch("claw.wol.wake", new=AsyncMock()) as wake:
                await target.send_command("PowerOn")
            wake.assert_awaited_once_with("00:11:22:33:44:55")
        finally:
            await target.stop()

    @pytest.mark.asyncio
    async def test_no_power_on_without_mac(self, player):
        assert "PowerOn" not in player.commands()
        with pytest.raises(UnknownCommandError):
            await player.send_command("PowerOn")


class TestCreate:
    @pytest.mark.asyncio
    async def test_by_name(self):
        target = plex.create("player", {"name": "yBox", "interval": "10"})
        try:
            assert target.client_name == "yBox"
            assert target.discovery_interval == 10.0
            assert target.url == ""
        finally:
            await target.stop()

    @pytest.mark.asyncio
    async def test_by_url(self):
        target = plex.create("player", {"url": "http://10.0.0.2:3005/"})
        try:
            assert target.url == "http://10.0.0.2:3005"
        finally:
            await target.stop()

    def test_requires_name_or_url(self):
        assert plex.create("player", {}) is None

    def test_bad_interval(self):
        assert plex.create("player", {"name": "yBox", "interval": "soon"}) is None
