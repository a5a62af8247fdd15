# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the Linux host target."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from claw.exceptions import TargetError, UnknownCommandError
from claw.targets import linux
from claw.targets.linux import LinuxHost


class TestLinuxHost:
    """Tests for LinuxHost."""

    def test_no_vocabulary(self):
        assert LinuxHost("htpc").commands() == {}

    @pytest.mark.asyncio
    async def test_poweron_sends_wol(self):
        host = LinuxHost("htpc", wol_mac="00:11:22:33:44:55", broadcast="10.0.0.255")
        with patch("claw.wol.wake", new=AsyncMock()) as wake:
            await host.send_command("poweron")
        wake.assert_awaited_once_with("00:11:22:33:44:55", "10.0.0.255")

    @pytest.mark.asyncio
    async def test_poweron_without_mac(self):
        host = LinuxHost("htpc")
        with pytest.raises(TargetError, match="do not know how to power on"):
            await host.send_command("poweron")

    @pytest.mark.asyncio
    async def test_poweron_send_failure(self):
        host = LinuxHost("htpc", wol_mac="00:11:22:33:44:55")
        with patch("claw.wol.wake", new=AsyncMock(side_effect=OSError("no route"))):
            with pytest.raises(TargetError, match="no route"):
                await host.send_command("poweron")

    @pytest.mark.asyncio
    async def test_unknown_command(self):
        host = LinuxHost("htpc", wol_mac="00:11:22:33:44:55")
        with pytest.raises(UnknownCommandError) as excinfo:
            await host.send_command("reboot")
        assert str(excinfo.value) == "could not send command `reboot` on `htpc`"


class TestCreate:
    """Tests for the linux target factory."""

    def test_defaults(self):
        host = linux.create("htpc", {})
        assert isinstance(host, LinuxHost)
        assert host.wol_mac == ""
        assert host.broadcast == "255.255.255.255"

    def test_params(self):
        host = linux.create("htpc", {"wol": "aa-bb-cc-dd-ee-ff", "broadcast": "10.0.0.255"})
        assert host.wol_mac == "aa-bb-cc-dd-ee-ff"
        assert host.broadcast == "10.0.0.255"

    def test_invalid_mac(self):
        assert linux.create("htpc", {"wol": "not-a-mac"}) is None
