# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Wake-on-LAN magic packets."""

import asyncio
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST = "255.255.255.255"
DEFAULT_WOL_PORT = 9

_MAC_SEPARATORS = re.compile(r"[:\-.]")


def magic_packet(mac: str) -> bytes:
    """Build the magic packet for a MAC address.

    Accepts ``aa:bb:cc:dd:ee:ff``, ``aa-bb-cc-dd-ee-ff``, ``aabb.ccdd.eeff``
    and bare hex notation.

    Raises:
        ValueError: If the address is not a valid MAC address.
    """
    digits = _MAC_SEPARATORS.sub("", mac)
    if len(digits) != 12:
        raise ValueError(f"invalid MAC address: {mac!r}")
    try:
        address = bytes.fromhex(digits)
    except ValueError:
        raise ValueError(f"invalid MAC address: {mac!r}") from None
    return b"\xff" * 6 + address * 16


async def wake(
    mac: str, broadcast: str = DEFAULT_BROADCAST, port: int = DEFAULT_WOL_PORT
) -> None:
    """Broadcast a magic packet for ``mac``.

    Raises:
        ValueError: If the address is not a valid MAC address.
        OSError: If the packet could not be sent.
    """
    packet = magic_packet(mac)
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        asyncio.DatagramProtocol,
        remote_addr=(broadcast, port),
        allow_broadcast=True,
    )
    try:
        transport.sendto(packet)
    finally:
        transport.close()
    logger.debug(f"Sent wake-on-LAN packet for {mac} to {broadcast}:{port}")
