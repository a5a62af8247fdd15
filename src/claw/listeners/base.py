# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Base class for input listeners."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..stream import CommandStream


class Listener(ABC):
    """A long-running task turning one external input into RemoteCommands.

    Lifecycle:
    - setup(): Connect to the input. Must be idempotent. Returns False (and
      reports the error to the stream) when the connection fails.
    - run(): Read forever, emitting events with stream.put().
    - close(): Release the connection. Must be idempotent.
    """

    @abstractmethod
    async def setup(self, stream: CommandStream) -> bool:
        """Connect to the input source."""

    @abstractmethod
    async def run(self, stream: CommandStream) -> None:
        """Emit events until cancelled.

        If the first setup() fails the listener must call stream.set_fatal()
        and return.
        """

    async def close(self) -> None:
        """Release the connection."""
