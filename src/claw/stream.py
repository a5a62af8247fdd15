# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Fan-in of all running listeners into one ordered event stream.

Example usage:
    async with CommandStream() as stream:
        stream.add_listener(LircSocketListener("/var/run/lirc/lircd"))
        while (event := await stream.next()) is not None:
            if stream.has_error():
                logger.warning(f"Listener error: {stream.get_error()}")
                stream.clear_error()
            await dispatcher.dispatch(event)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .listeners.base import Listener

logger = logging.getLogger(__name__)

# Put on the queue to wake up a waiting consumer on close or fatal
_WAKEUP = object()


@dataclass(frozen=True)
class RemoteCommand:
    """A single key event reported by a remote control."""

    code: str
    repeat: int
    key: str
    source: str
    time: datetime


class CommandStream:
    """Aggregates the events of every registered listener.

    Each listener runs in its own task and feeds a shared queue, so events
    from one listener keep their order while events of different listeners
    may interleave. Errors reported by listeners go to a side-band slot that
    the consumer can inspect between events.

    A single listener that cannot make its initial connection marks the
    stream fatal, after which next() returns None.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._listeners: list[Listener] = []
        self._tasks: list[asyncio.Task] = []
        self._last_error: Optional[BaseException] = None
        self._fatal = False
        self._closed = False

    async def __aenter__(self) -> CommandStream:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __aiter__(self):
        return self

    async def __anext__(self) -> RemoteCommand:
        event = await self.next()
        if event is None:
            raise StopAsyncIteration
        return event

    @property
    def listeners(self) -> list[Listener]:
        """Listeners registered with this stream."""
        return list(self._listeners)

    @property
    def fatal(self) -> bool:
        """Whether a listener failed fatally."""
        return self._fatal

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: Listener) -> None:
        """Register a listener and start running it in its own task."""
        if self._closed:
            raise RuntimeError("cannot add a listener to a closed stream")
        self._listeners.append(listener)
        task = asyncio.create_task(self._run_listener(listener))
        self._tasks.append(task)
        logger.debug(f"Added listener {listener!r}")

    async def _run_listener(self, listener: Listener) -> None:
        try:
            await listener.run(self)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Listener {listener!r} crashed: {e}")
            self.report_error(e)

    def put(self, event: RemoteCommand) -> None:
        """Emit an event. Called by listeners."""
        self._queue.put_nowait(event)

    async def next(self) -> Optional[RemoteCommand]:
        """Wait for the next event.

        Must only be called from a single consumer task.

        Returns:
            The next event, or None once the stream is closed or fatal.
        """
        while not (self._fatal or self._closed):
            item = await self._queue.get()
            if item is _WAKEUP:
                continue
            return item
        return None

    def set_fatal(self) -> None:
        """Mark the stream as fatally failed, ending the consumer loop."""
        if not self._fatal:
            logger.error("Command stream aborted by a fatal listener failure")
        self._fatal = True
        self._queue.put_nowait(_WAKEUP)

    def report_error(self, error: BaseException) -> None:
        """Record a non-fatal listener error."""
        self._last_error = error

    def has_error(self) -> bool:
        return self._last_error is not None

    def get_error(self) -> Optional[BaseException]:
        return self._last_error

    def clear_error(self) -> None:
        self._last_error = None

    async def close(self) -> None:
        """Stop all listener tasks and release their connections.

        Every listener is closed even if cancelling or closing another one
        fails. Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_WAKEUP)

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Error stopping listener task: {e}")
        self._tasks.clear()

        for listener in self._listeners:
            try:
                await listener.close()
            except Exception as e:
                logger.error(f"Error closing listener {listener!r}: {e}")
        logger.debug("Command stream closed")
