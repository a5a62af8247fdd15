# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the command stream."""
from __future__ import annotations

import asyncio
from collections import defaultdict

import pytest

from claw.listeners.base import Listener
from claw.stream import CommandStream

from conftest import FakeListener, make_event


class CrashingListener(Listener):
    async def setup(self, stream):
        return True

    async def run(self, stream):
        raise RuntimeError("boom")


class FailingCloseListener(FakeListener):
    async def close(self):
        self.closed = True
        raise OSError("close failed")


async def collect(stream: CommandStream, count: int) -> list:
    events = []
    for _ in range(count):
        events.append(await asyncio.wait_for(stream.next(), 2.0))
    return events


# ============================================================================
# Fan-in
# ============================================================================

class TestFanIn:
    """Tests for merging the events of several listeners."""

    @pytest.mark.asyncio
    async def test_single_listener_order(self, stream):
        events = [make_event(key=f"KEY_{i}") for i in range(5)]
        stream.add_listener(FakeListener(events))
        received = await collect(stream, 5)
        assert received == events

    @pytest.mark.asyncio
    async def test_concurrent_listeners(self, stream):
        per_listener = 50
        sources = ["a", "b", "c"]
        for source in sources:
            events = [
                make_event(key=f"KEY_{i}", source=source, code=f"{source}{i}")
                for i in range(per_listener)
            ]
            stream.add_listener(FakeListener(events, yield_every=3))

        received = await collect(stream, per_listener * len(sources))

        # Nothing lost or duplicated
        codes = [e.code for e in received]
        assert len(set(codes)) == len(codes) == per_listener * len(sources)

        # Each listener's events keep their order
        by_source = defaultdict(list)
        for event in received:
            by_source[event.source].append(event.key)
        for source in sources:
            assert by_source[source] == [f"KEY_{i}" for i in range(per_listener)]

    @pytest.mark.asyncio
    async def test_events_are_interleaved(self, stream):
        stream.add_listener(FakeListener([make_event(source="a") for _ in range(10)]))
        stream.add_listener(FakeListener([make_event(source="b") for _ in range(10)]))
        received = await collect(stream, 20)
        # Both listeners contribute before either has finished
        first_half = {e.source for e in received[:10]}
        assert first_half == {"a", "b"}

    @pytest.mark.asyncio
    async def test_async_iteration(self, stream):
        stream.add_listener(FakeListener([make_event(key="KEY_A"), make_event(key="KEY_B")]))
        keys = []
        async for event in stream:
            keys.append(event.key)
            if len(keys) == 2:
                break
        assert keys == ["KEY_A", "KEY_B"]

    @pytest.mark.asyncio
    async def test_listeners_property(self, stream):
        listener = FakeListener()
        stream.add_listener(listener)
        assert stream.listeners == [listener]


# ============================================================================
# Errors
# ============================================================================

class TestErrors:
    """Tests for fatal failures and the error side channel."""

    @pytest.mark.asyncio
    async def test_fatal_listener_ends_stream(self, stream):
        stream.add_listener(FakeListener([make_event()]))
        stream.add_listener(FakeListener(setup_ok=False))

        # The healthy listener's event may or may not be seen first
        while (event := await asyncio.wait_for(stream.next(), 2.0)) is not None:
            assert event.key == "KEY_POWER"
        assert stream.fatal
        assert isinstance(stream.get_error(), ConnectionRefusedError)

    @pytest.mark.asyncio
    async def test_next_after_fatal_returns_none(self, stream):
        stream.set_fatal()
        stream.put(make_event())
        assert await stream.next() is None
        assert await stream.next() is None

    @pytest.mark.asyncio
    async def test_set_fatal_wakes_waiting_consumer(self, stream):
        waiter = asyncio.create_task(stream.next())
        await asyncio.sleep(0)
        stream.set_fatal()
        assert await asyncio.wait_for(waiter, 2.0) is None

    @pytest.mark.asyncio
    async def test_error_side_channel(self, stream):
        assert not stream.has_error()
        assert stream.get_error() is None

        stream.report_error(OSError("first"))
        stream.report_error(OSError("second"))
        assert stream.has_error()
        assert str(stream.get_error()) == "second"
        # Reading does not clear
        assert stream.has_error()

        stream.clear_error()
        assert not stream.has_error()
        assert stream.get_error() is None

    @pytest.mark.asyncio
    async def test_errors_do_not_block_events(self, stream):
        stream.report_error(OSError("transient"))
        stream.add_listener(FakeListener([make_event(key="KEY_OK")]))
        event = await asyncio.wait_for(stream.next(), 2.0)
        assert event.key == "KEY_OK"
        assert stream.has_error()

    @pytest.mark.asyncio
    async def test_crashing_listener_reports_error(self, stream):
        stream.add_listener(CrashingListener())
        stream.add_listener(FakeListener([make_event(key="KEY_OK")]))

        event = await asyncio.wait_for(stream.next(), 2.0)
        assert event.key == "KEY_OK"
        await asyncio.sleep(0)
        assert isinstance(stream.get_error(), RuntimeError)
        assert not stream.fatal


# ============================================================================
# Shutdown
# ============================================================================

class TestClose:
    """Tests for closing the stream."""

    @pytest.mark.asyncio
    async def test_close_closes_listeners(self):
        listeners = [FakeListener(), FakeListener()]
        cs = CommandStream()
        for listener in listeners:
            cs.add_listener(listener)
        await asyncio.sleep(0)

        await cs.close()
        assert cs.closed
        assert all(listener.closed for listener in listeners)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        cs = CommandStream()
        cs.add_listener(FakeListener())
        await cs.close()
        await cs.close()
        assert cs.closed

    @pytest.mark.asyncio
    async def test_close_continues_past_failures(self):
        failing = FailingCloseListener()
        healthy = FakeListener()
        cs = CommandStream()
        cs.add_listener(failing)
        cs.add_listener(healthy)

        await cs.close()
        assert failing.closed
        assert healthy.closed

    @pytest.mark.asyncio
    async def test_close_wakes_consumer(self):
        cs = CommandStream()
        waiter = asyncio.create_task(cs.next())
        await asyncio.sleep(0)
        await cs.close()
        assert await asyncio.wait_for(waiter, 2.0) is None

    @pytest.mark.asyncio
    async def test_context_manager(self):
        listener = FakeListener()
        async with CommandStream() as cs:
            cs.add_listener(listener)
        assert cs.closed
        assert listener.closed

    @pytest.mark.asyncio
    async def test_add_after_close(self):
        cs = CommandStream()
        await cs.close()
        with pytest.raises(RuntimeError):
            cs.add_listener(FakeListener())
