#!/usr/bin/env python3
"""
Tests for the events.py functionality.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add parent directory to sys.path to allow importing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from python_module_host import EventHub, HostEvent


class TestEventHub:
    """Test cases for listener registration and emission."""

    def test_subscribe_and_emit(self):
        hub = EventHub()
        received = []
        hub.subscribe(HostEvent.START, lambda host: received.append(host))

        hub.emit(HostEvent.START, 'host')
        hub.emit(HostEvent.STOP, 'host')

        assert received == ['host']

    def test_string_event_names(self):
        hub = EventHub()
        received = []
        hub.subscribe('runnable.allStarted', received.append)

        hub.emit(HostEvent.RUNNABLE_ALL_STARTED, 'entry')

        assert received == ['entry']

    def test_unknown_event_name(self):
        with pytest.raises(ValueError):
            EventHub().subscribe('runnable.exploded', print)

    def test_unsubscribe(self):
        hub = EventHub()
        received = []
        hub.subscribe(HostEvent.START, received.append)
        hub.unsubscribe(HostEvent.START, received.append)
        hub.unsubscribe(HostEvent.STOP, received.append)

        hub.emit(HostEvent.START, 1)

        assert received == []

    def test_subscribe_all(self):
        hub = EventHub()
        received = []
        hub.subscribe_all(lambda event, *args: received.append((event, args)))

        hub.emit(HostEvent.MODULE_FAILED, 'entry', 'error')

        assert received == [(HostEvent.MODULE_FAILED, ('entry', 'error'))]

    def test_failing_listener_is_isolated(self, capsys):
        hub = EventHub()
        received = []

        def broken(host):
            raise RuntimeError("listener broke")

        hub.subscribe(HostEvent.START, broken)
        hub.subscribe(HostEvent.START, received.append)

        hub.emit(HostEvent.START, 'host')

        assert received == ['host']
        assert "listener broke" in capsys.readouterr().err

    def test_subscribe_during_emit(self):
        """Listeners added while emitting wait for the next emission."""
        hub = EventHub()
        late = []

        def first(host):
            hub.subscribe(HostEvent.START, late.append)

        hub.subscribe(HostEvent.START, first)
        hub.emit(HostEvent.START, 1)
        assert late == []

        hub.emit(HostEvent.START, 2)
        assert late == [2]

    def test_clear(self):
        hub = EventHub()
        received = []
        hub.subscribe(HostEvent.START, received.append)
        hub.subscribe_all(lambda event, *args: received.append(event))

        hub.clear()
        hub.emit(HostEvent.START, 1)

        assert received == []

    def test_async_listener_without_loop(self, capsys):
        hub = EventHub()

        async def listener(host):
            pass

        hub.subscribe(HostEvent.START, listener)
        hub.emit(HostEvent.START, 'host')

        assert "outside of a running event loop" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_async_listener_is_scheduled(self):
        hub = EventHub()
        received = []

        async def listener(host):
            received.append(host)

        hub.subscribe(HostEvent.START, listener)
        hub.emit(HostEvent.START, 'host')
        assert received == []

        await asyncio.sleep(0)
        assert received == ['host']

    @pytest.mark.asyncio
    async def test_async_listener_error_is_reported(self, capsys):
        hub = EventHub()

        async def listener(host):
            raise RuntimeError("async listener broke")

        hub.subscribe(HostEvent.STOP, listener)
        hub.emit(HostEvent.STOP, 'host')
        await asyncio.sleep(0.01)

        assert "async listener broke" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_drain_waits_for_async_listeners(self):
        hub = EventHub()
        received = []

        async def listener(host):
            await asyncio.sleep(0.01)
            received.append(host)
            hub.emit(HostEvent.STOP, 'again')

        async def on_stop(host):
            received.append(host)

        hub.subscribe(HostEvent.START, listener)
        hub.subscribe(HostEvent.STOP, on_stop)
        hub.emit(HostEvent.START, 'host')

        await hub.drain()

        assert received == ['host', 'again']

    @pytest.mark.asyncio
    async def test_drain_reports_failures(self, capsys):
        hub = EventHub()

        async def listener(host):
            raise RuntimeError("drained failure")

        hub.subscribe(HostEvent.START, listener)
        hub.emit(HostEvent.START, 'host')
        await hub.drain()

        assert "drained failure" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_drain_from_a_listener(self):
        """A listener that drains the hub does not wait for itself."""
        hub = EventHub()
        received = []

        async def listener(host):
            await hub.drain()
            received.append(host)

        hub.subscribe(HostEvent.START, listener)
        hub.emit(HostEvent.START, 'host')
        await asyncio.wait_for(hub.drain(), timeout=1)

        assert received == ['host']

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self):
        await EventHub().drain()
