#!/usr/bin/env python3
"""
events.py - Host Notifications

Listener registration for the lifecycle notifications a host emits.
Notifications are fire-and-forget: a listener that raises is reported on
stderr and never affects the host or the other listeners.
"""

import asyncio
import enum
import inspect
import sys
from typing import Any, Callable, Dict, List, Set, Union


class HostEvent(str, enum.Enum):
    """Names of the notifications a host emits."""
    INITIALIZED = 'initialized'
    MODULE_ADDED = 'module.added'
    MODULE_INITIALIZED = 'module.initialized'
    MODULE_FAILED = 'module.failed'
    RUNNABLES_DISCOVERED = 'runnables.discovered'
    RUNNABLE_STARTED = 'runnable.started'
    RUNNABLE_FAILED = 'runnable.failed'
    RUNNABLE_ALL_STARTED = 'runnable.allStarted'
    RUNNABLE_STOP = 'runnable.stop'
    RUNNABLE_ALL_STOPPED = 'runnable.allStopped'
    START = 'start'
    STOP = 'stop'


Listener = Callable[..., Any]
EventName = Union[HostEvent, str]


class EventHub:
    """
    Multiple-listener notification hub.

    Listeners are called in subscription order from a snapshot, so a
    listener may subscribe or unsubscribe while an event is being emitted.
    A listener returning an awaitable has it scheduled on the running loop.
    """

    def __init__(self):
        self._subscribers: Dict[HostEvent, List[Listener]] = {}
        self._catch_all: List[Listener] = []
        self._pending: Set[asyncio.Future] = set()

    def subscribe(self, event: EventName, callback: Listener) -> Listener:
        """Call ``callback(*args)`` whenever ``event`` is emitted."""
        self._subscribers.setdefault(HostEvent(event), []).append(callback)
        return callback

    def unsubscribe(self, event: EventName, callback: Listener) -> None:
        callbacks = self._subscribers.get(HostEvent(event), [])
        if callback in callbacks:
            callbacks.remove(callback)

    def subscribe_all(self, callback: Listener) -> Listener:
        """Call ``callback(event, *args)`` for every event."""
        self._catch_all.append(callback)
        return callback

    def emit(self, event: EventName, *args: Any) -> None:
        event = HostEvent(event)
        callbacks = [(cb, args) for cb in self._subscribers.get(event, [])]
        callbacks += [(cb, (event,) + args) for cb in self._catch_all]

        for cb, cb_args in callbacks:
            try:
                result = cb(*cb_args)
                if inspect.isawaitable(result):
                    self._schedule(result)
            except Exception as e:
                print(f"Error in '{event.value}' listener {cb!r}: {e}", file=sys.stderr)

    def clear(self) -> None:
        self._subscribers.clear()
        self._catch_all.clear()

    async def drain(self) -> None:
        """
        Wait for every async listener scheduled so far, including ones they schedule.

        A listener calling drain itself is not waited for.
        """
        current = asyncio.current_task()
        while True:
            pending = [future for future in self._pending if future is not current]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _schedule(self, awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if hasattr(awaitable, 'close'):
                awaitable.close()
            raise RuntimeError("async listener called outside of a running event loop")
        future = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(future)
        future.add_done_callback(self._on_listener_done)

    def _on_listener_done(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            print("Async listener was cancelled before it finished", file=sys.stderr)
        elif future.exception() is not None:
            print(f"Error in async listener: {future.exception()}", file=sys.stderr)
