#!/usr/bin/env python3
"""
lifecycle.py - Lifecycle Orchestration

Sequences everything a host does to bring its components up and down:

1. Module pass: every module not yet initialized is initialized once, in
   registration order.
2. Discovery: every runnable bound in the object graph gets an entry, in
   resolution order.
3. Start: ``start`` is attempted on every entry.
4. Confirmation: ``all_started`` is called on every entry that started;
   entries failing it form the stop set.
5. Stop (rollback of the stop set, or full shutdown): ``stop`` on every
   started entry, then ``all_stopped`` on every entry still started.

All calls are strictly sequential. A phase visits every entry before the
next phase begins, and a failure in one entry never prevents the other
entries from being visited: it is recorded on the entry, logged once and
emitted as a notification. Nothing raised by a module or runnable escapes
this class.
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import asyncio
import copy
import inspect
from typing import Any, Callable, Dict, List, Optional

from .config_manager import defaults_deep
from .events import EventHub, HostEvent
from .log_manager import ComponentLogger
from .module_base import (
    ModuleInitError, Runnable, RunnableAllStoppedError, RunnableConfirmError,
    RunnableError, RunnableStartError, RunnableStopError,
)
from .object_graph import ObjectGraph
from .registry import ModuleRegistry, RunnableEntry, RunnableRegistry, RunnableState

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Orchestrator
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class LifecycleOrchestrator:
    """
    Runs the module pass and the runnable passes for one host.

    Args:
        log: Logger failures and progress are reported to
        events: Hub the lifecycle notifications are emitted on
        hook_timeout: Seconds to wait for a single initializer or hook;
            None waits forever
    """

    def __init__(self, log: ComponentLogger, events: EventHub,
                 hook_timeout: Optional[float] = None):
        self.log = log
        self.events = events
        self.hook_timeout = hook_timeout if hook_timeout and hook_timeout > 0 else None

    async def _call(self, hook: Callable[..., Any], *args: Any) -> Any:
        result = hook(*args)
        if not inspect.isawaitable(result):
            return result
        if self.hook_timeout is None:
            return await result
        return await asyncio.wait_for(result, self.hook_timeout)

    # ==========================================
    # Modules
    # ==========================================

    async def initialize_modules(self, registry: ModuleRegistry, graph: ObjectGraph,
                                 host: Any, shared_options: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize every pending module once, in registration order.

        Each module receives its own options with ``shared_options`` filled
        in underneath; the module's own values win.
        """
        for entry in registry.pending():
            options = defaults_deep(copy.deepcopy(entry.options), shared_options or {})
            await self.log.debug(f" -> Initializing module '{entry.name}'.")
            try:
                await self._call(entry.module.initialize, graph, host, options)
            except Exception as e:
                entry.last_error = ModuleInitError(entry.name, e)
                await self.log.error(f"Error initializing module '{entry.name}'.", e)
                self.events.emit(HostEvent.MODULE_FAILED, entry, entry.last_error)
                continue

            entry.initialized = True
            self.events.emit(HostEvent.MODULE_INITIALIZED, entry)

    # ==========================================
    # Runnables
    # ==========================================

    async def discover(self, graph: ObjectGraph, registry: RunnableRegistry) -> List[RunnableEntry]:
        """Create one entry per runnable bound in the graph, in resolution order."""
        if not graph.is_bound(Runnable):
            return registry.populate([])

        entries = registry.populate(graph.get_all(Runnable))
        await self.log.info(f"Found {len(entries)} runnables.")
        self.events.emit(HostEvent.RUNNABLES_DISCOVERED, entries)
        return entries

    async def start_runnables(self, entries: List[RunnableEntry]) -> List[RunnableEntry]:
        """
        Start every entry, then confirm every entry that started.

        Returns:
            The stop set: started entries whose all_started hook failed,
            in start order
        """
        for entry in entries:
            await self.log.debug(f" -> Starting runnable '{entry.name}'.")
            try:
                await self._call(entry.runnable.start)
            except Exception as e:
                entry.started = False
                entry.state = RunnableState.FAILED
                await self._record_failure(
                    entry, RunnableStartError(entry.name, e),
                    f" -> Error starting runnable '{entry.name}'"
                )
                continue

            entry.started = True
            entry.state = RunnableState.STARTED
            self.events.emit(HostEvent.RUNNABLE_STARTED, entry)

        stop_set: List[RunnableEntry] = []
        for entry in entries:
            if not entry.started:
                continue

            await self.log.debug(f" -> All Started '{entry.name}'.")
            try:
                await self._call(entry.runnable.all_started)
            except Exception as e:
                # Already holding resources: keep started so the stop pass tears it down
                stop_set.append(entry)
                entry.state = RunnableState.STOP_REQUESTED
                await self._record_failure(
                    entry, RunnableConfirmError(entry.name, e),
                    f" -> Error calling all_started on runnable '{entry.name}'"
                )
                continue

            entry.state = RunnableState.ALL_STARTED
            self.events.emit(HostEvent.RUNNABLE_ALL_STARTED, entry)

        return stop_set

    async def stop_runnables(self, entries: List[RunnableEntry]) -> None:
        """Call stop on every started entry, then all_stopped on every entry still started."""
        for entry in entries:
            if not entry.started:
                continue

            await self.log.debug(f" -> Stopping runnable '{entry.name}'.")
            try:
                await self._call(entry.runnable.stop)
            except Exception as e:
                await self._record_failure(
                    entry, RunnableStopError(entry.name, e),
                    f" -> Error stopping runnable '{entry.name}'"
                )
                continue

            entry.state = RunnableState.STOPPED
            self.events.emit(HostEvent.RUNNABLE_STOP, entry)

        for entry in entries:
            if not entry.started:
                continue

            await self.log.debug(f" -> All Stopped '{entry.name}'.")
            try:
                await self._call(entry.runnable.all_stopped)
            except Exception as e:
                await self._record_failure(
                    entry, RunnableAllStoppedError(entry.name, e),
                    f" -> Error calling all_stopped on runnable '{entry.name}'"
                )
                continue

            entry.started = False
            entry.state = RunnableState.ALL_STOPPED
            self.events.emit(HostEvent.RUNNABLE_ALL_STOPPED, entry)

    async def _record_failure(self, entry: RunnableEntry, error: RunnableError, message: str) -> None:
        entry.last_error = error
        await self.log.error(message, error.__cause__)
        self.events.emit(HostEvent.RUNNABLE_FAILED, entry, error)
