#!/usr/bin/env python3
"""
host.py - Application Host

The Host is the object an application builds and runs. It owns the
configuration, the log manager, the object graph and the module and
runnable registries, and drives them through init, start and stop.

Usage:
    host = Host().add_module(DatabaseModule(), {'pool_size': 4})
    await host.start({'log': {'level': 'debug'}})
    ...
    await host.stop()

``start`` resolving does not mean every component came up: inspect
``get_modules()`` and ``get_runnables()`` for entries with a ``last_error``.
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import copy
from typing import Any, Dict, List, Optional

from .config_manager import ConfigBuilder, ConfigManager, defaults_deep
from .events import EventHub, HostEvent
from .lifecycle import LifecycleOrchestrator
from .log_manager import ComponentLogger, LogLevel, LogManager, create_log_manager
from .module_base import FunctionModule, HostError, ModuleCallback
from .object_graph import ObjectGraph
from .registry import HostState, ModuleEntry, RunnableEntry

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Defaults
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

DEFAULT_OPTIONS: Dict[str, Any] = {
    'log': {
        'level': LogLevel.default().value.lower(),
        'loggers': {
            'console': {
                'enabled': True
            }
        }
    }
}

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Host
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class Host:
    """
    Composition root: wires modules, then runs the runnables they bind.

    A host has a closed lifecycle. After a full ``stop`` its object graph
    is released and it cannot be started again.
    """

    def __init__(self, graph: Optional[ObjectGraph] = None):
        self._graph: Optional[ObjectGraph] = graph if graph is not None else ObjectGraph()
        if not self._graph.is_bound(ObjectGraph):
            self._graph.bind(ObjectGraph, self._graph)
        self._graph.bind(Host, self)

        self._state = HostState()
        self.events = EventHub()
        self.config: Optional[ConfigManager] = None
        self.config_builder: Optional[ConfigBuilder] = None
        self.log_manager: Optional[LogManager] = None
        self._log: Optional[ComponentLogger] = None
        self._orchestrator: Optional[LifecycleOrchestrator] = None

    # ==========================================
    # State
    # ==========================================

    @property
    def state(self) -> HostState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    @property
    def started(self) -> bool:
        return self._state.started

    @property
    def closed(self) -> bool:
        return self._state.closed

    def get_modules(self) -> List[ModuleEntry]:
        return self._state.modules.entries

    def get_runnables(self) -> List[RunnableEntry]:
        return self._state.runnables.entries

    def get_container(self) -> Optional[ObjectGraph]:
        """The object graph, or None once the host has been stopped."""
        return self._graph

    # ==========================================
    # Assembly
    # ==========================================

    def add_module(self, module: Any, options: Optional[Dict[str, Any]] = None) -> 'Host':
        """
        Register a module; modules are initialized in the order they are added.

        Args:
            module: Object with an ``initialize(graph, host, options)`` method,
                or a plain callable with that signature
            options: Options for this module; they win over the options
                passed to ``start``

        Returns:
            self, for chaining
        """
        if not callable(getattr(module, 'initialize', None)):
            if not callable(module):
                raise HostError(f"Module {module!r} has no callable 'initialize'")
            module = FunctionModule(module)

        entry = self._state.modules.register(module, options)
        self.events.emit(HostEvent.MODULE_ADDED, entry)
        return self

    @staticmethod
    def build(callback: ModuleCallback, options: Optional[Dict[str, Any]] = None) -> 'Host':
        """Create an initialized host whose only module is ``callback``."""
        return Host().init().add_module(FunctionModule(callback), options)

    # ==========================================
    # Lifecycle
    # ==========================================

    def init(self, options: Optional[Dict[str, Any]] = None) -> 'Host':
        """
        Wire configuration and logging. Only the first call has any effect.

        Args:
            options: Configuration overlay; host defaults fill in what is missing

        Returns:
            self, for chaining
        """
        if self._state.initialized:
            return self
        if self._state.closed:
            raise HostError("Host has been stopped and cannot be initialized again")

        self.config = ConfigManager()
        self.config_builder = ConfigBuilder(self.config)
        self.config_builder.add_json(
            defaults_deep(copy.deepcopy(options or {}), DEFAULT_OPTIONS)
        ).add_environment().build()

        self.log_manager = create_log_manager(self.config)
        self._log = self.log_manager.create_log('Host')

        self._graph.bind(ConfigManager, self.config)
        self._graph.bind(ConfigBuilder, self.config_builder)
        self._graph.bind(LogManager, self.log_manager)

        self._state.initialized = True
        self.events.emit(HostEvent.INITIALIZED, self)
        return self

    async def start(self, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize pending modules, then start every bound runnable.

        Calling start on a started host does nothing.

        Raises:
            HostError: If the host has already been stopped
        """
        if self._state.started:
            return
        if self._state.closed:
            raise HostError("Host has been stopped; create a new Host to start again")

        was_initialized = self._state.initialized
        self.init(options)
        if was_initialized and options:
            self.config_builder.add_json(copy.deepcopy(options)).build()

        self._orchestrator = LifecycleOrchestrator(
            self._log, self.events,
            hook_timeout=self.config.get_number('host.hook_timeout')
        )

        await self._log.info(f"Starting host with {len(self._state.modules)} modules.")
        await self._orchestrator.initialize_modules(
            self._state.modules, self._graph, self, options
        )

        entries = await self._orchestrator.discover(self._graph, self._state.runnables)
        stop_set = await self._orchestrator.start_runnables(entries)
        self._state.started = True
        await self._orchestrator.stop_runnables(stop_set)

        failed = len(self._state.runnables.failed())
        if failed:
            await self._log.warn(f"Host started; {failed} of {len(entries)} runnables reported errors.")
        else:
            await self._log.info("Host started.")
        self.events.emit(HostEvent.START, self)
        await self.events.drain()

    async def stop(self) -> None:
        """
        Stop every runnable and release the object graph.

        Calling stop on a stopped host does nothing.
        """
        if self._state.closed:
            return

        if self._orchestrator is not None:
            await self._log.info("Stopping host.")
            await self._orchestrator.stop_runnables(self._state.runnables.started())

        self._graph = None
        self._state.started = False
        self._state.closed = True
        if self._log is not None:
            await self._log.info("Host stopped.")
        self.events.emit(HostEvent.STOP, self)
        await self.events.drain()
