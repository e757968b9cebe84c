#!/usr/bin/env python3
"""
registry.py - Module and Runnable Registries

Bookkeeping for what a host drives: the ordered list of registered modules
and the runnables discovered at start time, each with the status the
lifecycle passes update.
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .module_base import component_name

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Entries
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class RunnableState(str, enum.Enum):
    """Where a runnable is in its lifecycle."""
    IDLE = 'idle'
    STARTED = 'started'
    ALL_STARTED = 'all_started'
    FAILED = 'failed'
    STOP_REQUESTED = 'stop_requested'
    STOPPED = 'stopped'
    ALL_STOPPED = 'all_stopped'


@dataclass
class ModuleEntry:
    """A registered module and whether its initializer has succeeded."""
    module: Any
    name: str
    options: Dict[str, Any] = field(default_factory=dict)
    initialized: bool = False
    last_error: Optional[BaseException] = None


@dataclass
class RunnableEntry:
    """
    A discovered runnable and its status.

    ``started`` is True while the runnable holds resources: it is set by a
    successful start and cleared only by a successful all_stopped.
    ``last_error`` keeps the most recent failure and is never cleared.
    """
    runnable: Any
    name: str
    started: bool = False
    last_error: Optional[BaseException] = None
    state: RunnableState = RunnableState.IDLE

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Registries
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ModuleRegistry:
    """Modules in registration order, which is also initialization order."""

    def __init__(self):
        self._entries: List[ModuleEntry] = []

    def register(self, module: Any, options: Optional[Dict[str, Any]] = None) -> ModuleEntry:
        entry = ModuleEntry(module=module, name=component_name(module), options=dict(options or {}))
        self._entries.append(entry)
        return entry

    def pending(self) -> List[ModuleEntry]:
        """Entries whose initializer has not yet succeeded."""
        return [entry for entry in self._entries if not entry.initialized]

    @property
    def entries(self) -> List[ModuleEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[ModuleEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


class RunnableRegistry:
    """
    Runnables in discovery order.

    The registry is filled once per start and not changed afterwards; that
    order is used for every lifecycle pass.
    """

    def __init__(self):
        self._entries: List[RunnableEntry] = []

    def populate(self, runnables: List[Any]) -> List[RunnableEntry]:
        self._entries = [
            RunnableEntry(runnable=runnable, name=component_name(runnable))
            for runnable in runnables
        ]
        return self.entries

    def started(self) -> List[RunnableEntry]:
        return [entry for entry in self._entries if entry.started]

    def failed(self) -> List[RunnableEntry]:
        """Entries that recorded an error in any phase."""
        return [entry for entry in self._entries if entry.last_error is not None]

    @property
    def entries(self) -> List[RunnableEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[RunnableEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class HostState:
    """Everything a host tracks about its own lifecycle."""
    initialized: bool = False
    started: bool = False
    closed: bool = False
    modules: ModuleRegistry = field(default_factory=ModuleRegistry)
    runnables: RunnableRegistry = field(default_factory=RunnableRegistry)
