#!/usr/bin/env python3
"""
object_graph.py - Object Graph

A small dependency container: modules bind instances or factories under a
key (usually a class), and the host resolves them. A key may carry several
bindings; ``get_all`` returns them in binding order, which is how the host
discovers every bound runnable.
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional

from .module_base import ModuleError

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Types
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class BindingError(ModuleError):
    """A key is not bound, or is bound more than once where one binding was expected."""
    pass


class Lifetime(str, enum.Enum):
    """How often a factory binding produces a new instance."""
    SINGLETON = 'singleton'  # One instance, created on first resolution
    TRANSIENT = 'transient'  # New instance on every resolution


_UNSET = object()


@dataclass
class Binding:
    """One binding of a key: either a constant instance or a factory."""
    key: Hashable
    factory: Optional[Callable[['ObjectGraph'], Any]] = None
    lifetime: Lifetime = Lifetime.SINGLETON
    instance: Any = _UNSET

    def resolve(self, graph: 'ObjectGraph') -> Any:
        if self.instance is not _UNSET:
            return self.instance
        value = self.factory(graph)
        if self.lifetime is Lifetime.SINGLETON:
            self.instance = value
        return value

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Object Graph
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ObjectGraph:
    """
    Maps keys to instances.

    Usage:
        graph = ObjectGraph()
        graph.bind(Runnable, HttpServer())
        graph.bind_factory(Database, lambda g: Database(g.get(Settings)))

        db = graph.get(Database)
        runnables = graph.get_all(Runnable)
    """

    def __init__(self):
        self._bindings: Dict[Hashable, List[Binding]] = {}

    def bind(self, key: Hashable, instance: Any) -> 'ObjectGraph':
        """Add a constant binding for ``key``."""
        self._bindings.setdefault(key, []).append(Binding(key=key, instance=instance))
        return self

    def bind_factory(
        self,
        key: Hashable,
        factory: Callable[['ObjectGraph'], Any],
        lifetime: Lifetime = Lifetime.SINGLETON
    ) -> 'ObjectGraph':
        """Add a factory binding for ``key``; the factory receives the graph."""
        self._bindings.setdefault(key, []).append(
            Binding(key=key, factory=factory, lifetime=lifetime)
        )
        return self

    def is_bound(self, key: Hashable) -> bool:
        return bool(self._bindings.get(key))

    def unbind(self, key: Hashable) -> None:
        """Drop every binding of ``key``."""
        self._bindings.pop(key, None)

    def get(self, key: Hashable) -> Any:
        """
        Resolve the single binding of ``key``.

        Raises:
            BindingError: If ``key`` has no binding or more than one
        """
        bindings = self._bindings.get(key)
        if not bindings:
            raise BindingError(f"No binding found for {_key_name(key)}")
        if len(bindings) > 1:
            raise BindingError(
                f"Ambiguous binding for {_key_name(key)}: {len(bindings)} bindings found"
            )
        return bindings[0].resolve(self)

    def get_all(self, key: Hashable) -> List[Any]:
        """Resolve every binding of ``key`` in the order they were bound."""
        return [binding.resolve(self) for binding in list(self._bindings.get(key, []))]


def _key_name(key: Hashable) -> str:
    return getattr(key, '__name__', None) or repr(key)
