#!/usr/bin/env python3
"""
module_base.py - Module and Runnable Contracts

This is the foundation of the module host, providing the contracts that
pluggable modules and long-running runnables implement, the option
declarations modules use to validate what they are given, and the error
taxonomy the lifecycle reports failures with.

Features:
- Module contract (one-shot initializer, sync or async)
- Runnable contract (start / all_started / stop / all_stopped hooks)
- Declarative module options with validation
- Lifecycle error taxonomy with chained causes
- Signal-aware helper to run a host until shutdown
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import asyncio
import inspect
import re
import signal
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Type, Union

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Type Definitions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

# Type for validator functions
ValidatorType = Callable[[Any], bool]

# Signature of a plain-function module: (graph, host, options) -> None | awaitable
ModuleCallback = Callable[[Any, Any, Dict[str, Any]], Union[None, Awaitable[None]]]

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Exceptions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ModuleError(Exception):
    """Base exception for all host errors."""
    pass

class ConfigError(ModuleError):
    """Configuration-related errors."""
    pass

class HostError(ModuleError):
    """Host misuse, such as restarting a host that has been shut down."""
    pass

class LifecycleError(ModuleError):
    """
    A module or runnable failed during a lifecycle call.

    The failing component is identified by ``name``; the exception the
    component raised is chained as ``__cause__``.
    """

    phase = "lifecycle"

    def __init__(self, name: str, cause: Optional[BaseException] = None):
        self.name = name
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{self.phase} failed for '{name}'{detail}")
        self.__cause__ = cause

class ModuleInitError(LifecycleError):
    """A module's initializer raised."""
    phase = "initialize"

class RunnableError(LifecycleError):
    """Base class for runnable hook failures."""
    phase = "runnable"

class RunnableStartError(RunnableError):
    """The start hook raised; the runnable never came up."""
    phase = "start"

class RunnableConfirmError(RunnableError):
    """The all_started hook raised on a runnable that is holding resources."""
    phase = "all_started"

class RunnableStopError(RunnableError):
    """The stop hook raised."""
    phase = "stop"

class RunnableAllStoppedError(RunnableError):
    """The all_stopped hook raised; the runnable may still hold resources."""
    phase = "all_stopped"

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Validators
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class Validator:
    """Helper class with common validators for module options."""

    @staticmethod
    def positive(value: Union[int, float]) -> bool:
        """Validate that a number is positive (> 0)."""
        return value > 0

    @staticmethod
    def non_negative(value: Union[int, float]) -> bool:
        """Validate that a number is non-negative (>= 0)."""
        return value >= 0

    @staticmethod
    def in_range(min_val: Union[int, float], max_val: Union[int, float]) -> ValidatorType:
        """Create a validator that checks if a value is within a range."""
        return lambda x: min_val <= x <= max_val

    @staticmethod
    def one_of(valid_values: List[Any]) -> ValidatorType:
        """Create a validator that checks if a value is one of a set of valid values."""
        return lambda x: x in valid_values

    @staticmethod
    def matches(pattern: Union[str, Pattern]) -> ValidatorType:
        """Create a validator that checks if a string matches a regex pattern."""
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        return lambda x: isinstance(x, str) and compiled.match(x) is not None

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Option Declarations
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

@dataclass
class ConfigParam:
    """
    Explicit declaration of a module option.

    Modules list these in ``CONFIG_PARAMS`` so that the merged options they
    receive at initialization are defaulted, converted and validated in one
    place.
    """
    name: str
    default: Any
    description: str
    type: Optional[Type] = None
    required: bool = False
    validators: List[ValidatorType] = field(default_factory=list)

    def __post_init__(self):
        # Infer type from default value if not provided
        if self.type is None and self.default is not None:
            self.type = type(self.default)

    def validate(self, value: Any) -> Any:
        """
        Validate and possibly convert a value.

        Args:
            value: The value to validate

        Returns:
            The validated and possibly converted value

        Raises:
            ValueError: If validation fails
        """
        if value is None:
            if self.required:
                raise ValueError(f"Missing required parameter '{self.name}'")
            return self.default

        if self.type and not isinstance(value, self.type):
            try:
                value = self.type(value)
            except (ValueError, TypeError):
                raise ValueError(
                    f"Parameter '{self.name}' should be of type {self.type.__name__}, "
                    f"got {type(value).__name__}"
                )

        for i, validator in enumerate(self.validators):
            if not validator(value):
                raise ValueError(
                    f"Parameter '{self.name}' failed validation "
                    f"(validator {i+1}): value={value}"
                )

        return value

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Helper Functions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

async def maybe_await(result: Any) -> Any:
    """Await ``result`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(result):
        return await result
    return result


def component_name(component: Any) -> str:
    """Identity used in logs and registries: a string ``name`` attribute or the class name."""
    name = getattr(component, 'name', None)
    if isinstance(name, str) and name:
        return name
    return type(component).__name__

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Base Classes
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class BaseModule:
    """
    Base class for host modules.

    A module is a one-shot initializer: the host calls ``initialize`` once,
    handing it the object graph, the host itself and the merged options.
    It typically binds services and runnables into the graph.

    Subclasses may declare ``CONFIG_PARAMS`` to have their options
    validated by ``parse_options``.
    """

    CONFIG_PARAMS: List[ConfigParam] = []

    def __init__(self):
        self.options: Dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def parse_options(self, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Apply the declared parameters to ``options``.

        Undeclared keys are passed through untouched.

        Raises:
            ConfigError: If a declared parameter fails validation
        """
        result = dict(options or {})
        for param in self.CONFIG_PARAMS:
            try:
                result[param.name] = param.validate(result.get(param.name))
            except ValueError as e:
                raise ConfigError(f"{self.name}: {e}")
        return result

    async def initialize(self, graph, host, options: Optional[Dict[str, Any]] = None):
        """Validate and keep the options. Subclasses bind their services after calling this."""
        self.options = self.parse_options(options)


class FunctionModule(BaseModule):
    """Adapts a plain callback ``(graph, host, options)`` to the module contract."""

    def __init__(self, callback: ModuleCallback, name: Optional[str] = None):
        super().__init__()
        self._callback = callback
        self._name = name or getattr(callback, '__name__', None) or self.__class__.__name__

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self, graph, host, options: Optional[Dict[str, Any]] = None):
        await super().initialize(graph, host, options)
        await maybe_await(self._callback(graph, host, self.options))


class Runnable:
    """
    Base class for long-running components.

    Runnables are bound into the object graph under the ``Runnable`` key by
    modules. The host drives them through start, all_started and, on
    rollback or shutdown, stop and all_stopped. Every hook may be a plain
    method or a coroutine and may raise.
    """

    async def start(self):
        """Acquire resources and begin work."""

    async def all_started(self):
        """Called once every runnable has been started."""

    async def stop(self):
        """Stop work."""

    async def all_stopped(self):
        """Release resources once every runnable has been stopped."""


async def run_host(host, options: Optional[Dict[str, Any]] = None,
                   stop_event: Optional[asyncio.Event] = None):
    """
    Run a host until it is asked to stop.

    Starts the host, waits for SIGINT/SIGTERM (or ``stop_event``) and then
    performs a full shutdown.

    Args:
        host: Host to run
        options: Options passed to ``host.start``
        stop_event: Event that ends the run when set

    Returns:
        The host instance
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not on the main thread, or the platform has no signal support
            pass

    try:
        await host.start(options)
        await stop_event.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await host.stop()

    return host
