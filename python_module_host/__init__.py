"""
Python Module Host

An application host that wires pluggable modules into an object graph and
drives the long-running runnables they register through a coordinated
start-up and shutdown sequence, with configuration and logging built in.
"""

__version__ = "0.1.0"

# Import core components for easy access
from .module_base import (
    BaseModule,
    FunctionModule,
    Runnable,
    ConfigParam,
    Validator,
    ModuleError,
    ConfigError,
    HostError,
    LifecycleError,
    ModuleInitError,
    RunnableError,
    RunnableStartError,
    RunnableConfirmError,
    RunnableStopError,
    RunnableAllStoppedError,
    run_host,
)

from .config_manager import (
    ConfigManager,
    ScopedConfig,
    ConfigBuilder,
    defaults_deep,
)

from .log_manager import (
    LogLevel,
    LogEvent,
    LogManager,
    ComponentLogger,
    ConsoleSink,
    FileSink,
    LoggingError,
    LogFileError,
    create_log_manager,
)

from .object_graph import (
    ObjectGraph,
    Lifetime,
    BindingError,
)

from .events import (
    EventHub,
    HostEvent,
)

from .registry import (
    ModuleEntry,
    RunnableEntry,
    RunnableState,
    HostState,
)

from .lifecycle import LifecycleOrchestrator

from .host import Host

# Define what's available via import *
__all__ = [
    # module_base exports
    "BaseModule",
    "FunctionModule",
    "Runnable",
    "ConfigParam",
    "Validator",
    "ModuleError",
    "ConfigError",
    "HostError",
    "LifecycleError",
    "ModuleInitError",
    "RunnableError",
    "RunnableStartError",
    "RunnableConfirmError",
    "RunnableStopError",
    "RunnableAllStoppedError",
    "run_host",

    # config_manager exports
    "ConfigManager",
    "ScopedConfig",
    "ConfigBuilder",
    "defaults_deep",

    # log_manager exports
    "LogLevel",
    "LogEvent",
    "LogManager",
    "ComponentLogger",
    "ConsoleSink",
    "FileSink",
    "LoggingError",
    "LogFileError",
    "create_log_manager",

    # object_graph exports
    "ObjectGraph",
    "Lifetime",
    "BindingError",

    # events exports
    "EventHub",
    "HostEvent",

    # registry exports
    "ModuleEntry",
    "RunnableEntry",
    "RunnableState",
    "HostState",

    # lifecycle / host exports
    "LifecycleOrchestrator",
    "Host",
]
