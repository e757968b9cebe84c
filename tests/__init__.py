"""
Test suite for the Python Module Host.

This package contains tests for all components of the host:
- module_base.py: Module and runnable contracts
- config_manager.py: Configuration management
- log_manager.py: Logging system
- object_graph.py: Object graph
- events.py: Host notifications
- lifecycle.py: Lifecycle orchestration
- host.py: The host itself
"""

# Import test modules to make them discoverable
from .test_module_base import TestValidator, TestConfigParam, TestBaseModule, TestFunctionModule
from .test_module_base import TestRunnable, TestHelpers, TestErrors, TestRunHost

from .test_config_manager import TestDefaultsDeep, TestConfigManager, TestScopedConfig, TestConfigBuilder

from .test_log_manager import TestLogLevel, TestLogEvent, TestComponentLogger, TestLogManager
from .test_log_manager import TestConsoleSink, TestFileSink, TestCreateLogManager

from .test_object_graph import TestObjectGraph

from .test_events import TestEventHub

from .test_lifecycle import TestModulePass, TestDiscovery, TestStopPass

from .test_host import TestRunnableLifecycle, TestShutdown, TestHost, TestScenarios

# Define what's available via import *
__all__ = [
    # module_base tests
    "TestValidator",
    "TestConfigParam",
    "TestBaseModule",
    "TestFunctionModule",
    "TestRunnable",
    "TestHelpers",
    "TestErrors",
    "TestRunHost",

    # config_manager tests
    "TestDefaultsDeep",
    "TestConfigManager",
    "TestScopedConfig",
    "TestConfigBuilder",

    # log_manager tests
    "TestLogLevel",
    "TestLogEvent",
    "TestComponentLogger",
    "TestLogManager",
    "TestConsoleSink",
    "TestFileSink",
    "TestCreateLogManager",

    # object_graph / events tests
    "TestObjectGraph",
    "TestEventHub",

    # lifecycle tests
    "TestModulePass",
    "TestDiscovery",
    "TestStopPass",

    # host tests
    "TestRunnableLifecycle",
    "TestShutdown",
    "TestHost",
    "TestScenarios",
]
