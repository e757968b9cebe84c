#!/usr/bin/env python3
"""
Tests for the log_manager.py functionality.

These tests verify the proper operation of:
- Log level parsing and thresholds
- Per-context thresholds from configuration
- Sink fan-out and failure isolation
- Console and file output, including rotation
"""

import json
import sys
from pathlib import Path

import pytest

# Add parent directory to sys.path to allow importing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from python_module_host import (
    ComponentLogger, ConfigManager, ConsoleSink, FileSink, LogEvent, LogLevel,
    LogManager, create_log_manager,
)
from python_module_host.log_manager import LogSink

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Fixtures
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class MemorySink(LogSink):
    """Sink that keeps events in memory."""

    def __init__(self):
        self.events = []

    async def write(self, event):
        self.events.append(event)


class BrokenSink(LogSink):
    async def write(self, event):
        raise RuntimeError("sink is broken")


@pytest.fixture
def config():
    return ConfigManager({'log': {'level': 'info', 'loggers': {'console': {'enabled': True}}}})

@pytest.fixture
def sink():
    return MemorySink()

@pytest.fixture
def manager(config, sink):
    log_manager = LogManager(service_name="test-service", config=config)
    log_manager.add_sink('memory', sink)
    return log_manager

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Test Cases
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class TestLogLevel:
    """Test cases for LogLevel enum."""

    def test_from_string(self):
        """Test converting strings to LogLevel."""
        assert LogLevel.from_string("ERROR") == LogLevel.ERROR
        assert LogLevel.from_string("warn") == LogLevel.WARN
        assert LogLevel.from_string("Warning") == LogLevel.WARN
        assert LogLevel.from_string(" info ") == LogLevel.INFO
        assert LogLevel.from_string("debug") == LogLevel.DEBUG
        assert LogLevel.from_string("VERBOSE") == LogLevel.VERBOSE
        assert LogLevel.from_string(LogLevel.DEBUG) == LogLevel.DEBUG

    def test_unknown_means_none(self):
        assert LogLevel.from_string(None) == LogLevel.NONE
        assert LogLevel.from_string("chatty") == LogLevel.NONE
        assert LogLevel.from_string(3) == LogLevel.NONE

    def test_severity_order(self):
        levels = [LogLevel.NONE, LogLevel.ERROR, LogLevel.WARN,
                  LogLevel.INFO, LogLevel.DEBUG, LogLevel.VERBOSE]
        assert [level.severity for level in levels] == [0, 1, 2, 3, 4, 5]

    def test_default(self):
        assert LogLevel.default() == LogLevel.INFO
        assert LogLevel.WARN.label == "Warn"


class TestLogEvent:
    """Test cases for LogEvent class."""

    def test_to_dict(self):
        event = LogEvent(level=LogLevel.INFO, message="Test message",
                         context="test", timestamp=1234567890.123, service="svc")
        result = event.to_dict()

        assert result['level'] == 'INFO'
        assert result['message'] == "Test message"
        assert result['context'] == "test"
        assert result['service'] == "svc"
        assert result['timestamp'] == 1234567890.123
        assert 'timestamp_iso' in result
        assert result['data'] is None

    def test_to_str(self):
        event = LogEvent(level=LogLevel.ERROR, message="Broken", context="Db", service="svc")
        line = event.to_str()

        assert "[svc] [Db] [ERROR] Broken" in line

    def test_to_str_appends_data(self):
        event = LogEvent(level=LogLevel.INFO, message="Payload", data={'a': 1})
        assert event.to_str().endswith('Payload {"a": 1}')

    def test_exception_data_has_stack(self):
        try:
            raise ValueError("bad value")
        except ValueError as e:
            error = e
        line = LogEvent(level=LogLevel.ERROR, message="Failed", data=error).to_str()

        assert "bad value  Stack : " in line
        assert "ValueError" in line


class TestComponentLogger:
    """Test cases for per-context thresholds."""

    def test_will_log_matrix(self):
        """Each threshold admits its own level and everything more severe."""
        levels = [LogLevel.ERROR, LogLevel.WARN, LogLevel.INFO, LogLevel.DEBUG, LogLevel.VERBOSE]
        for threshold in [LogLevel.NONE] + levels:
            logger = LogManager(log_level=threshold).create_log('ctx')
            for level in levels:
                assert logger.will_log(level) == (level.severity <= threshold.severity)
            assert logger.will_log(LogLevel.NONE) is False

    def test_will_log_accepts_strings(self, manager):
        logger = manager.create_log('Worker')

        assert logger.will_log('error') is True
        assert logger.will_log('Warning') is True
        assert logger.will_log('debug') is False
        assert logger.will_log('bogus') is False

    @pytest.mark.asyncio
    async def test_log_with_string_level(self, manager, sink):
        await manager.create_log('Worker').log('warn', "as text")

        assert sink.events[0].level == LogLevel.WARN

    def test_create_log_reuses_logger(self, config, manager):
        """One logger and one config listener per context."""
        before = len(config.listeners)
        loggers = [manager.create_log('Worker') for _ in range(100)]

        assert all(logger is loggers[0] for logger in loggers)
        assert len(config.listeners) == before + 1

        manager.create_log('Other')
        assert len(config.listeners) == before + 2

    def test_level_from_config(self, manager):
        logger = manager.create_log('Worker')

        assert isinstance(logger, ComponentLogger)
        assert logger.level == LogLevel.INFO
        assert logger.will_log(LogLevel.INFO)
        assert not logger.will_log(LogLevel.DEBUG)

    def test_instance_override(self, config, manager):
        config.set('log.instances.Worker', 'verbose')

        assert manager.create_log('Worker').level == LogLevel.VERBOSE
        assert manager.create_log('Other').level == LogLevel.INFO

    def test_follows_config_changes(self, config, manager):
        logger = manager.create_log('Worker')

        config.set('log.level', 'error')
        assert logger.level == LogLevel.ERROR

        config.set_data({'log': {'instances': {'Worker': 'debug'}}})
        assert logger.level == LogLevel.DEBUG

    def test_missing_level_is_silent(self, sink):
        manager = LogManager(config=ConfigManager({'log': {}}))
        manager.add_sink('memory', sink)
        logger = manager.create_log('ctx')

        assert logger.level == LogLevel.NONE
        assert not logger.will_log(LogLevel.ERROR)

    @pytest.mark.asyncio
    async def test_methods_dispatch(self, config, manager, sink):
        config.set('log.level', 'verbose')
        logger = manager.create_log('Worker')

        await logger.error("e")
        await logger.warn("w")
        await logger.warning("w2")
        await logger.info("i")
        await logger.debug("d")
        await logger.verbose("v")

        assert [e.level for e in sink.events] == [
            LogLevel.ERROR, LogLevel.WARN, LogLevel.WARN,
            LogLevel.INFO, LogLevel.DEBUG, LogLevel.VERBOSE
        ]
        assert all(e.context == 'Worker' for e in sink.events)
        assert all(e.service == 'test-service' for e in sink.events)

    @pytest.mark.asyncio
    async def test_below_threshold_is_dropped(self, manager, sink):
        logger = manager.create_log('Worker')

        await logger.debug("not shown")
        await logger.log(LogLevel.NONE, "never shown")

        assert sink.events == []

    @pytest.mark.asyncio
    async def test_verbose_json(self, config, manager, sink):
        logger = manager.create_log('Worker')
        await logger.verbose_json("Skipped", {'a': 1})
        assert sink.events == []

        config.set('log.level', 'verbose')
        await logger.verbose_json("Payload", {'a': 1})
        await logger.verbose_json("Nothing", None)

        assert sink.events[0].message == 'Payload {"a": 1}'
        assert sink.events[1].message == "Nothing - null or undefined"

    @pytest.mark.asyncio
    async def test_exception(self, manager, sink):
        logger = manager.create_log('Worker')
        error = RuntimeError("boom")

        await logger.exception(error, "Failed to run")

        assert sink.events[0].level == LogLevel.ERROR
        assert sink.events[0].message == "Failed to run: boom"
        assert sink.events[0].data is error


class TestLogManager:
    """Test cases for sink handling."""

    def test_add_sink_keeps_first(self, manager, sink):
        assert manager.add_sink('memory', MemorySink()) is False
        assert manager.get_sinks()['memory'] is sink

        manager.remove_sink('memory')
        assert manager.get_sinks() == {}

    @pytest.mark.asyncio
    async def test_failing_sink_is_isolated(self, manager, sink, capsys):
        manager.remove_sink('memory')
        manager.add_sink('broken', BrokenSink())
        manager.add_sink('memory', sink)

        await manager.create_log('ctx').info("still delivered")

        assert [e.message for e in sink.events] == ["still delivered"]
        assert "sink is broken" in capsys.readouterr().err


class TestConsoleSink:
    """Test cases for console output."""

    @pytest.mark.asyncio
    async def test_writes_to_stdout(self, config, capsys):
        console = ConsoleSink(config)
        await console.write(LogEvent(level=LogLevel.ERROR, message="Red alert", context="Db"))

        out = capsys.readouterr().out
        assert "[Error] Db - Red alert" in out
        assert out.startswith(ConsoleSink.COLORS[LogLevel.ERROR])

    @pytest.mark.asyncio
    async def test_disabled_by_config(self, config, capsys):
        console = ConsoleSink(config)
        config.set('log.loggers.console.enabled', False)

        await console.write(LogEvent(level=LogLevel.INFO, message="hidden"))

        assert console.enabled is False
        assert capsys.readouterr().out == ""


class TestFileSink:
    """Test cases for file output."""

    @pytest.mark.asyncio
    async def test_appends_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "host.log"
        file_sink = FileSink(log_file)

        await file_sink.write(LogEvent(level=LogLevel.INFO, message="first"))
        await file_sink.write(LogEvent(level=LogLevel.INFO, message="second"))

        lines = log_file.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("first")
        assert lines[1].endswith("second")

    @pytest.mark.asyncio
    async def test_json_format(self, tmp_path):
        log_file = tmp_path / "host.log"
        file_sink = FileSink(log_file, json_format=True)

        await file_sink.write(LogEvent(level=LogLevel.WARN, message="structured", context="ctx"))

        record = json.loads(log_file.read_text())
        assert record['level'] == 'WARN'
        assert record['message'] == 'structured'
        assert record['context'] == 'ctx'

    @pytest.mark.asyncio
    async def test_rotation(self, tmp_path):
        log_file = tmp_path / "host.log"
        file_sink = FileSink(log_file, max_size=10, backup_count=2)

        for message in ("one", "two", "three"):
            await file_sink.write(LogEvent(level=LogLevel.INFO, message=message))

        archive = tmp_path / "archive"
        assert log_file.read_text().strip().endswith("three")
        assert (archive / "host.1.log").read_text().strip().endswith("two")
        assert (archive / "host.2.log").read_text().strip().endswith("one")


class TestCreateLogManager:
    """Test cases for the factory."""

    def test_console_by_default(self, config):
        manager = create_log_manager(config)

        assert list(manager.get_sinks()) == ['console']
        assert manager.service_name == "host"

    def test_disable_default(self):
        config = ConfigManager({'log': {'disable_default': True}})
        assert create_log_manager(config).get_sinks() == {}

    @pytest.mark.asyncio
    async def test_file_sink_from_config(self, tmp_path):
        log_file = tmp_path / "app.log"
        config = ConfigManager({'log': {
            'level': 'info',
            'disable_default': True,
            'loggers': {'file': {'path': str(log_file), 'backup_count': 3, 'json': True}}
        }})
        manager = create_log_manager(config, service_name="app")

        file_sink = manager.get_sinks()['file']
        assert isinstance(file_sink, FileSink)
        assert file_sink.backup_count == 3

        await manager.create_log('Main').info("to file")
        record = json.loads(log_file.read_text())
        assert record['service'] == 'app'
        assert record['message'] == 'to file'
