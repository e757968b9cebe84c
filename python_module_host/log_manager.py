#!/usr/bin/env python3
"""
log_manager.py - Logging Management

Provides an asynchronous, level-gated logging system. Each host owns one
LogManager that fans log events out to its registered sinks; components
log through a ComponentLogger bound to a context name whose threshold
comes from configuration.

Features:
- Per-context level thresholds (``log.instances.<ctx>`` over ``log.level``)
- Multi-sink fan-out with per-sink failure isolation
- Coloured console output and rotating file output (text or JSON)
- Thresholds and sink switches follow live configuration changes
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import asyncio
import datetime
import enum
import json
import sys
import time
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles
import aiofiles.os

from .config_manager import ConfigReader

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Log Levels
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class LogLevel(str, enum.Enum):
    """Log levels, from silent to most detailed."""
    NONE = 'NONE'
    ERROR = 'ERROR'
    WARN = 'WARN'
    INFO = 'INFO'
    DEBUG = 'DEBUG'
    VERBOSE = 'VERBOSE'

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_string(cls, level_str: Optional[str]) -> 'LogLevel':
        """Convert string to LogLevel. Missing or unknown values mean NONE."""
        if isinstance(level_str, cls):
            return level_str
        try:
            key = level_str.strip().upper()
        except AttributeError:
            return cls.NONE
        if key == 'WARNING':
            return cls.WARN
        try:
            return cls[key]
        except KeyError:
            return cls.NONE

    @classmethod
    def default(cls) -> 'LogLevel':
        """Level used when the host is given no configuration."""
        return cls.INFO


_SEVERITY = {
    LogLevel.NONE: 0,
    LogLevel.ERROR: 1,
    LogLevel.WARN: 2,
    LogLevel.INFO: 3,
    LogLevel.DEBUG: 4,
    LogLevel.VERBOSE: 5,
}

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Log Event Class
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

DEFAULT_FORMAT = "[{timestamp}] [{service}] [{context}] [{level}] {message}"
CONSOLE_FORMAT = "[{timestamp}][{label}] {context} - {message}"


def format_data(data: Any) -> str:
    """Render the optional payload of a log call."""
    if data is None:
        return ''
    if isinstance(data, BaseException):
        tb = ''.join(traceback.format_exception(type(data), data, data.__traceback__))
        return f"{data}  Stack : {tb.rstrip()}"
    try:
        return json.dumps(data, default=str)
    except (TypeError, ValueError):
        return repr(data)


@dataclass
class LogEvent:
    """Container for log event data with metadata."""
    level: LogLevel
    message: str
    context: str = "unknown"
    timestamp: float = field(default_factory=time.time)
    service: str = "host"
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert log event to dictionary for structured logging."""
        return {
            'level': self.level.value,
            'message': self.message,
            'context': self.context,
            'service': self.service,
            'timestamp': self.timestamp,
            'timestamp_iso': datetime.datetime.fromtimestamp(self.timestamp).isoformat(),
            'data': format_data(self.data) or None,
        }

    def to_str(self, fmt: Optional[str] = None) -> str:
        """Format log event as string using format string; the payload is appended."""
        timestamp_str = datetime.datetime.fromtimestamp(
            self.timestamp
        ).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        line = (fmt or DEFAULT_FORMAT).format(
            timestamp=timestamp_str,
            service=self.service,
            context=self.context,
            level=self.level.value,
            label=self.level.label,
            message=self.message,
        )
        data = format_data(self.data)
        return f"{line} {data}" if data else line

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Exceptions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class LoggingError(Exception):
    """Base exception for logging errors."""
    pass

class LogFileError(LoggingError):
    """Error related to log file operations."""
    pass

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Sinks
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class LogSink:
    """Destination for log events."""

    async def write(self, event: LogEvent) -> None:
        raise NotImplementedError


class ConsoleSink(LogSink):
    """
    Coloured console output.

    Reads ``log.loggers.console.enabled`` and follows later changes to it.
    """

    RESET = '\u001b[0m'
    DEFAULT_COLOR = '\u001b[37m'  # White
    COLORS = {
        LogLevel.ERROR: '\u001b[91m',    # Red
        LogLevel.WARN: '\u001b[93m',     # Yellow
        LogLevel.DEBUG: '\u001b[96m',    # Cyan
        LogLevel.VERBOSE: '\u001b[92m',  # Green
    }

    def __init__(self, config: Optional[ConfigReader] = None, log_format: str = CONSOLE_FORMAT):
        self.log_format = log_format
        self.enabled = True
        self._config = config.scope('log.loggers.console') if config is not None else None
        if self._config is not None:
            self._update_from_config()
            self._config.add_listener(self._on_config_changed)

    def _update_from_config(self) -> None:
        self.enabled = self._config.get_bool('enabled', True)

    def _on_config_changed(self, key: str, value: Any) -> None:
        self._update_from_config()

    async def write(self, event: LogEvent) -> None:
        if not self.enabled:
            return
        color = self.COLORS.get(event.level, self.DEFAULT_COLOR)
        print(f"{color}{event.to_str(self.log_format)}{self.RESET}", file=sys.stdout, flush=True)


class FileSink(LogSink):
    """
    Appends log events to a file, rotating it into an ``archive`` directory
    next to it once it grows past ``max_size`` bytes.
    """

    def __init__(
        self,
        log_file: Union[str, Path],
        max_size: int = 10 * 1024 * 1024,  # 10 MB
        backup_count: int = 5,
        json_format: bool = False,
        log_format: Optional[str] = None
    ):
        self.log_file = Path(log_file)
        self.archive_dir = self.log_file.parent / "archive"
        self.max_size = max_size
        self.backup_count = backup_count
        self.json_format = json_format
        self.log_format = log_format or DEFAULT_FORMAT
        self._lock: Optional[asyncio.Lock] = None

    def _format(self, event: LogEvent) -> str:
        if self.json_format:
            return json.dumps(event.to_dict())
        return event.to_str(self.log_format)

    async def write(self, event: LogEvent) -> None:
        if self._lock is None:
            self._lock = asyncio.Lock()
        line = self._format(event)
        async with self._lock:
            try:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                if self.log_file.exists():
                    stat = await aiofiles.os.stat(self.log_file)
                    if stat.st_size > self.max_size:
                        await self._rotate_logs()
                async with aiofiles.open(self.log_file, 'a', encoding='utf-8') as f:
                    await f.write(line + '\n')
            except OSError as e:
                raise LogFileError(f"Failed to write log file {self.log_file}: {e}")

    async def _rotate_logs(self) -> None:
        """Shift archived files up by one and move the current file to ``.1``."""
        if self.backup_count < 1:
            await aiofiles.os.remove(self.log_file)
            return

        self.archive_dir.mkdir(parents=True, exist_ok=True)
        stem, suffix = self.log_file.stem, self.log_file.suffix

        for i in range(self.backup_count - 1, 0, -1):
            source = self.archive_dir / f"{stem}.{i}{suffix}"
            target = self.archive_dir / f"{stem}.{i+1}{suffix}"
            if source.exists():
                if target.exists():
                    await aiofiles.os.remove(target)
                await aiofiles.os.rename(source, target)

        backup_file = self.archive_dir / f"{stem}.1{suffix}"
        if backup_file.exists():
            await aiofiles.os.remove(backup_file)
        await aiofiles.os.rename(self.log_file, backup_file)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Log Manager
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class LogManager:
    """
    Fans log events out to named sinks.

    One instance per host; it is handed to whatever needs to log instead of
    living in module-level state.
    """

    def __init__(
        self,
        service_name: str = "host",
        config: Optional[ConfigReader] = None,
        log_level: Union[str, LogLevel] = LogLevel.INFO
    ):
        """
        Initialize log manager.

        Args:
            service_name: Name of the service for log identification
            config: Configuration the per-context thresholds are read from
            log_level: Threshold used when no configuration is given
        """
        self.service_name = service_name
        self.config = config
        self.log_level = LogLevel.from_string(log_level)
        self._sinks: Dict[str, LogSink] = {}
        self._loggers: Dict[str, 'ComponentLogger'] = {}

    def add_sink(self, name: str, sink: LogSink) -> bool:
        """Register a sink. A name that is already registered keeps its first sink."""
        if name in self._sinks:
            return False
        self._sinks[name] = sink
        return True

    def remove_sink(self, name: str) -> None:
        self._sinks.pop(name, None)

    def get_sinks(self) -> Dict[str, LogSink]:
        return dict(self._sinks)

    async def dispatch(self, event: LogEvent) -> None:
        """Write an event to every sink; a failing sink never blocks the others."""
        for name, sink in list(self._sinks.items()):
            try:
                await sink.write(event)
            except Exception as e:
                # Last resort error logging
                print(f"Error writing log event to sink '{name}': {e}", file=sys.stderr)

    def create_log(self, context: str) -> 'ComponentLogger':
        """Get the logger for a context; every call with the same context returns the same logger."""
        logger = self._loggers.get(context)
        if logger is None:
            logger = self._loggers[context] = ComponentLogger(self, context)
        return logger

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Component Logger
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ComponentLogger:
    """Logger for one context that delegates to a log manager."""

    def __init__(self, log_manager: LogManager, context: str):
        """
        Initialize component logger.

        Args:
            log_manager: Parent log manager
            context: Context name; selects ``log.instances.<context>``
        """
        self.log_manager = log_manager
        self.context = context
        self.level = log_manager.log_level
        self._config = log_manager.config.scope('log') if log_manager.config is not None else None
        if self._config is not None:
            self._update_from_config()
            self._config.add_listener(self._on_config_changed)

    def _update_from_config(self) -> None:
        level = self._config.get(f'instances.{self.context}', self._config.get('level'))
        self.level = LogLevel.from_string(level)

    def _on_config_changed(self, key: str, value: Any) -> None:
        self._update_from_config()

    def will_log(self, level: Union[str, LogLevel]) -> bool:
        """Check if a log level passes this logger's threshold."""
        level = LogLevel.from_string(level)
        return level is not LogLevel.NONE and self.level.severity >= level.severity

    async def log(self, level: Union[str, LogLevel], message: str, data: Any = None) -> None:
        """Log at the specified level."""
        level = LogLevel.from_string(level)
        if not self.will_log(level):
            return
        event = LogEvent(
            level=level,
            message=message,
            context=self.context,
            service=self.log_manager.service_name,
            data=data
        )
        await self.log_manager.dispatch(event)

    async def error(self, message: str, data: Any = None) -> None:
        """Log at ERROR level."""
        await self.log(LogLevel.ERROR, message, data)

    async def warn(self, message: str, data: Any = None) -> None:
        """Log at WARN level."""
        await self.log(LogLevel.WARN, message, data)

    warning = warn

    async def info(self, message: str, data: Any = None) -> None:
        """Log at INFO level."""
        await self.log(LogLevel.INFO, message, data)

    async def debug(self, message: str, data: Any = None) -> None:
        """Log at DEBUG level."""
        await self.log(LogLevel.DEBUG, message, data)

    async def verbose(self, message: str, data: Any = None) -> None:
        """Log at VERBOSE level."""
        await self.log(LogLevel.VERBOSE, message, data)

    async def verbose_json(self, message: str, data: Any) -> None:
        """Log a payload as JSON at VERBOSE level."""
        if not self.will_log(LogLevel.VERBOSE):
            return
        if data is None:
            await self.verbose(f"{message} - null or undefined")
        else:
            await self.verbose(f"{message} {json.dumps(data, default=str)}")

    async def exception(self, exc: BaseException, message: Optional[str] = None) -> None:
        """Log an exception with traceback."""
        message = f"Exception: {exc}" if message is None else f"{message}: {exc}"
        await self.log(LogLevel.ERROR, message, exc)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Helper Functions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

def create_log_manager(config: ConfigReader, service_name: str = "host") -> LogManager:
    """
    Create a log manager with the sinks the configuration asks for.

    The console sink is installed unless ``log.disable_default`` is set; a
    file sink is added when ``log.loggers.file.path`` is set.

    Args:
        config: Host configuration
        service_name: Service name for logging

    Returns:
        Configured LogManager instance
    """
    manager = LogManager(service_name=service_name, config=config)

    if not config.get_bool('log.disable_default', False):
        manager.add_sink('console', ConsoleSink(config))

    file_config = config.scope('log.loggers.file')
    log_path = file_config.get_string('path')
    if log_path:
        manager.add_sink('file', FileSink(
            log_path,
            max_size=file_config.get_int('max_size', 10 * 1024 * 1024),
            backup_count=file_config.get_int('backup_count', 5),
            json_format=file_config.get_bool('json', False)
        ))

    return manager
