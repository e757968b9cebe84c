#!/usr/bin/env python3
"""
config_manager.py - Configuration Management

Provides the hierarchical configuration tree the host and its modules read
from. Configuration is assembled from ordered overlay layers (option dicts,
JSON files, the environment) and accessed by dotted path, either from the
root or through scoped views.

Features:
- Layered overlay merge (later layers win, nested keys merged)
- Hierarchical dotted-path access with typed getters
- Scoped views with automatic path prefixing
- Configuration change notifications
- JSON file loading
"""

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Imports
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

import copy
import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from .module_base import ConfigError

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Type Definitions
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

# Type for configuration objects
ConfigDict = Dict[str, Any]

# Listener signature: (key, value); key is '' when the whole tree changed
ConfigListener = Callable[[str, Any], None]

# Type variable for config value
T = TypeVar('T')

_TRUE_STRINGS = ('true', 'yes', '1')
_FALSE_STRINGS = ('false', 'no', '0')

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Merge Helpers
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

def defaults_deep(target: ConfigDict, *sources: ConfigDict) -> ConfigDict:
    """
    Fill keys missing from ``target`` with values from ``sources``.

    Nested dicts are merged key by key. A key already present in ``target``
    is never replaced, even when its value is ``None``. Sources are applied
    in order, so earlier sources take precedence over later ones. ``target``
    is modified in place and returned; sources are copied, never shared.
    """
    for source in sources:
        if not source:
            continue
        for key, value in source.items():
            if key not in target:
                target[key] = copy.deepcopy(value)
            elif isinstance(target[key], dict) and isinstance(value, dict):
                defaults_deep(target[key], value)
    return target


def _split_path(path: str) -> List[str]:
    return [part for part in path.strip('.').split('.') if part]


def _join_path(*parts: Optional[str]) -> str:
    return '.'.join(p.strip('.') for p in parts if p and p.strip('.'))

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Typed Access
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ConfigReader:
    """Typed getters shared by the root configuration and scoped views."""

    def get(self, path: Optional[str], default: T = None) -> Union[Any, T]:
        raise NotImplementedError

    def value(self) -> Any:
        """Get the whole (sub)tree this reader points at."""
        return self.get('')

    def get_bool(self, path: str, default: Optional[bool] = None) -> Optional[bool]:
        """
        Get configuration value as boolean.

        Treats strings like 'true', 'yes', '1' as True and 'false', 'no',
        '0' as False. Any other non-empty value is True.
        """
        value = self.get(path)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        return bool(text)

    def get_number(self, path: str, default: Optional[float] = None) -> Optional[Union[int, float]]:
        """Get configuration value as a number, or ``default`` if it does not parse."""
        value = self.get(path)
        if value is None:
            return default
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        try:
            return float(str(value).strip())
        except ValueError:
            return default

    def get_int(self, path: str, default: Optional[int] = None) -> Optional[int]:
        """Get configuration value as integer."""
        value = self.get_number(path)
        if value is None:
            return default
        try:
            return int(value)
        except (ValueError, OverflowError):
            return default

    def get_string(self, path: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value as string."""
        value = self.get(path)
        if value is None:
            return default
        return str(value)

    def scope(self, path: str) -> 'ScopedConfig':
        """Get a view whose lookups are relative to ``path``."""
        return ScopedConfig(path, self)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Configuration Manager
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ConfigManager(ConfigReader):
    """
    Root of the configuration tree.

    Owns the merged configuration and notifies listeners whenever it
    changes. Use a ``ConfigBuilder`` to feed it overlay layers.
    """

    def __init__(self, default_config: Optional[ConfigDict] = None):
        """
        Initialize configuration manager.

        Args:
            default_config: Initial configuration tree
        """
        self.config: ConfigDict = copy.deepcopy(default_config) if default_config else {}
        self.listeners: List[ConfigListener] = []

    def get(self, path: Optional[str], default: T = None) -> Union[Any, T]:
        """
        Get configuration value by dotted path.

        Args:
            path: Dotted path; empty or None returns the whole tree
            default: Returned when the key is missing or its value is None

        Returns:
            Configuration value or default
        """
        if not path or not path.strip('.'):
            return self.config

        value: Any = self.config
        for part in _split_path(path):
            if isinstance(value, dict) and part in value:
                value = value[part]
            elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                return default

        return default if value is None else value

    def set_data(self, data: ConfigDict) -> None:
        """
        Merge a new tree over the current one and notify listeners.

        Values in ``data`` win; keys only present in the current tree are kept.
        """
        self.config = defaults_deep(copy.deepcopy(data or {}), self.config)
        self._notify('', self.config)

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Dotted configuration key
            value: Configuration value
        """
        parts = _split_path(key)
        if not parts:
            raise ConfigError("Cannot set a value at the configuration root")

        config = self.config
        for part in parts[:-1]:
            if not isinstance(config.get(part), dict):
                config[part] = {}
            config = config[part]
        config[parts[-1]] = value

        self._notify(key, value)

    def add_listener(self, listener: ConfigListener) -> None:
        """
        Add a listener for configuration changes.

        Args:
            listener: Callback function that receives (key, value)
        """
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener: ConfigListener) -> None:
        """
        Remove a configuration change listener.

        Args:
            listener: Callback function to remove
        """
        if listener in self.listeners:
            self.listeners.remove(listener)

    def get_all(self) -> ConfigDict:
        """Get a copy of the entire configuration."""
        return dict(self.config)

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self.listeners):
            try:
                listener(key, value)
            except Exception as e:
                print(f"Error in configuration listener {listener!r}: {e}", file=sys.stderr)


class ScopedConfig(ConfigReader):
    """Relative view of a configuration tree; every lookup is prefixed with its path."""

    def __init__(self, path: str, parent: ConfigReader):
        self.path = path.strip('.') if path else ''
        self.parent = parent

    def get(self, path: Optional[str], default: T = None) -> Union[Any, T]:
        return self.parent.get(_join_path(self.path, path), default)

    def add_listener(self, listener: ConfigListener) -> None:
        self.parent.add_listener(listener)

    def remove_listener(self, listener: ConfigListener) -> None:
        self.parent.remove_listener(listener)

#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~
# Configuration Builder
#-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~-+-~

class ConfigBuilder:
    """
    Collects overlay layers and pushes their merge into a ConfigManager.

    Layers are merged so that a layer added later wins over earlier ones.
    Layers are kept across builds: adding a layer and building again
    re-applies everything collected so far.
    """

    def __init__(self, config: ConfigManager):
        self.config = config
        self._layers: List[ConfigDict] = []

    def add_json(self, model: Optional[ConfigDict]) -> 'ConfigBuilder':
        """Add a dict overlay."""
        self._layers.append(model or {})
        return self

    def add_file(self, config_file: Union[str, Path]) -> 'ConfigBuilder':
        """
        Add a JSON file overlay.

        Raises:
            ConfigError: If file reading or parsing fails
        """
        try:
            with open(config_file, 'r') as f:
                file_config = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Configuration file not found: {config_file}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file: {e}")
        except OSError as e:
            raise ConfigError(f"Error loading configuration: {e}")

        if not isinstance(file_config, dict):
            raise ConfigError(f"Configuration file must contain an object: {config_file}")
        return self.add_json(file_config)

    def add_environment(self, prefix: str = '') -> 'ConfigBuilder':
        """
        Add environment variables under the ``env`` key.

        Args:
            prefix: Only variables starting with this prefix are taken,
                with the prefix stripped from the key
        """
        env = {
            key[len(prefix):]: value
            for key, value in os.environ.items()
            if key.startswith(prefix) and len(key) > len(prefix)
        }
        return self.add_json({'env': env})

    def build(self) -> ConfigManager:
        """Merge all layers (last one wins) and push the result into the configuration."""
        merged = defaults_deep({}, *reversed(self._layers))
        self.config.set_data(merged)
        return self.config
