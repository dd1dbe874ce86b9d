#!/usr/bin/env python3
"""Layered configuration manager for Dendrite.

This module provides configuration management with:
- 4-level precedence hierarchy (defaults < file < environment < CLI)
- YAML configuration files
- DENDRITE_* environment variable overrides
- File root definitions as mappings or ``virtual:source`` strings
- Validation into an immutable Settings object

Example:
    >>> config = ConfigManager()
    >>> config.load_file("/etc/dendrite/dendrite.yaml")
    >>> config.get("main.port", default=3000)
    >>> settings = config.load_settings()
"""

import copy
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from dendrite.core.constants import DEFAULT_CONFIG, ConfigKey, ErrorCode
from dendrite.core.validators import ValidationError, validate_config

ENV_PREFIX = "DENDRITE_"


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    CONFIG_FILE = 2
    ENVIRONMENT = 3
    CLI_ARGS = 4  # Highest precedence


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


@dataclass(frozen=True)
class FileRootConfig:
    """A configured ``virtual -> source`` mapping."""

    virtual: str
    source: str


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings."""

    listen: str
    port: int
    request_timeout: float
    log_file: str
    log_level: str
    log_format: str
    file_roots: Tuple[FileRootConfig, ...] = field(default_factory=tuple)


def parse_file_root_definitions(defs: List[str]) -> List[FileRootConfig]:
    """Parse ``virtual:source`` definitions.

    Each definition may hold several comma-separated entries, e.g.
    ``"/public:/srv/public,/media:/srv/media"``.

    Raises:
        ConfigError: On empty definitions or malformed entries
    """
    roots: List[FileRootConfig] = []

    for i, definition in enumerate(defs):
        if not definition:
            raise ConfigError(f"file root {i}: empty definition")

        for j, entry in enumerate(definition.split(",")):
            if not entry:
                raise ConfigError(f"file root {i} entry {j}: empty definition")

            virtual, sep, source = entry.partition(":")
            if not sep:
                raise ConfigError(f"file root {i} entry {j}: expected format virtual:source")
            if not virtual or not source:
                raise ConfigError(
                    f"file root {i} entry {j}: virtual and source must be non-empty"
                )

            roots.append(FileRootConfig(virtual=virtual, source=source))

    return roots


def normalize_file_roots(raw: Any) -> List[Dict[str, Any]]:
    """Normalize the ``file_roots`` value to a list of mappings.

    Accepts None, a definition string, a list of definition strings or a
    list of ``{virtual, source}`` mappings.
    """
    if raw is None or raw == "" or raw == []:
        return []

    if isinstance(raw, str):
        raw = [raw]

    if not isinstance(raw, list):
        raise ConfigError("decode file roots: expected a list or a 'virtual:source' string")

    if all(isinstance(item, str) for item in raw):
        return [
            {ConfigKey.ROOT_VIRTUAL: r.virtual, ConfigKey.ROOT_SOURCE: r.source}
            for r in parse_file_root_definitions(raw)
        ]

    roots = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"decode file roots: entry {i} must be a mapping")
        roots.append(dict(item))
    return roots


class ConfigManager:
    """Thread-safe layered configuration manager.

    Manages configuration from multiple sources with precedence:
    1. Compiled defaults (lowest)
    2. Configuration file (YAML)
    3. Environment variables (DENDRITE_*)
    4. CLI arguments (highest)

    Nested dictionaries are merged; lists and scalars are replaced.
    """

    def __init__(
        self,
        config_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Optional config file to load (missing file is ignored)
            environ: Environment mapping (defaults to os.environ)
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file, missing_ok=True)

        self._load_environment(os.environ if environ is None else environ)

    def load_file(self, file_path: str, missing_ok: bool = False) -> bool:
        """Load configuration from YAML file.

        Args:
            file_path: Path to YAML config file
            missing_ok: Silently skip a file that does not exist

        Returns:
            True if the file was loaded, False if it was missing and skipped

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            if missing_ok:
                return False
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"read config: YAML parse error in {file_path}: {e}")
        except OSError as e:
            raise ConfigError(
                f"read config: {file_path}: {e.strerror}", ErrorCode.PERMISSION_DENIED
            )

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"read config: {file_path} must contain a YAML mapping")

        with self._lock:
            self._config[ConfigSource.CONFIG_FILE] = config_data
        return True

    def load_dict(
        self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.CLI_ARGS
    ) -> None:
        """Load configuration from dictionary.

        Args:
            config_data: Configuration dictionary
            source: Configuration source level
        """
        with self._lock:
            self._config[source] = copy.deepcopy(config_data)

    def _load_environment(self, environ: Mapping[str, str]) -> None:
        """Load configuration from environment variables.

        ``DENDRITE_<SECTION>_<KEY>=value`` sets ``section.key`` for the
        ``main`` and ``log`` sections; ``DENDRITE_FILE_ROOTS`` holds
        comma-separated ``virtual:source`` definitions.
        Example: DENDRITE_MAIN_PORT=8080
        """
        env_config: Dict[str, Any] = {}

        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            name = key[len(ENV_PREFIX):].lower()
            if name == ConfigKey.FILE_ROOTS:
                env_config[ConfigKey.FILE_ROOTS] = value
                continue

            section, sep, option = name.partition("_")
            if not sep or section not in (ConfigKey.MAIN, ConfigKey.LOG):
                continue
            env_config.setdefault(section, {})[option] = self._parse_env_value(value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = env_config

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable value into bool, int, float or str."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Dot-separated key path (e.g., "main.port")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    @staticmethod
    def _get_nested(config: Dict[str, Any], key: str) -> Optional[Any]:
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.CLI_ARGS) -> None:
        """Set configuration value.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration source level
        """
        with self._lock:
            current = self._config.setdefault(source, {})
            parts = key.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all sources, lowest precedence first."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])
            return merged

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = copy.deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Clear configuration.

        Args:
            source: Specific source to clear, or None for all except defaults
        """
        with self._lock:
            if source:
                if source != ConfigSource.COMPILED_DEFAULTS:
                    self._config.pop(source, None)
            else:
                for s in [s for s in self._config if s != ConfigSource.COMPILED_DEFAULTS]:
                    del self._config[s]

    def load_settings(self) -> Settings:
        """Merge, validate and freeze the configuration.

        Raises:
            ConfigError: If the merged configuration is invalid
        """
        merged = self.get_all()
        merged[ConfigKey.FILE_ROOTS] = normalize_file_roots(merged.get(ConfigKey.FILE_ROOTS))

        try:
            validate_config(merged)
        except ValidationError as e:
            raise ConfigError(f"validate config: {e}", e.error_code) from e

        main = merged[ConfigKey.MAIN]
        log = merged[ConfigKey.LOG]
        return Settings(
            listen=str(main[ConfigKey.LISTEN]),
            port=int(main[ConfigKey.PORT]),
            request_timeout=float(main[ConfigKey.REQUEST_TIMEOUT]),
            log_file=str(log.get(ConfigKey.LOG_FILE) or ""),
            log_level=str(log[ConfigKey.LOG_LEVEL]).lower(),
            log_format=str(log[ConfigKey.LOG_FORMAT]).lower(),
            file_roots=tuple(
                FileRootConfig(
                    virtual=r[ConfigKey.ROOT_VIRTUAL], source=r[ConfigKey.ROOT_SOURCE]
                )
                for r in merged[ConfigKey.FILE_ROOTS]
            ),
        )
