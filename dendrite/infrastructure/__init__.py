"""Dendrite Infrastructure Layer.

This layer provides the ambient services used by the file and server layers:
- ConfigManager: Layered configuration (defaults, YAML file, environment, CLI)
- Logger: Structured logging system
"""

from .config_manager import (
    ConfigError,
    ConfigManager,
    ConfigSource,
    FileRootConfig,
    Settings,
    normalize_file_roots,
    parse_file_root_definitions,
)
from .logger import JsonFormatter, Logger, LogLevel, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "JsonFormatter",
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # ConfigManager exports
    "ConfigError",
    "ConfigManager",
    "ConfigSource",
    "FileRootConfig",
    "Settings",
    "normalize_file_roots",
    "parse_file_root_definitions",
]
