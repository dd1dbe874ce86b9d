#!/usr/bin/env python3
"""Structured logging system for Dendrite.

This module provides a structured logger with:
- Log levels matching Python's logging module (plus the "warn" alias)
- Structured context (key-value pairs) rendered as ``msg | k=v`` or JSON
- Console, stdout (no timestamps) and rotating file outputs
- Thread-local context management for per-request fields

Example:
    >>> logger = Logger.from_settings("dendrite", log_file="-", log_format="json")
    >>> logger.info("server started", port=3000)
    >>> with logger.add_context(request_id="123"):
    ...     logger.debug("new request", path="/api/v1/files")
"""

import json
import logging
import logging.handlers
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG  # 10
    INFO = logging.INFO  # 20
    WARNING = logging.WARNING  # 30
    ERROR = logging.ERROR  # 40
    CRITICAL = logging.CRITICAL  # 50

    @classmethod
    def parse(cls, level: Union["LogLevel", int, str]) -> "LogLevel":
        """Parse a level name; "warn" is accepted for WARNING and "" for INFO.

        Raises:
            ValueError: If the name is unknown
        """
        if isinstance(level, LogLevel):
            return level
        if isinstance(level, int):
            return cls(level)
        name = level.strip().upper()
        if name == "":
            return cls.INFO
        if name == "WARN":
            return cls.WARNING
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"invalid log level: {level}")


TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_FORMAT_NO_TIME = "%(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Context passed through ``extra={"context": ...}`` is merged into the
    top-level object.
    """

    def __init__(self, timestamps: bool = True):
        super().__init__()
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {}
        if self.timestamps:
            payload["time"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        payload["level"] = record.levelname
        payload["logger"] = record.name
        payload["msg"] = getattr(record, "plain_message", record.getMessage())
        for key, value in getattr(record, "context", {}).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class Logger:
    """Structured logger with context support.

    Wraps a standard library logger. Key-value context given per call or
    pushed with ``add_context`` is attached to every record.
    """

    # Thread-local storage for context
    _context_stack = threading.local()

    def __init__(
        self,
        name: str = "dendrite",
        level: Union[LogLevel, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        Args:
            name: Logger name for identification
            level: Minimum log level to output
            handlers: Optional list of logging handlers (stderr console if None)
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.set_level(level)

        if handlers is None:
            handlers = [self.create_stream_handler(sys.stderr)]

        self.logger.handlers.clear()
        for handler in handlers:
            self.logger.addHandler(handler)

        # Prevent propagation to root logger
        self.logger.propagate = False

    @classmethod
    def from_settings(
        cls,
        name: str = "dendrite",
        log_file: str = "",
        log_format: str = "text",
        level: Union[LogLevel, str] = LogLevel.INFO,
    ) -> "Logger":
        """Build a logger from the ``log`` configuration section.

        Args:
            name: Logger name
            log_file: "" for stderr, "-" for stdout without timestamps,
                otherwise a file path (appended, rotated, timestamped)
            log_format: "text" or "json"
            level: Minimum level

        Raises:
            ValueError: On unknown format or level
            OSError: If the log file cannot be opened
        """
        log_format = log_format.lower()
        if log_format not in ("text", "json"):
            raise ValueError(f"invalid log format: {log_format}")
        level = LogLevel.parse(level)

        logger = cls(name=name, level=level, handlers=[])
        json_output = log_format == "json"
        if log_file == "-":
            handler = logger.create_stream_handler(
                sys.stdout, timestamps=False, json_output=json_output
            )
        elif log_file:
            handler = logger.create_file_handler(log_file, json_output=json_output)
        else:
            handler = logger.create_stream_handler(sys.stderr, json_output=json_output)
        logger.add_handler(handler)
        return logger

    def create_stream_handler(
        self, stream: TextIO, timestamps: bool = True, json_output: bool = False
    ) -> logging.StreamHandler:
        """Create a stream handler.

        Args:
            stream: Output stream
            timestamps: Include the record time
            json_output: Emit JSON lines instead of text

        Returns:
            Configured stream handler
        """
        handler = logging.StreamHandler(stream)
        handler.setFormatter(self._make_formatter(timestamps, json_output))
        return handler

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        json_output: bool = False,
    ) -> logging.handlers.RotatingFileHandler:
        """Create rotating file handler.

        Args:
            filename: Path to log file
            max_bytes: Maximum size before rotation
            backup_count: Number of backup files to keep
            json_output: Emit JSON lines instead of text

        Returns:
            Configured rotating file handler
        """
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        handler.setFormatter(self._make_formatter(True, json_output))
        return handler

    @staticmethod
    def _make_formatter(timestamps: bool, json_output: bool) -> logging.Formatter:
        if json_output:
            return JsonFormatter(timestamps=timestamps)
        if timestamps:
            return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
        return logging.Formatter(TEXT_FORMAT_NO_TIME)

    def add_handler(self, handler: logging.Handler) -> None:
        """Add a new output handler."""
        self.logger.addHandler(handler)

    def remove_handler(self, handler: logging.Handler) -> None:
        """Remove an output handler."""
        self.logger.removeHandler(handler)

    def close(self) -> None:
        """Flush and close every attached handler."""
        for handler in list(self.logger.handlers):
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        """Set the minimum log level.

        Args:
            level: New log level (LogLevel or string)
        """
        self.logger.setLevel(LogLevel.parse(level))

    def get_level(self) -> LogLevel:
        """Get current log level."""
        return LogLevel(self.logger.level)

    def is_enabled_for(self, level: Union[LogLevel, str]) -> bool:
        """Check if logger is enabled for given level."""
        return self.logger.isEnabledFor(LogLevel.parse(level))

    def _get_context(self) -> Dict[str, Any]:
        """Merge the thread-local context stack into one dictionary."""
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        context: Dict[str, Any] = {}
        for ctx in self._context_stack.stack:
            context.update(ctx)
        return context

    @staticmethod
    def _format_message(msg: str, context: Dict[str, Any]) -> str:
        if context:
            ctx_str = " ".join(f"{k}={v}" for k, v in context.items())
            return f"{msg} | {ctx_str}"
        return msg

    @contextmanager
    def add_context(self, **kwargs):
        """Context manager to add temporary context.

        Args:
            **kwargs: Key-value pairs to add to context

        Example:
            >>> with logger.add_context(request_id="123"):
            ...     logger.info("Processing request")
        """
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        self._context_stack.stack.append(kwargs)
        try:
            yield
        finally:
            self._context_stack.stack.pop()

    def _log(self, level: int, msg: str, context: Dict[str, Any], exc_info: Any = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        combined = self._get_context()
        combined.update(context)
        self.logger.log(
            level,
            self._format_message(msg, combined),
            exc_info=exc_info,
            extra={"context": combined, "plain_message": msg},
        )

    def debug(self, msg: str, **context) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, context)

    def exception(self, msg: str, exc: BaseException, **context) -> None:
        """Log exception with traceback.

        Args:
            msg: Log message
            exc: Exception to log
            **context: Additional context key-value pairs
        """
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self._log(logging.ERROR, msg, context, exc_info=exc)


# Loggers shared by name
_loggers: Dict[str, Logger] = {}
_loggers_lock = threading.Lock()


def get_logger(name: str = "dendrite") -> Logger:
    """Get or create the shared logger for ``name``."""
    with _loggers_lock:
        if name not in _loggers:
            _loggers[name] = Logger(name=name)
        return _loggers[name]


def set_global_logger(logger: Logger) -> None:
    """Register ``logger`` as the shared instance for its name."""
    with _loggers_lock:
        _loggers[logger.name] = logger
