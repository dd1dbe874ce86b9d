"""
Dendrite Core: Configuration Validators.

This module validates the merged configuration before any component is
built from it. Every validator returns True or raises ValidationError.
"""
import ipaddress
import os
import stat
from typing import Any, Dict, List, Union

from dendrite.core.constants import LOG_FORMATS, LOG_LEVELS, ConfigKey, ErrorCode


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate the merged Dendrite configuration.

    ``file_roots`` must already be normalized to a list of
    ``{"virtual": ..., "source": ...}`` dictionaries.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    main = config.get(ConfigKey.MAIN, {})
    if not isinstance(main, dict):
        raise ValidationError("'main' section must be a dictionary")

    log = config.get(ConfigKey.LOG, {})
    if not isinstance(log, dict):
        raise ValidationError("'log' section must be a dictionary")

    validate_listen_address(main.get(ConfigKey.LISTEN))
    validate_port(main.get(ConfigKey.PORT))
    validate_timeout(main.get(ConfigKey.REQUEST_TIMEOUT))
    validate_log_level(log.get(ConfigKey.LOG_LEVEL))
    validate_log_format(log.get(ConfigKey.LOG_FORMAT))

    return validate_file_roots(config.get(ConfigKey.FILE_ROOTS, []))


def validate_listen_address(address: Any) -> bool:
    """Validate that the listen address is a literal IPv4/IPv6 address.

    Raises:
        ValidationError: If address is not an IP address
    """
    try:
        ipaddress.ip_address(str(address))
    except ValueError:
        raise ValidationError(f"invalid listen address: {address}")
    return True


def validate_port(port: Union[int, str]) -> bool:
    """Validate network port number.

    Args:
        port: Port number to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If port is invalid
    """
    if isinstance(port, bool):
        raise ValidationError(f"invalid port: {port}")
    try:
        port_num = int(port)
    except (ValueError, TypeError):
        raise ValidationError(f"invalid port: {port}")

    if port_num < 1 or port_num > 65535:
        raise ValidationError(f"invalid port: {port_num}")

    return True


def validate_timeout(timeout: Union[int, float]) -> bool:
    """Validate the per-request timeout in seconds."""
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValidationError(f"Timeout must be numeric, got {type(timeout).__name__}")

    if timeout <= 0:
        raise ValidationError(f"Timeout must be positive: {timeout}")

    return True


def validate_log_level(level: Any) -> bool:
    """Validate log level name (case-insensitive)."""
    if not isinstance(level, str) or level.lower() not in LOG_LEVELS:
        raise ValidationError(f"invalid log level: {level}")
    return True


def validate_log_format(fmt: Any) -> bool:
    """Validate log output format (case-insensitive)."""
    if not isinstance(fmt, str) or fmt.lower() not in LOG_FORMATS:
        raise ValidationError(f"invalid log format: {fmt}")
    return True


def validate_file_roots(roots: List[Dict[str, Any]]) -> bool:
    """Validate file root definitions.

    Each root maps a virtual folder ("/" or a single segment such as
    "/public") to an existing, absolute source directory.

    Args:
        roots: List of root dictionaries

    Returns:
        True if valid

    Raises:
        ValidationError: If any root is invalid or a virtual name repeats
    """
    if not isinstance(roots, list) or not roots:
        raise ValidationError("no file roots configured")

    seen = set()
    for i, root in enumerate(roots):
        if not isinstance(root, dict):
            raise ValidationError(f"file root {i}: must be a mapping with 'virtual' and 'source'")

        virtual = root.get(ConfigKey.ROOT_VIRTUAL, "")
        source = root.get(ConfigKey.ROOT_SOURCE, "")
        if not isinstance(virtual, str) or not isinstance(source, str):
            raise ValidationError(f"file root {i}: virtual and source must be strings")

        if virtual.strip() != virtual or source.strip() != source:
            raise ValidationError(f"file root {i}: leading or trailing whitespace is not allowed")
        if not virtual:
            raise ValidationError(f"file root {i}: virtual cannot be empty")
        if not source:
            raise ValidationError(f"file root {i}: source cannot be empty")
        if not virtual.startswith("/"):
            raise ValidationError(f"file root {i}: virtual must start with '/'")
        if virtual != "/" and virtual.count("/") != 1:
            raise ValidationError(
                f"file root {i}: virtual must be '/' or a single folder (e.g. '/public')"
            )
        if ":" in virtual:
            raise ValidationError(f"file root {i}: virtual path cannot contain a colon")
        if ":" in source:
            raise ValidationError(f"file root {i}: source path cannot contain a colon")
        if not source.startswith("/") or not os.path.isabs(source):
            raise ValidationError(
                f"file root {i}: source must be an absolute path starting with '/': {source}"
            )

        try:
            st = os.stat(source)
        except FileNotFoundError:
            raise ValidationError(
                f"file root {i}: source does not exist: {source}", ErrorCode.NOT_FOUND
            )
        except OSError as e:
            raise ValidationError(f"file root {i}: stat source {source}: {e.strerror}")
        if not stat.S_ISDIR(st.st_mode):
            raise ValidationError(f"file root {i}: source is not a directory: {source}")

        if virtual in seen:
            raise ValidationError(
                f"file root {i}: duplicate virtual path: {virtual}", ErrorCode.CONFLICT
            )
        seen.add(virtual)

    return True
