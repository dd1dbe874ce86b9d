"""Exceptions raised by the file access layer.

Every exception carries an ErrorCode and, where one is known, the virtual
path the caller asked for. Host paths never appear in messages.
"""
import errno
from typing import Optional

from dendrite.core.constants import ErrorCode


class FileServiceError(Exception):
    """Base exception for file access errors."""

    error_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, virtual_path: Optional[str] = None):
        """Initialize FileServiceError.

        Args:
            message: Error message
            virtual_path: Virtual path the error concerns
        """
        super().__init__(message)
        self.message = message
        self.virtual_path = virtual_path


class RegistryError(FileServiceError):
    """Root registry could not be constructed."""

    error_code = ErrorCode.INVALID_INPUT


class RootNotFoundError(FileServiceError):
    """The requested virtual root is not configured."""

    error_code = ErrorCode.NOT_FOUND


class OutsideRootError(FileServiceError):
    """A path or symlink target escapes its configured root."""

    error_code = ErrorCode.OUTSIDE_ROOT


class NotADirectory(FileServiceError):
    """A listing was requested for something that is not a folder."""

    error_code = ErrorCode.NOT_A_DIRECTORY


class NotFoundError(FileServiceError):
    """The entry does not exist."""

    error_code = ErrorCode.NOT_FOUND


class PermissionDeniedError(FileServiceError):
    """The process may not access the entry."""

    error_code = ErrorCode.PERMISSION_DENIED


class StatFailureError(FileServiceError):
    """Any other failure of an underlying filesystem call."""

    error_code = ErrorCode.INTERNAL_ERROR


class CanceledError(FileServiceError):
    """The request was canceled or ran past its deadline."""

    error_code = ErrorCode.CANCELED


class InvalidQueryParameterError(FileServiceError):
    """A listing query parameter is malformed or out of range."""

    error_code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, parameter: str):
        super().__init__(message)
        self.parameter = parameter


def wrap_os_error(exc: OSError, action: str, virtual_path: str) -> FileServiceError:
    """Translate an OSError into the matching FileServiceError.

    Args:
        exc: The original error
        action: Short verb phrase for the message, e.g. "stat"
        virtual_path: Virtual path being processed

    Returns:
        NotFoundError, PermissionDeniedError or StatFailureError
    """
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return NotFoundError(f"{action} {virtual_path}: no such file or directory", virtual_path)
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError(f"{action} {virtual_path}: permission denied", virtual_path)
    reason = exc.strerror or type(exc).__name__
    return StatFailureError(f"{action} {virtual_path}: {reason.lower()}", virtual_path)
