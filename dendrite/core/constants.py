"""
Dendrite Core: Constants and Type Definitions

This module provides system-wide constants, error codes, resource kinds and
the compiled configuration defaults.
"""
import stat
from enum import Enum, IntEnum
from typing import TypeAlias

# Version information
DENDRITE_VERSION = "1.0.0"
DENDRITE_API_VERSION = 1

API_PREFIX = "/api/v1"
FILES_PREFIX = API_PREFIX + "/files"
PING_PATH = API_PREFIX + "/ping"

# JSON:API media type
JSONAPI_CONTENT_TYPE = "application/vnd.api+json"


# Error codes (0-9 range)
class ErrorCode(IntEnum):
    """Standardized error codes for Dendrite operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, bad query parameter, invalid configuration
    NOT_FOUND = 2  # File, root or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    OUTSIDE_ROOT = 4  # Path or symlink target escapes its root
    NOT_A_DIRECTORY = 5  # Listing requested on a non-folder
    INTERNAL_ERROR = 6  # Bug in Dendrite or unexpected I/O failure
    CANCELED = 7  # Request canceled or timed out
    CONFLICT = 8  # Duplicate definitions
    DEGRADED = 9  # Running with reduced functionality


# Type aliases for clarity
VirtualPath: TypeAlias = str
RelativePath: TypeAlias = str
SourcePath: TypeAlias = str


class Limits:
    """Request limits and default values."""

    # Listing pagination
    DEFAULT_PAGE_LIMIT = 200
    MAX_PAGE_LIMIT = 500

    # Content sniffing reads at most this many leading bytes
    SNIFF_LENGTH = 512

    # Streaming chunk size for file delivery
    STREAM_CHUNK_SIZE = 64 * 1024

    # Seconds a single request may spend enumerating a directory
    DEFAULT_REQUEST_TIMEOUT = 30

    # Seconds to wait for in-flight requests at shutdown
    SHUTDOWN_TIMEOUT = 5


class ResourceKind(str, Enum):
    """Classification of a filesystem entry.

    A path's own kind may be any member; the kind of a symlink's target is
    always FILE or FOLDER.
    """

    FILE = "file"
    FOLDER = "folder"
    SYMLINK = "symlink"

    @classmethod
    def from_mode(cls, mode: int) -> "ResourceKind":
        """Classify a (non-following) stat mode."""
        if stat.S_ISDIR(mode):
            return cls.FOLDER
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        return cls.FILE


# Sentinel MIME types for entries that are never sniffed
MIME_DIRECTORY = "inode/directory"
MIME_SYMLINK = "inode/symlink"
MIME_FALLBACK = "application/octet-stream"


class ConfigKey:
    """Configuration key constants."""

    # Top-level keys
    MAIN = "main"
    LOG = "log"
    FILE_ROOTS = "file_roots"

    # Main section
    LISTEN = "listen"
    PORT = "port"
    REQUEST_TIMEOUT = "request_timeout"

    # Log section
    LOG_FILE = "file"
    LOG_LEVEL = "level"
    LOG_FORMAT = "format"

    # File root entries
    ROOT_VIRTUAL = "virtual"
    ROOT_SOURCE = "source"


LOG_LEVELS = ("debug", "info", "warn", "error")
LOG_FORMATS = ("text", "json")

DEFAULT_CONFIG_PATH = "/etc/dendrite/dendrite.yaml"

# Compiled configuration defaults (lowest precedence)
DEFAULT_CONFIG = {
    ConfigKey.MAIN: {
        ConfigKey.LISTEN: "127.0.0.1",
        ConfigKey.PORT: 3000,
        ConfigKey.REQUEST_TIMEOUT: Limits.DEFAULT_REQUEST_TIMEOUT,
    },
    ConfigKey.LOG: {
        ConfigKey.LOG_FILE: "",
        ConfigKey.LOG_LEVEL: "info",
        ConfigKey.LOG_FORMAT: "text",
    },
    ConfigKey.FILE_ROOTS: [],
}
