"""Per-request cancellation for long-running file operations.

A RequestContext is created by the transport for each request and handed to
the directory lister, which polls it between child resolutions.

Example:
    >>> ctx = RequestContext(timeout=30)
    >>> ctx.check()          # raises CanceledError once canceled or expired
    >>> ctx.cancel()
"""
import threading
import time
from typing import Optional

from dendrite.files.errors import CanceledError


class RequestContext:
    """Cooperative cancellation token with an optional deadline."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds until the context expires (None = never)
        """
        self._canceled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._reason = "context canceled"

    @classmethod
    def background(cls) -> "RequestContext":
        """A context that is never canceled on its own."""
        return cls()

    def cancel(self, reason: str = "context canceled") -> None:
        """Mark the context as canceled."""
        self._reason = reason
        self._canceled.set()

    @property
    def deadline(self) -> Optional[float]:
        """Monotonic deadline, if any."""
        return self._deadline

    def is_done(self) -> bool:
        """True once canceled or past the deadline."""
        if self._canceled.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._reason = "context deadline exceeded"
            return True
        return False

    def check(self, virtual_path: Optional[str] = None) -> None:
        """Raise CanceledError if the context is done.

        Raises:
            CanceledError: When canceled or timed out
        """
        if self.is_done():
            raise CanceledError(f"context canceled: {self._reason}", virtual_path)
