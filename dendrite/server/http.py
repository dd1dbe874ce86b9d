"""HTTP transport for Dendrite.

This module exposes the file service over a small JSON:API surface:
- GET  /api/v1/ping            liveness document
- GET  /api/v1/files           top-level collection (roots, or a lone "/" root's contents)
- GET  /api/v1/files/<path>    folder listing or file download
- HEAD on any of the above     headers only

The server runs in a background thread and handles each request in its own
thread. Every request gets a RequestContext bounded by the configured
timeout; stopping the server cancels the contexts still in flight.

Example:
    >>> from dendrite.server.http import FileServer
    >>> server = FileServer(service, host="127.0.0.1", port=3000)
    >>> server.start()
"""

import email.utils
import http.server
import json
import os
import re
import shutil
import socket
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, Set, Tuple
from urllib.parse import parse_qs, quote, unquote, urlsplit

from dendrite.core.constants import (
    DENDRITE_VERSION,
    FILES_PREFIX,
    JSONAPI_CONTENT_TYPE,
    MIME_FALLBACK,
    PING_PATH,
    Limits,
)
from dendrite.files import query
from dendrite.files.base import Descriptor
from dendrite.files.context import RequestContext
from dendrite.files.errors import (
    CanceledError,
    FileServiceError,
    InvalidQueryParameterError,
    NotADirectory,
    NotFoundError,
    OutsideRootError,
    PermissionDeniedError,
    RootNotFoundError,
    wrap_os_error,
)
from dendrite.files.service import FileService
from dendrite.infrastructure.logger import Logger, get_logger
from dendrite.server.jsonapi import collection_document, error_document, ping_document

REQUEST_ID_HEADER = "X-Request-ID"
INTERNAL_ERROR_DETAIL = "An unexpected error occurred."
ALLOWED_METHODS = "GET, HEAD"
TRAILING_SLASH_DETAIL = "trailing slash is not allowed"

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

# First matching class wins; None keeps the exception's own message.
ERROR_STATUS: List[Tuple[type, int, Optional[str]]] = [
    (RootNotFoundError, 404, "file root not found"),
    (OutsideRootError, 400, "path escapes configured root"),
    (InvalidQueryParameterError, 400, None),
    (CanceledError, 408, "request canceled"),
    (PermissionDeniedError, 403, "permission denied"),
    (NotFoundError, 404, "file not found"),
    (NotADirectory, 400, "not a directory"),
]


class FileServerError(Exception):
    """Exception raised when the HTTP server cannot be started."""

    pass


def error_status(exc: BaseException) -> Tuple[int, str]:
    """Map an exception to ``(status, detail)`` for the error document."""
    for cls, status, detail in ERROR_STATUS:
        if isinstance(exc, cls):
            return status, detail if detail is not None else str(exc)
    return 500, INTERNAL_ERROR_DETAIL


def content_disposition(name: str) -> str:
    """Attachment disposition.

    Control characters in the quoted form become "_" so a name can never
    break out of the header line. Names that are not plain printable ASCII
    also get an RFC 5987 form carrying the exact name.
    """
    ascii_name = _CONTROL_CHARS_RE.sub("_", name.encode("ascii", "replace").decode("ascii"))
    escaped = ascii_name.replace("\\", "\\\\").replace('"', '\\"')
    value = f'attachment; filename="{escaped}"'
    if ascii_name != name:
        value += f"; filename*=UTF-8''{quote(name, safe='')}"
    return value


class FileRequestHandler(http.server.BaseHTTPRequestHandler):
    """Request handler for the files API."""

    server_version = f"dendrite/{DENDRITE_VERSION}"

    def log_message(self, format, *args):
        """Override to use our logger instead of stderr."""
        self.server.logger.debug(format % args)

    def log_request(self, code="-", size="-"):
        # Requests are logged once, with structured fields, by _dispatch.
        self._status = int(code) if isinstance(code, int) else code

    # =========================================================================
    # Method entry points
    # =========================================================================

    def do_GET(self):
        """Handle GET requests."""
        self._dispatch(lambda: self._route(head=False))

    def do_HEAD(self):
        """Handle HEAD requests."""
        self._dispatch(lambda: self._route(head=True))

    def _method_not_allowed(self):
        self._dispatch(lambda: self._send_error(405, head=False, extra={"Allow": ALLOWED_METHODS}))

    do_POST = _method_not_allowed
    do_PUT = _method_not_allowed
    do_PATCH = _method_not_allowed
    do_DELETE = _method_not_allowed
    do_OPTIONS = _method_not_allowed

    # =========================================================================
    # Dispatch and routing
    # =========================================================================

    def _dispatch(self, handler: Callable[[], None]) -> None:
        logger: Logger = self.server.logger
        self._status = None
        self._headers_sent = False
        self._request_id = self.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        head = self.command == "HEAD"

        with logger.add_context(request_id=self._request_id):
            try:
                handler()
            except FileServiceError as e:
                status, detail = error_status(e)
                self._send_error(status, detail, head=head)
            except (BrokenPipeError, ConnectionResetError):
                logger.debug("Client disconnected", path=self.path)
            except Exception as e:
                logger.exception("Unhandled error serving request", e, path=self.path)
                self._send_error(500, INTERNAL_ERROR_DETAIL, head=head)
            finally:
                logger.debug(
                    "new request",
                    path=self.path,
                    method=self.command,
                    remote_ip=self.client_address[0],
                    user_agent=self.headers.get("User-Agent", ""),
                    status=self._status,
                )

    def _route(self, head: bool) -> None:
        parsed = urlsplit(self.path)
        path = parsed.path
        params = parse_qs(parsed.query, keep_blank_values=True)

        # One canonical URL per resource.
        if path != "/" and path.endswith("/"):
            self._send_error(404, TRAILING_SLASH_DETAIL, head=head)
        elif path == PING_PATH:
            self._send_json(200, ping_document(), head)
        elif path == FILES_PREFIX:
            self._serve_collection(path, params, head)
        elif path.startswith(FILES_PREFIX + "/"):
            self._serve_resource(unquote(path), params, head)
        else:
            self._send_error(404, head=head)

    # =========================================================================
    # Files endpoints
    # =========================================================================

    def _serve_collection(self, base_path: str, params: Dict[str, List[str]], head: bool) -> None:
        service: FileService = self.server.service
        list_params = query.parse_list_params(params)
        with self.server.request_context() as ctx:
            entries = service.list_collection(ctx)
        self._send_page(entries, list_params, base_path, head)

    def _serve_resource(self, path: str, params: Dict[str, List[str]], head: bool) -> None:
        service: FileService = self.server.service
        root, rel = service.match_root(path[len(FILES_PREFIX) :])
        descriptor = service.resolve(root.virtual, rel)

        if descriptor.is_folder:
            list_params = query.parse_list_params(params)
            with self.server.request_context() as ctx:
                entries = service.list_directory(root.virtual, rel, ctx)
            self._send_page(entries, list_params, path, head)
            return

        download = params.get("download", [""])[0] == "1"
        self._send_file(descriptor, download, head)

    def _send_page(
        self, entries: List[Descriptor], params: query.ListParams, base_path: str, head: bool
    ) -> None:
        page = query.apply(entries, params, base_path)
        self._send_json(200, collection_document(page), head)

    def _send_file(self, descriptor: Descriptor, download: bool, head: bool) -> None:
        meta = descriptor.metadata
        try:
            f = open(descriptor.absolute_path, "rb")
        except OSError as e:
            raise wrap_os_error(e, "open", descriptor.virtual_path) from e

        with f:
            size = self._file_size(f, descriptor)
            self.send_response(200)
            self.send_header("Content-Type", meta.mime_type or MIME_FALLBACK)
            self.send_header("Content-Length", str(size))
            if meta.modified_at is not None:
                self.send_header(
                    "Last-Modified", email.utils.format_datetime(meta.modified_at, usegmt=True)
                )
            if download:
                self.send_header("Content-Disposition", content_disposition(meta.name))
            self._end_headers()
            if not head:
                shutil.copyfileobj(f, self.wfile, Limits.STREAM_CHUNK_SIZE)

    @staticmethod
    def _file_size(f, descriptor: Descriptor) -> int:
        try:
            return os.fstat(f.fileno()).st_size
        except OSError as e:
            raise wrap_os_error(e, "stat", descriptor.virtual_path) from e

    # =========================================================================
    # Response helpers
    # =========================================================================

    def _end_headers(self) -> None:
        self.send_header(REQUEST_ID_HEADER, self._request_id)
        self._headers_sent = True
        self.end_headers()

    def _send_json(self, status: int, document: Dict[str, Any], head: bool) -> None:
        """
        Send a JSON:API document.

        Args:
            status: HTTP status code
            document: Response document
            head: Omit the body
        """
        body = json.dumps(document).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", JSONAPI_CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        self._end_headers()
        if not head:
            self.wfile.write(body)

    def _send_error(
        self,
        status: int,
        detail: Optional[str] = None,
        head: bool = False,
        extra: Optional[Dict[str, str]] = None,
    ) -> None:
        """Send an error document unless a response is already under way."""
        if self._headers_sent:
            self.server.logger.warning(
                "Error after response started", path=self.path, status=status
            )
            return

        body = json.dumps(error_document(status, detail)).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", JSONAPI_CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        for name, value in (extra or {}).items():
            self.send_header(name, value)
        self._end_headers()
        if not head:
            self.wfile.write(body)


class DendriteHTTPServer(http.server.ThreadingHTTPServer):
    """Threaded HTTP server carrying the file service and request contexts."""

    daemon_threads = True

    def __init__(
        self,
        address: Tuple[str, int],
        service: FileService,
        logger: Logger,
        request_timeout: Optional[float] = None,
    ):
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(address, FileRequestHandler)
        self.service = service
        self.logger = logger
        self.request_timeout = request_timeout
        self._contexts: Set[RequestContext] = set()
        self._contexts_lock = threading.Lock()

    def request_context(self) -> "_TrackedContext":
        """Context manager yielding a fresh RequestContext for one request."""
        return _TrackedContext(self)

    def register_context(self, ctx: RequestContext) -> None:
        with self._contexts_lock:
            self._contexts.add(ctx)

    def release_context(self, ctx: RequestContext) -> None:
        with self._contexts_lock:
            self._contexts.discard(ctx)

    def cancel_all(self, reason: str) -> int:
        """Cancel every in-flight request context; returns how many."""
        with self._contexts_lock:
            contexts = list(self._contexts)
        for ctx in contexts:
            ctx.cancel(reason)
        return len(contexts)


class _TrackedContext:
    def __init__(self, server: DendriteHTTPServer):
        self.server = server
        self.ctx = RequestContext(timeout=server.request_timeout)

    def __enter__(self) -> RequestContext:
        self.server.register_context(self.ctx)
        return self.ctx

    def __exit__(self, *exc_info) -> None:
        self.server.release_context(self.ctx)


class FileServer:
    """
    HTTP server exposing a FileService.

    Provides:
    - Background serving thread with per-request worker threads
    - Graceful stop that cancels in-flight listings
    """

    def __init__(
        self,
        service: FileService,
        host: str = "127.0.0.1",
        port: int = 3000,
        request_timeout: Optional[float] = Limits.DEFAULT_REQUEST_TIMEOUT,
        logger: Optional[Logger] = None,
    ):
        """
        Initialize the file server.

        Args:
            service: File service to expose
            host: Listen address
            port: Listen port (0 picks a free port)
            request_timeout: Seconds a listing may take (None = unbounded)
            logger: Logger instance (default: shared "dendrite.server" logger)
        """
        self.service = service
        self.host = host
        self.port = port
        self.request_timeout = request_timeout
        self.logger = logger or get_logger("dendrite.server")

        self.server: Optional[DendriteHTTPServer] = None
        self.server_thread: Optional[threading.Thread] = None
        self.running = False

    def start(self) -> None:
        """
        Start the server in a background thread.

        Raises:
            FileServerError: If the server cannot bind its address
        """
        if self.running:
            self.logger.warning("File server already running")
            return

        try:
            self.server = DendriteHTTPServer(
                (self.host, self.port), self.service, self.logger, self.request_timeout
            )
        except OSError as e:
            raise FileServerError(f"start server: {e}") from e

        # Port 0 binds an ephemeral port.
        self.port = self.server.server_address[1]

        self.server_thread = threading.Thread(
            target=self._run_server, daemon=True, name="FileServer"
        )
        self.server_thread.start()

        self.running = True
        self.logger.info("File server started", address=f"{self.host}:{self.port}")

    def _run_server(self) -> None:
        """Run server loop (called in background thread)."""
        try:
            self.server.serve_forever()
        except Exception as e:
            self.logger.exception("File server error", e)
            self.running = False

    def stop(self, timeout: float = Limits.SHUTDOWN_TIMEOUT) -> None:
        """Stop accepting requests and cancel in-flight listings."""
        if not self.running:
            return

        self.logger.info("Stopping file server...")

        if self.server:
            canceled = self.server.cancel_all("server shutting down")
            if canceled:
                self.logger.debug("Canceled in-flight requests", count=canceled)
            self.server.shutdown()
            self.server.server_close()

        if self.server_thread:
            self.server_thread.join(timeout=timeout)

        self.running = False
        self.logger.info("File server stopped")

    def get_url(self) -> str:
        """
        Get server URL.

        Returns:
            Server base URL
        """
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"http://{host}:{self.port}"

    def is_running(self) -> bool:
        """Check if server is running."""
        return self.running
