"""Dendrite Server Layer.

HTTP transport for the file service:
- FileServer: threaded JSON:API server
- jsonapi: response document builders
"""

from .http import FileRequestHandler, FileServer, FileServerError, error_status
from .jsonapi import collection_document, error_document, format_time, ping_document, resource_from

__all__ = [
    "FileRequestHandler",
    "FileServer",
    "FileServerError",
    "collection_document",
    "error_document",
    "error_status",
    "format_time",
    "ping_document",
    "resource_from",
]
