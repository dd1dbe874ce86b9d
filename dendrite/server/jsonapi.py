"""JSON:API document builders for the HTTP transport.

Documents are plain dictionaries ready for ``json.dumps``. Absent metadata
values are emitted as ``null``, never as a default.
"""

import posixpath
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Optional

from dendrite.core.constants import FILES_PREFIX, PING_PATH
from dendrite.files.base import Descriptor
from dendrite.files.query import Page, links_as_dict

RESOURCE_TYPE = "files"


def format_time(value: Optional[datetime]) -> Optional[str]:
    """RFC 3339 UTC timestamp with a "Z" suffix and trimmed fraction."""
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return text + "Z"


def resource_from(descriptor: Descriptor) -> Dict[str, Any]:
    """Render one descriptor as a "files" resource object."""
    meta = descriptor.metadata
    return {
        "id": meta.virtual_path,
        "type": RESOURCE_TYPE,
        "attributes": {
            "name": meta.name,
            "resource_kind": meta.resource_kind.value,
            "size_bytes": meta.size_bytes,
            "permission_mode": meta.permission_mode,
            "user": meta.user,
            "group": meta.group,
            "user_id": meta.user_id,
            "group_id": meta.group_id,
            "mime_type": meta.mime_type,
            "accessed_at": format_time(meta.accessed_at),
            "modified_at": format_time(meta.modified_at),
            "changed_at": format_time(meta.changed_at),
            "born_at": format_time(meta.born_at),
        },
        "links": {"self": posixpath.normpath(f"{FILES_PREFIX}/{meta.virtual_path}")},
    }


def collection_document(page: Page) -> Dict[str, Any]:
    """Paginated collection envelope for one page of a listing."""
    return {
        "meta": {
            "total_count": page.total,
            "offset": page.params.offset,
            "limit": page.params.limit,
        },
        "data": [resource_from(d) for d in page.entries],
        "links": links_as_dict(page.links),
    }


def error_document(status: int, detail: Optional[str] = None) -> Dict[str, Any]:
    """Error document with a single error object.

    Args:
        status: HTTP status code
        detail: Human readable detail (default: the status phrase)
    """
    phrase = HTTPStatus(status).phrase
    return {
        "errors": [
            {
                "status": str(status),
                "title": phrase,
                "detail": detail or phrase,
            }
        ]
    }


def ping_document() -> Dict[str, Any]:
    """Liveness document served at the ping endpoint."""
    return {
        "meta": {
            "page": {
                "currentPage": 1,
                "from": 1,
                "lastPage": 1,
                "perPage": 1,
                "to": 1,
                "total": 1,
            }
        },
        "links": {"self": PING_PATH, "first": PING_PATH, "last": PING_PATH},
        "data": {"type": "ping", "id": "ping", "attributes": {"message": "pong"}},
    }
