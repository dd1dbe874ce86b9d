"""
Dendrite Files: List Query Engine.

Parses the pagination and sort parameters of a listing request, orders the
complete descriptor set and slices out one page with navigation links.

Query parameters:
- ``page[limit]``: page size, 1 to 500 (default 200)
- ``page[offset]``: number of entries to skip (default 0)
- ``sort``: one field from SORT_FIELDS, "-" prefix for descending

Absent values (size of a folder, missing birth time) compare lower than any
present value. Descending order negates the comparison, so absent values come
first ascending and last descending.
"""

import functools
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from dendrite.core.constants import Limits
from dendrite.files.base import Descriptor
from dendrite.files.errors import InvalidQueryParameterError

LIMIT_PARAM = "page[limit]"
OFFSET_PARAM = "page[offset]"
SORT_PARAM = "sort"

DEFAULT_SORT_FIELD = "name"

SORT_FIELDS = (
    "name",
    "resource_kind",
    "size_bytes",
    "permission_mode",
    "user",
    "group",
    "user_id",
    "group_id",
    "mime_type",
    "accessed_at",
    "modified_at",
    "changed_at",
    "born_at",
)

# Bounded so every accepted value fits in a 64-bit integer.
_INTEGER_RE = re.compile(r"[+-]?[0-9]{1,18}")

QueryParams = Mapping[str, Union[str, Sequence[str]]]


@dataclass(frozen=True)
class ListParams:
    """Validated listing parameters."""

    limit: int = Limits.DEFAULT_PAGE_LIMIT
    offset: int = 0
    sort_field: str = DEFAULT_SORT_FIELD
    descending: bool = False

    @property
    def is_default_sort(self) -> bool:
        return self.sort_field == DEFAULT_SORT_FIELD and not self.descending


@dataclass(frozen=True)
class PageLinks:
    """Navigation links (``current`` is rendered as "self").

    prev and next are None when there is no such page.
    """

    current: str
    first: str
    last: str
    prev: Optional[str] = None
    next: Optional[str] = None


@dataclass(frozen=True)
class Page:
    """One page of a sorted listing."""

    entries: List[Descriptor]
    links: PageLinks
    total: int
    params: ListParams


def _first_value(query: QueryParams, name: str) -> str:
    value = query.get(name)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value[0] if value else ""


def _parse_int(raw: str) -> Optional[int]:
    if not _INTEGER_RE.fullmatch(raw):
        return None
    return int(raw)


def parse_list_params(query: QueryParams) -> ListParams:
    """
    Parse listing parameters from a query mapping.

    Values may be plain strings or lists of strings (as produced by
    ``urllib.parse.parse_qs``); only the first value counts. Empty values
    fall back to their defaults.

    Args:
        query: Query parameters of the request

    Returns:
        Validated ListParams

    Raises:
        InvalidQueryParameterError: On a malformed or out-of-range value
    """
    limit = Limits.DEFAULT_PAGE_LIMIT
    offset = 0
    sort_field = DEFAULT_SORT_FIELD
    descending = False

    raw_limit = _first_value(query, LIMIT_PARAM)
    if raw_limit:
        parsed = _parse_int(raw_limit)
        if parsed is None or parsed < 1:
            raise InvalidQueryParameterError(
                "invalid page[limit]: must be a positive integer", LIMIT_PARAM
            )
        if parsed > Limits.MAX_PAGE_LIMIT:
            raise InvalidQueryParameterError(
                f"page[limit] exceeds maximum of {Limits.MAX_PAGE_LIMIT}", LIMIT_PARAM
            )
        limit = parsed

    raw_offset = _first_value(query, OFFSET_PARAM)
    if raw_offset:
        parsed = _parse_int(raw_offset)
        if parsed is None or parsed < 0:
            raise InvalidQueryParameterError(
                "invalid page[offset]: must be a non-negative integer", OFFSET_PARAM
            )
        offset = parsed

    raw_sort = _first_value(query, SORT_PARAM)
    if raw_sort:
        if "," in raw_sort:
            raise InvalidQueryParameterError(
                "sorting by multiple fields is not supported", SORT_PARAM
            )
        field = raw_sort
        if field.startswith("-"):
            descending = True
            field = field[1:]
        if field not in SORT_FIELDS:
            raise InvalidQueryParameterError(f"invalid sort field: {field}", SORT_PARAM)
        sort_field = field

    return ListParams(limit=limit, offset=offset, sort_field=sort_field, descending=descending)


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison where None is lower than any present value."""
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    if a < b:
        return -1
    if b < a:
        return 1
    return 0


def _sort_key_getter(field: str) -> Callable[[Descriptor], Any]:
    def getter(descriptor: Descriptor) -> Any:
        value = getattr(descriptor.metadata, field)
        # Enum members order by their wire value.
        return getattr(value, "value", value)

    return getter


def sort_descriptors(
    entries: List[Descriptor], field: str = DEFAULT_SORT_FIELD, descending: bool = False
) -> List[Descriptor]:
    """
    Stable sort of the full descriptor set by one metadata field.

    Args:
        entries: Descriptors to order
        field: Field from SORT_FIELDS
        descending: Reverse the comparison

    Returns:
        A new, sorted list
    """
    if field not in SORT_FIELDS:
        field = DEFAULT_SORT_FIELD
    get = _sort_key_getter(field)
    sign = -1 if descending else 1

    def compare(a: Descriptor, b: Descriptor) -> int:
        return sign * compare_values(get(a), get(b))

    return sorted(entries, key=functools.cmp_to_key(compare))


def page_bounds(total: int, offset: int, limit: int) -> Tuple[int, int]:
    """Slice bounds ``(start, end)`` of a page clamped to ``total``."""
    start = min(offset, total)
    end = min(start + limit, total)
    return start, end


def last_page_offset(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return ((total - 1) // limit) * limit


def build_link(base_path: str, params: ListParams, offset: int) -> str:
    """URL of the page at ``offset`` with the same size and order."""
    link = f"{base_path}?page[offset]={offset}&page[limit]={params.limit}"
    if not params.is_default_sort:
        prefix = "-" if params.descending else ""
        link += f"&sort={prefix}{params.sort_field}"
    return link


def build_links(base_path: str, params: ListParams, total: int) -> PageLinks:
    """
    Navigation links for a listing of ``total`` entries.

    ``prev`` exists when the offset is positive and ``next`` when entries
    remain beyond the current page.
    """
    prev_link = None
    if params.offset > 0:
        prev_link = build_link(base_path, params, max(params.offset - params.limit, 0))

    next_link = None
    if params.offset + params.limit < total:
        next_link = build_link(base_path, params, params.offset + params.limit)

    return PageLinks(
        current=build_link(base_path, params, params.offset),
        first=build_link(base_path, params, 0),
        last=build_link(base_path, params, last_page_offset(total, params.limit)),
        prev=prev_link,
        next=next_link,
    )


def apply(entries: List[Descriptor], params: ListParams, base_path: str) -> Page:
    """
    Sort every entry, then cut out the requested page.

    Args:
        entries: Full, unordered descriptor set
        params: Parsed listing parameters
        base_path: Request path the links are built on

    Returns:
        Page with the sliced entries, links and the total count
    """
    ordered = sort_descriptors(entries, params.sort_field, params.descending)
    total = len(ordered)
    start, end = page_bounds(total, params.offset, params.limit)
    return Page(
        entries=ordered[start:end],
        links=build_links(base_path, params, total),
        total=total,
        params=params,
    )


def links_as_dict(links: PageLinks) -> Dict[str, Optional[str]]:
    return {
        "self": links.current,
        "first": links.first,
        "last": links.last,
        "prev": links.prev,
        "next": links.next,
    }
