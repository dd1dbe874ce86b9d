"""
Dendrite Files: Metadata Extractor.

Derives the reported attribute set for a resolved entry from the target's
stat result and the descriptor's own classification.

Rules:
- size_bytes is only reported when the path itself is a regular file;
  folders and symlinks (whatever they point at) report None
- permission_mode is the 0o777 permission bits as a 4-digit octal string
- folders and symlinks get fixed MIME sentinels; regular files are sniffed
  from their first 512 bytes, and any read failure yields ""
- birth time is only reported where the platform's stat result carries it
"""

import grp
import os
import pwd
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from dendrite.core.constants import MIME_DIRECTORY, MIME_SYMLINK, Limits, ResourceKind
from dendrite.files.base import Descriptor, Metadata
from dendrite.files.sniff import detect_content_type


def format_permission_mode(mode: int) -> str:
    """Format permission bits as a 4-digit octal string, e.g. ``0755``."""
    return f"{mode & 0o777:04o}"


def size_for(kind: ResourceKind, st: os.stat_result) -> Optional[int]:
    """Size in bytes for regular files, None for everything else."""
    if kind is ResourceKind.FILE:
        return st.st_size
    return None


def _fallback_name(numeric_id: int) -> str:
    # Unresolvable ids render as their number, except 0 which renders empty.
    if numeric_id == 0:
        return ""
    return str(numeric_id)


def lookup_user(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return _fallback_name(uid)


def lookup_group(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return _fallback_name(gid)


def timestamp_from_ns(ns: int) -> datetime:
    """Convert nanoseconds since the epoch to an aware UTC datetime."""
    seconds, remainder = divmod(ns, 1_000_000_000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=remainder // 1000)


def birth_time(st: os.stat_result) -> Optional[datetime]:
    """Creation time if the platform exposes it, otherwise None.

    macOS and the BSDs report ``st_birthtime``; Windows reports
    ``st_birthtime_ns`` on Python 3.12+. Linux stat results carry neither.
    Non-positive values mean the filesystem did not record one.
    """
    ns = getattr(st, "st_birthtime_ns", None)
    if ns is None:
        seconds = getattr(st, "st_birthtime", None)
        if seconds is None:
            return None
        ns = int(seconds * 1_000_000_000)
    if ns <= 0:
        return None
    return timestamp_from_ns(ns)


def file_times(
    st: os.stat_result,
) -> Tuple[datetime, datetime, datetime, Optional[datetime]]:
    """Return (accessed, modified, changed, born) for a stat result."""
    return (
        timestamp_from_ns(st.st_atime_ns),
        timestamp_from_ns(st.st_mtime_ns),
        timestamp_from_ns(st.st_ctime_ns),
        birth_time(st),
    )


def sniff_file(path: str) -> str:
    """Sniff the MIME type of a regular file; "" if it cannot be read."""
    try:
        with open(path, "rb") as f:
            head = f.read(Limits.SNIFF_LENGTH)
    except OSError:
        return ""
    return detect_content_type(head)


def mime_for(kind: ResourceKind, target_kind: ResourceKind, path: str) -> str:
    """Sentinel MIME type for symlinks and folders, sniffed type for files."""
    if kind is ResourceKind.SYMLINK:
        return MIME_SYMLINK
    if target_kind is ResourceKind.FOLDER:
        return MIME_DIRECTORY
    return sniff_file(path)


class MetadataExtractor:
    """
    Builds Metadata for descriptors.

    Owner and group lookups are injectable so tests can simulate unknown ids.
    """

    def __init__(
        self,
        user_lookup: Callable[[int], str] = lookup_user,
        group_lookup: Callable[[int], str] = lookup_group,
    ):
        self.user_lookup = user_lookup
        self.group_lookup = group_lookup

    def extract(self, descriptor: Descriptor, target_stat: os.stat_result) -> Metadata:
        """
        Derive the attribute set for a resolved entry.

        Args:
            descriptor: Resolved descriptor (its metadata is ignored)
            target_stat: stat of the link target, or of the entry itself

        Returns:
            Metadata for the descriptor
        """
        accessed, modified, changed, born = file_times(target_stat)
        uid = target_stat.st_uid
        gid = target_stat.st_gid

        return Metadata(
            name=descriptor.name,
            virtual_path=descriptor.virtual_path,
            resource_kind=descriptor.kind,
            size_bytes=size_for(descriptor.kind, target_stat),
            permission_mode=format_permission_mode(target_stat.st_mode),
            user=self.user_lookup(uid),
            group=self.group_lookup(gid),
            user_id=uid,
            group_id=gid,
            mime_type=mime_for(descriptor.kind, descriptor.target_kind, descriptor.absolute_path),
            accessed_at=accessed,
            modified_at=modified,
            changed_at=changed,
            born_at=born,
        )
