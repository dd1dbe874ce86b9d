"""
Dendrite Files: Base Data Structures.

This module provides the value types shared by the file access layer:
- Root: a virtual name bound to a canonical source directory
- Metadata: the attribute set reported for an entry
- Descriptor: a resolved, classified view of one entry at a point in time

All three are immutable. Descriptors and their metadata are rebuilt on every
request and never cached.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from dendrite.core.constants import ResourceKind


@dataclass(frozen=True)
class Root:
    """
    A virtual root.

    Attributes:
        virtual: Public name, "/" or a single segment such as "/public"
        source: Canonical absolute source directory (symlinks resolved)
    """

    virtual: str
    source: str

    @property
    def display_name(self) -> str:
        """Name used for the root's own descriptor ("/" stays "/")."""
        if self.virtual == "/":
            return "/"
        return self.virtual.lstrip("/")


@dataclass(frozen=True)
class Metadata:
    """
    Attributes of a resolved entry.

    Attributes:
        name: Entry name (last path segment, or the root's display name)
        virtual_path: Public path including the virtual root
        resource_kind: Kind of the path itself (file, folder or symlink)
        size_bytes: Size for regular files; None for folders and symlinks
        permission_mode: Permission bits as a 4-digit octal string, e.g. "0644"
        user: Owner name ("" for uid 0 when lookup fails)
        group: Group name ("" for gid 0 when lookup fails)
        user_id: Numeric owner id
        group_id: Numeric group id
        mime_type: Sniffed or sentinel MIME type ("" when sniffing failed)
        accessed_at: Last access time (UTC)
        modified_at: Last modification time (UTC)
        changed_at: Last status change time (UTC)
        born_at: Creation time where the platform exposes it, else None
    """

    name: str
    virtual_path: str
    resource_kind: ResourceKind
    size_bytes: Optional[int]
    permission_mode: str
    user: str
    group: str
    user_id: int
    group_id: int
    mime_type: str
    accessed_at: Optional[datetime]
    modified_at: Optional[datetime]
    changed_at: Optional[datetime]
    born_at: Optional[datetime]


@dataclass(frozen=True)
class Descriptor:
    """
    A resolved filesystem entry beneath a root.

    Attributes:
        root: Root the entry belongs to
        virtual_path: Public path including the virtual root
        rel_path: Cleaned path relative to the root source ("" for the root)
        name: Entry name
        kind: Classification of the path itself (not following links)
        target_kind: Classification after following links (FILE or FOLDER)
        absolute_path: Resolved host path, always inside root.source
        link_path: Unresolved host path; equals absolute_path for non-links
        metadata: Attribute set (filled in by the resolver)
    """

    root: Root
    virtual_path: str
    rel_path: str
    name: str
    kind: ResourceKind
    target_kind: ResourceKind
    absolute_path: str
    link_path: str
    metadata: Optional[Metadata] = None

    @property
    def is_folder(self) -> bool:
        return self.target_kind is ResourceKind.FOLDER
