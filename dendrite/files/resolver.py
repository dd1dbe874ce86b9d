"""
Dendrite Files: Path Resolver.

Turns a root plus a client-supplied relative path into a classified,
containment-checked Descriptor.

Resolution steps:
1. Reject any literal ".." segment, even one a normalizer would cancel out
2. Normalize to a root-relative form ("" denotes the root itself)
3. lstat the joined host path and classify it without following links
4. For symlinks, resolve the whole chain and require the final target to lie
   inside the root source, then stat the target
5. Fill in metadata from the target's stat result

Every resolved path, symlink or not, is checked against the root source
after resolving its real location, so intermediate directory links cannot
lead outside the root either.
"""

import dataclasses
import os
import posixpath
import stat
from typing import Optional

from dendrite.core.constants import RelativePath, ResourceKind, VirtualPath
from dendrite.files.base import Descriptor, Root
from dendrite.files.errors import OutsideRootError, wrap_os_error
from dendrite.files.metadata import MetadataExtractor


def has_traversal(rel: str) -> bool:
    """True if any "/"-separated segment of ``rel`` is exactly ".."."""
    return ".." in rel.split("/")


def clean_relative_path(rel: str) -> RelativePath:
    """
    Normalize a client-supplied relative path.

    Args:
        rel: Relative path, possibly with leading, doubled or "." segments

    Returns:
        Normalized path without a leading "/", or "" for the root

    Raises:
        OutsideRootError: If the path contains a ".." segment
    """
    if has_traversal(rel):
        raise OutsideRootError(f"path escapes configured root: {rel}")

    cleaned = posixpath.normpath("/" + rel.lstrip("/"))
    if cleaned == "/":
        return ""
    return cleaned.lstrip("/")


def join_virtual(virtual: VirtualPath, rel: RelativePath) -> VirtualPath:
    """Public path of ``rel`` beneath the virtual root ``virtual``."""
    if not rel:
        return virtual
    return posixpath.join(virtual, rel)


def entry_name(root: Root, rel: RelativePath) -> str:
    """Name of the entry: the root's display name or the last segment."""
    if not rel:
        return root.display_name
    return posixpath.basename(rel)


def is_within_root(source: str, target: str) -> bool:
    """True if ``target`` is ``source`` or lies beneath it."""
    rel = os.path.relpath(target, os.path.normpath(source))
    return rel != os.pardir and not rel.startswith(os.pardir + os.sep)


def ensure_within_root(source: str, target: str, virtual_path: VirtualPath) -> None:
    """
    Raises:
        OutsideRootError: If ``target`` is not ``source`` or a descendant of it
    """
    if not is_within_root(source, target):
        raise OutsideRootError(f"path escapes configured root: {virtual_path}", virtual_path)


class PathResolver:
    """Builds Descriptors for paths beneath a root."""

    def __init__(self, extractor: Optional[MetadataExtractor] = None):
        self.extractor = extractor or MetadataExtractor()

    def describe(self, root: Root, rel: str) -> Descriptor:
        """
        Resolve ``rel`` beneath ``root``.

        Args:
            root: Root to resolve against
            rel: Client-supplied relative path ("" for the root itself)

        Returns:
            Descriptor with metadata filled in

        Raises:
            OutsideRootError: On traversal or a link target outside the root
            NotFoundError: If the entry or a link target does not exist
            PermissionDeniedError: If the entry cannot be examined
            StatFailureError: On any other filesystem failure
        """
        rel_clean = clean_relative_path(rel)
        virtual_path = join_virtual(root.virtual, rel_clean)

        candidate = os.path.join(root.source, *rel_clean.split("/")) if rel_clean else root.source
        try:
            info = os.lstat(candidate)
        except OSError as e:
            raise wrap_os_error(e, "stat", virtual_path) from e

        kind = ResourceKind.from_mode(info.st_mode)

        if kind is ResourceKind.SYMLINK:
            try:
                resolved = os.path.realpath(candidate, strict=True)
            except OSError as e:
                raise wrap_os_error(e, "resolve symlink", virtual_path) from e
            ensure_within_root(root.source, resolved, virtual_path)
            try:
                target_info = os.stat(resolved)
            except OSError as e:
                raise wrap_os_error(e, "stat symlink target", virtual_path) from e
            absolute_path = resolved
            # A link target is a folder or, for anything else, a file.
            target_kind = (
                ResourceKind.FOLDER if stat.S_ISDIR(target_info.st_mode) else ResourceKind.FILE
            )
        else:
            if rel_clean:
                try:
                    real = os.path.realpath(candidate, strict=True)
                except OSError as e:
                    raise wrap_os_error(e, "resolve path", virtual_path) from e
                ensure_within_root(root.source, real, virtual_path)
            absolute_path = candidate
            target_info = info
            target_kind = kind

        descriptor = Descriptor(
            root=root,
            virtual_path=virtual_path,
            rel_path=rel_clean,
            name=entry_name(root, rel_clean),
            kind=kind,
            target_kind=target_kind,
            absolute_path=absolute_path,
            link_path=candidate,
        )
        return dataclasses.replace(
            descriptor, metadata=self.extractor.extract(descriptor, target_info)
        )
