"""Directory Lister: expands a folder into Descriptors for its children."""

import os
import posixpath
from typing import List, Optional

from dendrite.files.base import Descriptor, Root
from dendrite.files.context import RequestContext
from dendrite.files.errors import NotADirectory, wrap_os_error
from dendrite.files.resolver import PathResolver, clean_relative_path


class DirectoryLister:
    """
    Lists the direct children of a folder beneath a root.

    Children come back in directory-read order. The request context is
    checked before each child is resolved; a canceled request or a child that
    fails to resolve aborts the whole listing.
    """

    def __init__(self, resolver: Optional[PathResolver] = None):
        self.resolver = resolver or PathResolver()

    def list(self, root: Root, rel: str, ctx: Optional[RequestContext] = None) -> List[Descriptor]:
        """
        Args:
            root: Root containing the folder
            rel: Relative path of the folder ("" for the root itself)
            ctx: Request context polled between children

        Returns:
            Unordered list of child descriptors

        Raises:
            NotADirectory: If ``rel`` does not resolve to a folder
            CanceledError: If ``ctx`` is canceled or expires mid-listing
        """
        ctx = ctx or RequestContext.background()
        rel_clean = clean_relative_path(rel)

        parent = self.resolver.describe(root, rel_clean)
        if not parent.is_folder:
            raise NotADirectory(f"not a directory: {parent.virtual_path}", parent.virtual_path)

        try:
            with os.scandir(parent.absolute_path) as it:
                names = [entry.name for entry in it]
        except OSError as e:
            raise wrap_os_error(e, "read dir", parent.virtual_path) from e

        children: List[Descriptor] = []
        for name in names:
            ctx.check(parent.virtual_path)
            child_rel = posixpath.join(rel_clean, name) if rel_clean else name
            children.append(self.resolver.describe(root, child_rel))
        return children
