"""
Dendrite Files: File Service.

Facade over the registry, resolver and lister. The service owns its
RootRegistry; several independently configured services may coexist.

Example:
    >>> service = FileService([("/public", "/srv/public")])
    >>> descriptor = service.resolve("/public", "docs/readme.txt")
    >>> children = service.list_directory("/public", "docs")
"""

from typing import Iterable, List, Optional, Tuple

from dendrite.files.base import Descriptor, Root
from dendrite.files.context import RequestContext
from dendrite.files.errors import RootNotFoundError
from dendrite.files.lister import DirectoryLister
from dendrite.files.metadata import MetadataExtractor
from dendrite.files.registry import RootDefinition, RootRegistry
from dendrite.files.resolver import PathResolver
from dendrite.infrastructure.logger import Logger, get_logger


class FileService:
    """Read-only access to the configured virtual roots."""

    def __init__(
        self,
        roots: Iterable[RootDefinition],
        extractor: Optional[MetadataExtractor] = None,
        logger: Optional[Logger] = None,
    ):
        """
        Args:
            roots: Root definitions in display order
            extractor: Metadata extractor (default: system owner lookups)
            logger: Logger instance (default: shared "dendrite.files" logger)

        Raises:
            RegistryError: If the roots cannot be registered
        """
        self.logger = logger or get_logger("dendrite.files")
        self.registry = RootRegistry(roots)
        self.resolver = PathResolver(extractor)
        self.lister = DirectoryLister(self.resolver)

        for root in self.registry:
            self.logger.debug("Registered file root", virtual=root.virtual, source=root.source)

    def _root(self, virtual: str) -> Root:
        root = self.registry.lookup(virtual)
        if root is None:
            raise RootNotFoundError(f"file root not found: {virtual}", virtual)
        return root

    def roots(self) -> List[Root]:
        """Configured roots in display order."""
        return self.registry.all()

    def has_single_root_slash(self) -> bool:
        """True if the only configured root is "/"."""
        return self.registry.is_single_slash_root()

    def resolve(self, virtual: str, rel: str = "") -> Descriptor:
        """
        Resolve a single path beneath a virtual root.

        Raises:
            RootNotFoundError: If ``virtual`` is not configured
            OutsideRootError: On traversal or symlink escape
            NotFoundError: If the entry does not exist
            PermissionDeniedError: If the entry cannot be examined
        """
        return self.resolver.describe(self._root(virtual), rel)

    def list_directory(
        self, virtual: str, rel: str = "", ctx: Optional[RequestContext] = None
    ) -> List[Descriptor]:
        """
        List the children of a folder beneath a virtual root.

        Raises:
            RootNotFoundError: If ``virtual`` is not configured
            OutsideRootError: On traversal or symlink escape
            NotADirectory: If the path is not a folder
            CanceledError: If ``ctx`` is canceled mid-listing
        """
        return self.lister.list(self._root(virtual), rel, ctx)

    def list_roots(self) -> List[Descriptor]:
        """One folder descriptor per configured root, in display order."""
        return [self.resolver.describe(root, "") for root in self.registry]

    def list_collection(self, ctx: Optional[RequestContext] = None) -> List[Descriptor]:
        """
        Entries of the top-level collection.

        A lone "/" root is listed directly instead of appearing as a folder.
        """
        if self.has_single_root_slash():
            return self.list_directory("/", "", ctx)
        return self.list_roots()

    def match_root(self, request_path: str) -> Tuple[Root, str]:
        """
        Split a decoded request path into its root and relative path.

        Longer virtual names are tried first; "/" matches every path.

        Args:
            request_path: Path below the files endpoint, e.g. "/public/a.txt"

        Returns:
            (root, relative path)

        Raises:
            RootNotFoundError: If no root matches
        """
        if not request_path.startswith("/"):
            request_path = "/" + request_path

        candidates = sorted(self.registry, key=lambda r: len(r.virtual), reverse=True)
        for root in candidates:
            if root.virtual == "/":
                return root, request_path.lstrip("/")
            if request_path == root.virtual:
                return root, ""
            prefix = root.virtual + "/"
            if request_path.startswith(prefix):
                return root, request_path[len(prefix) :]

        raise RootNotFoundError(f"file root not found: {request_path}", request_path)
