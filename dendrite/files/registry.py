"""
Dendrite Files: Root Registry.

The registry is built once at startup from the configured root definitions
and never changes afterwards. It is owned by the FileService that uses it;
independent registries may coexist in one process.
"""

import os
from typing import Dict, Iterable, List, Optional, Tuple, Union

from dendrite.files.base import Root
from dendrite.files.errors import RegistryError

RootDefinition = Union[Root, Tuple[str, str]]


class RootRegistry:
    """
    Immutable mapping of virtual root names to canonical source directories.

    Construction fails if no roots are given, if a virtual name repeats, or if
    a source cannot be resolved (for example a broken symlink).

    Example:
        >>> registry = RootRegistry([("/public", "/srv/public")])
        >>> registry.lookup("public").source
        '/srv/public'
    """

    def __init__(self, roots: Iterable[RootDefinition]):
        """
        Args:
            roots: Root objects or ``(virtual, source)`` pairs, in display order

        Raises:
            RegistryError: On empty input, duplicates or unresolvable sources
        """
        ordered: List[Root] = []
        by_name: Dict[str, Root] = {}

        for definition in roots:
            virtual, source = _unpack(definition)
            if virtual in by_name:
                raise RegistryError(f"duplicate file root: {virtual}")

            try:
                resolved = os.path.realpath(source, strict=True)
            except OSError as e:
                reason = (e.strerror or type(e).__name__).lower()
                raise RegistryError(f"resolve file root {virtual}: {reason}") from e

            root = Root(virtual=virtual, source=os.path.normpath(resolved))
            ordered.append(root)
            by_name[virtual] = root

        if not ordered:
            raise RegistryError("no file roots provided")

        self._ordered: Tuple[Root, ...] = tuple(ordered)
        self._by_name = by_name

    def lookup(self, virtual: str) -> Optional[Root]:
        """Find a root by virtual name; a missing leading "/" is tolerated."""
        if not virtual.startswith("/"):
            virtual = "/" + virtual
        return self._by_name.get(virtual)

    def all(self) -> List[Root]:
        """Snapshot of the roots in configuration order."""
        return list(self._ordered)

    def is_single_slash_root(self) -> bool:
        """True iff exactly one root exists and its virtual name is "/"."""
        return len(self._ordered) == 1 and self._ordered[0].virtual == "/"

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self):
        return iter(self._ordered)


def _unpack(definition: RootDefinition) -> Tuple[str, str]:
    if isinstance(definition, Root):
        return definition.virtual, definition.source
    virtual = getattr(definition, "virtual", None)
    source = getattr(definition, "source", None)
    if virtual is not None and source is not None:
        return virtual, source
    virtual, source = definition
    return virtual, source
