"""Dendrite Files Layer.

Security-bounded, read-only access to configured virtual roots:
- FileService: facade used by the transport
- RootRegistry: immutable virtual-root mapping
- PathResolver: containment-checked descriptor construction
- DirectoryLister: folder enumeration with cooperative cancellation
- query: pagination and sorting of listings
"""

from .base import Descriptor, Metadata, Root
from .context import RequestContext
from .errors import (
    CanceledError,
    FileServiceError,
    InvalidQueryParameterError,
    NotADirectory,
    NotFoundError,
    OutsideRootError,
    PermissionDeniedError,
    RegistryError,
    RootNotFoundError,
    StatFailureError,
)
from .lister import DirectoryLister
from .metadata import MetadataExtractor
from .query import ListParams, Page, PageLinks, apply, parse_list_params, sort_descriptors
from .registry import RootRegistry
from .resolver import PathResolver, clean_relative_path
from .service import FileService
from .sniff import detect_content_type

__all__ = [
    # Data model
    "Descriptor",
    "Metadata",
    "Root",
    "RequestContext",
    # Errors
    "CanceledError",
    "FileServiceError",
    "InvalidQueryParameterError",
    "NotADirectory",
    "NotFoundError",
    "OutsideRootError",
    "PermissionDeniedError",
    "RegistryError",
    "RootNotFoundError",
    "StatFailureError",
    # Components
    "DirectoryLister",
    "FileService",
    "MetadataExtractor",
    "PathResolver",
    "RootRegistry",
    "clean_relative_path",
    "detect_content_type",
    # Query engine
    "ListParams",
    "Page",
    "PageLinks",
    "apply",
    "parse_list_params",
    "sort_descriptors",
]
