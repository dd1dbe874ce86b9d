"""Dendrite - read-only file browsing API over configured virtual roots."""

from dendrite.core.constants import DENDRITE_VERSION as __version__

__all__ = ["__version__"]
