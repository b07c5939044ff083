"""Account-indexed content-address registries."""

from dappy.pointers.models import Multihash
from dappy.pointers.registry import (
    REGISTRIES,
    ContentPointerRegistry,
    FilesystemChanges,
    SocialConnections,
)

__all__ = [
    "REGISTRIES",
    "ContentPointerRegistry",
    "FilesystemChanges",
    "Multihash",
    "SocialConnections",
]
