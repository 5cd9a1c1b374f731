"""
=============================================================================
CORE: BUFFERING AND RESOLUTION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ asset_store.py  Walk the content tree, build immutable snapshots    │
    │ resolver.py     Request target → cached or on-disk asset            │
    │ listing.py      Directory listing page for known directories        │
    └─────────────────────────────────────────────────────────────────────┘

Everything here is synchronous and free of I/O except the build walk
and, when direct reading is enabled, the resolver's disk lookups.

=============================================================================
"""

from .asset_store import (
    AssetSnapshot,
    BufferBuildError,
    SystemAsset,
    build_snapshot,
    walk_root,
)
from .listing import DirectoryListing
from .resolver import AssetSource, PathResolver, ResolvedAsset

__all__ = [
    "AssetSnapshot",
    "BufferBuildError",
    "SystemAsset",
    "build_snapshot",
    "walk_root",
    "DirectoryListing",
    "AssetSource",
    "PathResolver",
    "ResolvedAsset",
]
