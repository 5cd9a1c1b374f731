"""
=============================================================================
PATH RESOLVER
=============================================================================

Turns a raw request target into the asset that should be served, or
None when nothing matches.

=============================================================================
RESOLUTION ORDER
=============================================================================

    Request: GET /docs?lang=en        directory_indexes = ("index.html",)

    1. Strip query, percent-decode    "/docs"
    2. Build candidates               ["/docs", "/docs/index.html"]
    3. For each candidate, in order:

       ┌─────────────────────────────────────────────────────────────────┐
       │  buffering on?        ── yes ──►  exact key in snapshot?  HIT   │
       │        │                                                        │
       │  disk allowed?        ── yes ──►  regular file on disk?   HIT   │
       │  (direct_reading, or buffering off)                             │
       └─────────────────────────────────────────────────────────────────┘

    4. No candidate hit               None  (caller applies not-found)

The bare path ALWAYS goes first, then index files in configured order.
First match wins; there is no scoring.

=============================================================================
DISK LOOKUPS
=============================================================================

A disk lookup maps the public path back to a filesystem path under the
mount that publishes it, then applies the same checks the build does:

    - the extension must be in the MIME table (allow-list)
    - the resolved path must stay inside the mount root
    - a path holding a NUL byte (decoded %00) never reaches the disk

    /../../etc/passwd  ──►  (root / "../../etc/passwd").resolve()
                            outside root  ──►  logged, treated as a miss

There is NO size ceiling on disk reads: serving files too large to
buffer is exactly what direct_reading is for.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import unquote

from ..config import WebConfig
from ..http.mime_types import is_allowed
from ..urlpaths import is_within, join_url
from .asset_store import AssetSnapshot


logger = logging.getLogger(__name__)


class AssetSource(Enum):
    CACHE = "cache"
    DISK = "disk"


@dataclass(frozen=True)
class ResolvedAsset:
    """
    A resolution hit.

    Attributes:
        key:       Public path that matched (decides the MIME type).
        source:    Where the content comes from.
        file_path: Filesystem path for DISK hits, None for CACHE hits.
    """

    key: str
    source: AssetSource
    file_path: Optional[Path] = None


def request_path(raw_path: str) -> str:
    """
    Public path named by a raw request target.

        >>> request_path("/docs/?page=2")
        '/docs/'
        >>> request_path("/my%20file.txt")
        '/my file.txt'
    """
    path = raw_path.split("?", 1)[0]
    return join_url(unquote(path))


class PathResolver:
    """
    Resolves request targets against one snapshot and one config.

    A resolver is bound to the state it was created with; the handler
    creates a new one on every rebuild instead of updating it.
    """

    def __init__(self, config: WebConfig, snapshot: AssetSnapshot):
        self.config = config
        self.snapshot = snapshot
        self.disk_allowed = config.direct_reading or not config.buffering
        # Most specific mount first so "/media/x" prefers the /media root
        self._mounts = sorted(
            ((prefix, root.resolve()) for prefix, root in config.mounts()),
            key=lambda mount: len(mount[0]),
            reverse=True,
        )

    def candidates(self, raw_path: str) -> list[str]:
        """The bare path followed by one candidate per directory index."""
        path = request_path(raw_path)
        return [path] + [join_url(path, index) for index in self.config.directory_indexes]

    def resolve(self, raw_path: str) -> Optional[ResolvedAsset]:
        """
        Resolve a raw request target.

        Returns:
            The first candidate that hits, or None for a miss.
        """
        for candidate in self.candidates(raw_path):
            if self.config.buffering and candidate in self.snapshot.assets:
                return ResolvedAsset(candidate, AssetSource.CACHE)

            if not self.disk_allowed:
                continue

            file_path = self.find_on_disk(candidate)
            if file_path is not None:
                return ResolvedAsset(candidate, AssetSource.DISK, file_path)

        return None

    def find_on_disk(self, key: str) -> Optional[Path]:
        """Regular file serving ``key`` on disk, or None."""
        if not is_allowed(key, self.config.mime_types):
            return None
        # A decoded %00 cannot name a file and makes os.path calls raise
        if "\x00" in key:
            return None
        for file_path in self.filesystem_paths(key):
            if file_path.is_file():
                return file_path
        return None

    def filesystem_paths(self, key: str) -> Iterator[Path]:
        """
        Filesystem paths that could publish ``key``, one per matching mount.

        Paths escaping their mount root are dropped with a warning.
        """
        for prefix, root in self._mounts:
            if not is_within(key, prefix):
                continue

            relative = key[len(prefix):].lstrip("/")
            if not relative:
                continue

            # ─────────────────────────────────────────────────────────────
            # SECURITY: PATH TRAVERSAL CHECK
            # ─────────────────────────────────────────────────────────────
            # resolve() normalizes ".." and follows symlinks; the result
            # must still be inside the mount root.
            full_path = (root / relative).resolve()
            try:
                full_path.relative_to(root)
            except ValueError:
                logger.warning(f"Path traversal attempt: {key}")
                continue

            yield full_path

    def load(self, resolved: ResolvedAsset) -> bytes:
        """
        Content for a resolution hit.

        Raises:
            OSError: If a DISK hit vanished or became unreadable since
                     it was found.
        """
        if resolved.source is AssetSource.CACHE:
            return self.snapshot.assets[resolved.key]
        return resolved.file_path.read_bytes()
