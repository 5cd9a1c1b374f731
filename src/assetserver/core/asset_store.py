"""
=============================================================================
ASSET STORE
=============================================================================

Scans the content tree once and keeps every eligible file in memory,
keyed by the PUBLIC URL path it will be requested under.

=============================================================================
WHAT GETS BUFFERED?
=============================================================================

    htdocs/                              AssetSnapshot.assets
    ├── index.html       (2 KB)   ──►    "/index.html"        → b"<!DOCTYPE..."
    ├── .env             (no ext) ──►    (skipped: not in MIME table)
    ├── notes.bak        (.bak)   ──►    (skipped: not in MIME table)
    ├── video.mp4        (40 MB)  ──►    (skipped: > buffering_max_size)
    ├── empty/                    ──►    (no asset below → not a directory entry)
    └── gallery/                  ──►    AssetSnapshot.directories ∋ "/gallery"
        ├── a.png                 ──►    "/gallery/a.png"     → b"\\x89PNG..."
        └── sub/                  ──►    directories ∋ "/gallery/sub"
            └── b.png             ──►    "/gallery/sub/b.png" → b"\\x89PNG..."

INVARIANTS (hold for every snapshot, including after add_buffer):

    1. Every asset key starts with its mount prefix and has no "//"
    2. len(content) <= buffering_max_size for every asset
    3. Every asset's extension is present in the MIME table
    4. A directory is listed iff it is an ancestor of a buffered asset,
       plus "/" and every mount prefix (always present)

=============================================================================
SNAPSHOTS, NOT A SHARED MAP
=============================================================================

A build never touches the live store. walk_root() returns fresh
containers, build_snapshot() freezes them into an AssetSnapshot, and the
handler swaps ONE reference:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request threads ──► handler._state ──► snapshot #1 (read-only)    │
    │                             │                                        │
    │   rebuild ──────────────────┼──► build snapshot #2 (private)        │
    │                             │         │                              │
    │                             └─────────┘  single assignment          │
    │                                                                      │
    │   If the walk raises, snapshot #2 is simply dropped and #1 stays.   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SYSTEM ASSETS
=============================================================================

The custom not-found page and the list-navigator template are NOT stored
among user assets. They live in a separate table keyed by SystemAsset, so
no request path can ever collide with them.

=============================================================================
"""

import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from ..config import WebConfig
from ..http.mime_types import is_allowed
from ..urlpaths import ancestors, join_url


logger = logging.getLogger(__name__)


LIST_NAVIGATOR_TEMPLATE = Path(__file__).resolve().parent.parent / "templates" / "list_navigator.html"


class SystemAsset(Enum):
    """Reserved assets that never share the public path namespace."""

    NOT_FOUND_PAGE = "not_found_page"
    LIST_NAVIGATOR = "list_navigator"


class BufferBuildError(Exception):
    """
    Raised when the content tree cannot be read during a build.

    The build is all-or-nothing: nothing from the aborted walk is
    installed and the previous snapshot stays live. The original
    OSError is chained as ``__cause__``.
    """

    def __init__(self, message: str, path: Path):
        super().__init__(f"{message}: {path}")
        self.path = path


@dataclass(frozen=True)
class AssetSnapshot:
    """
    Immutable result of one build.

    Attributes:
        assets:        public path → content bytes
        directories:   public directory paths known to the listing page
        system_assets: SystemAsset → content bytes
    """

    assets: Mapping[str, bytes] = field(default_factory=lambda: MappingProxyType({}))
    directories: frozenset = frozenset({"/"})
    system_assets: Mapping[SystemAsset, bytes] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def total_bytes(self) -> int:
        return sum(len(content) for content in self.assets.values())

    def system_asset(self, name: SystemAsset) -> Optional[bytes]:
        return self.system_assets.get(name)

    def with_asset(self, key: str, content: bytes) -> "AssetSnapshot":
        """
        Copy-on-write insert of a single asset.

        Ancestor directories of ``key`` join the directory index so the
        listing page can reach the new entry.
        """
        assets = dict(self.assets)
        assets[key] = bytes(content)
        return AssetSnapshot(
            assets=MappingProxyType(assets),
            directories=self.directories | frozenset(ancestors(key)),
            system_assets=self.system_assets,
        )


# =============================================================================
# THE WALK
# =============================================================================

def walk_root(
    root: Path,
    public_prefix: str,
    mime_types: Mapping[str, str],
    max_size: int,
) -> tuple[dict[str, bytes], set[str]]:
    """
    Depth-first walk of ``root``, returning ``(assets, directories)``.

    Pure with respect to the store: every call returns brand-new
    containers and nothing outside them is modified.

    Args:
        root: Filesystem directory to scan.
        public_prefix: URL prefix the root is published under.
        mime_types: Normalized MIME table (allow-list).
        max_size: Largest file size, in bytes, that gets buffered.

    Raises:
        BufferBuildError: If a directory or eligible file cannot be read.
    """
    assets: dict[str, bytes] = {}
    directories: set[str] = set()
    # (st_dev, st_ino) of the directories on the current recursion path
    active: set[tuple[int, int]] = set()

    def walk(directory: Path, public_dir: str) -> bool:
        # ─────────────────────────────────────────────────────────────────
        # CYCLE GUARD
        # ─────────────────────────────────────────────────────────────────
        # Symlinked directories are followed, so a link pointing at an
        # ancestor would recurse forever. Only ancestors are refused: an
        # alias such as latest -> v1 is walked under both names.
        try:
            info = directory.stat()
        except OSError as e:
            raise BufferBuildError("Cannot stat directory", directory) from e

        identity = (info.st_dev, info.st_ino)
        if identity in active:
            logger.warning(f"Skipping symlink cycle: {directory}")
            return False

        active.add(identity)
        try:
            return walk_entries(directory, public_dir)
        finally:
            active.discard(identity)

    def walk_entries(directory: Path, public_dir: str) -> bool:
        found_any = False
        for entry in _scan(directory):
            entry_path = Path(entry.path)
            public_path = join_url(public_dir, entry.name)

            if entry.is_dir():
                if walk(entry_path, public_path):
                    directories.add(public_path)
                    found_any = True
                continue

            if not entry.is_file():
                # Broken symlinks, sockets, fifos...
                logger.debug(f"Skipping non-regular entry: {entry_path}")
                continue

            if not is_allowed(entry.name, mime_types):
                logger.debug(f"Skipping {entry_path}: extension not in MIME table")
                continue

            try:
                size = entry.stat().st_size
            except OSError as e:
                raise BufferBuildError("Cannot stat file", entry_path) from e

            if size > max_size:
                logger.debug(f"Skipping {entry_path}: {size} bytes > {max_size}")
                continue

            content = _read(entry_path)
            # Re-check: the file may have grown between stat() and read
            if len(content) > max_size:
                logger.debug(f"Skipping {entry_path}: grew past {max_size} bytes while reading")
                continue

            assets[public_path] = content
            found_any = True

        return found_any

    walk(root, public_prefix)
    return assets, directories


def _scan(directory: Path) -> list[os.DirEntry]:
    """Directory entries sorted by name so builds are deterministic."""
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        raise BufferBuildError("Cannot list directory", directory) from e


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise BufferBuildError("Cannot read file", path) from e


# =============================================================================
# BUILD
# =============================================================================

def base_directories(config: WebConfig) -> set[str]:
    """Root directory plus every mount prefix and its ancestors."""
    directories = {"/"}
    for prefix, _ in config.mounts():
        directories.add(prefix)
        directories.update(ancestors(prefix))
    return directories


def load_system_assets(config: WebConfig) -> dict[SystemAsset, bytes]:
    """
    Load the reserved assets the config asks for.

    Only buffered builds keep them in memory; without buffering the
    not-found page is read from disk at dispatch time instead.
    """
    system: dict[SystemAsset, bytes] = {}
    if not config.buffering:
        return system

    page = config.not_found_page
    if page is not None:
        try:
            system[SystemAsset.NOT_FOUND_PAGE] = page.read_bytes()
        except OSError as e:
            raise BufferBuildError("Cannot read not-found page", page) from e

    if config.list_navigator:
        try:
            system[SystemAsset.LIST_NAVIGATOR] = LIST_NAVIGATOR_TEMPLATE.read_bytes()
        except OSError as e:
            raise BufferBuildError("Cannot read list navigator template", LIST_NAVIGATOR_TEMPLATE) from e

    return system


def build_snapshot(config: WebConfig) -> AssetSnapshot:
    """
    Build a complete AssetSnapshot for ``config``.

    =====================================================================
    FLOW
    =====================================================================

        1. Start from the base directories ("/" + mount prefixes)
        2. Walk every mount (skipped entirely when buffering is off)
        3. Load system assets (not-found page, navigator template)
        4. Freeze everything into a read-only snapshot

    Earlier mounts win when two mounts publish the same path.

    =====================================================================

    Raises:
        BufferBuildError: On any read failure. Nothing is returned, so
                          the caller's current snapshot stays in place.
    """
    start_time = time.time()

    assets: dict[str, bytes] = {}
    directories = base_directories(config)

    if config.buffering:
        for prefix, root in config.mounts():
            mount_assets, mount_directories = walk_root(
                root, prefix, config.mime_types, config.buffering_max_size
            )
            for key, content in mount_assets.items():
                if key in assets:
                    logger.warning(f"{key} published by more than one mount; keeping the first")
                    continue
                assets[key] = content
            directories.update(mount_directories)

    system = load_system_assets(config)

    snapshot = AssetSnapshot(
        assets=MappingProxyType(assets),
        directories=frozenset(directories),
        system_assets=MappingProxyType(system),
    )

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"Buffered {len(snapshot.assets)} assets ({snapshot.total_bytes} bytes, "
        f"{len(snapshot.directories)} directories) in {duration_ms:.1f}ms"
    )
    return snapshot


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. walk_root(): pure DFS returning fresh (assets, directories)
# 2. Allow-list = MIME table, ceiling = buffering_max_size
# 3. (st_dev, st_ino) of the recursion path stops symlink cycles
# 4. Any OSError aborts the build as BufferBuildError
# 5. AssetSnapshot is frozen; add_buffer goes through with_asset()
# =============================================================================
