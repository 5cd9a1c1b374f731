"""
=============================================================================
ASSET LAYER CONFIGURATION
=============================================================================

Centralized configuration for the asset buffering and resolution layer.

=============================================================================
TWO SHAPES: CONFIG AND PATCH
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIG + PATCH = NEW CONFIG                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   WebConfig (frozen)          ConfigPatch (every field optional)    │
    │   ──────────────────          ───────────────────────────────────   │
    │   root_dir="htdocs"           root_dir=None        (keep)           │
    │   buffering=True              buffering=None       (keep)           │
    │   not_found=False             not_found="404.html" (replace)        │
    │                                                                      │
    │                    base.merge(patch)                                │
    │                           │                                         │
    │                           ▼                                         │
    │                 WebConfig(not_found="404.html", ...)                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A config is never mutated in place. Reconfiguring the handler merges a
patch onto the current config, producing a NEW record, then rebuilds the
buffer from it. The merge is field-by-field, so the order in which
fields are supplied never matters.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Keyword arguments to StaticAssetHandler.reconfigure(...)
    2. Environment variables (ASSET_ROOT_DIR=./public ...)
    3. Defaults below

=============================================================================
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .http.mime_types import DEFAULT_MIME_TYPES, normalize_mime_table
from .urlpaths import join_url, normalize_prefix


RootDir = Union[str, Mapping[str, str]]
NotFoundPolicy = Union[bool, str]

LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class WebConfig:
    """
    Configuration of one StaticAssetHandler build cycle.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT
    - url_prefix, root_dir, mime_types

    BUFFERING
    - buffering, buffering_max_size, direct_reading

    FALLBACKS
    - not_found, directory_indexes, list_navigator

    RESPONSE / LOGGING
    - response_headers, log_access, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    url_prefix: str = "/"
    """
    Public path prefix under which content is served.
    "/static" publishes htdocs/app.js as /static/app.js.
    """

    root_dir: RootDir = "htdocs"
    """
    Filesystem root to publish. A mapping mounts several roots:
        {"/": "htdocs", "/media": "/srv/media"}
    Mapping keys are URL sub-prefixes joined under url_prefix.
    """

    mime_types: Mapping[str, str] = field(default_factory=lambda: DEFAULT_MIME_TYPES)
    """
    Extension → Content-Type. Doubles as the allow-list: files whose
    extension is missing here are never served.
    """

    # ─────────────────────────────────────────────────────────────────────
    # BUFFERING
    # ─────────────────────────────────────────────────────────────────────

    buffering: bool = True
    """
    Pre-load eligible files into memory at build time. When False nothing
    is cached and every request reads from disk.
    """

    buffering_max_size: int = 300_000
    """
    Files larger than this (bytes) are never cached. With direct_reading
    they can still be served from disk.
    """

    direct_reading: bool = False
    """
    With buffering on, fall through to a live disk read for paths that
    are not in the cache (oversized files, files added after the build).
    """

    # ─────────────────────────────────────────────────────────────────────
    # FALLBACKS
    # ─────────────────────────────────────────────────────────────────────

    not_found: NotFoundPolicy = False
    """
    What to do when nothing resolves:
    - False       → report "unhandled", write nothing
    - True        → bare 404 with an empty body
    - "404.html"  → 404 with that file as body (relative to root_dir)
    """

    directory_indexes: tuple[str, ...] = ()
    """
    Files tried, in order, when the path names a directory:
        ("index.html", "index.htm")
    """

    list_navigator: bool = False
    """
    Serve a generated listing page for known directories that have no
    index file.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    response_headers: Mapping[str, str] = field(default_factory=dict)
    """
    Headers applied to every successful response, e.g.
        {"Cache-Control": "max-age=60"}
    Content-Type is always set from the MIME table and wins over any
    content-type entry here.
    """

    log_access: bool = False
    """Emit an access-log line for every served asset."""

    log_format: str = "text"
    """Access-log format: 'text' (Apache style) or 'json'."""

    def __post_init__(self):
        # Freeze the containers so a config can be shared between threads
        set_ = object.__setattr__
        set_(self, "url_prefix", normalize_prefix(self.url_prefix))
        set_(self, "mime_types", MappingProxyType(normalize_mime_table(self.mime_types)))
        set_(self, "response_headers", MappingProxyType(dict(self.response_headers)))
        if isinstance(self.directory_indexes, str):
            set_(self, "directory_indexes", (self.directory_indexes,))
        else:
            set_(self, "directory_indexes", tuple(self.directory_indexes))
        if not isinstance(self.root_dir, (str, os.PathLike)):
            set_(self, "root_dir", MappingProxyType(dict(self.root_dir)))

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    def mounts(self) -> list[tuple[str, Path]]:
        """
        Ordered (public_prefix, filesystem_root) pairs.

            WebConfig(url_prefix="/site", root_dir="htdocs").mounts()
            → [("/site", Path("htdocs"))]
        """
        if isinstance(self.root_dir, (str, os.PathLike)):
            return [(self.url_prefix, Path(self.root_dir))]
        return [
            (normalize_prefix(join_url(self.url_prefix, sub_prefix)), Path(directory))
            for sub_prefix, directory in self.root_dir.items()
        ]

    @property
    def not_found_page(self) -> Optional[Path]:
        """
        Filesystem path of the custom not-found page, if one is configured.

        Relative names are resolved against the first mount root, so
        ``not_found="error.html"`` means ``<root_dir>/error.html``.
        """
        if not isinstance(self.not_found, str):
            return None
        page = Path(self.not_found)
        if page.is_absolute():
            return page
        return self.mounts()[0][1] / page

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    def merge(self, patch: "ConfigPatch") -> "WebConfig":
        """Return a new config with every field the patch supplies replaced."""
        return replace(self, **patch.changes())

    @classmethod
    def from_env(cls) -> "WebConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        ASSET_ROOT_DIR            Root directory (default: htdocs)
        ASSET_URL_PREFIX          Public prefix (default: /)
        ASSET_BUFFERING           true/false (default: true)
        ASSET_BUFFERING_MAX_SIZE  Byte ceiling (default: 300000)
        ASSET_DIRECT_READING      true/false (default: false)
        ASSET_NOT_FOUND           true, false or a page name (default: false)
        ASSET_DIRECTORY_INDEXES   Comma separated (e.g. index.html,index.htm)
        ASSET_LIST_NAVIGATOR      true/false (default: false)
        ASSET_LOG_ACCESS          true/false (default: false)
        ASSET_LOG_FORMAT          text or json (default: text)

        =====================================================================
        """
        return cls().merge(ConfigPatch.from_env())

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once per build so a bad reconfigure fails before the old
        buffer is thrown away.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not self.mounts():
            raise ValueError("root_dir mapping must name at least one mount")

        if self.buffering_max_size < 0:
            raise ValueError("buffering_max_size must be >= 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")

        if isinstance(self.not_found, str) and not self.not_found.strip():
            raise ValueError("not_found page name must not be empty")

        for index in self.directory_indexes:
            if not index or index.startswith("/") or ".." in index.split("/"):
                raise ValueError(f"Invalid directory index entry: {index!r}")


@dataclass(frozen=True)
class ConfigPatch:
    """
    Partial configuration: ``None`` means "not supplied, keep the base".

        patch = ConfigPatch(not_found="404.html", list_navigator=True)
        config = config.merge(patch)
    """

    url_prefix: Optional[str] = None
    root_dir: Optional[RootDir] = None
    mime_types: Optional[Mapping[str, str]] = None
    buffering: Optional[bool] = None
    buffering_max_size: Optional[int] = None
    direct_reading: Optional[bool] = None
    not_found: Optional[NotFoundPolicy] = None
    directory_indexes: Optional[tuple[str, ...]] = None
    list_navigator: Optional[bool] = None
    response_headers: Optional[Mapping[str, str]] = None
    log_access: Optional[bool] = None
    log_format: Optional[str] = None

    def changes(self) -> dict:
        """Supplied fields only, ready for dataclasses.replace()."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @classmethod
    def from_env(cls) -> "ConfigPatch":
        """Patch holding only the ASSET_* variables that are set."""
        changes = {}

        if "ASSET_ROOT_DIR" in os.environ:
            changes["root_dir"] = os.environ["ASSET_ROOT_DIR"]
        if "ASSET_URL_PREFIX" in os.environ:
            changes["url_prefix"] = os.environ["ASSET_URL_PREFIX"]
        if "ASSET_BUFFERING" in os.environ:
            changes["buffering"] = _parse_bool(os.environ["ASSET_BUFFERING"])
        if "ASSET_BUFFERING_MAX_SIZE" in os.environ:
            changes["buffering_max_size"] = int(os.environ["ASSET_BUFFERING_MAX_SIZE"])
        if "ASSET_DIRECT_READING" in os.environ:
            changes["direct_reading"] = _parse_bool(os.environ["ASSET_DIRECT_READING"])
        if "ASSET_NOT_FOUND" in os.environ:
            changes["not_found"] = _parse_not_found(os.environ["ASSET_NOT_FOUND"])
        if "ASSET_DIRECTORY_INDEXES" in os.environ:
            changes["directory_indexes"] = tuple(
                name.strip()
                for name in os.environ["ASSET_DIRECTORY_INDEXES"].split(",")
                if name.strip()
            )
        if "ASSET_LIST_NAVIGATOR" in os.environ:
            changes["list_navigator"] = _parse_bool(os.environ["ASSET_LIST_NAVIGATOR"])
        if "ASSET_LOG_ACCESS" in os.environ:
            changes["log_access"] = _parse_bool(os.environ["ASSET_LOG_ACCESS"])
        if "ASSET_LOG_FORMAT" in os.environ:
            changes["log_format"] = os.environ["ASSET_LOG_FORMAT"]

        return cls(**changes)


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def _parse_not_found(value: str) -> NotFoundPolicy:
    """Map true/false words to the boolean policies, anything else is a page."""
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    return value


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. WebConfig is immutable; containers are frozen in __post_init__
# 2. ConfigPatch + merge() replace presence checks with one replace()
# 3. from_env() is just a patch built from ASSET_* variables
# 4. validate() runs before every build (fail-fast, old buffer kept)
# =============================================================================
