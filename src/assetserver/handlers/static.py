"""
=============================================================================
STATIC ASSET HANDLER
=============================================================================

Serves a pre-buffered content tree from inside any HTTP request handler.

=============================================================================
EMBEDDING
=============================================================================

The handler does not own a socket. The host server calls handle() for
each request and looks at the return value:

    handler = StaticAssetHandler(WebConfig(
        root_dir="htdocs",
        not_found="error.html",
        directory_indexes=("index.html",),
        list_navigator=True,
        response_headers={"Cache-Control": "max-age=60"},
    ))

    def on_request(request, response):
        if handler.handle(request, response):
            return                   # answered (200 or 404)
        my_api_router(request, response)   # "unhandled": our turn

=============================================================================
PER-REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   handle(request, response)                                         │
    │        │                                                             │
    │        ▼                                                             │
    │   PathResolver.resolve(target) ── hit ──► 200 + Content-Type        │
    │        │                                  + configured headers       │
    │        │ miss                             + content, end()           │
    │        ▼                                  access log  → True         │
    │   list_navigator and known directory?                               │
    │        │ yes ──► 200 listing page, end()  → True                    │
    │        │ no                                                          │
    │        ▼                                                             │
    │   not_found policy                                                  │
    │        ├── False        → nothing written  → False ("unhandled")    │
    │        ├── True         → 404, empty body  → True                   │
    │        └── "error.html" → 404, page body   → True                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STATE AND THREADS
=============================================================================

All mutable state is ONE reference to an immutable _HandlerState
(config + snapshot + resolver + listing). handle() reads that reference
once and works on it, so a rebuild running in another thread is either
fully visible or not visible at all. Writers (reconfigure, update_buffer,
add_buffer) serialize on a single lock; readers never take it.

=============================================================================
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..access_log import AccessLogger, AccessLogHook, Outcome
from ..config import ConfigPatch, WebConfig
from ..core.asset_store import AssetSnapshot, SystemAsset, build_snapshot
from ..core.listing import DirectoryListing
from ..core.resolver import PathResolver, ResolvedAsset, request_path
from ..http.mime_types import get_content_type, get_mime_type
from ..http.request import IncomingRequest
from ..http.response import ResponseSink
from ..http.status_codes import HTTPStatus
from ..urlpaths import join_url


logger = logging.getLogger(__name__)


class NotFoundPageError(Exception):
    """
    Raised when the configured not-found page cannot be read while
    answering a request (buffering disabled, page missing on disk).

    There is no secondary fallback; the request fails.
    """

    def __init__(self, path: Path):
        super().__init__(f"Cannot read not-found page: {path}")
        self.path = path


@dataclass(frozen=True)
class _HandlerState:
    config: WebConfig
    snapshot: AssetSnapshot
    resolver: PathResolver
    listing: DirectoryListing
    access_log: Optional[AccessLogHook]


class StaticAssetHandler:
    """
    Buffered static asset delivery.

    =========================================================================
    OPERATIONS
    =========================================================================

        handle(request, response)  Answer one request; False = unhandled
        resolve(target)            Resolution only, nothing written
        reconfigure(**changes)     Merge new settings, full rebuild
        update_buffer()            Full rebuild with the current settings
        add_buffer(path, content)  Insert one asset without a rescan

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[WebConfig] = None,
        *,
        access_log: Optional[AccessLogHook] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Build the initial buffer.

        Args:
            config: Settings; defaults to WebConfig() (serves ./htdocs).
            access_log: Hook called as hook(request, response, outcome)
                        after each answered request. When omitted and
                        config.log_access is set, an AccessLogger is used.
            clock: Time source for the listing page footer.

        Raises:
            ValueError: If the config is invalid.
            BufferBuildError: If the content tree cannot be read.
        """
        self._lock = threading.Lock()
        self._access_log = access_log
        self._clock = clock
        self._state = self._build_state(config or WebConfig())

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def config(self) -> WebConfig:
        return self._state.config

    @property
    def snapshot(self) -> AssetSnapshot:
        return self._state.snapshot

    @property
    def assets(self):
        """Read-only view: public path → buffered bytes."""
        return self._state.snapshot.assets

    @property
    def directories(self) -> frozenset:
        return self._state.snapshot.directories

    # =========================================================================
    # REBUILDS
    # =========================================================================

    def reconfigure(self, patch: Optional[ConfigPatch] = None, **changes) -> "StaticAssetHandler":
        """
        Merge new settings onto the current config and rebuild.

            handler.reconfigure(not_found="404.html", list_navigator=True)
            handler.reconfigure(ConfigPatch(buffering=False))

        Keyword changes are applied after ``patch``. If validation or the
        build fails, the previous config and buffer stay in service.
        """
        with self._lock:
            config = self._state.config
            if patch is not None:
                config = config.merge(patch)
            if changes:
                config = config.merge(ConfigPatch(**changes))
            self._state = self._build_state(config)
        return self

    def update_buffer(self) -> "StaticAssetHandler":
        """Rescan the content tree with the current settings."""
        with self._lock:
            self._state = self._build_state(self._state.config)
        return self

    def add_buffer(self, path: str, content: bytes) -> "StaticAssetHandler":
        """
        Insert one asset without rescanning.

        ``path`` is relative to the url prefix ("js/app.js" is published
        as "/static/js/app.js" under url_prefix="/static"). The entry
        obeys the same rules as buffered files and is dropped by the next
        full rebuild unless the file also exists on disk.

        Raises:
            ValueError: If the extension is not in the MIME table or the
                        content exceeds buffering_max_size.
        """
        with self._lock:
            state = self._state
            key = join_url(state.config.url_prefix, path)

            if get_mime_type(key, state.config.mime_types) is None:
                raise ValueError(f"Extension of {key!r} is not in the MIME table")
            if len(content) > state.config.buffering_max_size:
                raise ValueError(
                    f"{key!r} is {len(content)} bytes, "
                    f"over buffering_max_size={state.config.buffering_max_size}"
                )

            snapshot = state.snapshot.with_asset(key, content)
            self._state = self._make_state(state.config, snapshot)
            logger.debug(f"Added {key} ({len(content)} bytes) to the buffer")
        return self

    def _build_state(self, config: WebConfig) -> _HandlerState:
        config.validate()
        return self._make_state(config, build_snapshot(config))

    def _make_state(self, config: WebConfig, snapshot: AssetSnapshot) -> _HandlerState:
        access_log = self._access_log
        if access_log is None and config.log_access:
            access_log = AccessLogger(config.log_format)
        return _HandlerState(
            config=config,
            snapshot=snapshot,
            resolver=PathResolver(config, snapshot),
            listing=DirectoryListing(snapshot, clock=self._clock),
            access_log=access_log,
        )

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def resolve(self, raw_path: str) -> Optional[ResolvedAsset]:
        """Resolve a request target without answering it."""
        return self._state.resolver.resolve(raw_path)

    def handle(self, request: IncomingRequest, response: ResponseSink) -> bool:
        """
        Answer ``request`` through ``response``.

        Returns:
            True if a response was written and ended, False if the
            request is unhandled (miss with not_found=False); in that
            case nothing was written to ``response``.

        Raises:
            NotFoundPageError: The not-found page could not be read.
            OSError: A file found by a disk lookup could not be read.
        """
        # Single read of the state: everything below sees one build
        state = self._state
        target = request.target

        # ─────────────────────────────────────────────────────────────────
        # RESOLVE
        # ─────────────────────────────────────────────────────────────────
        resolved = state.resolver.resolve(target)
        if resolved is not None:
            content = state.resolver.load(resolved)
            mime_type = get_mime_type(resolved.key, state.config.mime_types)
            self._send(state, response, content, mime_type)
            self._log(state, request, response, Outcome.SERVED)
            return True

        # ─────────────────────────────────────────────────────────────────
        # LIST NAVIGATOR
        # ─────────────────────────────────────────────────────────────────
        if state.config.list_navigator and state.config.buffering:
            directory = state.listing.directory_for(request_path(target))
            if directory is not None:
                page = state.listing.render(directory)
                # The page is encoded here, so its charset is known
                self._send(state, response, page, get_content_type("text/html"))
                self._log(state, request, response, Outcome.LISTING)
                return True

        logger.debug(f"No asset for {target}")
        return self._not_found(state, response)

    def _send(self, state: _HandlerState, response: ResponseSink, content: bytes, content_type: str) -> None:
        # Fresh header set per response: configured headers + Content-Type
        response.set_status(HTTPStatus.OK)
        for name, value in state.config.response_headers.items():
            if name.lower() != "content-type":
                response.set_header(name, value)
        response.set_header("Content-Type", content_type)
        response.write(content)
        response.end()

    def _log(self, state: _HandlerState, request, response, outcome: Outcome) -> None:
        if state.access_log is not None:
            state.access_log(request, response, outcome)

    def _not_found(self, state: _HandlerState, response: ResponseSink) -> bool:
        """
        Apply the not-found policy.

        =====================================================================
        POLICIES
        =====================================================================

            not_found=False        → return False, response untouched
            not_found=True         → 404, empty body
            not_found="error.html" → 404, page from the system assets
                                     (buffering) or from disk

        =====================================================================
        """
        policy = state.config.not_found
        if isinstance(policy, bool):
            if not policy:
                return False
            response.set_status(HTTPStatus.NOT_FOUND)
            response.end()
            return True

        page = self._not_found_page(state)
        response.set_status(HTTPStatus.NOT_FOUND)
        mime_type = get_mime_type(policy, state.config.mime_types)
        if mime_type is not None:
            response.set_header("Content-Type", mime_type)
        response.write(page)
        response.end()
        return True

    def _not_found_page(self, state: _HandlerState) -> bytes:
        if state.config.buffering:
            page = state.snapshot.system_asset(SystemAsset.NOT_FOUND_PAGE)
            if page is not None:
                return page

        page_path = state.config.not_found_page
        try:
            return page_path.read_bytes()
        except OSError as e:
            raise NotFoundPageError(page_path) from e


def serve_static(root_dir: str, **kwargs) -> StaticAssetHandler:
    """
    Create a handler for ``root_dir``.

    Keyword arguments are WebConfig fields.

    Example:
        static = serve_static("htdocs", url_prefix="/static", not_found=True)
    """
    return StaticAssetHandler(WebConfig(root_dir=root_dir, **kwargs))


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. One immutable state reference; readers never lock
# 2. Resolve → listing → not-found policy, strictly in that order
# 3. Content-Type is the MIME table value, never taken from config headers
# 4. not_found=False is "unhandled", not an error
# =============================================================================
