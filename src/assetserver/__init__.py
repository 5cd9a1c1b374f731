"""
=============================================================================
ASSETSERVER - Buffered Static Asset Delivery
=============================================================================

An embeddable static-asset layer: it scans a content tree once, keeps
eligible files in memory keyed by their public URL, and answers requests
from inside any HTTP server's request handler.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ASSETSERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   host server ──► StaticAssetHandler.handle(request, response)      │
    │                          │                                           │
    │          ┌───────────────┼──────────────────┐                        │
    │          ▼               ▼                  ▼                        │
    │    PathResolver    DirectoryListing   not-found policy              │
    │          │               │                                           │
    │          ▼               ▼                                           │
    │    AssetSnapshot (assets + directories + system assets)             │
    │          ▲                                                           │
    │          │ build_snapshot() walks root_dir once per (re)configure   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    assetserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI demo server (python -m assetserver)
    ├── config.py            # WebConfig / ConfigPatch
    ├── access_log.py        # Access-log hook
    ├── urlpaths.py          # Public URL path helpers
    ├── core/
    │   ├── asset_store.py   # Build walk, AssetSnapshot
    │   ├── resolver.py      # Request target → asset
    │   └── listing.py       # Directory listing page
    ├── http/
    │   ├── request.py       # HTTPRequest
    │   ├── response.py      # HTTPResponse (response sink)
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # MIME table / allow-list
    ├── handlers/
    │   └── static.py        # StaticAssetHandler
    └── templates/
        └── list_navigator.html

=============================================================================
QUICK START
=============================================================================

    from assetserver import StaticAssetHandler, WebConfig, HTTPRequest, HTTPResponse

    handler = StaticAssetHandler(WebConfig(
        root_dir="htdocs",
        directory_indexes=("index.html",),
        not_found=True,
    ))

    response = HTTPResponse()
    handler.handle(HTTPRequest("/docs?x=1"), response)
    sock.sendall(response.to_bytes())

=============================================================================
"""

__version__ = "1.0.0"

from .access_log import AccessLogger, Outcome
from .config import ConfigPatch, WebConfig
from .core import BufferBuildError
from .handlers import NotFoundPageError, StaticAssetHandler, serve_static
from .http import HTTPRequest, HTTPResponse, HTTPStatus

__all__ = [
    "StaticAssetHandler",
    "serve_static",
    "WebConfig",
    "ConfigPatch",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "AccessLogger",
    "Outcome",
    "BufferBuildError",
    "NotFoundPageError",
    "__version__",
]
