"""
=============================================================================
HANDLERS
=============================================================================

StaticAssetHandler / serve_static()
   - Buffers a content tree into memory at startup
   - Resolves request targets (cache first, optional disk fallback)
   - Directory indexes (index.html, ...)
   - Generated directory listings
   - Not-found policy: unhandled / bare 404 / custom page

    from assetserver.handlers import serve_static

    static = serve_static("htdocs", not_found=True)
    if not static.handle(request, response):
        ...

=============================================================================
"""

from .static import NotFoundPageError, StaticAssetHandler, serve_static

__all__ = [
    "StaticAssetHandler",
    "NotFoundPageError",
    "serve_static",
]
