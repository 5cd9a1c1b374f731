"""
=============================================================================
HTTP SEAMS
=============================================================================

The thin HTTP vocabulary the asset layer shares with its host server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      HTTPRequest / IncomingRequest (target + metadata)   │
    │ response.py     HTTPResponse / ResponseSink (status, headers, body) │
    │ mime_types.py   extension → Content-Type table (also an allow-list) │
    │ status_codes.py HTTPStatus enum with reason phrases                 │
    └─────────────────────────────────────────────────────────────────────┘

No parsing of the wire format happens here; that belongs to the server
the layer is embedded in.

=============================================================================
"""

from .mime_types import (
    DEFAULT_MIME_TYPES,
    get_content_type,
    get_mime_type,
    normalize_mime_table,
)
from .request import HTTPRequest, IncomingRequest
from .response import HTTPResponse, ResponseFinishedError, ResponseSink, format_http_date
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "HTTPRequest",
    "IncomingRequest",
    # Responses
    "HTTPResponse",
    "ResponseSink",
    "ResponseFinishedError",
    "format_http_date",
    # Status codes
    "HTTPStatus",
    # MIME types
    "DEFAULT_MIME_TYPES",
    "get_mime_type",
    "get_content_type",
    "normalize_mime_table",
]
