"""
=============================================================================
RESPONSE SINK
=============================================================================

The asset layer never builds a response object and hands it back.
Instead it WRITES INTO a sink owned by the host server, the same way a
Node-style ``res`` object or a WSGI ``start_response`` pair is driven:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SINK CONTRACT                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   set_status(200)                  any number of times before end   │
    │   set_header("Content-Type", ...)  any number of times before end   │
    │   write(b"...")                    appends to the body              │
    │   end()                            EXACTLY once                     │
    │                                                                      │
    │   After end(): write() / end() raise ResponseFinishedError.         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Anything implementing these four methods can be passed to the handler.
HTTPResponse is the in-memory implementation: it collects status,
headers and body, and to_bytes() serializes them as an HTTP/1.1 message
for adapters that write straight to a socket.

=============================================================================
HEADER NAMES
=============================================================================

Header names are case-insensitive (RFC 7230). HTTPResponse keeps the
spelling of the FIRST set_header() call for a name and lets later calls
with a different case overwrite the value:

    set_header("cache-control", "max-age=60")
    set_header("Cache-Control", "no-store")
    headers == {"cache-control": "no-store"}

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from .status_codes import HTTPStatus, reason_phrase


SERVER_NAME = "AssetServer/1.0"


class ResponseFinishedError(RuntimeError):
    """Raised when a sink is written to or ended after end()."""


class ResponseSink(Protocol):
    """Response shape driven by StaticAssetHandler."""

    def set_status(self, status: int) -> None: ...

    def set_header(self, name: str, value: str) -> None: ...

    def write(self, data: bytes) -> None: ...

    def end(self) -> None: ...


@dataclass
class HTTPResponse:
    """
    In-memory response sink.

    =========================================================================
    LIFECYCLE
    =========================================================================

        handler.handle(req, res)        adapter
        ────────────────────────        ───────
        res.set_status(200)
        res.set_header(...)
        res.write(content)
        res.end()               ──►     if res.finished:
                                            sock.sendall(res.to_bytes())

    A response nobody ended (handler returned False) stays at
    ``finished == False`` so the adapter knows it must answer itself.

    =========================================================================
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    finished: bool = False

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    # =========================================================================
    # SINK METHODS
    # =========================================================================

    def set_status(self, status: int) -> "HTTPResponse":
        self._ensure_open()
        self.status = status
        return self

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any existing value for the name.

        Returns self for method chaining.
        """
        self._ensure_open()
        existing = self._find_header(name)
        self.headers[existing or name] = value
        return self

    def write(self, data: bytes) -> "HTTPResponse":
        """Append ``data`` to the body (str is encoded as UTF-8)."""
        self._ensure_open()
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.body += data
        return self

    def end(self) -> "HTTPResponse":
        """Finalize the response. Calling it twice is an error."""
        self._ensure_open()
        self.finished = True
        return self

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        existing = self._find_header(name)
        if existing is None:
            return default
        return self.headers[existing]

    def to_bytes(self, server_name: str = SERVER_NAME, include_body: bool = True) -> bytes:
        """
        Serialize the response to bytes for sending over a socket.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\\r\\n               ← Status line
            Content-Type: text/css; ...\\r\\n
            Content-Length: 27\\r\\n           ← Auto-calculated
            Date: Thu, 01 Jan 2026 ...\\r\\n   ← Auto-added
            Server: AssetServer/1.0\\r\\n      ← Auto-added
            \\r\\n                             ← Empty line (separator)
            body bytes                       ← Omitted for HEAD

        =====================================================================

        Args:
            server_name: Value for the Server header when none was set.
            include_body: False for HEAD requests. Content-Length still
                          reports the size of the body that WOULD be sent.
        """
        # Copy headers to avoid modifying the sink
        response_headers = dict(self.headers)

        if self._find_header("Content-Length") is None:
            response_headers["Content-Length"] = str(len(self.body))

        if self._find_header("Date") is None:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if self._find_header("Server") is None:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        if not include_body:
            return header_bytes
        return header_bytes + self.body

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _find_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for existing in self.headers:
            if existing.lower() == lowered:
                return existing
        return None

    def _ensure_open(self) -> None:
        if self.finished:
            raise ResponseFinishedError("response already ended")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 01 Jan 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT (UTC), never local time.
    """
    # Weekday names (0=Monday in Python's datetime)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
