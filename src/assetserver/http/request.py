"""
=============================================================================
INCOMING REQUEST
=============================================================================

The asset layer does not parse HTTP. Whatever server it is embedded in
has already done that; all the layer needs is the REQUEST TARGET, the
raw path exactly as it appeared on the request line, query included:

    GET /gallery/a.png?v=3 HTTP/1.1
        ─────────┬────────
                 └── target  ──►  HTTPRequest(target="/gallery/a.png?v=3")

The resolver strips the query itself, so adapters must NOT pre-split it.

Any object with a ``target`` attribute can be handed to the handler;
HTTPRequest is the concrete type used by the bundled adapter and the
tests. Method, headers and client address are carried along for the
access log only.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Protocol


class IncomingRequest(Protocol):
    """Minimal request shape consumed by StaticAssetHandler."""

    target: str


@dataclass
class HTTPRequest:
    """
    A request as seen by the asset layer.

    Attributes:
        target:         Raw request target ("/docs/?page=2").
        method:         HTTP method, informational only.
        headers:        Header dict with LOWERCASE keys.
        client_address: (ip, port) of the peer, for access logging.
    """

    target: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def path(self) -> str:
        """Target without the query component."""
        return self.target.split("?", 1)[0]

    @property
    def query_string(self) -> str:
        """Everything after the first "?" ("" when absent)."""
        _, _, query = self.target.partition("?")
        return query

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)
