"""
=============================================================================
ACCESS LOG
=============================================================================

StaticAssetHandler calls an optional hook after every request it
answered with content:

    hook(request, response, outcome)

AccessLogger is the bundled hook. It turns the triple into a structured
RequestLog entry and emits it on the "assetserver.access" logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default, Apache-style):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "GET /a.png" 200 1234 served │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"method": "GET", "path": "/a.png", "status_code": 200, ...}        │
    └─────────────────────────────────────────────────────────────────────┘

Route or silence the access log like any other logger:

    logging.getLogger("assetserver.access").setLevel(logging.WARNING)

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable


logger = logging.getLogger("assetserver.access")


class Outcome(Enum):
    """How a handled request was answered."""

    SERVED = "served"      # Asset content, status 200
    LISTING = "listing"    # Generated directory listing, status 200


AccessLogHook = Callable[[Any, Any, Outcome], None]


@dataclass
class RequestLog:
    """
    Structured log entry for one answered request.

    Fields the request or response cannot provide are logged as "-".
    """

    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    outcome: str
    timestamp: str

    def to_dict(self) -> dict:
        return asdict(self)

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.outcome}'
        )


class AccessLogger:
    """
    Access-log hook for StaticAssetHandler.

    Usage:
        handler = StaticAssetHandler(config, access_log=AccessLogger("json"))

    Args:
        log_format: "text" (Apache style) or "json".
        log_level: Level the entries are emitted at.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: Any, response: Any, outcome: Outcome) -> None:
        entry = self.build_entry(request, response, outcome)
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

    @staticmethod
    def build_entry(request: Any, response: Any, outcome: Outcome) -> RequestLog:
        """Collect what the request and response expose into a RequestLog."""
        target = getattr(request, "target", "")
        path, _, query = target.partition("?")
        client_address = getattr(request, "client_address", None) or ("-", 0)
        body = getattr(response, "body", b"")

        return RequestLog(
            method=getattr(request, "method", "-") or "-",
            path=path,
            query=query,
            client_ip=client_address[0] or "-",
            user_agent=getattr(request, "user_agent", None) or "-",
            status_code=int(getattr(response, "status", 0)),
            content_length=len(body),
            outcome=outcome.value,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
