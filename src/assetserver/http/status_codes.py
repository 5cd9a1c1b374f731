"""
=============================================================================
STATUS CODES USED BY THE ASSET LAYER
=============================================================================

The asset layer only ever produces a handful of statuses. They are kept
in a small IntEnum so they compare equal to plain integers (response
sinks coming from other frameworks speak ints) while still carrying the
reason phrase needed to serialize a status line.

    ┌────────┬────────────────────────────────────────────────────────────┐
    │  200   │ Asset served (cache or disk) or directory listing page     │
    │  404   │ Not-found policy is True or names a custom page            │
    │  500   │ Only produced by the demo adapter when the handler raises  │
    │  501   │ Demo adapter: method other than GET/HEAD                   │
    └────────┴────────────────────────────────────────────────────────────┘

A miss with the not-found policy set to False produces NO status at all:
the handler reports "unhandled" and the caller decides.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("HTTP/1.1 404 Not Found")."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
}


def reason_phrase(code: int) -> str:
    """
    Reason phrase for any integer status code.

    Sinks may be handed codes outside the enum (a caller applying its own
    fallback after an "unhandled" miss), so unknown codes get "Unknown"
    instead of raising.
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"
