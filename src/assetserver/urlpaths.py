"""
Helpers for public URL paths.

Every public path handled by the asset layer is absolute ("/..."), uses
"/" as separator and never contains an empty segment ("//"). These
helpers keep it that way when paths are glued together.
"""

import posixpath
import re

_SLASH_RUNS = re.compile(r"/{2,}")


def collapse_slashes(path: str) -> str:
    """Replace every run of slashes by a single one."""
    return _SLASH_RUNS.sub("/", path)


def join_url(*parts: str) -> str:
    """
    Join URL fragments into an absolute path without double slashes.

        >>> join_url("/static/", "/css", "site.css")
        '/static/css/site.css'
        >>> join_url("/", "")
        '/'
    """
    return collapse_slashes("/" + "/".join(parts))


def normalize_prefix(prefix: str) -> str:
    """
    Canonical form of a URL prefix: leading slash, no trailing slash,
    except for the root prefix which stays "/".
    """
    stripped = join_url(prefix).rstrip("/")
    return stripped or "/"


def trim_trailing_slash(path: str) -> str:
    """Drop trailing slashes: "/docs/" -> "/docs", while "/" and "" become "/"."""
    trimmed = path.rstrip("/")
    return trimmed or "/"


def parent_url(path: str) -> str:
    """Parent directory of a public path ("/" is its own parent)."""
    return posixpath.dirname(trim_trailing_slash(path)) or "/"


def ancestors(path: str) -> list[str]:
    """
    Every ancestor directory of ``path``, root first, ``path`` excluded.

        >>> ancestors("/gallery/sub/a.png")
        ['/', '/gallery', '/gallery/sub']
    """
    result = []
    current = trim_trailing_slash(path)
    while current != "/":
        current = parent_url(current)
        result.append(current)
    result.reverse()
    return result


def is_within(path: str, prefix: str) -> bool:
    """True when ``path`` equals ``prefix`` or lies underneath it."""
    if prefix == "/":
        return path.startswith("/")
    return path == prefix or path.startswith(prefix + "/")
