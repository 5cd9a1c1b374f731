"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Maps file extensions to Content-Type values.

In the asset layer the MIME table plays TWO roles:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    MIME TABLE = ALLOW-LIST                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. CONTENT TYPE                                                   │
    │      /css/site.css  ──►  ".css"  ──►  "text/css"   (sent as is)    │
    │                                                                      │
    │   2. ALLOW-LIST                                                     │
    │      /secrets.env   ──►  ".env"  ──►  (no entry) ──► never served  │
    │                                                                      │
    │   A file whose extension has no entry is never buffered and never  │
    │   read from disk. Shrinking the table is how you keep source files, │
    │   dotfiles and backups out of the public tree.                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
EXTENSION KEYS
=============================================================================

Tables are stored with lowercase, dot-prefixed keys (".png"). Callers can
hand in either form; normalize_mime_table() folds "png", ".png" and
".PNG" into the same key.

    Path("photo.JPG").suffix.lower()  ──►  ".jpg"
    Path("archive.tar.gz").suffix     ──►  ".gz"     (last suffix only)
    Path("Makefile").suffix           ──►  ""        (never allowed)

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Mapping, Optional


# =============================================================================
# DEFAULT MIME TABLE
# =============================================================================
#
# Covers the usual content of a static web tree. Everything not listed
# here is invisible to the asset layer unless the caller supplies a
# bigger table.
#
# =============================================================================

DEFAULT_MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT / WEB
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",    # Source maps
    ".xml": "text/xml",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".md": "text/markdown",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/vnd.microsoft.icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO
    # -------------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".aac": "audio/aac",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # -------------------------------------------------------------------------
    # ARCHIVES / DOCUMENTS
    # -------------------------------------------------------------------------
    ".zip": "application/zip",
    ".bz": "application/x-bzip",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    ".pdf": "application/pdf",
    ".wasm": "application/wasm",
}


# Types served with a charset parameter even though they are not text/*
_TEXTUAL_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


# =============================================================================
# PUBLIC FUNCTIONS
# =============================================================================

def normalize_extension(extension: str) -> str:
    """
    Normalize an extension key: lowercase with a single leading dot.

        >>> normalize_extension("PNG")
        '.png'
        >>> normalize_extension(".tar.gz")
        '.tar.gz'
    """
    extension = extension.strip().lower()
    if not extension:
        return ""
    return "." + extension.lstrip(".")


def normalize_mime_table(table: Mapping[str, str]) -> dict[str, str]:
    """
    Return a copy of ``table`` with every key normalized.

    Entries with an empty key or an empty content type are dropped,
    since neither can ever match a served file.
    """
    normalized = {}
    for extension, mime_type in table.items():
        key = normalize_extension(extension)
        if key and mime_type:
            normalized[key] = mime_type
    return normalized


def extension_of(path: str) -> str:
    """
    Lowercase extension of the last path segment ("" when there is none).

    Works on URL paths and filesystem paths alike; a dotfile such as
    ``.htaccess`` has no extension.
    """
    return PurePosixPath(path).suffix.lower()


def get_mime_type(path: str, table: Mapping[str, str]) -> Optional[str]:
    """
    Look up the MIME type for ``path`` in a normalized table.

    Returns None when the extension is missing or not allowed. Unlike a
    general-purpose web server there is no octet-stream fallback: an
    unknown extension means "not servable".

    Examples:
        >>> get_mime_type("/css/site.css", DEFAULT_MIME_TYPES)
        'text/css'
        >>> get_mime_type("/Makefile", DEFAULT_MIME_TYPES) is None
        True
    """
    extension = extension_of(path)
    if not extension:
        return None
    return table.get(extension)


def is_allowed(path: str, table: Mapping[str, str]) -> bool:
    """True when ``path`` has an extension present in ``table``."""
    return get_mime_type(path, table) is not None


def is_text_type(mime_type: str) -> bool:
    """
    Check if a MIME type represents text content.

        >>> is_text_type("text/html")
        True
        >>> is_text_type("application/json")
        True
        >>> is_text_type("image/png")
        False
    """
    if mime_type.startswith("text/"):
        return True
    return mime_type in _TEXTUAL_APPLICATION_TYPES


def get_content_type(mime_type: str, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a MIME type.

    Only for content the layer encodes itself (the listing page); served
    files carry the table value unchanged.

    Text types get a charset parameter, binary types are returned as is.
    A value that already carries parameters is left untouched.

        >>> get_content_type("text/html")
        'text/html; charset=utf-8'
        >>> get_content_type("image/png")
        'image/png'
    """
    if ";" in mime_type:
        return mime_type
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
