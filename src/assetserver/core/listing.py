"""
=============================================================================
DIRECTORY LISTING ("LIST NAVIGATOR")
=============================================================================

When a request misses but names a directory the asset store knows about,
the handler can answer with a generated listing instead of a 404.

=============================================================================
TEMPLATE TOKENS
=============================================================================

The page comes from templates/list_navigator.html, loaded into the
snapshot's system assets at build time. Four literal tokens are replaced:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │ {url}        │ The directory path            "/gallery"             │
    │ {back}       │ Its parent                    "/"                    │
    │ {lists}      │ One <tr> per immediate child  subdirectories, files  │
    │ {comment}    │ Footer                        "AssetServer | 2026/.."│
    └──────────────┴──────────────────────────────────────────────────────┘

Substitution is a single pass, so a file literally named "{lists}.txt"
is shown as is and never expanded.

=============================================================================
IMMEDIATE CHILDREN ONLY
=============================================================================

    directory = "/gallery"

    "/gallery/a.png"          remainder "a.png"       ──►  listed
    "/gallery/sub"            remainder "sub"         ──►  listed
    "/gallery/sub/b.png"      remainder "sub/b.png"   ──►  NOT listed
    "/gallery2/c.png"         not under "/gallery/"   ──►  NOT listed

=============================================================================
"""

import html
import re
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote

from ..urlpaths import parent_url, trim_trailing_slash
from .asset_store import AssetSnapshot, SystemAsset


PRODUCT_LABEL = "AssetServer"
TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"

_TOKEN = re.compile(r"\{(url|back|lists|comment)\}")


class DirectoryListing:
    """
    Renders listing pages from one snapshot.

    Args:
        snapshot: Snapshot holding the directory index, the assets and
                  the LIST_NAVIGATOR template.
        clock: Returns the time shown in the footer (injectable for tests).
    """

    def __init__(
        self,
        snapshot: AssetSnapshot,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.snapshot = snapshot
        self.clock = clock

    def directory_for(self, path: str) -> Optional[str]:
        """
        Known directory named by ``path`` (trailing slash ignored), or None.

        Also None when no template was loaded, i.e. the navigator is off.
        """
        if self.snapshot.system_asset(SystemAsset.LIST_NAVIGATOR) is None:
            return None
        directory = trim_trailing_slash(path)
        if directory in self.snapshot.directories:
            return directory
        return None

    def children(self, directory: str) -> tuple[list[str], list[str]]:
        """Immediate (subdirectories, files) of ``directory``, each sorted."""
        prefix = directory if directory == "/" else directory + "/"

        def is_child(path: str) -> bool:
            if path == directory or not path.startswith(prefix):
                return False
            remainder = path[len(prefix):]
            return bool(remainder) and "/" not in remainder

        subdirectories = sorted(d for d in self.snapshot.directories if is_child(d))
        files = sorted(key for key in self.snapshot.assets if is_child(key))
        return subdirectories, files

    def render(self, directory: str) -> bytes:
        """
        Build the listing page for ``directory``.

        Raises:
            LookupError: If the navigator template is not loaded.
        """
        template = self.snapshot.system_asset(SystemAsset.LIST_NAVIGATOR)
        if template is None:
            raise LookupError("list navigator template is not loaded")

        subdirectories, files = self.children(directory)
        rows = [self._row(path, "-") for path in subdirectories]
        rows += [self._row(path, f"{len(self.snapshot.assets[path]):,}") for path in files]

        values = {
            "url": html.escape(directory),
            "back": html.escape(parent_url(directory)),
            "lists": "".join(rows),
            "comment": f"{PRODUCT_LABEL} | {self.clock().strftime(TIMESTAMP_FORMAT)}",
        }
        page = _TOKEN.sub(lambda match: values[match.group(1)], template.decode("utf-8"))
        return page.encode("utf-8")

    @staticmethod
    def _row(path: str, size: str) -> str:
        href = html.escape(quote(path), quote=True)
        name = html.escape(path.rsplit("/", 1)[-1])
        return f'<tr><td>{size}</td><td><a href="{href}">{name}</a></td></tr>'
