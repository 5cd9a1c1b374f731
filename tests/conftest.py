"""
pytest configuration and fixtures.
"""

import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assetserver import HTTPRequest, HTTPResponse, StaticAssetHandler, WebConfig


FIXED_NOW = datetime(2026, 1, 15, 12, 30, 45)

# Small ceiling so "big" files stay cheap to create
MAX_SIZE = 1000

ENV_VARS = [
    "ASSET_ROOT_DIR",
    "ASSET_URL_PREFIX",
    "ASSET_BUFFERING",
    "ASSET_BUFFERING_MAX_SIZE",
    "ASSET_DIRECT_READING",
    "ASSET_NOT_FOUND",
    "ASSET_DIRECTORY_INDEXES",
    "ASSET_LIST_NAVIGATOR",
    "ASSET_LOG_ACCESS",
    "ASSET_LOG_FORMAT",
]


def _write(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """
    A small content tree:

        htdocs/
        ├── index.html, error.html, style.css
        ├── notes.bak, Makefile          (not in MIME table)
        ├── big.png                      (over MAX_SIZE)
        ├── docs/index.html, docs/guide.txt, docs/my file.txt
        ├── gallery/a.png, gallery/sub/b.png
        ├── empty/                       (no files)
        └── only-bak/x.bak               (no eligible files)
    """
    root = tmp_path / "htdocs"
    _write(root / "index.html", b"<h1>home</h1>")
    _write(root / "error.html", b"<h1>missing</h1>")
    _write(root / "style.css", b"body { color: red; }")
    _write(root / "notes.bak", b"backup")
    _write(root / "Makefile", b"all:\n")
    _write(root / "big.png", b"\x89PNG" + b"\x00" * (MAX_SIZE * 2))
    _write(root / "docs" / "index.html", b"<h1>docs</h1>")
    _write(root / "docs" / "guide.txt", b"read me")
    _write(root / "docs" / "my file.txt", b"spaced")
    _write(root / "gallery" / "a.png", b"\x89PNG-a")
    _write(root / "gallery" / "sub" / "b.png", b"\x89PNG-b")
    (root / "empty").mkdir()
    _write(root / "only-bak" / "x.bak", b"old")
    return root


@pytest.fixture
def make_config(content_root: Path) -> Callable[..., WebConfig]:
    """Factory for configs rooted at content_root."""
    def factory(**changes) -> WebConfig:
        changes.setdefault("root_dir", str(content_root))
        changes.setdefault("buffering_max_size", MAX_SIZE)
        return WebConfig(**changes)
    return factory


@pytest.fixture
def make_handler(make_config) -> Callable[..., StaticAssetHandler]:
    """Factory for handlers rooted at content_root with a fixed clock."""
    def factory(access_log=None, **changes) -> StaticAssetHandler:
        return StaticAssetHandler(
            make_config(**changes),
            access_log=access_log,
            clock=lambda: FIXED_NOW,
        )
    return factory


def fetch(handler: StaticAssetHandler, target: str) -> tuple[bool, HTTPResponse]:
    """Run one request through the handler."""
    response = HTTPResponse()
    handled = handler.handle(HTTPRequest(target), response)
    return handled, response


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove ASSET_* variables so from_env() sees only what a test sets."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class LiveServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server):
        self.server = server
        self.port = server.server_address[1]
        self._thread: threading.Thread = None

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self):
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self):
        self.server.shutdown()
        self.server.server_close()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def live_server(make_handler) -> Generator[LiveServer, None, None]:
    """The CLI adapter serving content_root on a free port."""
    from http.server import ThreadingHTTPServer
    from assetserver.__main__ import make_request_handler

    handler = make_handler(directory_indexes=("index.html",), list_navigator=True)
    server = ThreadingHTTPServer(("127.0.0.1", 0), make_request_handler(handler))

    live = LiveServer(server)
    live.start()

    yield live

    live.stop()


def symlinks_supported(tmp_path: Path) -> bool:
    target = tmp_path / "symlink-check-target"
    target.mkdir(exist_ok=True)
    try:
        os.symlink(target, tmp_path / "symlink-check", target_is_directory=True)
    except (OSError, NotImplementedError):
        return False
    return True
