"""
Unit tests for the build walk and asset snapshots.
"""

import logging
import os

import pytest

from assetserver.core import asset_store
from assetserver.core.asset_store import (
    AssetSnapshot,
    BufferBuildError,
    SystemAsset,
    build_snapshot,
    walk_root,
)
from assetserver.http.mime_types import DEFAULT_MIME_TYPES

from conftest import MAX_SIZE, symlinks_supported


ELIGIBLE = [
    "index.html",
    "error.html",
    "style.css",
    "docs/index.html",
    "docs/guide.txt",
    "docs/my file.txt",
    "gallery/a.png",
    "gallery/sub/b.png",
]


class TestWalkRoot:
    """Tests for walk_root()."""

    def test_eligible_files_are_byte_identical(self, content_root):
        """Test every eligible file is buffered under its public path."""
        assets, _ = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert sorted(assets) == sorted("/" + name for name in ELIGIBLE)
        for name in ELIGIBLE:
            assert assets["/" + name] == (content_root / name).read_bytes()

    @pytest.mark.parametrize("key", [
        "/notes.bak",         # extension not in the table
        "/Makefile",          # no extension
        "/big.png",           # over the size ceiling
        "/only-bak/x.bak",
    ])
    def test_ineligible_files_are_absent(self, content_root, key):
        """Test files failing the allow-list or size ceiling are skipped."""
        assets, _ = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert key not in assets

    def test_directories_with_assets_only(self, content_root):
        """Test only directories holding buffered assets are recorded."""
        _, directories = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert directories == {"/docs", "/gallery", "/gallery/sub"}

    def test_prefix_is_applied(self, content_root):
        """Test keys are published under the mount prefix."""
        assets, directories = walk_root(content_root, "/static", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert "/static/gallery/sub/b.png" in assets
        assert "/static/gallery" in directories
        assert all(key.startswith("/static/") and "//" not in key for key in assets)

    def test_file_exactly_at_ceiling(self, content_root):
        """Test the ceiling is inclusive."""
        (content_root / "edge.txt").write_bytes(b"x" * MAX_SIZE)

        assets, _ = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert len(assets["/edge.txt"]) == MAX_SIZE

    def test_returns_fresh_containers(self, content_root):
        """Test repeated walks do not share state."""
        first, _ = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)
        second, _ = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert first == second
        assert first is not second

    def test_symlink_cycle_terminates(self, content_root, tmp_path):
        """Test a link back to an ancestor is entered only once."""
        if not symlinks_supported(tmp_path):
            pytest.skip("symlinks not supported")
        os.symlink(content_root / "gallery", content_root / "gallery" / "sub" / "loop")

        assets, _ = walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert "/gallery/a.png" in assets
        assert not any("/loop/" in key for key in assets)

    def test_symlink_alias_keeps_target(self, tmp_path):
        """Test a sibling alias sorting first does not hide its target."""
        if not symlinks_supported(tmp_path):
            pytest.skip("symlinks not supported")
        root = tmp_path / "releases"
        (root / "v1").mkdir(parents=True)
        (root / "v1" / "app.js").write_bytes(b"v1()")
        os.symlink(root / "v1", root / "latest", target_is_directory=True)

        assets, directories = walk_root(root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert assets["/v1/app.js"] == b"v1()"
        assert assets["/latest/app.js"] == b"v1()"
        assert directories == {"/latest", "/v1"}

    def test_missing_root(self, tmp_path):
        """Test a missing root aborts with BufferBuildError."""
        missing = tmp_path / "nope"

        with pytest.raises(BufferBuildError) as excinfo:
            walk_root(missing, "/", DEFAULT_MIME_TYPES, MAX_SIZE)

        assert excinfo.value.path == missing
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_unreadable_file(self, content_root, monkeypatch):
        """Test a read failure aborts the whole walk."""
        def failing_read(path):
            raise BufferBuildError("Cannot read file", path)

        monkeypatch.setattr(asset_store, "_read", failing_read)

        with pytest.raises(BufferBuildError):
            walk_root(content_root, "/", DEFAULT_MIME_TYPES, MAX_SIZE)


class TestBuildSnapshot:
    """Tests for build_snapshot()."""

    def test_base_directories(self, make_config):
        """Test "/" is always present and empty directories are not."""
        snapshot = build_snapshot(make_config())

        assert snapshot.directories == {"/", "/docs", "/gallery", "/gallery/sub"}

    def test_prefix_directories(self, make_config):
        """Test the prefix and its ancestors are known directories."""
        snapshot = build_snapshot(make_config(url_prefix="/site/static"))

        assert {"/", "/site", "/site/static"} <= snapshot.directories
        assert "/site/static/index.html" in snapshot.assets

    def test_idempotent(self, make_config):
        """Test two builds of an unchanged tree are equal."""
        config = make_config()

        assert build_snapshot(config) == build_snapshot(config)

    def test_buffering_disabled(self, make_config):
        """Test nothing is read when buffering is off."""
        snapshot = build_snapshot(make_config(buffering=False, not_found="error.html"))

        assert len(snapshot.assets) == 0
        assert snapshot.directories == {"/"}
        assert snapshot.system_asset(SystemAsset.NOT_FOUND_PAGE) is None

    def test_snapshot_is_read_only(self, make_config):
        """Test the asset map cannot be mutated."""
        snapshot = build_snapshot(make_config())

        with pytest.raises(TypeError):
            snapshot.assets["/evil.html"] = b"x"

    def test_not_found_page_is_a_system_asset(self, make_config, content_root):
        """Test the page is loaded outside the public namespace."""
        snapshot = build_snapshot(make_config(not_found="error.html"))

        page = snapshot.system_asset(SystemAsset.NOT_FOUND_PAGE)
        assert page == (content_root / "error.html").read_bytes()

    def test_missing_not_found_page(self, make_config):
        """Test a missing page fails the build."""
        with pytest.raises(BufferBuildError):
            build_snapshot(make_config(not_found="nope.html"))

    def test_list_navigator_template(self, make_config):
        """Test the template is loaded only when the navigator is on."""
        assert build_snapshot(make_config()).system_asset(SystemAsset.LIST_NAVIGATOR) is None

        template = build_snapshot(make_config(list_navigator=True)).system_asset(
            SystemAsset.LIST_NAVIGATOR
        )
        assert b"{lists}" in template

    def test_multiple_mounts(self, content_root, tmp_path, make_config):
        """Test every mount is published under its own prefix."""
        media = tmp_path / "media"
        media.mkdir()
        (media / "clip.txt").write_bytes(b"clip")

        snapshot = build_snapshot(make_config(root_dir={
            "/": str(content_root),
            "/media": str(media),
        }))

        assert snapshot.assets["/media/clip.txt"] == b"clip"
        assert snapshot.assets["/index.html"] == b"<h1>home</h1>"
        assert "/media" in snapshot.directories

    def test_first_mount_wins(self, content_root, tmp_path, make_config, caplog):
        """Test a path published twice keeps the first mount's content."""
        shadow = tmp_path / "shadow"
        shadow.mkdir()
        (shadow / "index.html").write_bytes(b"shadowed")

        with caplog.at_level(logging.WARNING, logger="assetserver.core.asset_store"):
            snapshot = build_snapshot(make_config(root_dir={
                "/": str(content_root),
                "/docs": str(shadow),
            }))

        assert snapshot.assets["/docs/index.html"] == b"<h1>docs</h1>"
        assert any("more than one mount" in record.message for record in caplog.records)

    def test_logs_summary(self, make_config, caplog):
        """Test the build logs a summary line."""
        with caplog.at_level(logging.INFO, logger="assetserver.core.asset_store"):
            build_snapshot(make_config())

        assert any("Buffered 8 assets" in record.message for record in caplog.records)


class TestSnapshot:
    """Tests for AssetSnapshot."""

    def test_with_asset_is_copy_on_write(self):
        """Test the original snapshot is unchanged."""
        original = AssetSnapshot()
        updated = original.with_asset("/js/app/main.js", b"run()")

        assert "/js/app/main.js" not in original.assets
        assert updated.assets["/js/app/main.js"] == b"run()"
        assert {"/", "/js", "/js/app"} <= updated.directories
        assert "/js" not in original.directories

    def test_total_bytes(self):
        """Test total size accounting."""
        snapshot = AssetSnapshot().with_asset("/a.txt", b"abc").with_asset("/b.txt", b"de")

        assert snapshot.total_bytes == 5
