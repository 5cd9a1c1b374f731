"""
Unit tests for request path resolution.
"""

import pytest

from assetserver.core.asset_store import build_snapshot
from assetserver.core.resolver import AssetSource, PathResolver, request_path


@pytest.fixture
def make_resolver(make_config):
    """Factory for resolvers over a fresh build of content_root."""
    def factory(**changes) -> PathResolver:
        config = make_config(**changes)
        return PathResolver(config, build_snapshot(config))
    return factory


class TestRequestPath:
    """Tests for request_path()."""

    @pytest.mark.parametrize("raw,expected", [
        ("/style.css?v=3", "/style.css"),
        ("/docs/?a=1?b=2", "/docs/"),
        ("/docs/my%20file.txt", "/docs/my file.txt"),
        ("//gallery//a.png", "/gallery/a.png"),
        ("", "/"),
    ])
    def test_request_path(self, raw, expected):
        """Test query stripping, decoding and slash collapsing."""
        assert request_path(raw) == expected


class TestCacheResolution:
    """Tests for buffered lookups."""

    def test_exact_hit(self, make_resolver):
        """Test a buffered path resolves from the cache."""
        resolved = make_resolver().resolve("/style.css?v=1")

        assert resolved.key == "/style.css"
        assert resolved.source is AssetSource.CACHE
        assert resolved.file_path is None

    def test_percent_encoded_hit(self, make_resolver):
        """Test encoded names resolve to their decoded key."""
        resolved = make_resolver().resolve("/docs/my%20file.txt")

        assert resolved.key == "/docs/my file.txt"

    def test_miss(self, make_resolver):
        """Test unknown paths resolve to None."""
        assert make_resolver().resolve("/nope.html") is None

    def test_directory_without_indexes(self, make_resolver):
        """Test a directory path misses when no index is configured."""
        assert make_resolver().resolve("/docs") is None

    @pytest.mark.parametrize("target", ["/docs", "/docs/", "/docs?x=1"])
    def test_directory_index(self, make_resolver, target):
        """Test directory paths fall through to the index file."""
        resolved = make_resolver(directory_indexes=("index.html",)).resolve(target)

        assert resolved.key == "/docs/index.html"

    def test_bare_path_first(self, make_resolver):
        """Test a direct file request never turns into an index lookup."""
        resolver = make_resolver(directory_indexes=("index.html",))

        assert resolver.candidates("/docs/guide.txt") == [
            "/docs/guide.txt",
            "/docs/guide.txt/index.html",
        ]
        assert resolver.resolve("/docs/guide.txt").key == "/docs/guide.txt"

    def test_index_order(self, make_resolver, content_root):
        """Test the first configured index present wins."""
        (content_root / "both").mkdir()
        (content_root / "both" / "index.htm").write_bytes(b"htm")
        (content_root / "both" / "index.html").write_bytes(b"html")

        resolver = make_resolver(directory_indexes=("index.htm", "index.html"))
        assert resolver.resolve("/both").key == "/both/index.htm"

        resolver = make_resolver(directory_indexes=("missing.html", "index.html"))
        assert resolver.resolve("/both/").key == "/both/index.html"

    def test_url_prefix(self, make_resolver):
        """Test keys only resolve under the prefix."""
        resolver = make_resolver(url_prefix="/static")

        assert resolver.resolve("/static/style.css").key == "/static/style.css"
        assert resolver.resolve("/style.css") is None

    def test_new_file_invisible_without_direct_reading(self, make_resolver, content_root):
        """Test files created after the build are not served from disk."""
        resolver = make_resolver()
        (content_root / "late.txt").write_bytes(b"late")

        assert resolver.resolve("/late.txt") is None


class TestDiskResolution:
    """Tests for disk lookups."""

    def test_direct_reading_serves_oversized(self, make_resolver, content_root):
        """Test files over the ceiling come from disk with direct_reading."""
        assert make_resolver().resolve("/big.png") is None

        resolved = make_resolver(direct_reading=True).resolve("/big.png")
        assert resolved.source is AssetSource.DISK
        assert resolved.file_path == (content_root / "big.png").resolve()

    def test_cache_wins_over_disk(self, make_resolver):
        """Test buffered paths never hit the disk."""
        resolved = make_resolver(direct_reading=True).resolve("/style.css")

        assert resolved.source is AssetSource.CACHE

    def test_buffering_disabled_reads_disk(self, make_resolver, content_root):
        """Test every hit is a disk read without buffering."""
        resolver = make_resolver(buffering=False, directory_indexes=("index.html",))
        resolved = resolver.resolve("/docs/")

        assert resolved.key == "/docs/index.html"
        assert resolved.source is AssetSource.DISK
        assert resolver.load(resolved) == (content_root / "docs" / "index.html").read_bytes()

    @pytest.mark.parametrize("target", ["/Makefile", "/notes.bak"])
    def test_disk_respects_allow_list(self, make_resolver, target):
        """Test disk lookups apply the MIME allow-list."""
        assert make_resolver(direct_reading=True).resolve(target) is None

    def test_directories_are_not_files(self, make_resolver, content_root):
        """Test a directory named like a file is not served."""
        (content_root / "folder.txt").mkdir()

        assert make_resolver(direct_reading=True).resolve("/folder.txt") is None

    @pytest.mark.parametrize("target", [
        "/../secret.txt",
        "/docs/../../secret.txt",
        "/%2e%2e/secret.txt",
    ])
    def test_path_traversal_blocked(self, make_resolver, content_root, target):
        """Test paths escaping the root are never read."""
        (content_root.parent / "secret.txt").write_bytes(b"secret")

        assert make_resolver(direct_reading=True).resolve(target) is None

    @pytest.mark.parametrize("changes", [{"direct_reading": True}, {"buffering": False}])
    def test_null_byte_is_a_miss(self, make_resolver, changes):
        """Test an encoded NUL byte resolves to nothing instead of raising."""
        resolver = make_resolver(**changes)

        assert resolver.resolve("/a%00.png") is None
        assert resolver.resolve("/style.css%00.png") is None

    def test_most_specific_mount(self, make_resolver, content_root, tmp_path):
        """Test disk lookups use the mount publishing the path."""
        media = tmp_path / "media"
        media.mkdir()
        (media / "clip.txt").write_bytes(b"clip")

        resolver = make_resolver(
            buffering=False,
            root_dir={"/": str(content_root), "/media": str(media)},
        )
        resolved = resolver.resolve("/media/clip.txt")

        assert resolver.load(resolved) == b"clip"

    def test_load_vanished_file(self, make_resolver, content_root):
        """Test a file removed after lookup raises OSError."""
        resolver = make_resolver(buffering=False)
        resolved = resolver.resolve("/style.css")
        (content_root / "style.css").unlink()

        with pytest.raises(OSError):
            resolver.load(resolved)
