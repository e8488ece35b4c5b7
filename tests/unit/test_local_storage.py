"""Tests for LocalStorageAdapter: path traversal protection, URLs and file operations."""

import os
import tempfile

import pytest

from app.storage.base import ResolvedLocation, UploadRequest
from app.storage.exceptions import RemoteNotFound, UnresolvableURL
from app.storage.local_provider import LocalStorageAdapter, looks_like_local_url


class TestPathTraversal:
    """Verify _get_path rejects path traversal attempts."""

    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.adapter = LocalStorageAdapter(base_path=self.tmpdir, base_url="http://testserver")

    def test_traversal_with_dotdot(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.adapter._get_path("../../../etc/passwd")

    def test_traversal_with_absolute(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.adapter._get_path("/etc/passwd")

    def test_normal_key_succeeds(self):
        path = self.adapter._get_path("avatars/avatar_1.jpg")
        assert str(path).startswith(self.tmpdir)

    def test_put_rejects_traversal(self):
        upload = UploadRequest.from_bytes(b"x", "evil.txt")
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.adapter.put(upload, "../outside/evil.txt")


class TestConstruction:
    def test_base_url_without_scheme_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="scheme"):
            LocalStorageAdapter(base_path=str(tmp_path), base_url="localhost:8000")

    def test_creates_base_path(self, tmp_path):
        root = tmp_path / "nested" / "public"
        LocalStorageAdapter(base_path=str(root), base_url="http://testserver")
        assert root.is_dir()


class TestLocalUrls:
    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.adapter = LocalStorageAdapter(base_path=self.tmpdir, base_url="https://app.example.com/")

    def test_url_of_is_absolute(self):
        assert self.adapter.url_of("avatars/a.jpg") == "https://app.example.com/storage/avatars/a.jpg"

    def test_url_of_quotes_spaces(self):
        assert self.adapter.url_of("resources/my file.pdf") == "https://app.example.com/storage/resources/my%20file.pdf"

    def test_locate_strips_prefix(self):
        location = self.adapter.locate("https://app.example.com/storage/avatars/a.jpg")
        assert location == ResolvedLocation(provider="local", identifier="avatars/a.jpg")

    def test_locate_unquotes_and_drops_query(self):
        location = self.adapter.locate("https://app.example.com/storage/resources/my%20file.pdf?v=2")
        assert location.identifier == "resources/my file.pdf"

    def test_locate_marker_on_other_host(self):
        # URLs written before APP_URL changed still carry the /storage/ marker
        location = self.adapter.locate("http://old-host:8000/storage/posters/p.png")
        assert location.identifier == "posters/p.png"

    def test_locate_without_path_raises(self):
        with pytest.raises(UnresolvableURL):
            self.adapter.locate("https://app.example.com/storage/")

    def test_locate_foreign_url_raises(self):
        with pytest.raises(UnresolvableURL):
            self.adapter.locate("https://elsewhere.example.org/a.jpg")

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://app.example.com/storage/a.jpg", True),
            ("http://other/storage/a.jpg", True),
            ("https://app.example.com/uploads/a.jpg", True),
            ("https://bucket.s3.us-east-1.amazonaws.com/a.jpg", False),
            ("", False),
        ],
    )
    def test_looks_like_local_url(self, url, expected):
        assert looks_like_local_url(url, "https://app.example.com") is expected


class TestLocalOperations:
    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.adapter = LocalStorageAdapter(base_path=self.tmpdir, base_url="http://testserver")

    def test_put_writes_file_and_returns_url(self):
        upload = UploadRequest.from_bytes(b"poster bytes", "poster.png")
        url = self.adapter.put(upload, "posters/poster_1.png")

        assert url == "http://testserver/storage/posters/poster_1.png"
        with open(os.path.join(self.tmpdir, "posters", "poster_1.png"), "rb") as f:
            assert f.read() == b"poster bytes"

    def test_exists_and_delete(self):
        url = self.adapter.put(UploadRequest.from_bytes(b"x", "a.txt"), "docs/a.txt")
        location = self.adapter.locate(url)

        assert self.adapter.exists(location) is True
        self.adapter.delete(location)
        assert self.adapter.exists(location) is False

    def test_delete_missing_raises_remote_not_found(self):
        with pytest.raises(RemoteNotFound):
            self.adapter.delete(ResolvedLocation(provider="local", identifier="docs/missing.txt"))

    def test_path_for(self):
        url = self.adapter.put(UploadRequest.from_bytes(b"x", "a.txt"), "docs/a.txt")
        assert self.adapter.path_for(url) == self.adapter._get_path("docs/a.txt")
        assert self.adapter.path_for("https://res.cloudinary.com/demo/image/upload/a.jpg") is None

    def test_stats(self):
        self.adapter.put(UploadRequest.from_bytes(b"a" * 1536, "a.bin"), "a.bin")
        self.adapter.put(UploadRequest.from_bytes(b"b" * 512, "b.bin"), "nested/b.bin")

        stats = self.adapter.stats()

        assert stats["file_count"] == 2
        assert stats["total_size"] == 2048
        assert stats["total_size_formatted"] == "2 KB"
