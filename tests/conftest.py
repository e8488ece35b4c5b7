# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import io
import os
import tempfile

import pytest

# Set test environment before any app import reads settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_JSON", "false")
os.environ["APP_URL"] = "http://testserver"
os.environ["FILE_STORAGE_DRIVER"] = "auto"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="storage-tests-")
for _key in (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "S3_BUCKET",
    "S3_ENDPOINT_URL",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
):
    os.environ.pop(_key, None)

from app.config import StorageConfig  # noqa: E402
from app.storage import UploadRequest, create_storage_gateway, reset_storage_gateway  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_gateway_singleton():
    """Every test starts without a cached gateway."""
    reset_storage_gateway()
    yield
    reset_storage_gateway()


@pytest.fixture
def local_config(tmp_path):
    """Local-only storage config rooted in a per-test directory."""
    return StorageConfig(
        app_url="http://testserver",
        local_storage_path=str(tmp_path / "public"),
    )


@pytest.fixture
def local_gateway(local_config):
    return create_storage_gateway(local_config)


@pytest.fixture
def image_bytes():
    """Factory for encoded test images."""
    from PIL import Image

    def _make(size=(640, 480), fmt="PNG", mode="RGB", color=(200, 30, 30)):
        if mode == "RGBA" and len(color) == 3:
            color = (*color, 255)
        image = Image.new(mode, size, color)
        out = io.BytesIO()
        image.save(out, format=fmt)
        return out.getvalue()

    return _make


@pytest.fixture
def make_upload():
    """Factory for in-memory UploadRequests."""

    def _make(content=b"hello world", filename="notes.txt", content_type=None):
        return UploadRequest.from_bytes(content, filename=filename, content_type=content_type)

    return _make
