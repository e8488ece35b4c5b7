"""
End-to-end tests for the file endpoints.

Runs the FastAPI app with a local-only gateway installed as the singleton.
"""

import base64
import io
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.config import Settings, StorageConfig, get_settings
from app.logging_config import request_id_var
from app.storage import UploadFailed, create_storage_gateway, set_storage_gateway


def _data_uri(content: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode()}"


class TestFilesEndpoints:
    """E2E tests for /v1/files."""

    @pytest.fixture
    def gateway(self):
        # Same public root the app serves at /storage
        config = StorageConfig(
            app_url="http://testserver",
            local_storage_path=get_settings().LOCAL_STORAGE_PATH,
        )
        gateway = create_storage_gateway(config)
        set_storage_gateway(gateway)
        return gateway

    @pytest.fixture
    def client(self, gateway):
        """Create a test client."""
        from app.main import app
        return TestClient(app)

    def test_health_lists_providers(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["providers"] == ["local"]

    def test_upload_returns_201_and_serves_file(self, client):
        response = client.post(
            "/v1/files",
            json={
                "data": _data_uri(b"%PDF-1.4 agenda", "application/pdf"),
                "filename": "agenda.pdf",
                "directory": "resources/",
                "prefix": "resource",
            },
        )

        assert response.status_code == 201
        url = response.json()["url"]
        assert url.startswith("http://testserver/storage/resources/resource_")
        assert url.endswith(".pdf")

        served = client.get(url)
        assert served.status_code == 200
        assert served.content == b"%PDF-1.4 agenda"

    def test_image_upload_is_resized(self, client, image_bytes, gateway):
        response = client.post(
            "/v1/files",
            json={
                "data": _data_uri(image_bytes(size=(640, 480), fmt="JPEG"), "image/jpeg"),
                "directory": "avatars/",
                "prefix": "avatar",
                "width": 300,
                "height": 300,
            },
        )

        assert response.status_code == 201

        stored = gateway.local_path_from_url(response.json()["url"]).read_bytes()
        assert Image.open(io.BytesIO(stored)).size == (300, 300)

    def test_invalid_data_uri_returns_400(self, client):
        response = client.post("/v1/files", json={"data": "hello", "directory": "docs/"})

        assert response.status_code == 400
        assert "Invalid base64 file data format" in response.json()["detail"]

    def test_oversize_upload_returns_413(self, client):
        client.app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, MAX_UPLOAD_BYTES=10)
        try:
            response = client.post(
                "/v1/files",
                json={"data": _data_uri(b"x" * 100, "text/plain"), "directory": "docs/"},
            )
        finally:
            client.app.dependency_overrides.clear()

        assert response.status_code == 413

    def test_all_providers_failing_returns_502(self, client, gateway):
        with patch.object(gateway, "store", side_effect=UploadFailed("File upload failed on all available storage providers")):
            response = client.post(
                "/v1/files",
                json={"data": _data_uri(b"x", "text/plain"), "directory": "docs/"},
            )

        assert response.status_code == 502

    def test_invalid_prefix_returns_422(self, client):
        response = client.post(
            "/v1/files",
            json={"data": _data_uri(b"x", "text/plain"), "directory": "docs/", "prefix": "../evil"},
        )

        assert response.status_code == 422

    def test_exists_and_delete(self, client):
        url = client.post(
            "/v1/files",
            json={"data": _data_uri(b"notes", "text/plain"), "directory": "docs/"},
        ).json()["url"]

        assert client.get("/v1/files/exists", params={"url": url}).json() == {"url": url, "exists": True}

        response = client.delete("/v1/files", params={"url": url})
        assert response.status_code == 200
        assert response.json() == {"url": url, "deleted": True}

        # Deleting again still succeeds
        assert client.delete("/v1/files", params={"url": url}).json()["deleted"] is True
        assert client.get("/v1/files/exists", params={"url": url}).json()["exists"] is False

    def test_delete_unresolvable_url(self, client):
        response = client.delete("/v1/files", params={"url": "https://example.org/a.jpg"})

        assert response.status_code == 200
        assert response.json()["deleted"] is False


class TestRequestId:
    """X-Request-ID is echoed and visible to code running inside the request."""

    @pytest.fixture
    def client(self, local_gateway):
        set_storage_gateway(local_gateway)
        from app.main import app
        return TestClient(app)

    def test_generated_when_absent(self, client):
        response = client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 36

    def test_forwarded_and_seen_by_gateway(self, client, local_gateway):
        seen = []

        def record_exists(url):
            seen.append(request_id_var.get())
            return True

        with patch.object(local_gateway, "exists", side_effect=record_exists):
            response = client.get(
                "/v1/files/exists",
                params={"url": "http://testserver/storage/a.txt"},
                headers={"X-Request-ID": "upload-42"},
            )

        assert response.headers["X-Request-ID"] == "upload-42"
        assert seen == ["upload-42"]
        assert request_id_var.get() is None

    def test_unsafe_value_replaced(self, client):
        response = client.get("/health", headers={"X-Request-ID": "bad id; drop table"})
        assert response.headers["X-Request-ID"] != "bad id; drop table"
        assert len(response.headers["X-Request-ID"]) == 36
