"""Tests for the FileVault file routes.

Tests cover:
1. Upload returns 201 with the generated name
2. Download streams decoded bytes with name-derived headers
3. Rejected MIME types return 415 in the error envelope
4. Missing objects fall back to the placeholder asset, then to 404
5. Delete returns 204 and is idempotent
6. Unsafe names return 400 INVALID_PATH
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filevault.api.main import create_app
from filevault.crypto.keys import MissingEncryptionKeyError
from filevault.storage.manager import FileVault

PNG_100 = b"\x89PNG\r\n\x1a\n" + bytes(range(92))
PLACEHOLDER_BYTES = b"\x89PNG\r\n\x1a\nplaceholder"
MISSING_NAME = "00000000-0000-0000-0000-000000000000_10_image_png.png"


@pytest.fixture
def placeholder_path(tmp_path: Path) -> Path:
    path = tmp_path / "file-not-found.png"
    path.write_bytes(PLACEHOLDER_BYTES)
    return path


@pytest.fixture
def client(vault: FileVault, placeholder_path: Path) -> TestClient:
    """Create a test client backed by a temporary vault."""
    app = create_app(vault, placeholder_path=placeholder_path)
    return TestClient(app)


def _upload_png(client: TestClient, bucket: str = "uploads", category: str = "image") -> str:
    response = client.post(
        f"/v1/buckets/{bucket}/files",
        params={"category": category},
        files={"file": ("pixel.png", PNG_100, "image/png")},
    )
    assert response.status_code == 201
    return response.json()["name"]


class TestUpload:
    def test_upload_returns_201_and_name(self, client: TestClient, vault: FileVault) -> None:
        response = client.post(
            "/v1/buckets/uploads/files",
            params={"category": "image"},
            files={"file": ("pixel.png", PNG_100, "image/png")},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["bucket"] == "uploads"
        assert data["size"] == 100
        assert data["content_type"] == "image/png"
        assert data["name"].endswith("_100_image_png.png")
        assert (vault.root / "uploads" / data["name"]).is_file()

    def test_rejected_type_returns_415_envelope(self, client: TestClient, vault: FileVault) -> None:
        response = client.post(
            "/v1/buckets/avatars/files",
            params={"category": "image"},
            files={"file": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 415
        data = response.json()
        assert data["code"] == "INVALID_FILE_TYPE"
        assert data["message"] == "file must be a png or jpeg image"
        assert data["request_id"] == response.headers["X-Request-Id"]
        assert not (vault.root / "avatars").exists()

    def test_unknown_category_returns_422(self, client: TestClient) -> None:
        response = client.post(
            "/v1/buckets/uploads/files",
            params={"category": "video"},
            files={"file": ("a.mp4", b"data", "video/mp4")},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "REQUEST_VALIDATION_FAILED"

    def test_content_type_parameters_dropped(self, client: TestClient) -> None:
        response = client.post(
            "/v1/buckets/uploads/files",
            files={"file": ("notes.txt", b"hello", "text/plain; charset=utf-8")},
        )

        assert response.status_code == 201
        name = response.json()["name"]
        assert name.endswith("_5_text_plain.txt")
        assert client.get(f"/v1/buckets/uploads/files/{name}").content == b"hello"

    def test_nested_bucket(self, client: TestClient, vault: FileVault) -> None:
        name = _upload_png(client, bucket="users/7/avatars")

        assert (vault.root / "users" / "7" / "avatars" / name).is_file()


class TestDownload:
    def test_download_streams_original_bytes(self, client: TestClient) -> None:
        name = _upload_png(client)

        response = client.get(f"/v1/buckets/uploads/files/{name}")

        assert response.status_code == 200
        assert response.content == PNG_100
        assert response.headers["Content-Type"] == "image/png"
        assert response.headers["Content-Length"] == "100"

    def test_unencrypted_roundtrip(self, client: TestClient, vault: FileVault) -> None:
        response = client.post(
            "/v1/buckets/raw/files",
            params={"encrypt": "false"},
            files={"file": ("notes.txt", b"plain notes", "text/plain")},
        )
        name = response.json()["name"]

        assert (vault.root / "raw" / name).read_bytes() == b"plain notes"

        download = client.get(f"/v1/buckets/raw/files/{name}", params={"encrypted": "false"})
        assert download.content == b"plain notes"
        assert download.headers["Content-Type"].startswith("text/plain")

    def test_missing_object_serves_placeholder(self, client: TestClient) -> None:
        response = client.get(f"/v1/buckets/uploads/files/{MISSING_NAME}")

        assert response.status_code == 200
        assert response.content == PLACEHOLDER_BYTES
        assert response.headers["Content-Type"] == "image/png"

    def test_missing_placeholder_returns_404(self, vault: FileVault, tmp_path: Path) -> None:
        app = create_app(vault, placeholder_path=tmp_path / "absent.png")
        client = TestClient(app)

        response = client.get(f"/v1/buckets/uploads/files/{MISSING_NAME}")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_unsafe_name_returns_400(self, client: TestClient) -> None:
        response = client.get("/v1/buckets/uploads/files/evil~name")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PATH"

    def test_unsafe_bucket_returns_400(self, client: TestClient) -> None:
        response = client.get(f"/v1/buckets/a~b/files/{MISSING_NAME}")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PATH"


class TestDelete:
    def test_delete_then_placeholder(self, client: TestClient, vault: FileVault) -> None:
        name = _upload_png(client)

        response = client.delete(f"/v1/buckets/uploads/files/{name}")

        assert response.status_code == 204
        assert not (vault.root / "uploads" / name).exists()
        assert client.get(f"/v1/buckets/uploads/files/{name}").content == PLACEHOLDER_BYTES

    def test_delete_twice_returns_204(self, client: TestClient) -> None:
        name = _upload_png(client)

        assert client.delete(f"/v1/buckets/uploads/files/{name}").status_code == 204
        assert client.delete(f"/v1/buckets/uploads/files/{name}").status_code == 204


class TestAppFactory:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_echoes_request_id(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-Id": "req-123"})

        assert response.headers["X-Request-Id"] == "req-123"

    def test_missing_key_fails_at_startup(
        self, monkeypatch: pytest.MonkeyPatch, storage_root: Path
    ) -> None:
        monkeypatch.delenv("FILEVAULT_ENCRYPTION_KEY", raising=False)
        monkeypatch.setenv("FILEVAULT_STORAGE_ROOT", str(storage_root))

        with pytest.raises(MissingEncryptionKeyError):
            create_app()

    def test_builds_vault_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, storage_root: Path
    ) -> None:
        monkeypatch.setenv("FILEVAULT_STORAGE_ROOT", str(storage_root))
        client = TestClient(create_app())

        name = _upload_png(client)

        assert (storage_root.resolve() / "uploads" / name).is_file()
