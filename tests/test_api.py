"""Tests for the HTTP gateway."""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from chunkcord.api import create_app
from chunkcord.channel import MemoryBackend
from chunkcord.channel.memory import MemoryChannel
from chunkcord.config import Config
from chunkcord.file import compute_hash
from chunkcord.vault import ChannelVault


@pytest.fixture
def client(vault: ChannelVault, tmp_path: Path) -> Generator[TestClient, None, None]:
    """Test client with a catalog."""
    app = create_app(vault, catalog_dir=tmp_path / "catalog")
    with TestClient(app) as client:
        yield client


@pytest.fixture
def bare_client(vault: ChannelVault) -> Generator[TestClient, None, None]:
    """Test client without a catalog."""
    with TestClient(create_app(vault)) as client:
        yield client


def upload(client: TestClient, content: bytes, token: str, channel_id: str,
           name: str = "hello.txt", mimetype: str = "text/plain"):
    return client.post(
        "/api/upload",
        files={"file": (name, content, mimetype)},
        data={"botToken": token, "channelId": channel_id},
    )


class TestRoot:

    def test_root(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["backend"] == "memory"
        assert response.json()["catalog"] is True

    def test_stats(self, client: TestClient) -> None:
        response = client.get("/stats")
        assert response.status_code == 200
        assert response.json()["files_stored"] == 0


class TestUpload:
    """Tests for POST /api/upload."""

    def test_upload(self, client: TestClient, channel: MemoryChannel,
                    token: str, channel_id: str) -> None:
        content = b"hello over the wire"
        response = upload(client, content, token, channel_id)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "File uploaded successfully"
        assert body["fileDetails"] == {
            "filename": "hello.txt",
            "filehash": compute_hash(content),
            "size": len(content),
            "mimetype": "text/plain",
        }
        assert len(channel.messages) == 5

    def test_upload_records_catalog(self, client: TestClient, token: str,
                                    channel_id: str) -> None:
        upload(client, b"catalogued", token, channel_id, name="notes.md")

        files = client.get("/api/files").json()
        assert len(files) == 1
        assert files[0]["fileName"] == "notes.md"
        assert files[0]["fileHash"] == compute_hash(b"catalogued")
        assert files[0]["channelId"] == channel_id
        assert files[0]["chunkCount"] == 3

    def test_no_file(self, client: TestClient, token: str, channel_id: str) -> None:
        response = client.post(
            "/api/upload", data={"botToken": token, "channelId": channel_id}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}

    def test_bad_token(self, client: TestClient, channel_id: str) -> None:
        response = upload(client, b"data", "nope", channel_id)
        assert response.status_code == 500
        assert response.json()["kind"] == "AuthenticationError"

    def test_unknown_channel(self, client: TestClient, token: str) -> None:
        response = upload(client, b"data", token, "missing")
        assert response.status_code == 500
        assert response.json()["kind"] == "ChannelNotFound"

    def test_partial_failure(self, client: TestClient, backend: MemoryBackend,
                             token: str, channel_id: str) -> None:
        backend.fail_sends(lambda channel_id, filename: filename == "chunk-1.txt")
        response = upload(client, b"aaaabbbb", token, channel_id)
        assert response.status_code == 500
        assert response.json()["kind"] == "UploadError"
        assert client.get("/api/files").json() == []


class TestRetrieve:
    """Tests for GET /api/retrieve/{fileHash}."""

    def test_round_trip(self, client: TestClient, token: str, channel_id: str) -> None:
        content = bytes(range(50))
        file_hash = upload(client, content, token, channel_id,
                           name="blob.bin", mimetype="application/x-test").json()["fileDetails"]["filehash"]

        response = client.get(
            f"/api/retrieve/{file_hash}",
            params={"botToken": token, "channelId": channel_id,
                    "fileSize": len(content), "fileName": "blob.bin"},
        )

        assert response.status_code == 200
        assert response.content == content
        assert response.headers["content-type"].startswith("application/x-test")
        assert "blob.bin" in response.headers["content-disposition"]

    def test_without_catalog(self, bare_client: TestClient, token: str,
                             channel_id: str) -> None:
        content = b"no catalog here"
        file_hash = upload(bare_client, content, token, channel_id).json()["fileDetails"]["filehash"]

        response = bare_client.get(
            f"/api/retrieve/{file_hash}",
            params={"botToken": token, "channelId": channel_id},
        )
        assert response.status_code == 200
        assert response.content == content
        assert response.headers["content-type"] == "application/octet-stream"

    def test_not_found(self, client: TestClient, token: str, channel_id: str) -> None:
        response = client.get(
            f"/api/retrieve/{compute_hash(b'absent')}",
            params={"botToken": token, "channelId": channel_id},
        )
        assert response.status_code == 500
        assert response.json()["kind"] == "NotFound"

    def test_incomplete(self, client: TestClient, channel: MemoryChannel,
                        token: str, channel_id: str) -> None:
        file_hash = upload(client, b"aaaabbbbcccc", token, channel_id).json()["fileDetails"]["filehash"]
        channel.messages[:] = [
            m for m in channel.messages if m.attachment.filename != "chunk-2.txt"
        ]

        response = client.get(
            f"/api/retrieve/{file_hash}",
            params={"botToken": token, "channelId": channel_id},
        )
        assert response.status_code == 500
        assert response.json()["kind"] == "IncompleteSet"

    def test_size_mismatch(self, client: TestClient, token: str, channel_id: str) -> None:
        file_hash = upload(client, b"eight by", token, channel_id).json()["fileDetails"]["filehash"]

        response = client.get(
            f"/api/retrieve/{file_hash}",
            params={"botToken": token, "channelId": channel_id, "fileSize": 9},
        )
        assert response.status_code == 500
        assert response.json()["kind"] == "IntegrityError"

    def test_invalid_hash(self, client: TestClient, token: str, channel_id: str) -> None:
        response = client.get(
            "/api/retrieve/xyz",
            params={"botToken": token, "channelId": channel_id},
        )
        assert response.status_code == 400


class TestCatalogEndpoints:
    """Tests for /api/files."""

    def test_get_and_delete(self, client: TestClient, channel: MemoryChannel,
                            token: str, channel_id: str) -> None:
        file_hash = upload(client, b"forget me", token, channel_id).json()["fileDetails"]["filehash"]

        assert client.get(f"/api/files/{file_hash}").json()["fileName"] == "hello.txt"
        assert client.delete(f"/api/files/{file_hash}").json() == {"success": True}
        assert client.get(f"/api/files/{file_hash}").status_code == 404

        # Chunks are not touched
        assert len(channel.messages) == 3

    def test_catalog_not_configured(self, bare_client: TestClient) -> None:
        assert bare_client.get("/api/files").status_code == 503


def test_memory_backend_from_config(tmp_path: Path) -> None:
    """A gateway on ``backend = "memory"`` serves any token and channel."""
    vault = ChannelVault(Config(backend="memory", chunk_size=4, data_dir=tmp_path))
    with TestClient(create_app(vault)) as client:
        content = b"no registration needed"
        response = upload(client, content, "any-token", "42")
        assert response.status_code == 200
        file_hash = response.json()["fileDetails"]["filehash"]

        response = client.get(
            f"/api/retrieve/{file_hash}",
            params={"botToken": "another-token", "channelId": "42"},
        )
        assert response.status_code == 200
        assert response.content == content
