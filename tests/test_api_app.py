"""Tests for the FastAPI application."""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from docrag.api.app import build_dependencies, create_app
from docrag.config import Settings

from conftest import build_pdf


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "environment": "test",
        "data_dir": tmp_path,
        "chroma_persist_dir": tmp_path / "chroma",
        "chroma_collection": f"api-{uuid4().hex}",
        "embedding_dim": 32,
        "use_model_embeddings": False,
        "use_model_generator": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    settings = _settings(tmp_path)
    app = create_app(settings=settings, dependencies=build_dependencies(settings))
    return TestClient(app)


def _upload(client: TestClient, name: str, data: bytes, content_type: str = "text/plain"):
    return client.post("/documents", files={"file": (name, data, content_type)})


def test_document_lifecycle(client: TestClient) -> None:
    body = ("The office is closed on public holidays. " * 40).encode()
    response = _upload(client, "policy.txt", body)
    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["chunks"] >= 2
    document_id = payload["document_id"]

    listing = client.get("/documents").json()["documents"]
    assert [doc["id"] for doc in listing] == [document_id]
    assert listing[0]["file_name"] == "policy.txt"
    assert listing[0]["file_path"] == f"{document_id}.txt"

    detail = client.get(f"/documents/{document_id}").json()
    assert "public holidays" in detail["full_text"]
    assert detail["total_chunks"] == payload["chunks"]

    raw = client.get(f"/documents/{document_id}/file")
    assert raw.status_code == 200
    assert raw.content == body
    assert raw.headers["content-disposition"].startswith("attachment;")

    answer = client.post("/query", json={"query": "When is the office closed?"})
    assert answer.status_code == 200
    result = answer.json()
    assert 1 <= len(result["sources"]) <= 5
    assert result["sources"][0]["document_id"] == document_id

    deleted = client.delete(f"/documents/{document_id}").json()
    assert deleted == {
        "success": True,
        "document_id": document_id,
        "chunks_deleted": payload["chunks"],
        "file_deleted": True,
    }
    assert client.get("/documents").json()["documents"] == []
    missing = client.get(f"/documents/{document_id}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_unsupported_upload_is_rejected(client: TestClient) -> None:
    response = _upload(client, "archive.bin", b"\x00\x01", "application/octet-stream")
    assert response.status_code == 400
    assert response.json()["error"] == "unsupported_format"


def test_whitespace_upload_is_empty_content(client: TestClient) -> None:
    response = _upload(client, "blank.txt", b"   \n  ")
    assert response.status_code == 400
    assert response.json()["error"] == "empty_content"


def test_blank_query_is_rejected(client: TestClient) -> None:
    response = client.post("/query", json={"query": "   "})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_query"


def test_query_on_empty_store(client: TestClient) -> None:
    response = client.post("/query", json={"query": "anything"})
    assert response.status_code == 200
    assert response.json()["sources"] == []


def test_pdf_can_be_viewed_inline(client: TestClient) -> None:
    pdf = build_pdf(["Quarterly report"])
    document_id = _upload(client, "report.pdf", pdf, "application/pdf").json()["document_id"]

    viewed = client.get(f"/documents/{document_id}/file", params={"view": "true"})
    assert viewed.headers["content-type"] == "application/pdf"
    assert viewed.headers["content-disposition"].startswith("inline;")
    assert viewed.headers["x-content-type-options"] == "nosniff"

    downloaded = client.get(f"/documents/{document_id}/file")
    assert downloaded.headers["content-disposition"].startswith("attachment;")


def test_non_pdf_is_never_inline(client: TestClient) -> None:
    document_id = _upload(client, "notes.txt", b"plain notes").json()["document_id"]
    response = client.get(f"/documents/{document_id}/file", params={"view": "true"})
    assert response.headers["content-disposition"].startswith("attachment;")
    assert "x-content-type-options" not in response.headers


def test_oversized_upload_is_rejected(tmp_path: Path) -> None:
    settings = _settings(tmp_path, max_upload_size_mb=1)
    client = TestClient(create_app(settings=settings, dependencies=build_dependencies(settings)))
    response = _upload(client, "big.txt", b"a" * (1024 * 1024 + 1))
    assert response.status_code == 413
    assert response.json()["error"] == "http_error"
    assert client.get("/documents").json()["documents"] == []


def test_correlation_id_is_echoed(client: TestClient) -> None:
    response = client.get("/documents/unknown", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 404
    assert response.headers["x-correlation-id"] == "req-123"
    assert response.json()["correlation_id"] == "req-123"


def test_health_endpoints(client: TestClient) -> None:
    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.json()["environment"] == "test"
    assert client.get("/livez").json() == {"status": "alive"}
    assert client.get("/healthz/ready").json() == {"status": "ready"}
    assert client.get("/metrics").status_code == 200


def test_malformed_query_body_uses_error_shape(client: TestClient) -> None:
    response = client.post("/query", json={}, headers={"X-Request-ID": "req-422"})
    assert response.status_code == 422
    payload = response.json()
    assert payload["error"] == "validation_error"
    assert "query" in payload["detail"]
    assert payload["correlation_id"] == "req-422"


def test_upload_without_file_uses_error_shape(client: TestClient) -> None:
    response = client.post("/documents", data={"note": "no file attached"})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["correlation_id"]


def test_unknown_route_and_method_use_error_shape(client: TestClient) -> None:
    missing = client.get("/no-such-route")
    assert missing.status_code == 404
    assert missing.json()["error"] == "http_error"
    wrong_method = client.put("/documents")
    assert wrong_method.status_code == 405
    assert wrong_method.json()["error"] == "http_error"
