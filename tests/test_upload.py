"""Tests for the upload and archive HTTP API."""

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from trainarchive.api.v1.dependencies import (
    BatchRegistry,
    event_bus,
    get_archive,
    get_orchestrator,
)
from trainarchive.core.identity import IdentityProvider, get_identity
from trainarchive.main import app
from trainarchive.metadata.archive import ArchiveService
from trainarchive.metadata.memory import InMemoryMetadataStore
from trainarchive.uploads.committer import MetadataCommitter
from trainarchive.uploads.orchestrator import UploadOrchestrator

HEADERS = {"X-User-Id": "trainer-7"}


@pytest.fixture
def api_store():
    return InMemoryMetadataStore()


@pytest.fixture
def client(storage, api_store):
    """Test client wired to in-memory storage and metadata."""

    def orchestrator_override(identity: IdentityProvider = Depends(get_identity)) -> UploadOrchestrator:
        return UploadOrchestrator(
            storage=storage,
            committer=MetadataCommitter(api_store),
            identity=identity,
            events=event_bus,
        )

    archive = ArchiveService(api_store, storage)
    app.dependency_overrides[get_orchestrator] = orchestrator_override
    app.dependency_overrides[get_archive] = lambda: archive
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, session_id="session-1", files=None, data=None, headers=HEADERS):
    files = files or [
        ("files", ("warmup.png", b"\x89PNG image", "image/png")),
        ("files", ("plan.pdf", b"%PDF-1.7", "application/pdf")),
    ]
    return client.post(f"/api/v1/sessions/{session_id}/uploads", files=files, data=data or {}, headers=headers)


def test_upload_batch(client, storage, api_store):
    """Every file stored and recorded answers 201."""
    response = _upload(client, data={"caption": "Day 1"})

    assert response.status_code == 201
    body = response.json()
    assert body["session_id"] == "session-1"
    assert body["succeeded"] == 2
    assert body["failed"] == 0
    assert body["rejections"] == []
    assert body["orphaned_keys"] == []

    outcomes = {o["file_name"]: o for o in body["outcomes"]}
    assert outcomes["warmup.png"]["bucket"] == "training-photos"
    assert outcomes["plan.pdf"]["bucket"] == "training-documents"
    assert outcomes["plan.pdf"]["state"] == "succeeded"
    assert outcomes["plan.pdf"]["progress"] == 100
    assert outcomes["plan.pdf"]["descriptor"]["caption"] == "Day 1"
    assert outcomes["plan.pdf"]["descriptor"]["uploaded_by"] == "trainer-7"
    assert outcomes["plan.pdf"]["storage_key"].startswith("session-1/")
    assert outcomes["plan.pdf"]["storage_key"].endswith(".pdf")

    assert ("training-documents", outcomes["plan.pdf"]["storage_key"]) in storage.objects


def test_per_file_captions(client):
    response = _upload(client, data={"caption": "Default", "captions": ["Warmup", ""]})

    outcomes = {o["file_name"]: o for o in response.json()["outcomes"]}
    assert outcomes["warmup.png"]["descriptor"]["caption"] == "Warmup"
    assert outcomes["plan.pdf"]["descriptor"]["caption"] == "Default"


def test_partial_failure_answers_207(client, storage):
    storage.fail_contents = {b"%PDF-1.7"}

    response = _upload(client)

    assert response.status_code == 207
    body = response.json()
    assert body["succeeded"] == 1
    assert body["failed"] == 1
    failed = next(o for o in body["outcomes"] if o["state"] == "failed")
    assert failed["file_name"] == "plan.pdf"
    assert failed["error_kind"] == "upload-error"
    assert failed["descriptor"] is None


def test_rejection_alongside_success_answers_207(client):
    files = [
        ("files", ("warmup.png", b"\x89PNG image", "image/png")),
        ("files", ("roster.csv", b"a,b", "text/csv")),
    ]

    response = _upload(client, files=files)

    assert response.status_code == 207
    body = response.json()
    assert body["succeeded"] == 1
    assert body["rejections"] == [
        {"file_name": "roster.csv", "reason": "unsupported-type", "detail": "Content type text/csv not allowed"}
    ]


def test_all_rejected_answers_422(client, storage):
    files = [("files", ("roster.csv", b"a,b", "text/csv"))]

    response = _upload(client, files=files)

    assert response.status_code == 422
    assert response.json()["detail"][0]["reason"] == "unsupported-type"
    assert storage.put_calls == 0


def test_oversized_file_rejected(client, monkeypatch):
    from trainarchive.core.config import settings

    monkeypatch.setattr(settings, "MAX_UPLOAD_MB", 1)
    files = [("files", ("huge.png", b"x" * (1024 * 1024 + 1), "image/png"))]

    response = _upload(client, files=files)

    assert response.status_code == 422
    assert response.json()["detail"][0]["reason"] == "too-large"


def test_missing_uploader_answers_401(client, storage):
    response = _upload(client, headers={})

    assert response.status_code == 401
    assert storage.put_calls == 0


def test_blank_session_answers_400(client, storage):
    response = _upload(client, session_id="%20")

    assert response.status_code == 400
    assert storage.put_calls == 0


def test_batch_progress(client):
    batch_id = _upload(client).json()["batch_id"]

    response = client.get(f"/api/v1/batches/{batch_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["settled"] is True
    assert {t["label"] for t in body["tasks"]} == {"Completed"}
    assert {t["progress"] for t in body["tasks"]} == {100}


def test_unknown_batch_answers_404(client):
    assert client.get("/api/v1/batches/does-not-exist").status_code == 404


def test_list_uploads(client):
    _upload(client, data={"caption": "Warmup drill"})
    _upload(client, session_id="session-2")

    response = client.get("/api/v1/uploads", params={"session_id": "session-1"})

    assert response.status_code == 200
    body = response.json()
    assert [i["file_name"] for i in body["images"]] == ["warmup.png"]
    assert [d["file_name"] for d in body["documents"]] == ["plan.pdf"]
    image = body["images"][0]
    assert image["is_image"] is True
    assert image["size_label"] == "10 Bytes"
    assert image["url"].startswith("https://cdn.test/training-photos/session-1/")


def test_search_uploads(client):
    _upload(client, data={"caption": "Warmup drill"})

    body = client.get("/api/v1/uploads", params={"q": "PLAN"}).json()

    assert body["images"] == []
    assert [d["file_name"] for d in body["documents"]] == ["plan.pdf"]


def test_upload_stats(client):
    _upload(client)
    _upload(client, session_id="session-2")

    response = client.get("/api/v1/uploads/stats")

    assert response.status_code == 200
    assert response.json() == {"total": 4, "sessions_with_uploads": 2, "recent_uploads": 4}


def test_download(client):
    _upload(client)
    document = client.get("/api/v1/uploads").json()["documents"][0]

    response = client.get(f"/api/v1/uploads/{document['id']}/download")

    assert response.status_code == 200
    assert response.content == b"%PDF-1.7"
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="plan.pdf"' in response.headers["content-disposition"]


def test_download_unknown_answers_404(client):
    assert client.get("/api/v1/uploads/missing/download").status_code == 404


def test_registry_evicts_oldest_batch():
    registry = BatchRegistry(max_batches=2)
    registry.track("b1")
    registry.track("b2")
    registry.track("b3")

    assert registry.get("b1") is None
    assert registry.get("b2") is not None
    assert registry.get("b3") is not None
