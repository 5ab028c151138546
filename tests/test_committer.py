"""Tests for descriptor commits."""

import io

import pytest

from trainarchive.metadata.memory import InMemoryMetadataStore
from trainarchive.uploads.committer import MetadataCommitter
from trainarchive.uploads.exceptions import MetadataError
from trainarchive.uploads.models import UploadBatch, UploadCandidate
from trainarchive.uploads.task import UploadTask


@pytest.fixture
def store():
    return InMemoryMetadataStore()


@pytest.fixture
def committer(store):
    return MetadataCommitter(store)


@pytest.fixture
def batch():
    return UploadBatch(session_id="session-1", default_caption="Day 1")


def _uploaded_task(batch, file_name="handout.pdf", mime_type="application/pdf") -> UploadTask:
    candidate = UploadCandidate(file_name=file_name, mime_type=mime_type, size_bytes=2048, data=io.BytesIO(b"x"))
    task = UploadTask(candidate, caption=batch.default_caption, batch_id=batch.batch_id)
    task.start(batch.session_id)
    task.mark_uploaded()
    return task


@pytest.mark.asyncio
async def test_commit_writes_one_row(committer, store, batch):
    task = _uploaded_task(batch)

    descriptor = await committer.commit(task, batch, "trainer-7")

    rows = await store.select("photos")
    assert len(rows) == 1
    row = rows[0]
    assert row["id"] == descriptor.id
    assert row["training_session_id"] == "session-1"
    assert row["uploaded_by"] == "trainer-7"
    assert row["file_name"] == "handout.pdf"
    assert row["file_path"] == task.storage_key
    assert row["file_size"] == 2048
    assert row["mime_type"] == "application/pdf"
    assert row["caption"] == "Day 1"
    assert "created_at" in row


@pytest.mark.asyncio
async def test_descriptor_fields(committer, batch):
    task = _uploaded_task(batch)

    descriptor = await committer.commit(task, batch, "trainer-7")

    assert descriptor.owning_session_id == "session-1"
    assert descriptor.storage_key == task.storage_key
    assert descriptor.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_commit_requires_acknowledged_upload(committer, store, batch):
    candidate = UploadCandidate(file_name="a.pdf", mime_type="application/pdf", size_bytes=1, data=io.BytesIO(b"x"))
    task = UploadTask(candidate)
    task.start(batch.session_id)  # still uploading

    with pytest.raises(MetadataError):
        await committer.commit(task, batch, "trainer-7")
    assert await store.select("photos") == []


@pytest.mark.asyncio
async def test_commit_requires_uploader(committer, batch):
    task = _uploaded_task(batch)

    with pytest.raises(MetadataError) as exc_info:
        await committer.commit(task, batch, "")

    assert exc_info.value.storage_key == task.storage_key


@pytest.mark.asyncio
async def test_commit_requires_session(committer, batch):
    task = _uploaded_task(batch)
    batch.session_id = ""

    with pytest.raises(MetadataError):
        await committer.commit(task, batch, "trainer-7")


@pytest.mark.asyncio
async def test_store_failure_becomes_metadata_error(committer, store, batch):
    task = _uploaded_task(batch)
    await committer.commit(task, batch, "trainer-7")

    # Same session and storage key violates the table's uniqueness
    duplicate = _uploaded_task(batch)
    duplicate.storage_key = task.storage_key

    with pytest.raises(MetadataError) as exc_info:
        await committer.commit(duplicate, batch, "trainer-7")

    assert exc_info.value.bucket == "training-documents"
    assert exc_info.value.storage_key == task.storage_key


@pytest.mark.asyncio
async def test_custom_table(store, batch):
    committer = MetadataCommitter(store, table="session_documents")

    await committer.commit(_uploaded_task(batch), batch, "trainer-7")

    assert len(await store.select("session_documents")) == 1
    assert await store.select("photos") == []
