"""Pytest configuration and shared fixtures."""

import asyncio
import io
from typing import BinaryIO, Dict, Iterable, Optional, Tuple

import pytest

from trainarchive.core.identity import StaticIdentityProvider
from trainarchive.metadata.memory import InMemoryMetadataStore
from trainarchive.storage.base import ObjectStorage, ProgressCallback
from trainarchive.uploads.committer import MetadataCommitter
from trainarchive.uploads.events import TaskEventBus
from trainarchive.uploads.exceptions import MetadataStoreError, StorageError
from trainarchive.uploads.models import RawFile
from trainarchive.uploads.orchestrator import UploadOrchestrator


class FakeObjectStorage(ObjectStorage):
    """In-memory object storage with failure injection by content."""

    def __init__(self, fail_contents: Iterable[bytes] = (), delay: float = 0.01):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.fail_contents = set(fail_contents)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.put_calls = 0

    async def put(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.put_calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            data.seek(0)
            content = data.read()
            await asyncio.sleep(self.delay)
            if content in self.fail_contents:
                raise StorageError(f"Injected transport failure for {bucket}/{key}")
            if on_progress:
                on_progress(len(content) // 2, len(content))
                on_progress(len(content), len(content))
            self.objects[(bucket, key)] = content
        finally:
            self.in_flight -= 1

    async def get(self, bucket: str, key: str) -> bytes:
        if (bucket, key) not in self.objects:
            raise StorageError(f"File not found: {bucket}/{key}")
        return self.objects[(bucket, key)]

    async def exists(self, bucket: str, key: str) -> bool:
        return (bucket, key) in self.objects

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"https://cdn.test/{bucket}/{key}"

    def get_backend_name(self) -> str:
        return "fake"


class FlakyMetadataStore(InMemoryMetadataStore):
    """Metadata store refusing rows for selected file names."""

    def __init__(self, fail_file_names: Iterable[str] = ()):
        super().__init__()
        self.fail_file_names = set(fail_file_names)
        self.insert_calls = 0

    async def insert(self, table, row):
        self.insert_calls += 1
        await asyncio.sleep(0)
        if row.get("file_name") in self.fail_file_names:
            raise MetadataStoreError(f"insert rejected for {row['file_name']}")
        return await super().insert(table, row)


def make_raw_file(
    file_name: str,
    content_type: str,
    content: bytes = b"content",
    size_bytes: Optional[int] = None,
    caption: Optional[str] = None,
) -> RawFile:
    return RawFile(
        file_name=file_name,
        content_type=content_type,
        data=io.BytesIO(content),
        size_bytes=size_bytes,
        caption=caption,
    )


@pytest.fixture
def storage():
    return FakeObjectStorage()


@pytest.fixture
def metadata_store():
    return FlakyMetadataStore()


@pytest.fixture
def event_bus():
    return TaskEventBus()


@pytest.fixture
def orchestrator(storage, metadata_store, event_bus):
    return UploadOrchestrator(
        storage=storage,
        committer=MetadataCommitter(metadata_store),
        identity=StaticIdentityProvider("trainer-7"),
        events=event_bus,
    )


@pytest.fixture
def make_file():
    """Factory for raw files."""
    return make_raw_file
