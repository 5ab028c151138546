"""Shared service wiring for the v1 API."""

from collections import OrderedDict
from typing import Optional

from fastapi import Depends

from trainarchive.core.identity import IdentityProvider, get_identity
from trainarchive.metadata.archive import ArchiveService
from trainarchive.metadata.factory import get_metadata_store
from trainarchive.storage.factory import get_object_storage
from trainarchive.uploads.committer import MetadataCommitter
from trainarchive.uploads.events import TaskEventBus
from trainarchive.uploads.orchestrator import UploadOrchestrator
from trainarchive.uploads.progress import ProgressBoard

MAX_TRACKED_BATCHES = 100

# Process-wide event bus shared by orchestrators, boards and the archive
event_bus = TaskEventBus()

_archive: Optional[ArchiveService] = None


class BatchRegistry:
    """Keeps progress boards of the most recent batches."""

    def __init__(self, max_batches: int = MAX_TRACKED_BATCHES):
        self.max_batches = max_batches
        self._boards: "OrderedDict[str, ProgressBoard]" = OrderedDict()

    def track(self, batch_id: str) -> ProgressBoard:
        board = ProgressBoard(event_bus, batch_id=batch_id)
        self._boards[batch_id] = board
        while len(self._boards) > self.max_batches:
            _, oldest = self._boards.popitem(last=False)
            oldest.close()
        return board

    def get(self, batch_id: str) -> Optional[ProgressBoard]:
        return self._boards.get(batch_id)


batch_registry = BatchRegistry()


def get_event_bus() -> TaskEventBus:
    return event_bus


def get_batch_registry() -> BatchRegistry:
    return batch_registry


def get_orchestrator(identity: IdentityProvider = Depends(get_identity)) -> UploadOrchestrator:
    """Orchestrator bound to the requesting uploader."""
    return UploadOrchestrator(
        storage=get_object_storage(),
        committer=MetadataCommitter(get_metadata_store()),
        identity=identity,
        events=event_bus,
    )


def get_archive() -> ArchiveService:
    global _archive
    if _archive is None:
        _archive = ArchiveService(get_metadata_store(), get_object_storage(), events=event_bus)
    return _archive
