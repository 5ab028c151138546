"""Descriptor writes for uploads whose bytes are already stored."""

import logging
from typing import Optional

from trainarchive.core.config import settings
from trainarchive.metadata.base import MetadataStore
from trainarchive.uploads.exceptions import MetadataError, MetadataStoreError
from trainarchive.uploads.models import StoredObjectDescriptor, UploadBatch, UploadState
from trainarchive.uploads.task import UploadTask

logger = logging.getLogger(__name__)


class MetadataCommitter:
    """Records one StoredObjectDescriptor per committed upload."""

    def __init__(self, store: MetadataStore, table: Optional[str] = None):
        self.store = store
        self.table = table or settings.UPLOADS_TABLE

    async def commit(self, task: UploadTask, batch: UploadBatch, uploader_id: str) -> StoredObjectDescriptor:
        """Write the descriptor for a task in the committing state.

        Args:
            task: Task whose binary upload was acknowledged
            batch: Batch owning the task
            uploader_id: Id of the user who submitted the batch

        Returns:
            The persisted descriptor

        Raises:
            MetadataError: If a precondition fails or the store rejects the row
        """
        if task.state != UploadState.COMMITTING or not task.storage_key:
            raise MetadataError(
                f"Task {task.task_id} has no acknowledged upload to commit",
                storage_key=task.storage_key,
                bucket=task.bucket.value,
            )
        if not batch.session_id or not batch.session_id.strip():
            raise MetadataError("session id is required", storage_key=task.storage_key, bucket=task.bucket.value)
        if not uploader_id or not uploader_id.strip():
            raise MetadataError("uploader id is required", storage_key=task.storage_key, bucket=task.bucket.value)

        descriptor = StoredObjectDescriptor(
            owning_session_id=batch.session_id,
            uploaded_by=uploader_id,
            file_name=task.file_name,
            storage_key=task.storage_key,
            file_size=task.size_bytes,
            mime_type=task.mime_type,
            caption=task.caption,
        )

        try:
            row_id = await self.store.insert(self.table, descriptor.to_row())
        except MetadataStoreError as e:
            raise MetadataError(
                f"Failed to record {task.file_name}: {e}",
                storage_key=task.storage_key,
                bucket=task.bucket.value,
            ) from e

        descriptor.id = row_id
        logger.info(
            "Descriptor committed",
            extra={
                "task_id": task.task_id,
                "descriptor_id": row_id,
                "session_id": batch.session_id,
                "storage_key": task.storage_key,
            },
        )
        return descriptor
