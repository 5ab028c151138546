"""Concurrent batch upload orchestration."""

import asyncio
import logging
from typing import Iterable, Optional, Set

from trainarchive.core.config import settings
from trainarchive.core.identity import IdentityProvider
from trainarchive.core.logging import batch_id_context
from trainarchive.storage.base import ObjectStorage
from trainarchive.uploads.buckets import resolve_bucket
from trainarchive.uploads.committer import MetadataCommitter
from trainarchive.uploads.events import (
    BATCH_COMPLETED,
    CACHE_INVALIDATED,
    TASK_STATE_CHANGED,
    Event,
    TaskEventBus,
)
from trainarchive.uploads.exceptions import (
    ErrorKind,
    InvalidTransitionError,
    MissingSessionError,
    MissingUploaderError,
)
from trainarchive.uploads.models import BatchResult, UploadBatch, UploadCandidate, UploadState
from trainarchive.uploads.task import UPLOAD_START_PROGRESS, UploadTask

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """Runs every task of a batch concurrently and joins on all of them.

    Concurrency is unbounded: batches are user-sized. A failing task is
    recorded and never cancels its siblings. Once started, tasks run to a
    terminal state and the completion events are published even if the
    submitting caller is cancelled.

    Usage::

        orchestrator = UploadOrchestrator(storage, committer, identity)
        batch = orchestrator.create_batch(session_id, intake_result.candidates)
        result = await orchestrator.submit(batch)
    """

    def __init__(
        self,
        storage: ObjectStorage,
        committer: MetadataCommitter,
        identity: IdentityProvider,
        events: Optional[TaskEventBus] = None,
    ):
        self.storage = storage
        self.committer = committer
        self.identity = identity
        self.events = events or TaskEventBus()
        self._running: Set["asyncio.Future[BatchResult]"] = set()

    def create_batch(
        self,
        session_id: str,
        candidates: Iterable[UploadCandidate],
        default_caption: Optional[str] = None,
    ) -> UploadBatch:
        """Build a batch with one pending task per candidate.

        Each task captures its caption here: the candidate's own caption, or
        the batch default when the candidate has none.
        """
        batch = UploadBatch(session_id=session_id, default_caption=default_caption)
        for candidate in candidates:
            task = UploadTask(
                candidate,
                caption=candidate.caption or default_caption,
                batch_id=batch.batch_id,
            )
            batch.tasks.append(task)
        return batch

    def _publish_state(self, task: UploadTask, previous: UploadState) -> None:
        self.events.publish(
            Event(
                topic=TASK_STATE_CHANGED,
                payload={
                    "batch_id": task.batch_id,
                    "task_id": task.task_id,
                    "previous": previous,
                    "state": task.state,
                    "progress": task.progress,
                    "snapshot": task.snapshot(),
                },
            )
        )

    async def submit(self, batch: UploadBatch) -> BatchResult:
        """Upload and commit every task in the batch.

        Args:
            batch: Batch of pending tasks

        Returns:
            BatchResult listing every task by terminal outcome

        Raises:
            MissingSessionError: If the batch has no owning session
            MissingUploaderError: If no uploader is signed in
            InvalidTransitionError: If a task in the batch was already started
        """
        if not batch.session_id or not batch.session_id.strip():
            logger.warning(
                "Batch submitted without a session",
                extra={"batch_id": batch.batch_id, "task_count": len(batch.tasks)},
            )
            raise MissingSessionError("A training session is required before uploading")

        result = BatchResult(batch_id=batch.batch_id, session_id=batch.session_id)
        if not batch.tasks:
            return result

        uploader_id = self.identity.current_user_id()
        if not uploader_id or not uploader_id.strip():
            logger.warning(
                "Batch submitted without an uploader",
                extra={"batch_id": batch.batch_id, "session_id": batch.session_id},
            )
            raise MissingUploaderError("An uploader id is required before uploading")
        uploader_id = uploader_id.strip()

        for task in batch.tasks:
            if task.state != UploadState.PENDING:
                raise InvalidTransitionError(f"Task {task.task_id} was already submitted")

        for task in batch.tasks:
            task.batch_id = batch.batch_id
            task.add_listener(self._publish_state)

        # Shielded: cancelling the caller must not abandon in-flight tasks or
        # the completion events that follow them
        run = asyncio.ensure_future(self._run_batch(batch, uploader_id))
        self._running.add(run)
        run.add_done_callback(self._running.discard)
        return await asyncio.shield(run)

    async def _run_batch(self, batch: UploadBatch, uploader_id: str) -> BatchResult:
        """Run every task, then aggregate and publish the completion events."""
        result = BatchResult(batch_id=batch.batch_id, session_id=batch.session_id)
        token = batch_id_context.set(batch.batch_id)
        try:
            logger.info(
                "Starting upload batch",
                extra={
                    "batch_id": batch.batch_id,
                    "session_id": batch.session_id,
                    "task_count": len(batch.tasks),
                },
            )

            await asyncio.gather(*(self._run_task(task, batch, uploader_id) for task in batch.tasks))

            for task in batch.tasks:
                if task.state == UploadState.SUCCEEDED:
                    result.succeeded.append(task)
                else:
                    result.failed.append(task)

            logger.info(
                "Upload batch finished",
                extra={
                    "batch_id": batch.batch_id,
                    "session_id": batch.session_id,
                    "succeeded": len(result.succeeded),
                    "failed": len(result.failed),
                    "orphaned_keys": result.orphaned_keys,
                },
            )
        finally:
            batch_id_context.reset(token)

        if result.succeeded:
            self.events.publish(
                Event(topic=CACHE_INVALIDATED, payload={"scope": "uploads", "session_id": batch.session_id})
            )
        self.events.publish(Event(topic=BATCH_COMPLETED, payload={"result": result}))
        return result

    async def retry(self, task: UploadTask, batch: UploadBatch) -> BatchResult:
        """Resubmit a failed task as a fresh task with a new storage key."""
        retry_batch = UploadBatch(session_id=batch.session_id, default_caption=batch.default_caption)
        retry_batch.tasks.append(task.retry())
        if task.error is not None and task.error.kind == ErrorKind.METADATA_ERROR:
            logger.warning(
                "Retrying after metadata error, previous object stays orphaned",
                extra={"task_id": task.task_id, "orphaned_key": task.storage_key},
            )
        return await self.submit(retry_batch)

    async def _run_task(self, task: UploadTask, batch: UploadBatch, uploader_id: str) -> None:
        """Drive a single task to a terminal state. Never raises."""
        bucket_name = resolve_bucket(task.bucket)
        key = task.start(batch.session_id)
        span = settings.COMMIT_PROGRESS_CHECKPOINT - UPLOAD_START_PROGRESS - 1

        def on_progress(sent: int, total: int) -> None:
            if total > 0 and task.state == UploadState.UPLOADING:
                task.advance(UPLOAD_START_PROGRESS + int(span * sent / total))

        try:
            await self.storage.put(bucket_name, key, task.candidate.data, task.mime_type, on_progress=on_progress)
        except Exception as e:
            logger.error(
                f"Upload failed for {task.file_name}: {e}",
                extra={"task_id": task.task_id, "bucket": bucket_name, "storage_key": key},
                exc_info=True,
            )
            task.fail(ErrorKind.UPLOAD_ERROR, str(e) or "Upload failed", e)
            return

        task.mark_uploaded()

        try:
            descriptor = await self.committer.commit(task, batch, uploader_id)
        except Exception as e:
            logger.error(
                f"Metadata commit failed for {task.file_name}, object left orphaned: {e}",
                extra={"task_id": task.task_id, "bucket": bucket_name, "orphaned_key": key},
                exc_info=True,
            )
            task.fail(ErrorKind.METADATA_ERROR, str(e) or "Metadata write failed", e)
            return

        task.mark_committed(descriptor)
