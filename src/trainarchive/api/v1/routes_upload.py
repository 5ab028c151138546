"""Upload API routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

from trainarchive.api.v1.dependencies import BatchRegistry, get_batch_registry, get_orchestrator
from trainarchive.models.upload import BatchProgressResponse, BatchResponse, TaskOutcome
from trainarchive.uploads.exceptions import MissingSessionError, MissingUploaderError
from trainarchive.uploads.intake import admit
from trainarchive.uploads.models import RawFile
from trainarchive.uploads.orchestrator import UploadOrchestrator

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


@router.post("/sessions/{session_id}/uploads", response_model=BatchResponse, status_code=201)
async def upload_files(
    session_id: str,
    response: Response,
    files: List[UploadFile] = File(...),
    caption: Optional[str] = Form(None),
    captions: Optional[List[str]] = Form(None),
    orchestrator: UploadOrchestrator = Depends(get_orchestrator),
    registry: BatchRegistry = Depends(get_batch_registry),
) -> BatchResponse:
    """Upload a batch of photos/documents for a training session.

    Answers 201 when every file was stored and recorded, 207 when some files
    were rejected or failed, 422 when every file was rejected at intake.
    """
    per_file_captions = captions or []
    raw_files = [
        RawFile(
            file_name=upload.filename or "unnamed",
            content_type=upload.content_type or "",
            data=upload.file,
            size_bytes=upload.size,
            caption=(per_file_captions[i] if i < len(per_file_captions) else None) or None,
        )
        for i, upload in enumerate(files)
    ]

    intake = admit(raw_files)
    batch = orchestrator.create_batch(session_id.strip(), intake.candidates, default_caption=caption or None)
    registry.track(batch.batch_id)

    try:
        result = await orchestrator.submit(batch)
    except MissingSessionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MissingUploaderError as e:
        raise HTTPException(status_code=401, detail=str(e))

    if result.total == 0 and intake.rejections:
        raise HTTPException(
            status_code=422,
            detail=[{"file_name": r.file_name, "reason": r.reason.value, "detail": r.detail} for r in intake.rejections],
        )

    if result.failed or intake.rejections:
        response.status_code = 207

    return BatchResponse.from_result(
        result,
        outcomes=[TaskOutcome.from_task(task) for task in batch.tasks],
        rejections=intake.rejections,
    )


@router.get("/batches/{batch_id}", response_model=BatchProgressResponse)
async def get_batch_progress(
    batch_id: str,
    registry: BatchRegistry = Depends(get_batch_registry),
) -> BatchProgressResponse:
    """Latest projected state of a recently submitted batch."""
    board = registry.get(batch_id)
    if board is None:
        raise HTTPException(status_code=404, detail="Batch not found")
    return BatchProgressResponse(batch_id=batch_id, settled=board.is_settled, tasks=board.views)
