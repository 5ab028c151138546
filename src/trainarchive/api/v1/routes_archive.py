"""Archive browsing routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from trainarchive.api.v1.dependencies import get_archive
from trainarchive.metadata.archive import ArchiveService, ArchiveStats
from trainarchive.models.upload import UploadListItem, UploadListResponse
from trainarchive.uploads.buckets import is_image
from trainarchive.uploads.exceptions import MetadataStoreError, StorageError
from trainarchive.uploads.models import StoredObjectDescriptor
from trainarchive.uploads.progress import format_file_size

router = APIRouter(prefix="/api/v1/uploads", tags=["archive"])
logger = logging.getLogger(__name__)


def _to_item(archive: ArchiveService, descriptor: StoredObjectDescriptor) -> UploadListItem:
    return UploadListItem(
        id=descriptor.id,
        session_id=descriptor.owning_session_id,
        uploaded_by=descriptor.uploaded_by,
        file_name=descriptor.file_name,
        file_size=descriptor.file_size,
        size_label=format_file_size(descriptor.file_size),
        mime_type=descriptor.mime_type,
        caption=descriptor.caption,
        is_image=is_image(descriptor.mime_type),
        url=archive.public_url(descriptor),
        created_at=descriptor.created_at,
    )


@router.get("", response_model=UploadListResponse)
async def list_uploads(
    session_id: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Match caption or file name"),
    archive: ArchiveService = Depends(get_archive),
) -> UploadListResponse:
    """List committed uploads, newest first, split into images and documents."""
    try:
        descriptors = await archive.list_uploads(session_id=session_id, search=q)
    except MetadataStoreError as e:
        logger.error(f"Failed to list uploads: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Metadata store unavailable")

    images, documents = archive.split_by_kind(descriptors)
    return UploadListResponse(
        images=[_to_item(archive, d) for d in images],
        documents=[_to_item(archive, d) for d in documents],
    )


@router.get("/stats", response_model=ArchiveStats)
async def upload_stats(archive: ArchiveService = Depends(get_archive)) -> ArchiveStats:
    """Total uploads, sessions with uploads and recent uploads."""
    try:
        return await archive.stats()
    except MetadataStoreError as e:
        logger.error(f"Failed to compute upload stats: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Metadata store unavailable")


@router.get("/{descriptor_id}/download")
async def download_upload(descriptor_id: str, archive: ArchiveService = Depends(get_archive)) -> Response:
    """Return the stored bytes of a committed upload."""
    try:
        descriptor = await archive.get(descriptor_id)
    except MetadataStoreError as e:
        logger.error(f"Failed to load descriptor: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Metadata store unavailable")

    if descriptor is None:
        raise HTTPException(status_code=404, detail="Upload not found")

    try:
        content = await archive.download(descriptor)
    except StorageError as e:
        logger.error(f"Failed to download {descriptor.storage_key}: {e}", exc_info=True)
        raise HTTPException(status_code=404, detail="Stored file not found")

    return Response(
        content=content,
        media_type=descriptor.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{descriptor.file_name}"'},
    )
