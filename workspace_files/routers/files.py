"""
Files Router

Provides endpoints for workspace files including:
- Upload (payload prepared by the client)
- Download (content included, expired files answer 410)
- Metadata, list with filters, update/TTL refresh, delete
- Reverse traversal: which entities reference a file
- File reference resolution (short ID, full ID or path)
"""

import logging

from fastapi import APIRouter, Query, status

from workspace_files.core.auth import CurrentCaller
from workspace_files.core.database import DbSession
from workspace_files.models.contracts.attachment import FileAttachmentList
from workspace_files.models.contracts.common import ResolveResponse
from workspace_files.models.contracts.file import (
    FileContent,
    FileList,
    FilePublic,
    FileUpdate,
    UploadPayload,
)
from workspace_files.services.attachment_graph import AttachmentGraphService
from workspace_files.services.file_ingestion import split_tags
from workspace_files.services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=FilePublic, status_code=status.HTTP_201_CREATED)
async def upload_file(
    payload: UploadPayload,
    caller: CurrentCaller,
    db: DbSession,
) -> FilePublic:
    """
    Store an uploaded file.

    Args:
        payload: Upload payload built by the client's upload preparer
        caller: Acting agent
        db: Database session

    Returns:
        Stored file metadata, including its ID and absolute expiry
    """
    service = FileService(db)
    file = await service.create(caller, payload)
    return FilePublic.model_validate(file)


@router.get("", response_model=FileList)
async def list_files(
    caller: CurrentCaller,
    db: DbSession,
    path: str | None = Query(None, description="Filter by path prefix"),
    tags: str | None = Query(None, description="Comma-separated tags (any match)"),
    project_id: str | None = Query(None, description="Project ID, short or full"),
    created_by: str | None = Query(None, description="Filter by creator agent"),
    limit: int | None = Query(None, ge=1, description="Max results (default 50, max 500)"),
    offset: int = Query(0, ge=0),
) -> FileList:
    """
    List unexpired files.

    Returns:
        Page of files and the total number of matches
    """
    service = FileService(db)
    files, count = await service.list_files(
        path_prefix=path,
        tags=split_tags(tags),
        project_ref=project_id,
        created_by=created_by,
        limit=limit,
        offset=offset,
    )
    return FileList(files=[FilePublic.model_validate(f) for f in files], count=count)


@router.get("/by-path", response_model=FileContent)
async def download_file(
    caller: CurrentCaller,
    db: DbSession,
    path: str = Query(..., description="Remote path"),
) -> FileContent:
    """
    Get a file with its content.

    Returns 404 when nothing was ever stored at the path and 410 when the
    file has expired.
    """
    service = FileService(db)
    file = await service.get_by_path(path)
    return FileContent.model_validate(file)


@router.get("/metadata", response_model=FilePublic)
async def get_file_metadata(
    caller: CurrentCaller,
    db: DbSession,
    path: str = Query(..., description="Remote path"),
) -> FilePublic:
    """Get file metadata without content."""
    service = FileService(db)
    file = await service.get_by_path(path)
    return FilePublic.model_validate(file)


@router.patch("", response_model=FilePublic)
async def update_file(
    update: FileUpdate,
    caller: CurrentCaller,
    db: DbSession,
    path: str = Query(..., description="Remote path"),
) -> FilePublic:
    """
    Update file metadata or refresh its TTL.

    A TTL refresh restarts the clock from the time of the request.
    """
    service = FileService(db)
    file = await service.update(caller, path, update)
    return FilePublic.model_validate(file)


@router.delete("", response_model=FilePublic)
async def delete_file(
    caller: CurrentCaller,
    db: DbSession,
    path: str = Query(..., description="Remote path"),
) -> FilePublic:
    """
    Delete a file and every attachment referencing it.

    Returns:
        Metadata of the deleted file
    """
    service = FileService(db)
    file = await service.get_by_path(path, allow_expired=True)
    deleted = FilePublic.model_validate(file)
    await service.delete(caller, path)
    return deleted


@router.get("/attachments", response_model=FileAttachmentList)
async def list_file_attachments(
    caller: CurrentCaller,
    db: DbSession,
    ref: str = Query(..., description="File ID (short or full) or remote path"),
) -> FileAttachmentList:
    """
    List the entities a file is attached to.

    Returns the same edges as the per-entity attachment listing, projected
    onto the entity side, with each entity's display title.
    """
    graph = AttachmentGraphService(db)
    file, references = await graph.file_attachments(ref)
    return FileAttachmentList(
        file_id=str(file.id),
        path=file.path,
        items=references,
        total=len(references),
    )


@router.get("/resolve", response_model=ResolveResponse)
async def resolve_file(
    caller: CurrentCaller,
    db: DbSession,
    ref: str = Query(..., min_length=1, description="File ID (short or full) or path"),
) -> ResolveResponse:
    """
    Resolve a file reference to the full file ID.

    A short ID answers 409 if ambiguous; an unknown reference answers 404 and
    an expired file 410.
    """
    service = FileService(db)
    file = await service.get_by_ref(ref)
    return ResolveResponse(candidate=ref, id=str(file.id))
