"""
Attachments Router

Provides endpoints for the file <-> entity graph, entity side:
- Link a file to an entity (idempotent)
- List an entity's attachments
- Unlink one attachment
- Remove all attachments of a deleted entity
"""

import logging

from fastapi import APIRouter, Response, status

from workspace_files.core.auth import CurrentCaller
from workspace_files.core.database import DbSession
from workspace_files.models.contracts.attachment import (
    AttachmentLinkRequest,
    AttachmentLinkResponse,
    AttachmentList,
    AttachmentsRemoved,
)
from workspace_files.models.contracts.common import ResolveResponse
from workspace_files.models.enums import EntityType
from workspace_files.services.attachment_graph import AttachmentGraphService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/entities/{entity_type}/{entity_ref}", tags=["attachments"]
)


@router.get("/attachments", response_model=AttachmentList)
async def list_attachments(
    entity_type: EntityType,
    entity_ref: str,
    caller: CurrentCaller,
    db: DbSession,
) -> AttachmentList:
    """
    List attachments of an entity, oldest first.

    Args:
        entity_type: Kind of entity
        entity_ref: Entity ID, short or full
        caller: Acting agent
        db: Database session

    Returns:
        Attachments with their file metadata
    """
    graph = AttachmentGraphService(db)
    items = await graph.list_attachments(entity_type, entity_ref)
    return AttachmentList(items=items, total=len(items))


@router.post("/attachments", response_model=AttachmentLinkResponse)
async def link_file(
    entity_type: EntityType,
    entity_ref: str,
    data: AttachmentLinkRequest,
    caller: CurrentCaller,
    db: DbSession,
    response: Response,
) -> AttachmentLinkResponse:
    """
    Link an existing file to an entity.

    Linking an already linked pair returns the existing attachment with
    200; a new attachment is returned with 201.
    """
    graph = AttachmentGraphService(db)
    result = await graph.link(
        caller,
        entity_type,
        entity_ref,
        data.file_ref,
        description=data.description,
    )
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return AttachmentLinkResponse(attachment=result.attachment, created=result.created)


@router.delete("/attachments/{attachment_ref}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_file(
    entity_type: EntityType,
    entity_ref: str,
    attachment_ref: str,
    caller: CurrentCaller,
    db: DbSession,
) -> None:
    """
    Remove one attachment from an entity. The file itself is kept.

    Returns 404 if the attachment does not exist or belongs to another entity.
    """
    graph = AttachmentGraphService(db)
    await graph.unlink(caller, entity_type, entity_ref, attachment_ref)


@router.delete("/attachments", response_model=AttachmentsRemoved)
async def remove_entity_attachments(
    entity_type: EntityType,
    entity_ref: str,
    caller: CurrentCaller,
    db: DbSession,
) -> AttachmentsRemoved:
    """
    Remove every attachment of an entity that is being deleted.

    Called by the service that owns the entity. Files are kept.
    """
    graph = AttachmentGraphService(db)
    removed = await graph.delete_for_entity(caller, entity_type, entity_ref)
    return AttachmentsRemoved(removed=removed)


@router.get("/resolve", response_model=ResolveResponse)
async def resolve_entity_id(
    entity_type: EntityType,
    entity_ref: str,
    caller: CurrentCaller,
    db: DbSession,
) -> ResolveResponse:
    """Expand a short entity ID to the full ID (404 if unknown, 409 if ambiguous)."""
    graph = AttachmentGraphService(db)
    entity_id = await graph.resolve_entity(entity_type, entity_ref)
    return ResolveResponse(candidate=entity_ref, id=str(entity_id))
