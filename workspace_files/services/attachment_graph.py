"""
Attachment Graph Service

Owns the many-to-many edges between workspace files and the six entity kinds.

- link: idempotent edge creation (the existing edge is returned for a linked pair)
- list_attachments: entity -> files, oldest first, with file metadata
- unlink: remove one edge belonging to the given entity; the file survives
- file_attachments: file -> entities, the same edges in the opposite projection
- delete_for_entity: cascade used when an entity is deleted

Edges pointing at expired files are hidden from both traversals so the two
directions always agree.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workspace_files.core.auth import Caller
from workspace_files.core.exceptions import NotFoundError
from workspace_files.core.expiry import is_expired, utcnow
from workspace_files.models.contracts.attachment import AttachmentPublic, EntityReference
from workspace_files.models.contracts.file import FilePublic
from workspace_files.models.enums import EntityType
from workspace_files.models.orm.attachment import FileAttachment
from workspace_files.models.orm.file import WorkspaceFile
from workspace_files.repositories.attachment import AttachmentRepository
from workspace_files.services.entity_resolver import EntityResolver, mapping_for
from workspace_files.services.file_service import FileService
from workspace_files.services.id_resolver import resolve

logger = logging.getLogger(__name__)


@dataclass
class LinkResult:
    """Outcome of a link call."""

    attachment: AttachmentPublic
    created: bool


def to_public(attachment: FileAttachment, file: WorkspaceFile) -> AttachmentPublic:
    """Build the public attachment model with its file's metadata."""
    return AttachmentPublic(
        id=str(attachment.id),
        file_id=str(attachment.file_id),
        entity_type=EntityType(attachment.entity_type),
        entity_id=str(attachment.entity_id),
        description=attachment.description,
        created_by=attachment.created_by,
        created_at=attachment.created_at,
        file=FilePublic.model_validate(file),
    )


class AttachmentGraphService:
    """Service for linking files to entities and traversing the links."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.files = FileService(session)
        self.attachments = AttachmentRepository(session)
        self.entities = EntityResolver(session)

    async def resolve_entity(
        self, entity_type: EntityType, entity_ref: str, must_exist: bool = True
    ) -> UUID:
        """
        Expand an entity ID (short or full) within its type's namespace.

        Raises:
            ValueError: If the entity type is unknown
            NotFoundError: If nothing matches, or the entity does not exist
            AmbiguousIdError: If a short ID matches several entities
        """
        mapping_for(entity_type)
        entity_id = await resolve(entity_ref, self.entities.id_source(entity_type))
        if must_exist and not await self.entities.exists(entity_type, entity_id):
            raise NotFoundError(
                f"{EntityType(entity_type).value} {entity_ref} not found",
                {"entity_type": EntityType(entity_type).value, "entity_id": entity_ref},
            )
        return entity_id

    async def link(
        self,
        caller: Caller,
        entity_type: EntityType,
        entity_ref: str,
        file_ref: str,
        description: str | None = None,
    ) -> LinkResult:
        """
        Attach an existing file to an entity.

        Args:
            caller: Acting identity, recorded as the edge's creator
            entity_type: Kind of entity
            entity_ref: Entity ID, short or full
            file_ref: File ID (short or full) or remote path
            description: Note stored on a newly created edge

        Returns:
            LinkResult with the edge and whether it was created by this call

        Raises:
            NotFoundError: Unknown entity or file
            GoneError: The file has expired
            AmbiguousIdError: A short ID matches several records
        """
        entity_id = await self.resolve_entity(entity_type, entity_ref)
        file = await self.files.get_by_ref(file_ref)

        edge, created = await self.attachments.insert_edge(
            file_id=file.id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            created_by=caller.agent_name,
        )

        if created:
            logger.info(
                f"Linked file {file.path} to {EntityType(entity_type).value} {entity_id}",
                extra={
                    "attachment_id": str(edge.id),
                    "file_id": str(file.id),
                    "entity_type": EntityType(entity_type).value,
                    "entity_id": str(entity_id),
                    "agent": caller.agent_name,
                },
            )

        return LinkResult(attachment=to_public(edge, file), created=created)

    async def list_attachments(
        self, entity_type: EntityType, entity_ref: str
    ) -> list[AttachmentPublic]:
        """
        List an entity's attachments, oldest first, each with its file metadata.

        A fresh snapshot on every call.
        """
        entity_id = await self.resolve_entity(entity_type, entity_ref, must_exist=False)
        now = utcnow()
        return [
            to_public(edge, file)
            for edge, file in await self.attachments.get_by_entity(entity_type, entity_id)
            if not is_expired(file.expire_at, now)
        ]

    async def unlink(
        self,
        caller: Caller,
        entity_type: EntityType,
        entity_ref: str,
        attachment_ref: str,
    ) -> None:
        """
        Remove one edge from an entity. The file is never deleted.

        The attachment ID is resolved only among this entity's edges, so an
        edge of another entity cannot be removed by guessing.

        Raises:
            NotFoundError: If the edge does not exist or belongs to another entity
        """
        entity_id = await self.resolve_entity(entity_type, entity_ref, must_exist=False)
        attachment_id = await resolve(
            attachment_ref, self.attachments.id_source(entity_type, entity_id)
        )

        deleted = await self.attachments.delete_edge(attachment_id, entity_type, entity_id)
        if not deleted:
            raise NotFoundError(
                f"Attachment {attachment_ref} not found on {EntityType(entity_type).value} {entity_ref}",
                {
                    "attachment_id": attachment_ref,
                    "entity_type": EntityType(entity_type).value,
                    "entity_id": str(entity_id),
                },
            )

        logger.info(
            f"Unlinked attachment {attachment_id}",
            extra={
                "attachment_id": str(attachment_id),
                "entity_type": EntityType(entity_type).value,
                "entity_id": str(entity_id),
                "agent": caller.agent_name,
            },
        )

    async def file_attachments(
        self, file_ref: str
    ) -> tuple[WorkspaceFile, list[EntityReference]]:
        """
        List the entities referencing a file, oldest edge first.

        Args:
            file_ref: File ID (short or full) or remote path

        Returns:
            Tuple of (file, entity references with display titles)

        Raises:
            NotFoundError: Unknown file
            GoneError: The file has expired
        """
        file = await self.files.get_by_ref(file_ref)
        edges = await self.attachments.get_by_file(file.id)
        titles = await self.entities.titles_for(
            [(EntityType(e.entity_type), e.entity_id) for e in edges]
        )
        references = [
            EntityReference(
                attachment_id=str(edge.id),
                entity_type=EntityType(edge.entity_type),
                entity_id=str(edge.entity_id),
                title=titles.get((EntityType(edge.entity_type), edge.entity_id)),
                created_at=edge.created_at,
            )
            for edge in edges
        ]
        return file, references

    async def delete_for_entity(
        self, caller: Caller, entity_type: EntityType, entity_ref: str
    ) -> int:
        """
        Remove every edge of an entity that is being deleted. Files are kept.

        Returns:
            Number of edges removed
        """
        entity_id = await self.resolve_entity(entity_type, entity_ref, must_exist=False)
        removed = await self.attachments.delete_by_entity(entity_type, entity_id)
        logger.info(
            f"Removed {removed} attachments of {EntityType(entity_type).value} {entity_id}",
            extra={
                "entity_type": EntityType(entity_type).value,
                "entity_id": str(entity_id),
                "agent": caller.agent_name,
            },
        )
        return removed
