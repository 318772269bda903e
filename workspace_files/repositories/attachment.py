"""
Attachment Repository

Provides database operations for FileAttachment model.
Edges are unique per (file, entity); inserts rely on the unique index rather
than a check-then-insert, so concurrent links cannot create duplicates.
"""

from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_files.core.exceptions import ConflictError
from workspace_files.models.enums import EntityType
from workspace_files.models.orm.attachment import FileAttachment
from workspace_files.models.orm.file import WorkspaceFile
from workspace_files.repositories.base import BaseRepository
from workspace_files.services.id_resolver import ColumnIdSource

EDGE_COLUMNS = ["file_id", "entity_type", "entity_id"]


class AttachmentRepository(BaseRepository[FileAttachment]):
    """Repository for FileAttachment model operations."""

    model = FileAttachment

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    def id_source(self, entity_type: EntityType, entity_id: UUID) -> ColumnIdSource:
        """Short-ID namespace for the attachments of one entity."""
        return ColumnIdSource(
            self.session,
            FileAttachment.id,
            "attachment",
            FileAttachment.entity_type == EntityType(entity_type).value,
            FileAttachment.entity_id == entity_id,
        )

    async def find_edge(
        self, file_id: UUID, entity_type: EntityType, entity_id: UUID
    ) -> FileAttachment | None:
        """
        Get the edge between a file and an entity.

        Returns:
            FileAttachment or None if the pair is not linked
        """
        result = await self.session.execute(
            select(FileAttachment).where(
                FileAttachment.file_id == file_id,
                FileAttachment.entity_type == EntityType(entity_type).value,
                FileAttachment.entity_id == entity_id,
            )
        )
        return result.scalar_one_or_none()

    async def insert_edge(
        self,
        file_id: UUID,
        entity_type: EntityType,
        entity_id: UUID,
        description: str | None,
        created_by: str,
    ) -> tuple[FileAttachment, bool]:
        """
        Insert an edge unless the pair is already linked.

        Args:
            file_id: File UUID
            entity_type: Type of entity
            entity_id: Entity UUID
            description: Free-text note stored on a new edge
            created_by: Agent creating the edge

        Returns:
            Tuple of (edge, created) where created is False if it already existed
        """
        values = {
            "id": uuid4(),
            "file_id": file_id,
            "entity_type": EntityType(entity_type).value,
            "entity_id": entity_id,
            "description": description,
            "created_by": created_by,
        }

        if self.dialect_name in ("postgresql", "sqlite"):
            insert = pg_insert if self.dialect_name == "postgresql" else sqlite_insert
            result = await self.session.execute(
                insert(FileAttachment)
                .values(**values)
                .on_conflict_do_nothing(index_elements=EDGE_COLUMNS)
                .returning(FileAttachment.id)
            )
            created = result.scalar_one_or_none() is not None
        else:
            try:
                async with self.session.begin_nested():
                    self.session.add(FileAttachment(**values))
                created = True
            except IntegrityError:
                created = False

        edge = await self.find_edge(file_id, entity_type, entity_id)
        if edge is None:
            # Unlinked between our insert and the read-back.
            raise ConflictError(
                f"Attachment for file {file_id} was removed while linking",
                {"file_id": str(file_id)},
            )
        return edge, created

    async def get_by_entity(
        self, entity_type: EntityType, entity_id: UUID
    ) -> list[tuple[FileAttachment, WorkspaceFile]]:
        """
        Get all edges of an entity with their files, oldest first.

        Args:
            entity_type: Type of entity
            entity_id: Entity UUID

        Returns:
            List of (attachment, file) pairs
        """
        result = await self.session.execute(
            select(FileAttachment, WorkspaceFile)
            .join(WorkspaceFile, WorkspaceFile.id == FileAttachment.file_id)
            .where(
                FileAttachment.entity_type == EntityType(entity_type).value,
                FileAttachment.entity_id == entity_id,
            )
            .order_by(FileAttachment.created_at.asc(), FileAttachment.id.asc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def get_by_file(self, file_id: UUID) -> list[FileAttachment]:
        """
        Get all edges of a file, oldest first.

        Args:
            file_id: File UUID

        Returns:
            List of attachments
        """
        result = await self.session.execute(
            select(FileAttachment)
            .where(FileAttachment.file_id == file_id)
            .order_by(FileAttachment.created_at.asc(), FileAttachment.id.asc())
        )
        return list(result.scalars().all())

    async def delete_edge(
        self, attachment_id: UUID, entity_type: EntityType, entity_id: UUID
    ) -> bool:
        """
        Delete one edge, only if it belongs to the given entity.

        A single conditional DELETE: of two concurrent callers exactly one
        sees True.

        Returns:
            True if an edge was deleted
        """
        result = await self.session.execute(
            delete(FileAttachment)
            .where(
                FileAttachment.id == attachment_id,
                FileAttachment.entity_type == EntityType(entity_type).value,
                FileAttachment.entity_id == entity_id,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return (result.rowcount or 0) == 1

    async def delete_by_entity(self, entity_type: EntityType, entity_id: UUID) -> int:
        """
        Delete all edges of an entity.

        Used when an entity is deleted. Files are left in place.

        Returns:
            Number of edges deleted
        """
        result = await self.session.execute(
            delete(FileAttachment)
            .where(
                FileAttachment.entity_type == EntityType(entity_type).value,
                FileAttachment.entity_id == entity_id,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount or 0
