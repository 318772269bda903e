"""
File Repository

Provides database operations for WorkspaceFile model.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_files.models.orm.attachment import FileAttachment
from workspace_files.models.orm.file import WorkspaceFile
from workspace_files.repositories.base import BaseRepository
from workspace_files.services.id_resolver import ColumnIdSource


class FileRepository(BaseRepository[WorkspaceFile]):
    """Repository for WorkspaceFile model operations."""

    model = WorkspaceFile

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    def id_source(self) -> ColumnIdSource:
        """Short-ID namespace for files."""
        return ColumnIdSource(self.session, WorkspaceFile.id, "file")

    async def get_by_path(self, path: str) -> WorkspaceFile | None:
        """
        Get file by its remote path.

        Args:
            path: Unique remote path

        Returns:
            WorkspaceFile or None if not found
        """
        result = await self.session.execute(
            select(WorkspaceFile).where(WorkspaceFile.path == path)
        )
        return result.scalar_one_or_none()

    async def list_files(
        self,
        now: datetime,
        path_prefix: str | None = None,
        tags: list[str] | None = None,
        project_id: UUID | None = None,
        created_by: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[WorkspaceFile], int]:
        """
        List unexpired files, newest first.

        Args:
            now: Reference time; files with expire_at before it are excluded
            path_prefix: Only paths starting with this prefix
            tags: Only files carrying at least one of these tags
            project_id: Only files owned by this project
            created_by: Only files created by this agent
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            Tuple of (files, total matching count)
        """
        query = select(WorkspaceFile).where(WorkspaceFile.expire_at >= now)

        if path_prefix:
            query = query.where(WorkspaceFile.path.startswith(path_prefix, autoescape=True))
        if project_id is not None:
            query = query.where(WorkspaceFile.project_id == project_id)
        if created_by:
            query = query.where(WorkspaceFile.created_by == created_by)

        query = query.order_by(WorkspaceFile.created_at.desc(), WorkspaceFile.id)

        if tags:
            # Tags are a JSON list; the any-of match runs in Python to stay backend neutral.
            wanted = set(tags)
            result = await self.session.execute(query)
            matching = [f for f in result.scalars().all() if wanted.intersection(f.tags or [])]
            return matching[offset : offset + limit], len(matching)

        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await self.session.execute(count_query)).scalar() or 0

        result = await self.session.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all()), total

    async def delete_with_attachments(self, file: WorkspaceFile) -> int:
        """
        Delete a file and every attachment edge referencing it.

        Args:
            file: File to delete

        Returns:
            Number of attachment edges removed
        """
        result = await self.session.execute(
            delete(FileAttachment)
            .where(FileAttachment.file_id == file.id)
            .execution_options(synchronize_session=False)
        )
        await self.delete(file)
        return result.rowcount or 0
