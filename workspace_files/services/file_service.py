"""
File Service

Server-side lifecycle of workspace files: create from an upload payload,
fetch by path or ID with lazy expiry, list, update metadata/TTL and delete
(cascading to attachment edges).
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workspace_files.config import Settings, get_settings
from workspace_files.core.auth import Caller
from workspace_files.core.exceptions import ConflictError, GoneError, NotFoundError
from workspace_files.core.expiry import bounds_check, compute_expiry, is_expired, refresh, utcnow
from workspace_files.models.contracts.file import FileUpdate, UploadPayload
from workspace_files.models.orm.file import WorkspaceFile
from workspace_files.repositories.file import FileRepository
from workspace_files.services.entity_resolver import EntityResolver
from workspace_files.services.file_ingestion import clean_tags, decode_content, digest
from workspace_files.services.id_resolver import looks_like_id, resolve

logger = logging.getLogger(__name__)


def _gone(file: WorkspaceFile) -> GoneError:
    return GoneError(
        f"File at {file.path} expired at {file.expire_at.isoformat()}",
        {"path": file.path, "file_id": str(file.id), "expire_at": file.expire_at.isoformat()},
    )


class FileService:
    """Service for workspace file operations."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = FileRepository(session)
        self.entities = EntityResolver(session)

    async def resolve_project(self, project_ref: str | None) -> UUID | None:
        """Expand a short or full project ID (None passes through)."""
        if not project_ref:
            return None
        return await resolve(project_ref, self.entities.project_id_source())

    async def resolve_file_id(self, candidate: str) -> UUID:
        """Expand a short or full file ID."""
        return await resolve(candidate, self.repo.id_source())

    def _verify_payload(self, payload: UploadPayload) -> None:
        """Check that the payload's declared size and checksum match its content."""
        if payload.size > self.settings.max_upload_bytes:
            raise ValueError(
                f"File is {payload.size} bytes, limit is {self.settings.max_upload_bytes} bytes"
            )
        raw = decode_content(payload.content, payload.base64_encoded)
        actual = digest(raw)
        if actual.size != payload.size:
            raise ValueError(f"Declared size {payload.size} does not match content size {actual.size}")
        if actual.checksum != payload.checksum:
            raise ValueError("Checksum does not match content")

    async def create(self, caller: Caller, payload: UploadPayload) -> WorkspaceFile:
        """
        Store an uploaded file.

        An expired file still occupying the path is removed first (with its
        edges); a live file at the path is a conflict.

        Raises:
            TTLOutOfRangeError: If expire_minutes is out of bounds
            ConflictError: If a live file already uses the path
            ValueError: If size or checksum disagree with the content
        """
        bounds_check(payload.expire_minutes)
        self._verify_payload(payload)
        project_id = await self.resolve_project(payload.project_id)

        now = utcnow()
        existing = await self.repo.get_by_path(payload.path)
        if existing is not None:
            if not is_expired(existing.expire_at, now):
                raise ConflictError(
                    f"A file already exists at {payload.path}",
                    {"path": payload.path, "file_id": str(existing.id)},
                )
            removed = await self.repo.delete_with_attachments(existing)
            logger.info(
                f"Replaced expired file at {payload.path}",
                extra={"file_id": str(existing.id), "removed_attachments": removed},
            )

        file = WorkspaceFile(
            path=payload.path,
            filename=payload.filename,
            content=payload.content,
            base64_encoded=payload.base64_encoded,
            content_type=payload.content_type,
            size=payload.size,
            checksum=payload.checksum,
            tags=clean_tags(payload.tags or []),
            description=payload.description,
            project_id=project_id,
            is_public=payload.is_public,
            created_by=caller.agent_name,
            last_modified=payload.last_modified,
            expire_at=compute_expiry(now, payload.expire_minutes),
        )
        file = await self.repo.create(file)

        logger.info(
            f"Uploaded file: {file.path}",
            extra={
                "file_id": str(file.id),
                "size": file.size,
                "agent": caller.agent_name,
            },
        )
        return file

    async def get_by_path(self, path: str, allow_expired: bool = False) -> WorkspaceFile:
        """
        Get a file by path.

        Raises:
            NotFoundError: If no file has ever been stored at the path
            GoneError: If the file's expiry has passed (unless allow_expired)
        """
        file = await self.repo.get_by_path(path)
        if file is None:
            raise NotFoundError(f"File not found at {path}", {"path": path})
        if not allow_expired and is_expired(file.expire_at):
            raise _gone(file)
        return file

    async def get_by_id(self, file_id: UUID, allow_expired: bool = False) -> WorkspaceFile:
        """
        Get a file by full ID.

        Raises:
            NotFoundError: If the ID is unknown
            GoneError: If the file's expiry has passed (unless allow_expired)
        """
        file = await self.repo.get_by_id(file_id)
        if file is None:
            raise NotFoundError(f"File {file_id} not found", {"file_id": str(file_id)})
        if not allow_expired and is_expired(file.expire_at):
            raise _gone(file)
        return file

    async def get_by_ref(self, file_ref: str, allow_expired: bool = False) -> WorkspaceFile:
        """
        Get a file by ID (short or full) or by path.

        Anything shaped like an ID is resolved as an ID only; everything else is
        treated as a path.
        """
        if looks_like_id(file_ref):
            file_id = await self.resolve_file_id(file_ref)
            return await self.get_by_id(file_id, allow_expired=allow_expired)
        return await self.get_by_path(file_ref, allow_expired=allow_expired)

    async def list_files(
        self,
        path_prefix: str | None = None,
        tags: list[str] | None = None,
        project_ref: str | None = None,
        created_by: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[WorkspaceFile], int]:
        """List unexpired files with optional filters."""
        if limit is None:
            limit = self.settings.default_list_limit
        limit = max(1, min(limit, self.settings.max_list_limit))
        project_id = await self.resolve_project(project_ref)
        return await self.repo.list_files(
            utcnow(),
            path_prefix=path_prefix,
            tags=tags,
            project_id=project_id,
            created_by=created_by,
            limit=limit,
            offset=max(0, offset),
        )

    async def update(self, caller: Caller, path: str, update: FileUpdate) -> WorkspaceFile:
        """
        Update metadata or refresh the TTL of a live file.

        A TTL refresh restarts the clock from now.
        """
        file = await self.get_by_path(path)

        if update.expire_minutes is not None:
            refresh(file, update.expire_minutes)
        if update.description is not None:
            file.description = update.description
        if update.tags is not None:
            file.tags = clean_tags(update.tags)
        if update.project_id is not None:
            file.project_id = await self.resolve_project(update.project_id)
        file.updated_by = caller.agent_name

        file = await self.repo.update(file)
        logger.info(
            f"Updated file: {file.path}",
            extra={"file_id": str(file.id), "agent": caller.agent_name},
        )
        return file

    async def delete(self, caller: Caller, path: str) -> WorkspaceFile:
        """
        Delete a file (live or expired) and every attachment edge referencing it.

        Raises:
            NotFoundError: If no file exists at the path
        """
        file = await self.get_by_path(path, allow_expired=True)
        removed = await self.repo.delete_with_attachments(file)
        logger.info(
            f"Deleted file: {file.path}",
            extra={
                "file_id": str(file.id),
                "removed_attachments": removed,
                "agent": caller.agent_name,
            },
        )
        return file
