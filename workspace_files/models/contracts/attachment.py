"""
Attachment contracts (API request/response schemas).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from workspace_files.models.contracts.file import FilePublic
from workspace_files.models.enums import EntityType


class AttachmentLinkRequest(BaseModel):
    """Link an existing file to an entity."""

    file_ref: str = Field(
        ..., min_length=1, description="File ID (short or full) or remote path"
    )
    description: str | None = Field(None, description="Why the file is relevant")


class AttachmentPublic(BaseModel):
    """Attachment response model, resolved with its file's metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    file_id: str
    entity_type: EntityType
    entity_id: str
    description: str | None = None
    created_by: str
    created_at: datetime
    file: FilePublic

    @field_validator("id", "file_id", "entity_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: object) -> object:
        return str(value)


class AttachmentLinkResponse(BaseModel):
    """Result of a link call; ``created`` is False when the edge already existed."""

    attachment: AttachmentPublic
    created: bool


class AttachmentList(BaseModel):
    """List of attachments for one entity."""

    items: list[AttachmentPublic]
    total: int


class AttachmentsRemoved(BaseModel):
    """Result of removing every attachment of a deleted entity."""

    removed: int


class EntityReference(BaseModel):
    """One entity referencing a file (reverse traversal)."""

    attachment_id: str
    entity_type: EntityType
    entity_id: str
    title: str | None = None
    created_at: datetime


class FileAttachmentList(BaseModel):
    """Entities referencing one file."""

    file_id: str
    path: str
    items: list[EntityReference]
    total: int
