"""
File contracts (API request/response schemas).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UploadPayload(BaseModel):
    """
    Canonical upload payload.

    Built locally by the upload preparer; ``checksum`` and ``size`` always
    describe the raw bytes, never the base64 envelope.
    """

    path: str = Field(..., min_length=1, max_length=1024, description="Remote path")
    filename: str = Field(..., min_length=1, max_length=255, description="Original filename")
    content: str = Field(..., description="UTF-8 text or base64 envelope")
    base64_encoded: bool = Field(..., description="True when content is base64")
    content_type: str = Field(..., max_length=255, description="MIME type")
    size: int = Field(..., ge=0, description="Size of the raw bytes")
    checksum: str = Field(..., min_length=64, max_length=64, description="SHA-256 hex of the raw bytes")
    expire_minutes: int = Field(..., description="TTL in minutes")
    created_by_agent_name: str | None = Field(None, description="Acting agent")
    description: str | None = None
    tags: list[str] | None = None
    project_id: str | None = Field(None, description="Project ID, short or full form")
    is_public: bool = False
    last_modified: datetime | None = Field(None, description="mtime of the local source file")

    @field_validator("checksum")
    @classmethod
    def _normalize_checksum(cls, value: str) -> str:
        return value.lower()


class FilePublic(BaseModel):
    """File metadata response model (no content)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    path: str
    filename: str
    size: int
    content_type: str
    checksum: str
    base64_encoded: bool
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    project_id: str | None = None
    is_public: bool = False
    created_by: str
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime
    expire_at: datetime

    @field_validator("id", "project_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: object) -> object:
        return str(value) if value is not None else None


class FileContent(FilePublic):
    """File download response model (metadata plus content)."""

    content: str


class FileUpdate(BaseModel):
    """File update request model. Content is immutable; only metadata and TTL change."""

    expire_minutes: int | None = Field(None, description="Restart the TTL with this many minutes")
    description: str | None = None
    tags: list[str] | None = None
    project_id: str | None = Field(None, description="Move to a project, short or full ID")


class FileList(BaseModel):
    """List of files response."""

    files: list[FilePublic]
    count: int
