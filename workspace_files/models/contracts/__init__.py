"""Pydantic contracts (API request/response schemas)."""

from workspace_files.models.contracts.attachment import (
    AttachmentLinkRequest,
    AttachmentLinkResponse,
    AttachmentList,
    AttachmentPublic,
    AttachmentsRemoved,
    EntityReference,
    FileAttachmentList,
)
from workspace_files.models.contracts.common import (
    ErrorResponse,
    HealthResponse,
    ResolveResponse,
)
from workspace_files.models.contracts.file import (
    FileContent,
    FileList,
    FilePublic,
    FileUpdate,
    UploadPayload,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "ResolveResponse",
    # Files
    "UploadPayload",
    "FilePublic",
    "FileContent",
    "FileUpdate",
    "FileList",
    # Attachments
    "AttachmentLinkRequest",
    "AttachmentPublic",
    "AttachmentLinkResponse",
    "AttachmentList",
    "AttachmentsRemoved",
    "EntityReference",
    "FileAttachmentList",
]
