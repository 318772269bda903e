"""Workspace Files Models.

ORM models (database tables):
    from workspace_files.models.orm import WorkspaceFile, FileAttachment

Pydantic contracts (API request/response):
    from workspace_files.models.contracts import UploadPayload, FilePublic

Enums:
    from workspace_files.models.enums import EntityType, FileKind
"""

from workspace_files.models.enums import EntityType, FileKind

__all__ = ["EntityType", "FileKind"]
