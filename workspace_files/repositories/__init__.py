"""Data access repositories."""

from workspace_files.repositories.attachment import AttachmentRepository
from workspace_files.repositories.file import FileRepository

__all__ = [
    "AttachmentRepository",
    "FileRepository",
]
