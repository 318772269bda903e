"""SQLAlchemy ORM Models for Workspace Files.

Pure database models using SQLAlchemy 2.0 declarative style.
These models define the database schema and relationships.
"""

from workspace_files.models.orm.attachment import FileAttachment
from workspace_files.models.orm.base import Base
from workspace_files.models.orm.entities import (
    Bug,
    Feature,
    Milestone,
    Project,
    Roadmap,
    SupportTicket,
    TestCase,
)
from workspace_files.models.orm.file import WorkspaceFile

__all__ = [
    # Base
    "Base",
    # Files
    "WorkspaceFile",
    # Attachments
    "FileAttachment",
    # Entities (externally owned)
    "Project",
    "Bug",
    "Feature",
    "TestCase",
    "SupportTicket",
    "Milestone",
    "Roadmap",
]
