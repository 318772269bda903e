"""
File attachment ORM model.

The edge between a workspace file and one of the six entity kinds.
Deleting an attachment never deletes the file or the entity.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workspace_files.models.enums import EntityType
from workspace_files.models.orm.base import Base, utc_now

if TYPE_CHECKING:
    from workspace_files.models.orm.file import WorkspaceFile


class FileAttachment(Base):
    """File attachments database table."""

    __tablename__ = "file_attachments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    file_id: Mapped[UUID] = mapped_column(
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
    )
    entity_type: Mapped[EntityType] = mapped_column(
        String(50),
        nullable=False,
        comment="Entity type: bug, feature, test_case, support_ticket, milestone, roadmap",
    )
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
    )

    # Relationships
    file: Mapped["WorkspaceFile"] = relationship(back_populates="attachments")

    __table_args__ = (
        # One edge per (file, entity) pair; link is idempotent on this index
        UniqueConstraint(
            "file_id",
            "entity_type",
            "entity_id",
            name="uq_file_attachments_file_entity",
        ),
        Index("ix_file_attachments_file_id", "file_id"),
        Index("ix_file_attachments_entity", "entity_type", "entity_id"),
    )
