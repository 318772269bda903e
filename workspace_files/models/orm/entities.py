"""
Work-tracking entity ORM models.

These tables are owned and written by the services that manage bugs, features,
test cases, support tickets, milestones, roadmaps and projects. This package
only reads them to check existence and to display a title next to an
attachment.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from workspace_files.models.orm.base import Base, utc_now


class TimestampedEntity:
    """Columns shared by every entity table."""

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
    )


class Project(TimestampedEntity, Base):
    """Projects table."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Bug(TimestampedEntity, Base):
    """Bugs table."""

    __tablename__ = "bugs"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )


class Feature(TimestampedEntity, Base):
    """Feature requests table."""

    __tablename__ = "features"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )


class TestCase(TimestampedEntity, Base):
    """Test cases table."""

    __tablename__ = "test_cases"
    __test__ = False  # not a pytest class

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )


class SupportTicket(TimestampedEntity, Base):
    """Support tickets table."""

    __tablename__ = "support_tickets"

    subject: Mapped[str] = mapped_column(String(500), nullable=False)


class Milestone(TimestampedEntity, Base):
    """Milestones table."""

    __tablename__ = "milestones"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )


class Roadmap(TimestampedEntity, Base):
    """Roadmaps table."""

    __tablename__ = "roadmaps"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
