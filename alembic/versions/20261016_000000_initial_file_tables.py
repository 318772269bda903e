"""Initial files and file_attachments tables

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

The entity tables (bugs, features, test_cases, support_tickets, milestones,
roadmaps, projects) are owned by their own services and are not created here.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "files",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("path", sa.String(length=1024), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("base64_encoded", sa.Boolean(), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("checksum", sa.String(length=64), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("project_id", sa.UUID(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expire_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("path"),
    )
    op.create_index("ix_files_project_id", "files", ["project_id"], unique=False)
    op.create_index("ix_files_expire_at", "files", ["expire_at"], unique=False)
    op.create_index("ix_files_created_by", "files", ["created_by"], unique=False)

    op.create_table(
        "file_attachments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_id", sa.UUID(), nullable=False),
        sa.Column(
            "entity_type",
            sa.String(length=50),
            nullable=False,
            comment="Entity type: bug, feature, test_case, support_ticket, milestone, roadmap",
        ),
        sa.Column("entity_id", sa.UUID(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["file_id"],
            ["files.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_id",
            "entity_type",
            "entity_id",
            name="uq_file_attachments_file_entity",
        ),
    )
    op.create_index(
        "ix_file_attachments_file_id", "file_attachments", ["file_id"], unique=False
    )
    op.create_index(
        "ix_file_attachments_entity",
        "file_attachments",
        ["entity_type", "entity_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_file_attachments_entity", table_name="file_attachments")
    op.drop_index("ix_file_attachments_file_id", table_name="file_attachments")
    op.drop_table("file_attachments")
    op.drop_index("ix_files_created_by", table_name="files")
    op.drop_index("ix_files_expire_at", table_name="files")
    op.drop_index("ix_files_project_id", table_name="files")
    op.drop_table("files")
