"""
Enums for Workspace Files models.
"""

from enum import Enum


class EntityType(str, Enum):
    """Entity kinds that files can be attached to."""

    BUG = "bug"
    FEATURE = "feature"
    TEST_CASE = "test_case"
    SUPPORT_TICKET = "support_ticket"
    MILESTONE = "milestone"
    ROADMAP = "roadmap"


class FileKind(str, Enum):
    """How a file's bytes travel in a payload."""

    TEXT = "text"  # UTF-8 content as-is
    BINARY = "binary"  # base64 envelope
