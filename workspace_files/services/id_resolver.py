"""
Identifier Resolver

Expands abbreviated identifiers to the unique full UUID they denote.

Full IDs are 36-character UUID strings. Interactive callers may pass an
8-character prefix instead; the prefix is matched case-sensitively against one
ID namespace (files, attachments, projects, or a single entity type).
"""

import re
from typing import Protocol
from uuid import UUID

from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from workspace_files.core.exceptions import AmbiguousIdError, NotFoundError

SHORT_ID_LENGTH = 8

FULL_ID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
ID_PREFIX_PATTERN = re.compile(r"^[0-9a-fA-F-]{1,36}$")


class KnownIdSource(Protocol):
    """A namespace of IDs that can be searched by prefix."""

    label: str

    async def ids_with_prefix(self, prefix: str) -> list[UUID]:
        """Return every ID whose textual form starts with ``prefix``."""
        ...


def is_full_id(candidate: str) -> bool:
    """Check whether a string already has full UUID shape."""
    return bool(FULL_ID_PATTERN.match(candidate))


def looks_like_id(candidate: str) -> bool:
    """Check whether a string could be a full or abbreviated ID (as opposed to a path)."""
    return bool(ID_PREFIX_PATTERN.match(candidate))


def short_id(value: UUID | str) -> str:
    """Display form of an ID: its first eight characters."""
    return str(value)[:SHORT_ID_LENGTH]


async def resolve(candidate: str, source: KnownIdSource) -> UUID:
    """
    Expand a short or full identifier.

    Args:
        candidate: Full UUID string or a case-sensitive prefix of one
        source: Namespace to search when the candidate is a prefix

    Returns:
        The full UUID

    Raises:
        NotFoundError: If nothing matches
        AmbiguousIdError: If more than one ID shares the prefix
    """
    candidate = candidate.strip()

    if is_full_id(candidate):
        return UUID(candidate)

    if not looks_like_id(candidate):
        raise NotFoundError(
            f"No {source.label} matches '{candidate}'",
            {"candidate": candidate, "namespace": source.label},
        )

    matches = await source.ids_with_prefix(candidate)

    if not matches:
        raise NotFoundError(
            f"No {source.label} matches '{candidate}'",
            {"candidate": candidate, "namespace": source.label},
        )
    if len(matches) > 1:
        raise AmbiguousIdError(candidate, [str(m) for m in matches])
    return matches[0]


class ColumnIdSource:
    """
    Prefix search over a UUID primary key column.

    The SQL filter narrows on the leading hex digits (identical in every
    backend's text form of a UUID); the exact, case-sensitive prefix test runs
    on the canonical string form.
    """

    def __init__(
        self,
        session: AsyncSession,
        column: InstrumentedAttribute[UUID],
        label: str,
        *criteria: object,
    ):
        self.session = session
        self.column = column
        self.label = label
        self.criteria = criteria

    async def ids_with_prefix(self, prefix: str) -> list[UUID]:
        head = prefix[:SHORT_ID_LENGTH].lower()
        query = select(self.column).where(cast(self.column, String).like(f"{head}%"))
        for criterion in self.criteria:
            query = query.where(criterion)  # type: ignore[arg-type]

        result = await self.session.execute(query)
        ids = {value if isinstance(value, UUID) else UUID(str(value)) for value in result.scalars()}
        return sorted((i for i in ids if str(i).startswith(prefix)), key=str)
