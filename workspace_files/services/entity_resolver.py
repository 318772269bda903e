"""
Entity Resolver Service

Maps each entity type to the table that stores it and resolves entity IDs to
display titles. Used by the attachment graph to validate link targets and to
label the reverse (file -> entities) traversal.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from workspace_files.core.exceptions import NotFoundError
from workspace_files.models.enums import EntityType
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
from workspace_files.services.id_resolver import ColumnIdSource


@dataclass(frozen=True)
class EntityMapping:
    """Where an entity type lives and which column holds its title."""

    model: type[Base]
    title_column: InstrumentedAttribute[str]

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def id_column(self) -> InstrumentedAttribute[UUID]:
        return self.model.id  # type: ignore[attr-defined]


ENTITY_MODELS: dict[EntityType, EntityMapping] = {
    EntityType.BUG: EntityMapping(Bug, Bug.title),
    EntityType.FEATURE: EntityMapping(Feature, Feature.title),
    EntityType.TEST_CASE: EntityMapping(TestCase, TestCase.title),
    EntityType.SUPPORT_TICKET: EntityMapping(SupportTicket, SupportTicket.subject),
    EntityType.MILESTONE: EntityMapping(Milestone, Milestone.title),
    EntityType.ROADMAP: EntityMapping(Roadmap, Roadmap.name),
}


def mapping_for(entity_type: EntityType | str) -> EntityMapping:
    """
    Get the storage mapping for an entity type.

    Raises:
        ValueError: If the entity type is not one of the known kinds
    """
    try:
        return ENTITY_MODELS[EntityType(entity_type)]
    except (KeyError, ValueError) as e:
        valid = ", ".join(t.value for t in EntityType)
        raise ValueError(f"Invalid entity type: {entity_type}. Must be one of: {valid}") from e


class EntityResolver:
    """Service for checking entity existence and resolving entity titles."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def title_of(self, entity_type: EntityType, entity_id: UUID) -> str:
        """
        Get the display title of an entity.

        Raises:
            NotFoundError: If the entity does not exist
        """
        title = await self.find_title(entity_type, entity_id)
        if title is None:
            raise NotFoundError(
                f"{EntityType(entity_type).value} {entity_id} not found",
                {"entity_type": EntityType(entity_type).value, "entity_id": str(entity_id)},
            )
        return title

    async def find_title(self, entity_type: EntityType, entity_id: UUID) -> str | None:
        """Get the display title of an entity, or None when it does not exist."""
        mapping = mapping_for(entity_type)
        result = await self.session.execute(
            select(mapping.title_column).where(mapping.id_column == entity_id)
        )
        return result.scalar_one_or_none()

    async def exists(self, entity_type: EntityType, entity_id: UUID) -> bool:
        """Check whether an entity exists."""
        mapping = mapping_for(entity_type)
        result = await self.session.execute(
            select(mapping.id_column).where(mapping.id_column == entity_id)
        )
        return result.scalar_one_or_none() is not None

    async def titles_for(
        self, refs: list[tuple[EntityType, UUID]]
    ) -> dict[tuple[EntityType, UUID], str | None]:
        """Resolve titles for many entities with one query per entity type."""
        by_type: dict[EntityType, set[UUID]] = {}
        for entity_type, entity_id in refs:
            by_type.setdefault(EntityType(entity_type), set()).add(entity_id)

        titles: dict[tuple[EntityType, UUID], str | None] = {
            (EntityType(t), i): None for t, i in refs
        }
        for entity_type, ids in by_type.items():
            mapping = mapping_for(entity_type)
            result = await self.session.execute(
                select(mapping.id_column, mapping.title_column).where(
                    mapping.id_column.in_(ids)
                )
            )
            for entity_id, title in result.all():
                titles[(entity_type, entity_id)] = title
        return titles

    def id_source(self, entity_type: EntityType) -> ColumnIdSource:
        """Short-ID namespace for one entity type."""
        mapping = mapping_for(entity_type)
        return ColumnIdSource(self.session, mapping.id_column, EntityType(entity_type).value)

    def project_id_source(self) -> ColumnIdSource:
        """Short-ID namespace for projects."""
        return ColumnIdSource(self.session, Project.id, "project")
