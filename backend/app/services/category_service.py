"""
Event categories: listing with usage counts, creation and id resolution.
"""

from typing import Iterable

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidCategory
from app.core.logging import get_logger
from app.models.category import EventCategory, event_category_relationships
from app.models.event import Event
from app.schemas.category import CategoryCreate

logger = get_logger(__name__)


async def list_categories(db: AsyncSession) -> list[tuple[EventCategory, int]]:
    """All categories by name, each with the number of live events using it."""
    events_count = func.count(Event.id)
    query = (
        select(EventCategory, events_count)
        .outerjoin(
            event_category_relationships,
            event_category_relationships.c.category_id == EventCategory.id,
        )
        .outerjoin(
            Event,
            and_(Event.id == event_category_relationships.c.event_id, Event.deleted_at.is_(None)),
        )
        .group_by(EventCategory.id)
        .order_by(EventCategory.name.asc())
    )
    result = await db.execute(query)
    return [(category, count) for category, count in result.all()]


async def create_category(db: AsyncSession, data: CategoryCreate) -> EventCategory:
    category = EventCategory(name=data.name, description=data.description)
    db.add(category)
    await db.commit()
    logger.info("category_created", category_id=category.id, name=category.name)
    return category


async def resolve_categories(db: AsyncSession, category_ids: Iterable[int]) -> list[EventCategory]:
    """
    Load the categories for a set of ids.
    Raises InvalidCategory naming the ids that do not exist.
    """
    wanted = set(category_ids)
    if not wanted:
        return []

    result = await db.execute(
        select(EventCategory).where(EventCategory.id.in_(wanted)).order_by(EventCategory.name.asc())
    )
    categories = list(result.scalars().all())

    missing = wanted - {c.id for c in categories}
    if missing:
        raise InvalidCategory(f"Unknown category ids: {sorted(missing)}")
    return categories
