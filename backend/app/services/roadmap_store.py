"""Remote structured store: roadmap aggregate and its child collections.

Functions here flush but do not commit; callers wrap them in
``get_db_session`` so a roadmap and all of its items land in one
transaction.
"""

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.logging import get_logger
from app.models.roadmap import (
    RoadmapResource,
    RoadmapSkill,
    RoadmapTimeline,
    RoadmapTool,
    UserRoadmap,
    UserRoadmapStep,
)
from app.models.user import User, UserPreference
from app.schemas.preferences import UserPreferences
from app.schemas.roadmap import ItemCategory, Provenance, Roadmap, TrackableItem

logger = get_logger(__name__)

ItemRow = UserRoadmapStep | RoadmapSkill | RoadmapTool | RoadmapResource | RoadmapTimeline

CATEGORY_MODELS: dict[ItemCategory, type[ItemRow]] = {
    ItemCategory.STEP: UserRoadmapStep,
    ItemCategory.SKILL: RoadmapSkill,
    ItemCategory.TOOL: RoadmapTool,
    ItemCategory.RESOURCE: RoadmapResource,
    ItemCategory.TIMELINE: RoadmapTimeline,
}

TABLE_CATEGORIES: dict[str, ItemCategory] = {
    model.__tablename__: category for category, model in CATEGORY_MODELS.items()
}


def table_for(category: ItemCategory) -> str:
    return CATEGORY_MODELS[category].__tablename__


# ============================================================================
# Row <-> domain mapping
# ============================================================================


def _row_to_item(row: ItemRow, category: ItemCategory) -> TrackableItem:
    item = TrackableItem(
        id=row.id,
        roadmap_id=row.roadmap_id,
        label="",
        completed=bool(row.completed),
        category=category,
    )
    if isinstance(row, UserRoadmapStep):
        return item.model_copy(
            update={
                "label": row.label,
                "order": row.order_number,
                "est_time": row.est_time,
                "section": row.section,
                "link": row.link,
                "tooltip": row.tooltip,
            }
        )
    if isinstance(row, RoadmapTimeline):
        return item.model_copy(update={"label": row.step, "order": row.order_number})
    if isinstance(row, RoadmapResource):
        return item.model_copy(update={"label": row.label, "link": row.url})
    return item.model_copy(update={"label": row.label})


def _item_to_row(item: TrackableItem, roadmap_id: str, position: int) -> ItemRow:
    common = {"roadmap_id": roadmap_id, "completed": item.completed}
    # Ids minted by the local cache are not carried into the remote store
    if item.id and not item.id.startswith("local-"):
        common["id"] = item.id

    order = item.order if item.order is not None else position
    if item.category == ItemCategory.STEP:
        return UserRoadmapStep(
            label=item.label,
            order_number=order,
            est_time=item.est_time,
            section=item.section,
            link=item.link,
            tooltip=item.tooltip,
            **common,
        )
    if item.category == ItemCategory.TIMELINE:
        return RoadmapTimeline(step=item.label, order_number=order, **common)
    if item.category == ItemCategory.RESOURCE:
        return RoadmapResource(label=item.label, url=item.link, **common)
    model = CATEGORY_MODELS[item.category]
    return model(label=item.label, **common)


def _sort_key(item: TrackableItem) -> tuple[int, int]:
    return (item.order if item.order is not None else 1_000_000, 0)


def _aggregate_to_roadmap(row: UserRoadmap, items: list[TrackableItem]) -> Roadmap:
    return Roadmap(
        id=row.id,
        title=row.title,
        description=row.description,
        category=row.category,
        template_id=row.template_id,
        provenance=Provenance(row.provenance),
        owner_id=row.user_id,
        updated_at=row.updated_at,
        items=items,
    )


# ============================================================================
# Reads
# ============================================================================


async def fetch_items(
    db: AsyncSession,
    roadmap_id: str,
    category: ItemCategory,
) -> list[TrackableItem]:
    """Fetch one child collection of a roadmap, ordered for display."""
    model = CATEGORY_MODELS[category]
    result = await db.execute(
        select(model).where(model.roadmap_id == roadmap_id).order_by(model.created_at)
    )
    items = [_row_to_item(row, category) for row in result.scalars().all()]
    if category in (ItemCategory.STEP, ItemCategory.TIMELINE):
        items.sort(key=_sort_key)
    return items


async def _load_items(db: AsyncSession, roadmap_id: str) -> list[TrackableItem]:
    items: list[TrackableItem] = []
    for category in CATEGORY_MODELS:
        items.extend(await fetch_items(db, roadmap_id, category))
    return items


async def get_owned_aggregate(
    db: AsyncSession,
    roadmap_id: str,
    user_id: int,
) -> UserRoadmap | None:
    row = await db.get(UserRoadmap, roadmap_id)
    if row is None or row.user_id != user_id:
        return None
    return row


async def get_roadmap(
    db: AsyncSession,
    roadmap_id: str,
    user_id: int,
) -> Roadmap | None:
    """Get a roadmap with all of its items, or None if absent or not owned."""
    row = await get_owned_aggregate(db, roadmap_id, user_id)
    if row is None:
        return None
    return _aggregate_to_roadmap(row, await _load_items(db, roadmap_id))


async def list_roadmaps(db: AsyncSession, user_id: int) -> list[Roadmap]:
    """List a user's roadmaps, most recently updated first."""
    result = await db.execute(
        select(UserRoadmap)
        .where(UserRoadmap.user_id == user_id)
        .order_by(UserRoadmap.updated_at.desc())
    )
    return [
        _aggregate_to_roadmap(row, await _load_items(db, row.id))
        for row in result.scalars().all()
    ]


async def find_item(
    db: AsyncSession,
    item_id: str,
    category: ItemCategory | None = None,
) -> tuple[ItemCategory, ItemRow] | None:
    """Locate an item row by id across the child collections."""
    categories = [category] if category else list(CATEGORY_MODELS)
    for cat in categories:
        row = await db.get(CATEGORY_MODELS[cat], item_id)
        if row is not None:
            return cat, row
    return None


# ============================================================================
# Writes
# ============================================================================


async def ensure_user(db: AsyncSession, user_id: int) -> User:
    """Create the local user row for an id issued by the auth gateway."""
    user = await db.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.add(user)
        await db.flush()
        logger.info("User row created", user_id=user_id)
    return user


async def save_roadmap(db: AsyncSession, user_id: int, roadmap: Roadmap) -> str:
    """Insert a roadmap, or replace an owned one, with all of its items.

    Returns:
        Remote roadmap id
    """
    await ensure_user(db, user_id)

    row = None
    if roadmap.id:
        row = await get_owned_aggregate(db, roadmap.id, user_id)

    if row is None:
        row = UserRoadmap(user_id=user_id)
        db.add(row)
    else:
        await _delete_children(db, row.id)

    row.title = roadmap.title
    row.description = roadmap.description
    row.category = roadmap.category
    row.template_id = roadmap.template_id
    row.provenance = roadmap.provenance.value
    row.updated_at = utcnow()
    await db.flush()

    for position, item in enumerate(roadmap.items, start=1):
        db.add(_item_to_row(item, row.id, position))
    await db.flush()

    logger.info("Roadmap saved", roadmap_id=row.id, user_id=user_id, items=len(roadmap.items))
    return row.id


async def append_items(
    db: AsyncSession,
    roadmap_id: str,
    items: list[TrackableItem],
) -> list[TrackableItem]:
    """Append items to an existing roadmap. Existing rows are untouched."""
    rows = []
    for position, item in enumerate(items, start=1):
        row = _item_to_row(item, roadmap_id, position)
        db.add(row)
        rows.append((item.category, row))
    await _touch(db, roadmap_id)
    await db.flush()
    return [_row_to_item(row, category) for category, row in rows]


async def set_item_completed(
    db: AsyncSession,
    item_id: str,
    completed: bool,
    user_id: int,
    category: ItemCategory | None = None,
) -> TrackableItem | None:
    """Set one item's completion flag.

    Returns:
        The updated item, or None if it does not exist or is not owned
    """
    found = await find_item(db, item_id, category)
    if found is None:
        return None
    cat, row = found
    if await get_owned_aggregate(db, row.roadmap_id, user_id) is None:
        return None

    row.completed = completed
    await _touch(db, row.roadmap_id)
    await db.flush()
    return _row_to_item(row, cat)


async def reset_roadmap(db: AsyncSession, roadmap_id: str) -> None:
    """Clear every completion flag of a roadmap in one batch."""
    for model in CATEGORY_MODELS.values():
        await db.execute(
            update(model).where(model.roadmap_id == roadmap_id).values(completed=False)
        )
    await _touch(db, roadmap_id)
    await db.flush()


async def delete_roadmap(db: AsyncSession, roadmap_id: str) -> None:
    """Delete a roadmap and every child row."""
    await _delete_children(db, roadmap_id)
    await db.execute(delete(UserRoadmap).where(UserRoadmap.id == roadmap_id))
    await db.flush()
    logger.info("Roadmap deleted", roadmap_id=roadmap_id)


async def _delete_children(db: AsyncSession, roadmap_id: str) -> None:
    for model in CATEGORY_MODELS.values():
        await db.execute(delete(model).where(model.roadmap_id == roadmap_id))


async def _touch(db: AsyncSession, roadmap_id: str) -> None:
    await db.execute(
        update(UserRoadmap)
        .where(UserRoadmap.id == roadmap_id)
        .values(updated_at=utcnow())
    )


# ============================================================================
# Preferences
# ============================================================================


async def get_preferences(db: AsyncSession, user_id: int) -> UserPreferences | None:
    row = await db.get(UserPreference, user_id)
    if row is None:
        return None
    return UserPreferences(
        has_visited_before=row.has_visited_before,
        onboarding_completed=row.onboarding_completed,
    )


async def save_preferences(
    db: AsyncSession,
    user_id: int,
    preferences: UserPreferences,
) -> None:
    await ensure_user(db, user_id)
    row = await db.get(UserPreference, user_id)
    if row is None:
        row = UserPreference(user_id=user_id)
        db.add(row)
    row.has_visited_before = preferences.has_visited_before
    row.onboarding_completed = preferences.onboarding_completed
    await db.flush()
