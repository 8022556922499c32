"""Persistence coordinator for roadmap and completion state.

All branching on whether the caller has a session lives here:

- With a user id, the remote store is the write target and the source of
  truth for reads. The local cache is mirrored after a remote write has
  committed, and read only when the remote read fails.
- Without a user id, the local cache is the only store.

Every method converts failures into a ``WriteResult`` or a fallback read,
so callers never see a raw store exception.
"""

from collections.abc import Awaitable
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_db_session
from app.core.errors import PersistenceError
from app.core.logging import get_logger
from app.schemas.preferences import UserPreferences
from app.schemas.roadmap import ItemCategory, Roadmap, TrackableItem, WriteResult
from app.services import roadmap_store
from app.services.change_feed import ChangeAction, ChangeFeed, get_change_feed
from app.services.local_cache import LocalCache

logger = get_logger(__name__)

ALL_TABLES = list(roadmap_store.TABLE_CATEGORIES)


class DualStorePersistence:
    """Read and write roadmaps against the remote store or local cache."""

    def __init__(
        self,
        *,
        user_id: int | None,
        local_cache: LocalCache,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        feed: ChangeFeed | None = None,
    ) -> None:
        self.user_id = user_id
        self.local = local_cache
        self._session_factory = session_factory
        self.feed = feed or get_change_feed()

    @property
    def is_remote(self) -> bool:
        return self.user_id is not None

    def _session(self):
        return get_db_session(self._session_factory)

    def _publish(self, tables: list[str], roadmap_id: str, action: ChangeAction) -> None:
        for table in tables:
            self.feed.publish(table, roadmap_id, action)

    async def _mirror(self, operation: str, write: Awaitable[Any]) -> None:
        """Apply a write to the local cache after the remote write committed."""
        try:
            await write
        except PersistenceError as e:
            logger.warning("Local mirror failed", operation=operation, error=str(e))

    def _failed(self, operation: str, error: Exception, **context: Any) -> WriteResult:
        logger.error(f"{operation} failed", error=str(error), remote=self.is_remote, **context)
        return WriteResult(ok=False, error=str(error), remote=self.is_remote)

    # ------------------------------------------------------------------
    # Roadmaps
    # ------------------------------------------------------------------

    async def read_roadmap(self, roadmap_id: str) -> Roadmap | None:
        """Read a roadmap; remote first, local cache on remote failure."""
        if self.is_remote:
            try:
                async with self._session() as db:
                    return await roadmap_store.get_roadmap(db, roadmap_id, self.user_id)
            except SQLAlchemyError as e:
                logger.warning(
                    "Remote read failed, using local cache",
                    roadmap_id=roadmap_id,
                    error=str(e),
                )
        return await self.local.get_roadmap(roadmap_id)

    async def list_roadmaps(self) -> list[Roadmap]:
        """List roadmaps, most recently updated first."""
        if self.is_remote:
            try:
                async with self._session() as db:
                    return await roadmap_store.list_roadmaps(db, self.user_id)
            except SQLAlchemyError as e:
                logger.warning("Remote list failed, using local cache", error=str(e))
        return await self.local.list_roadmaps()

    async def fetch_collection(
        self, roadmap_id: str, category: ItemCategory
    ) -> list[TrackableItem]:
        """Fetch one child collection of a roadmap in full.

        Raises:
            PersistenceError: If the collection cannot be read
        """
        if self.is_remote:
            try:
                async with self._session() as db:
                    return await roadmap_store.fetch_items(db, roadmap_id, category)
            except SQLAlchemyError as e:
                raise PersistenceError("Failed to fetch collection", detail=str(e)) from e

        roadmap = await self.local.get_roadmap(roadmap_id)
        if roadmap is None:
            raise PersistenceError("Roadmap not found in local cache", detail=roadmap_id)
        return roadmap.items_in(category)

    async def write_roadmap(self, roadmap: Roadmap) -> WriteResult:
        """Insert or replace a roadmap with all of its items."""
        if not self.is_remote:
            try:
                stored = await self.local.put_roadmap(roadmap)
            except PersistenceError as e:
                return self._failed("Roadmap write", e, roadmap_id=roadmap.id)
            return WriteResult(ok=True, id=stored.id)

        try:
            async with self._session() as db:
                roadmap_id = await roadmap_store.save_roadmap(db, self.user_id, roadmap)
                saved = await roadmap_store.get_roadmap(db, roadmap_id, self.user_id)
        except SQLAlchemyError as e:
            return self._failed("Roadmap write", e, roadmap_id=roadmap.id)

        self._publish(ALL_TABLES, roadmap_id, ChangeAction.INSERT)
        if saved is not None:
            await self._mirror("write_roadmap", self.local.put_roadmap(saved))
        if roadmap.id and roadmap.id != roadmap_id:
            # A locally created roadmap was uploaded under a new id
            await self._mirror("write_roadmap", self.local.delete_roadmap(roadmap.id))
        return WriteResult(ok=True, id=roadmap_id, remote=True)

    async def write_item_completion(
        self,
        item_id: str,
        completed: bool,
        roadmap_id: str | None = None,
        category: ItemCategory | None = None,
    ) -> WriteResult:
        """Persist one item's completion flag.

        Concurrent writes to the same item resolve last-write-wins.
        """
        if not self.is_remote:
            try:
                await self.local.set_item_completed(item_id, completed, roadmap_id)
            except PersistenceError as e:
                return self._failed("Completion write", e, item_id=item_id)
            return WriteResult(ok=True, id=item_id)

        try:
            async with self._session() as db:
                item = await roadmap_store.set_item_completed(
                    db, item_id, completed, self.user_id, category
                )
        except SQLAlchemyError as e:
            return self._failed("Completion write", e, item_id=item_id)

        if item is None:
            logger.warning("Completion write for unknown item", item_id=item_id)
            return WriteResult(ok=False, id=item_id, error="Item not found", remote=True)

        table = roadmap_store.table_for(item.category)
        self._publish([table], item.roadmap_id, ChangeAction.UPDATE)
        await self._mirror(
            "write_item_completion",
            self.local.set_item_completed(item_id, completed, item.roadmap_id),
        )
        return WriteResult(ok=True, id=item_id, remote=True)

    async def reset_roadmap(self, roadmap_id: str) -> WriteResult:
        """Clear every completion flag of a roadmap in one batch write."""
        if not self.is_remote:
            try:
                found = await self.local.reset_roadmap(roadmap_id)
            except PersistenceError as e:
                return self._failed("Reset", e, roadmap_id=roadmap_id)
            if not found:
                return WriteResult(ok=False, id=roadmap_id, error="Roadmap not found")
            return WriteResult(ok=True, id=roadmap_id)

        try:
            async with self._session() as db:
                if await roadmap_store.get_owned_aggregate(db, roadmap_id, self.user_id) is None:
                    return WriteResult(
                        ok=False, id=roadmap_id, error="Roadmap not found", remote=True
                    )
                await roadmap_store.reset_roadmap(db, roadmap_id)
        except SQLAlchemyError as e:
            return self._failed("Reset", e, roadmap_id=roadmap_id)

        self._publish(ALL_TABLES, roadmap_id, ChangeAction.UPDATE)
        await self._mirror("reset_roadmap", self.local.reset_roadmap(roadmap_id))
        return WriteResult(ok=True, id=roadmap_id, remote=True)

    async def delete_roadmap(self, roadmap_id: str) -> WriteResult:
        """Delete a roadmap and every item it owns."""
        if not self.is_remote:
            try:
                found = await self.local.delete_roadmap(roadmap_id)
            except PersistenceError as e:
                return self._failed("Delete", e, roadmap_id=roadmap_id)
            if not found:
                return WriteResult(ok=False, id=roadmap_id, error="Roadmap not found")
            return WriteResult(ok=True, id=roadmap_id)

        try:
            async with self._session() as db:
                if await roadmap_store.get_owned_aggregate(db, roadmap_id, self.user_id) is None:
                    return WriteResult(
                        ok=False, id=roadmap_id, error="Roadmap not found", remote=True
                    )
                await roadmap_store.delete_roadmap(db, roadmap_id)
        except SQLAlchemyError as e:
            return self._failed("Delete", e, roadmap_id=roadmap_id)

        self._publish(ALL_TABLES, roadmap_id, ChangeAction.DELETE)
        await self._mirror("delete_roadmap", self.local.delete_roadmap(roadmap_id))
        return WriteResult(ok=True, id=roadmap_id, remote=True)

    async def append_items(self, roadmap_id: str, items: list[TrackableItem]) -> WriteResult:
        """Append items to a roadmap without touching existing ones."""
        if not self.is_remote:
            roadmap = await self.local.get_roadmap(roadmap_id)
            if roadmap is None:
                return WriteResult(ok=False, id=roadmap_id, error="Roadmap not found")
            try:
                await self.local.put_roadmap(
                    roadmap.model_copy(update={"items": roadmap.items + items, "updated_at": None})
                )
            except PersistenceError as e:
                return self._failed("Append", e, roadmap_id=roadmap_id)
            return WriteResult(ok=True, id=roadmap_id)

        try:
            async with self._session() as db:
                if await roadmap_store.get_owned_aggregate(db, roadmap_id, self.user_id) is None:
                    return WriteResult(
                        ok=False, id=roadmap_id, error="Roadmap not found", remote=True
                    )
                await roadmap_store.append_items(db, roadmap_id, items)
                saved = await roadmap_store.get_roadmap(db, roadmap_id, self.user_id)
        except SQLAlchemyError as e:
            return self._failed("Append", e, roadmap_id=roadmap_id)

        tables = sorted({roadmap_store.table_for(item.category) for item in items})
        self._publish(tables, roadmap_id, ChangeAction.INSERT)
        if saved is not None:
            await self._mirror("append_items", self.local.put_roadmap(saved))
        return WriteResult(ok=True, id=roadmap_id, remote=True)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def read_preferences(self) -> UserPreferences:
        if self.is_remote:
            try:
                async with self._session() as db:
                    preferences = await roadmap_store.get_preferences(db, self.user_id)
                return preferences or UserPreferences()
            except SQLAlchemyError as e:
                logger.warning("Remote preferences read failed, using local cache", error=str(e))
        return await self.local.get_preferences()

    async def write_preferences(self, preferences: UserPreferences) -> WriteResult:
        if not self.is_remote:
            try:
                await self.local.put_preferences(preferences)
            except PersistenceError as e:
                return self._failed("Preferences write", e)
            return WriteResult(ok=True)

        try:
            async with self._session() as db:
                await roadmap_store.save_preferences(db, self.user_id, preferences)
        except SQLAlchemyError as e:
            return self._failed("Preferences write", e)

        await self._mirror("write_preferences", self.local.put_preferences(preferences))
        return WriteResult(ok=True, remote=True)

    async def mark_visited(self) -> tuple[bool, UserPreferences]:
        """Record a visit.

        Returns:
            Tuple of (first_visit, preferences after the visit)
        """
        preferences = await self.read_preferences()
        first_visit = not preferences.has_visited_before
        if first_visit:
            preferences = preferences.model_copy(update={"has_visited_before": True})
            result = await self.write_preferences(preferences)
            if not result.ok:
                logger.warning("Failed to record first visit", error=result.error)
        return first_visit, preferences
