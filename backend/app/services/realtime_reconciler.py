"""Keep an open roadmap view consistent with changes made elsewhere.

The reconciler subscribes to the child tables of one roadmap. Every change
event triggers a full re-fetch of the affected collection, which is handed
to ``on_refresh`` as the authoritative state. A failed re-fetch is logged
and dropped; the view keeps what it had.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from app.core.errors import PersistenceError, ReconciliationError
from app.core.logging import get_logger
from app.schemas.roadmap import ItemCategory, TrackableItem
from app.services.change_feed import ChangeEvent, ChangeFeed, Subscription
from app.services.persistence_coordinator import DualStorePersistence
from app.services.roadmap_store import TABLE_CATEGORIES

logger = get_logger(__name__)

RefreshHandler = Callable[[ItemCategory, list[TrackableItem]], Awaitable[None]]


class RealtimeReconciler:
    """Re-fetch a roadmap's collections when the change feed reports activity."""

    def __init__(
        self,
        persistence: DualStorePersistence,
        roadmap_id: str,
        on_refresh: RefreshHandler,
        *,
        feed: ChangeFeed | None = None,
    ) -> None:
        self.persistence = persistence
        self.roadmap_id = roadmap_id
        self.on_refresh = on_refresh
        self.feed = feed or persistence.feed
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self.feed.subscribe(TABLE_CATEGORIES, self.roadmap_id)
        self._task = asyncio.create_task(self._run(self._subscription))
        logger.info("Reconciler started", roadmap_id=self.roadmap_id)

    async def close(self) -> None:
        """Cancel the subscription. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        elif not task.cancelled() and task.exception() is not None:
            logger.warning(
                "Reconciler stopped with error",
                roadmap_id=self.roadmap_id,
                error=str(task.exception()),
            )
        logger.info("Reconciler closed", roadmap_id=self.roadmap_id)

    async def __aenter__(self) -> "RealtimeReconciler":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _run(self, subscription: Subscription) -> None:
        while True:
            event = await subscription.get()
            await self.handle_change(event)

    async def _refetch(self, category: ItemCategory) -> list[TrackableItem]:
        try:
            return await self.persistence.fetch_collection(self.roadmap_id, category)
        except PersistenceError as e:
            raise ReconciliationError(
                f"Failed to refresh {category.value} items", detail=str(e)
            ) from e

    async def handle_change(self, event: ChangeEvent) -> bool:
        """Re-fetch the collection an event refers to.

        Returns:
            True if the view was refreshed, False if the event was dropped
        """
        category = TABLE_CATEGORIES.get(event.table)
        if category is None:
            return False

        try:
            items = await self._refetch(category)
        except ReconciliationError as e:
            logger.warning(
                "Reconciliation failed, keeping current state",
                roadmap_id=self.roadmap_id,
                table=event.table,
                error=str(e),
                exc_info=True,
            )
            return False

        await self.on_refresh(category, items)
        logger.debug(
            "Collection refreshed",
            roadmap_id=self.roadmap_id,
            table=event.table,
            action=event.action.value,
            count=len(items),
        )
        return True
