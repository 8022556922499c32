"""In-process change notification channel.

Subscribers listen to a set of tables, optionally filtered to one roadmap.
Events say only that something changed; they carry no row data, so
subscribers re-fetch whatever they display.
"""

import asyncio
from collections.abc import Iterable
from enum import Enum
from functools import lru_cache

from pydantic import BaseModel

from app.core.logging import get_logger

logger = get_logger(__name__)


class ChangeAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    table: str
    roadmap_id: str | None = None
    action: ChangeAction = ChangeAction.UPDATE


class Subscription:
    """A queue of change events matching a table set and roadmap filter."""

    def __init__(self, feed: "ChangeFeed", tables: Iterable[str], roadmap_id: str | None) -> None:
        self.feed = feed
        self.tables = frozenset(tables)
        self.roadmap_id = roadmap_id
        self.queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self.closed = False

    def matches(self, event: ChangeEvent) -> bool:
        if event.table not in self.tables:
            return False
        return self.roadmap_id is None or event.roadmap_id == self.roadmap_id

    async def get(self) -> ChangeEvent:
        return await self.queue.get()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed.unsubscribe(self)


class ChangeFeed:
    """Fan out change events to matching subscriptions."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, tables: Iterable[str], roadmap_id: str | None = None) -> Subscription:
        subscription = Subscription(self, tables, roadmap_id)
        self._subscriptions.append(subscription)
        logger.debug(
            "Change feed subscribed",
            tables=sorted(subscription.tables),
            roadmap_id=roadmap_id,
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug("Change feed unsubscribed", roadmap_id=subscription.roadmap_id)

    def publish(
        self,
        table: str,
        roadmap_id: str | None,
        action: ChangeAction = ChangeAction.UPDATE,
    ) -> int:
        """Deliver an event to every matching subscription.

        Returns:
            Number of subscriptions the event was delivered to
        """
        event = ChangeEvent(table=table, roadmap_id=roadmap_id, action=action)
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                subscription.queue.put_nowait(event)
                delivered += 1
        return delivered


@lru_cache
def get_change_feed() -> ChangeFeed:
    """Get the process-wide change feed."""
    return ChangeFeed()
