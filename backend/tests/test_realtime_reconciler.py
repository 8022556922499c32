"""Tests for the realtime reconciler."""

import asyncio

from app.schemas.roadmap import ItemCategory, TrackableItem
from app.services.change_feed import ChangeEvent, ChangeFeed
from app.services.persistence_coordinator import DualStorePersistence
from app.services.realtime_reconciler import RealtimeReconciler


class RefreshRecorder:
    def __init__(self) -> None:
        self.calls: list[tuple[ItemCategory, list[TrackableItem]]] = []
        self.refreshed = asyncio.Event()

    async def __call__(self, category: ItemCategory, items: list[TrackableItem]) -> None:
        self.calls.append((category, items))
        self.refreshed.set()


async def test_remote_change_triggers_full_refetch(
    remote_persistence: DualStorePersistence, change_feed: ChangeFeed, make_roadmap
):
    saved = await remote_persistence.write_roadmap(make_roadmap(total=3))
    item_id = (await remote_persistence.read_roadmap(saved.id)).steps[0].id
    recorder = RefreshRecorder()

    async with RealtimeReconciler(remote_persistence, saved.id, recorder) as reconciler:
        assert reconciler.running
        await remote_persistence.write_item_completion(item_id, True)
        await asyncio.wait_for(recorder.refreshed.wait(), timeout=5)

    [(category, items)] = recorder.calls
    assert category == ItemCategory.STEP
    assert [i.label for i in items] == ["Step 1", "Step 2", "Step 3"]
    assert [i.completed for i in items] == [True, False, False]


async def test_ignores_other_roadmaps(
    remote_persistence: DualStorePersistence, change_feed: ChangeFeed
):
    async with RealtimeReconciler(remote_persistence, "mine", RefreshRecorder()):
        assert change_feed.publish("roadmap_skills", "someone-else") == 0
        assert change_feed.publish("roadmap_skills", "mine") == 1


async def test_failed_refetch_keeps_current_state(local_persistence: DualStorePersistence):
    """A collection that cannot be fetched is logged and dropped."""
    recorder = RefreshRecorder()
    reconciler = RealtimeReconciler(local_persistence, "missing", recorder)

    refreshed = await reconciler.handle_change(
        ChangeEvent(table="user_roadmap_steps", roadmap_id="missing")
    )

    assert refreshed is False
    assert recorder.calls == []


async def test_unknown_table_is_dropped(local_persistence: DualStorePersistence):
    recorder = RefreshRecorder()
    reconciler = RealtimeReconciler(local_persistence, "r1", recorder)

    assert await reconciler.handle_change(ChangeEvent(table="users", roadmap_id="r1")) is False
    assert recorder.calls == []


async def test_close_unsubscribes(local_persistence: DualStorePersistence, change_feed: ChangeFeed):
    reconciler = RealtimeReconciler(local_persistence, "r1", RefreshRecorder())

    await reconciler.start()
    assert change_feed.subscriber_count == 1

    await reconciler.close()
    await reconciler.close()

    assert change_feed.subscriber_count == 0
    assert not reconciler.running
