"""Tests for RoadmapSyncController."""

import asyncio

import pytest

from app.core.notifications import CollectingNotifier, NotificationKind
from app.schemas.generation import GenerationStatus, UserProfile
from app.schemas.roadmap import ItemCategory, ProgressSnapshot, Provenance, WriteResult
from app.services.persistence_coordinator import DualStorePersistence
from app.services.roadmap_sync_controller import RoadmapSyncController

PROFILE = UserProfile(status="student", skills=["Python"], dream_roles=["Data Engineer"])


class FailingPersistence(DualStorePersistence):
    """Local persistence whose completion writes always fail."""

    async def write_item_completion(self, item_id, completed, roadmap_id=None, category=None):
        return WriteResult(ok=False, id=item_id, error="disk full")


class HeldFailingPersistence(FailingPersistence):
    """Failing persistence that holds each completion write until released."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def write_item_completion(self, item_id, completed, roadmap_id=None, category=None):
        self.entered.set()
        await self.release.wait()
        return await super().write_item_completion(item_id, completed, roadmap_id, category)


class ProgressRecorder:
    def __init__(self) -> None:
        self.snapshots: list[ProgressSnapshot] = []

    async def __call__(self, snap: ProgressSnapshot) -> None:
        self.snapshots.append(snap)

    def percentages(self) -> list[int]:
        return [s.percentage for s in self.snapshots]


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def recorder() -> ProgressRecorder:
    return ProgressRecorder()


@pytest.fixture
def make_controller(local_persistence, make_generation_client, notifier, recorder):
    def _make(persistence=None, text: str = "") -> RoadmapSyncController:
        return RoadmapSyncController(
            persistence or local_persistence,
            make_generation_client(text),
            notifier=notifier,
            on_progress=recorder,
        )

    return _make


async def _loaded(controller: RoadmapSyncController, roadmap) -> RoadmapSyncController:
    result = await controller.persistence.write_roadmap(roadmap)
    await controller.load(result.id)
    return controller


class TestToggle:
    async def test_milestone_fires_once(
        self, make_controller, make_roadmap, notifier, recorder
    ):
        """1/4 -> 2/4 crosses 50%; 2/4 -> 3/4 does not fire again."""
        controller = await _loaded(make_controller(), make_roadmap(total=4, completed=1))
        steps = controller.roadmap.steps

        first = await controller.toggle_item(steps[1].id)
        second = await controller.toggle_item(steps[2].id)

        assert first.ok and second.ok
        assert first.progress.milestone.fifty_percent
        assert not second.progress.milestone.any
        assert recorder.percentages() == [50, 75]
        assert notifier.kinds() == [NotificationKind.MILESTONE]

    async def test_toggle_is_persisted(self, make_controller, make_roadmap, local_persistence):
        controller = await _loaded(make_controller(), make_roadmap())
        item_id = controller.roadmap.items[0].id

        outcome = await controller.toggle_item(item_id)

        assert outcome.completed is True
        stored = await local_persistence.read_roadmap(controller.roadmap.id)
        assert stored.find_item(item_id).completed is True

    async def test_explicit_value(self, make_controller, make_roadmap):
        controller = await _loaded(make_controller(), make_roadmap(completed=1))
        item_id = controller.roadmap.items[0].id

        outcome = await controller.toggle_item(item_id, completed=True)

        assert outcome.completed is True
        assert outcome.progress.percentage == 25

    async def test_failed_write_rolls_back(
        self, make_controller, make_roadmap, local_cache, change_feed, notifier, recorder
    ):
        failing = FailingPersistence(user_id=None, local_cache=local_cache, feed=change_feed)
        controller = await _loaded(make_controller(failing), make_roadmap(total=4))
        item_id = controller.roadmap.items[0].id

        outcome = await controller.toggle_item(item_id)

        assert not outcome.ok
        assert outcome.completed is False
        assert outcome.error == "disk full"
        assert controller.roadmap.find_item(item_id).completed is False
        # Optimistic state is shown first, then the restored state
        assert recorder.percentages() == [25, 0]
        assert notifier.kinds() == [NotificationKind.PERSISTENCE_FAILED]

    async def test_rollback_does_not_repeat_milestone(
        self, make_controller, make_roadmap, local_cache, change_feed, notifier
    ):
        failing = FailingPersistence(user_id=None, local_cache=local_cache, feed=change_feed)
        controller = await _loaded(make_controller(failing), make_roadmap(total=2))

        await controller.toggle_item(controller.roadmap.items[0].id)

        assert notifier.kinds() == [
            NotificationKind.MILESTONE,
            NotificationKind.PERSISTENCE_FAILED,
        ]

    async def test_rollback_keeps_fetched_state(
        self, make_controller, make_roadmap, local_cache, change_feed, notifier
    ):
        held = HeldFailingPersistence(user_id=None, local_cache=local_cache, feed=change_feed)
        controller = await _loaded(make_controller(held), make_roadmap(total=4))
        item_id = controller.roadmap.steps[0].id

        task = asyncio.create_task(controller.toggle_item(item_id))
        await held.entered.wait()
        fetched = [
            item.model_copy(update={"completed": item.id == item_id})
            for item in controller.roadmap.steps
        ]
        await controller.apply_refresh(ItemCategory.STEP, fetched)
        held.release.set()
        outcome = await task

        assert not outcome.ok
        assert outcome.completed is True
        assert controller.roadmap.find_item(item_id).completed is True
        assert controller.progress().percentage == 25
        assert notifier.kinds()[-1] == NotificationKind.PERSISTENCE_FAILED

    async def test_unknown_item(self, make_controller, make_roadmap):
        controller = await _loaded(make_controller(), make_roadmap())

        outcome = await controller.toggle_item("missing")

        assert not outcome.ok
        assert outcome.error == "Item not found"


class TestReset:
    async def test_reset_twice(self, make_controller, make_roadmap, notifier, recorder):
        controller = await _loaded(make_controller(), make_roadmap(total=4, completed=3))

        assert (await controller.reset()).ok
        assert (await controller.reset()).ok

        assert controller.progress().percentage == 0
        assert not any(item.completed for item in controller.roadmap.items)
        assert recorder.percentages() == [0, 0]
        assert notifier.kinds() == [NotificationKind.ROADMAP_RESET] * 2

    async def test_reset_without_roadmap(self, make_controller):
        result = await make_controller().reset()
        assert not result.ok


class TestCreate:
    async def test_select_template(self, make_controller, notifier):
        controller = make_controller()

        result = await controller.select_template("data-scientist")

        assert result.ok
        roadmap = controller.roadmap
        assert roadmap.template_id == "data-scientist"
        assert roadmap.provenance == Provenance.TEMPLATE
        assert len(roadmap.items) == 8
        assert not any(item.completed for item in roadmap.items)
        assert notifier.kinds() == [NotificationKind.ROADMAP_SAVED]

    async def test_unknown_template(self, make_controller):
        result = await make_controller().select_template("astronaut")
        assert not result.ok
        assert result.error == "Unknown template: astronaut"

    async def test_generate_and_accept(self, make_controller, notifier):
        text = '{"title": "Data Engineer", "steps": ["Learn SQL", "Learn Spark"]}'
        controller = make_controller(text=text)

        outcome = await controller.generate(PROFILE)
        assert outcome.ok
        assert controller.roadmap is None

        result = await controller.accept_draft(outcome.draft)

        assert result.ok
        assert controller.roadmap.provenance == Provenance.AI_CUSTOM
        assert [i.label for i in controller.roadmap.steps] == ["Learn SQL", "Learn Spark"]
        assert notifier.kinds() == [
            NotificationKind.GENERATION_SUCCEEDED,
            NotificationKind.ROADMAP_SAVED,
        ]

    async def test_schema_invalid_generation(self, make_controller, notifier):
        controller = make_controller(text='{"title": "", "steps": []}')

        outcome = await controller.generate(PROFILE)

        assert outcome.status == GenerationStatus.SCHEMA_INVALID
        assert notifier.kinds() == [NotificationKind.GENERATION_UNUSABLE]
        assert "'title'" in notifier.notifications[0].message


class TestPersonalize:
    async def test_appends_after_highest_order(self, make_controller, make_roadmap, notifier):
        text = '[{"label": "Join a meetup", "estTime": "1 week"}, {"label": "Find a mentor"}]'
        controller = await _loaded(make_controller(text=text), make_roadmap(total=3, completed=1))

        outcome = await controller.personalize(PROFILE)

        assert outcome.ok
        assert outcome.added == 2
        steps = controller.roadmap.steps
        assert [(s.label, s.order, s.completed) for s in steps] == [
            ("Step 1", 1, True),
            ("Step 2", 2, False),
            ("Step 3", 3, False),
            ("Join a meetup", 4, False),
            ("Find a mentor", 5, False),
        ]
        assert notifier.kinds() == [NotificationKind.ROADMAP_PERSONALIZED]

    async def test_failed_generation_appends_nothing(self, make_controller, make_roadmap):
        controller = await _loaded(make_controller(text="no steps today"), make_roadmap(total=3))

        outcome = await controller.personalize(PROFILE)

        assert not outcome.ok
        assert outcome.generation.status == GenerationStatus.NO_JSON_FOUND
        assert len(controller.roadmap.items) == 3


class TestRefreshAndDelete:
    async def test_refresh_can_cross_milestone(
        self, make_controller, make_roadmap, notifier, recorder
    ):
        controller = await _loaded(make_controller(), make_roadmap(total=4, completed=1))
        fetched = [
            item.model_copy(update={"completed": index < 2})
            for index, item in enumerate(controller.roadmap.steps)
        ]

        snap = await controller.apply_refresh(ItemCategory.STEP, fetched)

        assert snap.percentage == 50
        assert snap.milestone.fifty_percent
        assert notifier.kinds() == [NotificationKind.MILESTONE]

    async def test_delete(self, make_controller, make_roadmap, local_persistence):
        controller = await _loaded(make_controller(), make_roadmap())
        roadmap_id = controller.roadmap.id

        result = await controller.delete()

        assert result.ok
        assert controller.roadmap is None
        assert await local_persistence.read_roadmap(roadmap_id) is None
