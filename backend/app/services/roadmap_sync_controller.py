"""Roadmap sync controller.

Holds the in-memory view of one roadmap for a client and orchestrates
generation, persistence and progress for it. Every collaborator returns a
tagged result; the controller branches on those and reports user-visible
events through its notifier.
"""

from collections.abc import Awaitable, Callable

from app.core.logging import get_logger
from app.core.notifications import (
    Notification,
    NotificationKind,
    NotificationLevel,
    Notifier,
    log_notifier,
)
from app.data.roadmap_templates import get_template
from app.generation.client import GenerationClient
from app.generation.prompts import (
    build_custom_prompt,
    build_personalize_prompt,
    build_section_prompt,
)
from app.schemas.generation import (
    GenerationOutcome,
    GenerationStatus,
    PersonalizeOutcome,
    RoadmapFormData,
    UserProfile,
)
from app.schemas.roadmap import (
    ItemCategory,
    ProgressSnapshot,
    Provenance,
    Roadmap,
    RoadmapCreate,
    RoadmapDraft,
    RoadmapSummary,
    ToggleOutcome,
    TrackableItem,
    WriteResult,
)
from app.services import progress_service
from app.services.persistence_coordinator import DualStorePersistence

logger = get_logger(__name__)

ProgressHandler = Callable[[ProgressSnapshot], Awaitable[None]]

_NO_ROADMAP = "No roadmap loaded"


def summarize(roadmap: Roadmap) -> RoadmapSummary:
    return RoadmapSummary(
        id=roadmap.id or "",
        title=roadmap.title,
        category=roadmap.category,
        provenance=roadmap.provenance,
        updated_at=roadmap.updated_at,
        progress=progress_service.percentage(roadmap.items),
        item_count=len(roadmap.items),
    )


class RoadmapSyncController:
    """UI-facing operations on one roadmap view."""

    def __init__(
        self,
        persistence: DualStorePersistence,
        generation_client: GenerationClient,
        *,
        notifier: Notifier | None = None,
        on_progress: ProgressHandler | None = None,
    ) -> None:
        self.persistence = persistence
        self.generation_client = generation_client
        self.notify = notifier or log_notifier
        self.on_progress = on_progress
        self.roadmap: Roadmap | None = None
        # Last percentage surfaced to the view; None until a roadmap is loaded
        self._last_percentage: int | None = None
        # Item id -> token of the toggle whose optimistic value is showing
        self._pending: dict[str, object] = {}

    # ------------------------------------------------------------------
    # Loading and progress
    # ------------------------------------------------------------------

    async def load(self, roadmap_id: str) -> Roadmap | None:
        roadmap = await self.persistence.read_roadmap(roadmap_id)
        self._set_roadmap(roadmap)
        return roadmap

    def _set_roadmap(self, roadmap: Roadmap | None) -> None:
        self.roadmap = roadmap
        self._pending.clear()
        self._last_percentage = progress_service.percentage(roadmap.items) if roadmap else None

    def progress(self) -> ProgressSnapshot:
        """Current progress of the loaded roadmap, without milestone side effects."""
        items = self.roadmap.items if self.roadmap else []
        return progress_service.snapshot(items)

    async def list_roadmaps(self) -> list[Roadmap]:
        return await self.persistence.list_roadmaps()

    async def _recompute(self, *, fire_milestones: bool = True) -> ProgressSnapshot:
        """Recompute progress from the in-memory view and surface it."""
        previous = self._last_percentage if fire_milestones else None
        snap = progress_service.snapshot(self.roadmap.items, previous)
        self._last_percentage = snap.percentage

        if snap.milestone.any:
            await self._notify_milestone(snap)
        if self.on_progress is not None:
            await self.on_progress(snap)
        return snap

    async def _notify_milestone(self, snap: ProgressSnapshot) -> None:
        logger.info(
            "Milestone reached",
            roadmap_id=self.roadmap.id,
            percentage=snap.percentage,
            fifty=snap.milestone.fifty_percent,
            hundred=snap.milestone.hundred_percent,
        )
        if snap.milestone.hundred_percent:
            title, message = "Roadmap complete!", "You've completed every item on this roadmap."
        else:
            title, message = "Halfway there!", "You've completed 50% of your roadmap."
        await self.notify(
            Notification(
                kind=NotificationKind.MILESTONE,
                title=title,
                message=message,
                level=NotificationLevel.SUCCESS,
            )
        )

    async def _persistence_failed(self, action: str, error: str | None) -> None:
        await self.notify(
            Notification(
                kind=NotificationKind.PERSISTENCE_FAILED,
                title="Save Failed",
                message=f"Failed to {action}. Please try again.",
                level=NotificationLevel.ERROR,
            )
        )
        logger.warning("Persistence failed", action=action, error=error)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _report_generation(self, outcome: GenerationOutcome) -> None:
        if outcome.ok:
            await self.notify(
                Notification(
                    kind=NotificationKind.GENERATION_SUCCEEDED,
                    title="Roadmap Generated",
                    message="Your personalized career roadmap has been created.",
                    level=NotificationLevel.SUCCESS,
                )
            )
        elif outcome.status in (GenerationStatus.NO_JSON_FOUND, GenerationStatus.PARSE_ERROR):
            await self.notify(
                Notification(
                    kind=NotificationKind.GENERATION_UNUSABLE,
                    title="Unreadable Response",
                    message=(
                        "The AI response did not contain a usable roadmap. "
                        "Try generating again."
                    ),
                    level=NotificationLevel.WARNING,
                )
            )
        elif outcome.status == GenerationStatus.SCHEMA_INVALID:
            await self.notify(
                Notification(
                    kind=NotificationKind.GENERATION_UNUSABLE,
                    title="Unusable Roadmap",
                    message=(
                        f"The AI returned a roadmap with a missing or malformed '{outcome.field}'. "
                        "Try rephrasing your profile before generating again."
                    ),
                    level=NotificationLevel.WARNING,
                )
            )
        elif outcome.status == GenerationStatus.NOT_CONFIGURED:
            await self.notify(
                Notification(
                    kind=NotificationKind.GENERATION_FAILED,
                    title="Generation Unavailable",
                    message="Roadmap generation is not configured on this server.",
                    level=NotificationLevel.ERROR,
                )
            )
        # Exhausted retries are reported by the client itself

    async def generate(self, profile: UserProfile) -> GenerationOutcome:
        """Generate a custom roadmap draft. The draft is not persisted."""
        request = build_custom_prompt(profile)
        outcome = await self.generation_client.generate(
            request.prompt, request.shape, notifier=self.notify
        )
        await self._report_generation(outcome)
        return outcome

    async def generate_sectioned(self, form: RoadmapFormData) -> GenerationOutcome:
        """Generate a sectioned role/skill roadmap draft."""
        request = build_section_prompt(form)
        outcome = await self.generation_client.generate(
            request.prompt, request.shape, notifier=self.notify
        )
        await self._report_generation(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Creating roadmaps
    # ------------------------------------------------------------------

    async def _save_new(self, roadmap: Roadmap, saved_message: str) -> WriteResult:
        result = await self.persistence.write_roadmap(roadmap)
        if not result.ok:
            await self._persistence_failed("save roadmap", result.error)
            return result

        await self.load(result.id)
        await self.notify(
            Notification(
                kind=NotificationKind.ROADMAP_SAVED,
                title="Roadmap Saved",
                message=saved_message,
                level=NotificationLevel.SUCCESS,
            )
        )
        return result

    async def accept_draft(self, draft: RoadmapDraft) -> WriteResult:
        """Persist an accepted generation draft as an AI-custom roadmap."""
        return await self._save_new(
            draft.to_roadmap(provenance=Provenance.AI_CUSTOM),
            "Your roadmap has been saved successfully.",
        )

    async def select_template(self, template_id: str) -> WriteResult:
        """Start a roadmap from a curated template."""
        template = get_template(template_id)
        if template is None:
            return WriteResult(ok=False, error=f"Unknown template: {template_id}")
        return await self._save_new(
            template.to_roadmap(), f"{template.title} roadmap added to your dashboard."
        )

    async def create_roadmap(self, data: RoadmapCreate) -> WriteResult:
        """Persist a user-authored roadmap."""
        roadmap = Roadmap(
            title=data.title,
            description=data.description,
            category="custom",
            provenance=Provenance.USER_AUTHORED,
            items=[
                item.model_copy(update={"id": None, "completed": False}) for item in data.items
            ],
        )
        return await self._save_new(roadmap, "Your roadmap has been saved successfully.")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _replace_item(self, item_id: str, completed: bool) -> None:
        items = [
            item.model_copy(update={"completed": completed}) if item.id == item_id else item
            for item in self.roadmap.items
        ]
        self.roadmap = self.roadmap.model_copy(update={"items": items})

    async def toggle_item(self, item_id: str, completed: bool | None = None) -> ToggleOutcome:
        """Flip (or set) an item's completion optimistically.

        Progress is recomputed from the optimistic state before the write is
        awaited. If the write fails the flip is rolled back and progress is
        surfaced again without milestone side effects. A rollback is skipped
        when fetched state or a later toggle has replaced the value meanwhile.
        """
        item = self.roadmap.find_item(item_id) if self.roadmap else None
        if item is None:
            return ToggleOutcome(
                ok=False,
                item_id=item_id,
                completed=False,
                progress=self.progress(),
                error="Item not found",
            )

        original = item.completed
        target = (not original) if completed is None else completed

        token = object()
        self._pending[item_id] = token
        self._replace_item(item_id, target)
        snap = await self._recompute()

        result = await self.persistence.write_item_completion(
            item_id, target, roadmap_id=self.roadmap.id, category=item.category
        )
        superseded = self._pending.get(item_id) is not token
        if not superseded:
            del self._pending[item_id]
        if result.ok:
            return ToggleOutcome(ok=True, item_id=item_id, completed=target, progress=snap)

        if superseded:
            logger.info("Skipping rollback of replaced item", item_id=item_id)
            current = self.roadmap.find_item(item_id) if self.roadmap else None
            restored = current.completed if current else original
            snap = self.progress()
        else:
            self._replace_item(item_id, original)
            restored = original
            snap = await self._recompute(fire_milestones=False)
        await self._persistence_failed("update progress", result.error)
        return ToggleOutcome(
            ok=False,
            item_id=item_id,
            completed=restored,
            progress=snap,
            error=result.error,
        )

    async def reset(self) -> WriteResult:
        """Clear every completion flag in one batch and recompute once."""
        if self.roadmap is None:
            return WriteResult(ok=False, error=_NO_ROADMAP)

        result = await self.persistence.reset_roadmap(self.roadmap.id)
        if not result.ok:
            await self._persistence_failed("reset progress", result.error)
            return result

        items = [item.model_copy(update={"completed": False}) for item in self.roadmap.items]
        self.roadmap = self.roadmap.model_copy(update={"items": items})
        await self._recompute()
        await self.notify(
            Notification(
                kind=NotificationKind.ROADMAP_RESET,
                title="Progress Reset",
                message="All progress on this roadmap has been reset.",
            )
        )
        return result

    async def personalize(self, profile: UserProfile) -> PersonalizeOutcome:
        """Ask for 2-3 extra steps for this user and append them.

        Existing steps keep their order and completion; new steps are
        numbered after the current highest order.
        """
        if self.roadmap is None:
            return PersonalizeOutcome(
                generation=GenerationOutcome(
                    status=GenerationStatus.NOT_CONFIGURED, error=_NO_ROADMAP
                )
            )

        request = build_personalize_prompt(self.roadmap, profile)
        outcome = await self.generation_client.generate(
            request.prompt, request.shape, notifier=self.notify
        )
        if not outcome.ok:
            await self._report_generation(outcome)
            return PersonalizeOutcome(generation=outcome)

        max_order = max((s.order or 0 for s in self.roadmap.steps), default=0)
        new_items = [
            TrackableItem(
                roadmap_id=self.roadmap.id,
                label=step.label,
                order=max_order + index + 1,
                est_time=step.est_time,
                link=step.link,
                tooltip=step.tooltip,
                completed=False,
                category=ItemCategory.STEP,
            )
            for index, step in enumerate(outcome.draft.items)
        ]

        result = await self.persistence.append_items(self.roadmap.id, new_items)
        if not result.ok:
            await self._persistence_failed("add personalized steps", result.error)
            return PersonalizeOutcome(generation=outcome, write=result)

        await self.load(self.roadmap.id)
        await self.notify(
            Notification(
                kind=NotificationKind.ROADMAP_PERSONALIZED,
                title="Roadmap Personalized",
                message=f"Added {len(new_items)} personalized steps to your roadmap.",
                level=NotificationLevel.SUCCESS,
            )
        )
        return PersonalizeOutcome(generation=outcome, write=result, added=len(new_items))

    async def delete(self) -> WriteResult:
        """Delete the loaded roadmap and all of its items."""
        if self.roadmap is None:
            return WriteResult(ok=False, error=_NO_ROADMAP)

        result = await self.persistence.delete_roadmap(self.roadmap.id)
        if not result.ok:
            await self._persistence_failed("delete roadmap", result.error)
            return result

        self._set_roadmap(None)
        await self.notify(
            Notification(
                kind=NotificationKind.ROADMAP_DELETED,
                title="Roadmap Deleted",
                message="The roadmap has been removed.",
            )
        )
        return result

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def apply_refresh(
        self, category: ItemCategory, items: list[TrackableItem]
    ) -> ProgressSnapshot | None:
        """Overwrite one collection with freshly fetched state.

        Fetched items are authoritative and replace any optimistic flags.
        """
        if self.roadmap is None:
            return None

        for item in items:
            self._pending.pop(item.id, None)
        merged: list[TrackableItem] = []
        for cat in ItemCategory:
            merged.extend(items if cat == category else self.roadmap.items_in(cat))
        self.roadmap = self.roadmap.model_copy(update={"items": merged})
        return await self._recompute()
