"""Roadmap schemas shared by services and API routes."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class ItemCategory(str, Enum):
    """Which collection a trackable item lives in."""

    STEP = "step"
    SKILL = "skill"
    TOOL = "tool"
    RESOURCE = "resource"
    TIMELINE = "timeline"


class Provenance(str, Enum):
    """Where a roadmap came from."""

    TEMPLATE = "template"
    AI_CUSTOM = "ai_custom"
    USER_AUTHORED = "user_authored"


class TrackableItem(BaseModel):
    """Any completable unit within a roadmap."""

    id: str | None = None
    roadmap_id: str | None = None
    label: str
    order: int | None = None
    link: str | None = None
    est_time: str | None = None
    tooltip: str | None = None
    section: str | None = None
    completed: bool = False
    category: ItemCategory = ItemCategory.STEP


class RoadmapSection(BaseModel):
    """Read-only grouping of items that share a section title."""

    title: str
    items: list[TrackableItem]


class Roadmap(BaseModel):
    """A titled, ordered learning plan."""

    id: str | None = None
    title: str
    description: str | None = None
    category: str | None = None
    template_id: str | None = None
    provenance: Provenance = Provenance.USER_AUTHORED
    owner_id: int | None = None
    updated_at: datetime | None = None
    items: list[TrackableItem] = Field(default_factory=list)

    @property
    def steps(self) -> list[TrackableItem]:
        return [i for i in self.items if i.category == ItemCategory.STEP]

    def items_in(self, category: ItemCategory) -> list[TrackableItem]:
        return [i for i in self.items if i.category == category]

    def find_item(self, item_id: str) -> TrackableItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def sections(self) -> list[RoadmapSection]:
        """Group items by section title, in first-appearance order.

        Items without a section are grouped under their category name.
        """
        grouped: dict[str, list[TrackableItem]] = {}
        for item in self.items:
            key = item.section or item.category.value
            grouped.setdefault(key, []).append(item)
        return [RoadmapSection(title=title, items=items) for title, items in grouped.items()]


class RoadmapDraft(BaseModel):
    """A validated, not yet persisted roadmap produced by generation."""

    title: str
    type: str | None = None
    items: list[TrackableItem]

    def to_roadmap(self, *, provenance: Provenance = Provenance.AI_CUSTOM) -> Roadmap:
        return Roadmap(
            title=self.title,
            category=self.type or "custom",
            description="Custom AI-generated career roadmap",
            provenance=provenance,
            items=[item.model_copy(update={"completed": False}) for item in self.items],
        )


class MilestoneCrossing(BaseModel):
    """One-time threshold transitions caused by a single progress change."""

    fifty_percent: bool = False
    hundred_percent: bool = False

    @property
    def any(self) -> bool:
        return self.fifty_percent or self.hundred_percent


class ProgressSnapshot(BaseModel):
    """Derived completion state. Never persisted."""

    percentage: int = Field(ge=0, le=100)
    completed: int
    total: int
    milestone: MilestoneCrossing = Field(default_factory=MilestoneCrossing)


class RoadmapSummary(BaseModel):
    """Roadmap list entry with derived progress."""

    id: str
    title: str
    category: str | None
    provenance: Provenance
    updated_at: datetime | None
    progress: int
    item_count: int


class RoadmapResponse(BaseModel):
    """Roadmap detail response."""

    roadmap: Roadmap
    progress: ProgressSnapshot
    sections: list[RoadmapSection] = Field(default_factory=list)


class RoadmapCreate(BaseModel):
    """Create a user-authored roadmap."""

    title: str = Field(min_length=1)
    description: str | None = None
    items: list[TrackableItem] = Field(min_length=1)


class ToggleRequest(BaseModel):
    completed: bool | None = None


class WriteResult(BaseModel):
    """Outcome of a persistence write."""

    ok: bool
    id: str | None = None
    error: str | None = None
    # True when the remote store was the write target
    remote: bool = False


class RoadmapTemplate(BaseModel):
    """Static, curated roadmap users can start from."""

    id: str
    title: str
    category: str | None = None
    steps: list[TrackableItem]

    def to_roadmap(self) -> Roadmap:
        return Roadmap(
            title=self.title,
            category=self.category or "template",
            template_id=self.id,
            provenance=Provenance.TEMPLATE,
            items=[
                step.model_copy(update={"id": None, "completed": False}) for step in self.steps
            ],
        )


class ToggleOutcome(BaseModel):
    """Result of toggling one item; ``completed`` is the final in-memory state."""

    ok: bool
    item_id: str
    completed: bool
    progress: ProgressSnapshot
    error: str | None = None


class DashboardResponse(BaseModel):
    roadmaps: list[RoadmapSummary]
    average_progress: int


class RoadmapClientMessage(BaseModel):
    """Client-to-server message on a roadmap WebSocket."""

    action: Literal["toggle", "reset", "progress"]
    item_id: str | None = None
    completed: bool | None = None
