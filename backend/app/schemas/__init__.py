"""Pydantic schemas."""

from app.schemas.generation import (
    GenerateRoadmapRequest,
    GenerateSectionedRequest,
    GenerationOutcome,
    GenerationRequest,
    GenerationResponse,
    GenerationStatus,
    PersonalizeOutcome,
    PersonalizeResponse,
    RoadmapFormData,
    RoadmapShape,
    UserProfile,
)
from app.schemas.preferences import PreferencesUpdate, UserPreferences, VisitResponse
from app.schemas.roadmap import (
    DashboardResponse,
    ItemCategory,
    MilestoneCrossing,
    ProgressSnapshot,
    Provenance,
    Roadmap,
    RoadmapClientMessage,
    RoadmapCreate,
    RoadmapDraft,
    RoadmapResponse,
    RoadmapSection,
    RoadmapSummary,
    RoadmapTemplate,
    ToggleOutcome,
    ToggleRequest,
    TrackableItem,
    WriteResult,
)

__all__ = [
    "GenerateRoadmapRequest",
    "GenerateSectionedRequest",
    "GenerationOutcome",
    "GenerationRequest",
    "GenerationResponse",
    "GenerationStatus",
    "PersonalizeOutcome",
    "PersonalizeResponse",
    "RoadmapFormData",
    "RoadmapShape",
    "UserProfile",
    "PreferencesUpdate",
    "UserPreferences",
    "VisitResponse",
    "DashboardResponse",
    "ItemCategory",
    "MilestoneCrossing",
    "ProgressSnapshot",
    "Provenance",
    "Roadmap",
    "RoadmapClientMessage",
    "RoadmapCreate",
    "RoadmapDraft",
    "RoadmapResponse",
    "RoadmapSection",
    "RoadmapSummary",
    "RoadmapTemplate",
    "ToggleOutcome",
    "ToggleRequest",
    "TrackableItem",
    "WriteResult",
]
