"""Roadmap API routes."""

from fastapi import APIRouter, HTTPException, Response, status

from app.api.deps import ControllerDep, NotifierDep
from app.core.logging import get_logger
from app.schemas.generation import (
    GenerateRoadmapRequest,
    GenerateSectionedRequest,
    GenerationResponse,
    PersonalizeResponse,
)
from app.schemas.roadmap import (
    DashboardResponse,
    ProgressSnapshot,
    RoadmapCreate,
    RoadmapDraft,
    RoadmapResponse,
    ToggleOutcome,
    ToggleRequest,
    WriteResult,
)
from app.services import progress_service
from app.services.roadmap_sync_controller import RoadmapSyncController, summarize

logger = get_logger(__name__)
router = APIRouter(prefix="/roadmaps", tags=["roadmaps"])


async def _load_or_404(controller: RoadmapSyncController, roadmap_id: str) -> None:
    if await controller.load(roadmap_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Roadmap not found",
        )


def _current(controller: RoadmapSyncController) -> RoadmapResponse:
    return RoadmapResponse(
        roadmap=controller.roadmap,
        progress=controller.progress(),
        sections=controller.roadmap.sections(),
    )


def _raise_for_write(result: WriteResult, action: str) -> None:
    if result.ok:
        return
    if result.error == "Roadmap not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Failed to {action}: {result.error}",
    )


# ============================================================================
# Generation
# ============================================================================


@router.post("/generate", response_model=GenerationResponse)
async def generate_roadmap(
    data: GenerateRoadmapRequest,
    controller: ControllerDep,
    notifier: NotifierDep,
) -> GenerationResponse:
    """Generate a custom roadmap draft from a career profile.

    The draft is not saved; POST it to /roadmaps/accept to keep it.
    """
    outcome = await controller.generate(data.profile)
    return GenerationResponse(outcome=outcome, notifications=notifier.notifications)


@router.post("/generate/sectioned", response_model=GenerationResponse)
async def generate_sectioned_roadmap(
    data: GenerateSectionedRequest,
    controller: ControllerDep,
    notifier: NotifierDep,
) -> GenerationResponse:
    """Generate a sectioned role/skill roadmap draft."""
    outcome = await controller.generate_sectioned(data.form)
    return GenerationResponse(outcome=outcome, notifications=notifier.notifications)


# ============================================================================
# Creation
# ============================================================================


@router.post("/accept", response_model=RoadmapResponse, status_code=status.HTTP_201_CREATED)
async def accept_draft(draft: RoadmapDraft, controller: ControllerDep) -> RoadmapResponse:
    """Save a generated draft as a roadmap."""
    result = await controller.accept_draft(draft)
    _raise_for_write(result, "save roadmap")
    return _current(controller)


@router.post(
    "/from-template/{template_id}",
    response_model=RoadmapResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_from_template(template_id: str, controller: ControllerDep) -> RoadmapResponse:
    """Start a roadmap from a curated template."""
    result = await controller.select_template(template_id)
    if not result.ok and result.error and result.error.startswith("Unknown template"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    _raise_for_write(result, "save roadmap")
    return _current(controller)


@router.post("", response_model=RoadmapResponse, status_code=status.HTTP_201_CREATED)
async def create_roadmap(data: RoadmapCreate, controller: ControllerDep) -> RoadmapResponse:
    """Create a user-authored roadmap."""
    result = await controller.create_roadmap(data)
    _raise_for_write(result, "save roadmap")
    return _current(controller)


# ============================================================================
# Reads
# ============================================================================


@router.get("", response_model=DashboardResponse)
async def list_roadmaps(controller: ControllerDep) -> DashboardResponse:
    """List roadmaps, most recently updated first, with average progress."""
    roadmaps = await controller.list_roadmaps()
    return DashboardResponse(
        roadmaps=[summarize(r) for r in roadmaps],
        average_progress=progress_service.average_progress(roadmaps),
    )


@router.get("/{roadmap_id}", response_model=RoadmapResponse)
async def get_roadmap(roadmap_id: str, controller: ControllerDep) -> RoadmapResponse:
    """Get a roadmap with its items and progress."""
    await _load_or_404(controller, roadmap_id)
    return _current(controller)


@router.get("/{roadmap_id}/progress", response_model=ProgressSnapshot)
async def get_roadmap_progress(roadmap_id: str, controller: ControllerDep) -> ProgressSnapshot:
    """Get progress for a roadmap."""
    await _load_or_404(controller, roadmap_id)
    return controller.progress()


# ============================================================================
# Mutations
# ============================================================================


@router.post("/{roadmap_id}/items/{item_id}/toggle", response_model=ToggleOutcome)
async def toggle_item(
    roadmap_id: str,
    item_id: str,
    data: ToggleRequest,
    controller: ControllerDep,
) -> ToggleOutcome:
    """Flip an item's completion, or set it when ``completed`` is given.

    A failed write is reported in the body with ``ok: false`` and the
    item's original state.
    """
    await _load_or_404(controller, roadmap_id)
    outcome = await controller.toggle_item(item_id, data.completed)
    if not outcome.ok and outcome.error == "Item not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.error)
    return outcome


@router.post("/{roadmap_id}/reset", response_model=RoadmapResponse)
async def reset_roadmap(roadmap_id: str, controller: ControllerDep) -> RoadmapResponse:
    """Clear every completion flag on a roadmap."""
    await _load_or_404(controller, roadmap_id)
    result = await controller.reset()
    _raise_for_write(result, "reset progress")
    return _current(controller)


@router.post("/{roadmap_id}/personalize", response_model=PersonalizeResponse)
async def personalize_roadmap(
    roadmap_id: str,
    data: GenerateRoadmapRequest,
    controller: ControllerDep,
    notifier: NotifierDep,
) -> PersonalizeResponse:
    """Append AI-suggested steps tailored to a profile."""
    await _load_or_404(controller, roadmap_id)
    outcome = await controller.personalize(data.profile)
    return PersonalizeResponse(
        outcome=outcome,
        roadmap=controller.roadmap,
        notifications=notifier.notifications,
    )


@router.delete("/{roadmap_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_roadmap(roadmap_id: str, controller: ControllerDep) -> Response:
    """Delete a roadmap and all of its items."""
    await _load_or_404(controller, roadmap_id)
    result = await controller.delete()
    _raise_for_write(result, "delete roadmap")
    logger.info("Roadmap deleted via API", roadmap_id=roadmap_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
