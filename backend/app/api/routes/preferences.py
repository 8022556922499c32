"""User preference routes."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import PersistenceDep
from app.schemas.preferences import PreferencesUpdate, UserPreferences, VisitResponse

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=UserPreferences)
async def get_preferences(persistence: PersistenceDep) -> UserPreferences:
    """Get the caller's preferences."""
    return await persistence.read_preferences()


@router.patch("", response_model=UserPreferences)
async def update_preferences(
    data: PreferencesUpdate,
    persistence: PersistenceDep,
) -> UserPreferences:
    """Update the given preference flags."""
    current = await persistence.read_preferences()
    updated = current.model_copy(update=data.model_dump(exclude_none=True))
    result = await persistence.write_preferences(updated)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to save preferences: {result.error}",
        )
    return updated


@router.post("/visit", response_model=VisitResponse)
async def record_visit(persistence: PersistenceDep) -> VisitResponse:
    """Record a visit and report whether it was the first one."""
    first_visit, preferences = await persistence.mark_visited()
    return VisitResponse(first_visit=first_visit, preferences=preferences)
