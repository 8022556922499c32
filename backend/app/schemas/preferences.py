"""User preference schemas."""

from pydantic import BaseModel


class UserPreferences(BaseModel):
    """Persisted per-user flags."""

    has_visited_before: bool = False
    onboarding_completed: bool = False


class PreferencesUpdate(BaseModel):
    has_visited_before: bool | None = None
    onboarding_completed: bool | None = None


class VisitResponse(BaseModel):
    first_visit: bool
    preferences: UserPreferences
