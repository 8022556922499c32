"""Generation request/outcome schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from app.core.notifications import Notification
from app.schemas.roadmap import Roadmap, RoadmapDraft, WriteResult


class GenerationStatus(str, Enum):
    """Tagged outcome of a generation or extraction step."""

    OK = "ok"
    NO_JSON_FOUND = "no-json-found"
    PARSE_ERROR = "parse-error"
    SCHEMA_INVALID = "schema-invalid"
    EXHAUSTED_RETRIES = "exhausted-retries"
    NOT_CONFIGURED = "not-configured"


class RoadmapShape(str, Enum):
    """Expected top-level shape of a model response."""

    STEPS = "steps"  # {"title": ..., "steps": [...]}
    SECTIONS = "sections"  # {"title": ..., "type": ..., "sections": [{"title", "items"}]}
    STEP_LIST = "step_list"  # [{"order", "label", "estTime"}, ...]


class UserProfile(BaseModel):
    """Career profile collected by the design wizard."""

    status: str = ""
    institution: str = ""
    education_level: str = ""
    skills: list[str] = Field(default_factory=list)
    dream_roles: list[str] = Field(default_factory=list)
    industries: list[str] = Field(default_factory=list)
    weekly_hours: str = ""
    learning_style: str = ""


class RoadmapFormData(BaseModel):
    """Input for sectioned role/skill roadmaps."""

    role: str = Field(min_length=1)
    student_type: str = "student"  # student | working
    college_tier: str | None = None
    degree: str | None = None
    known_skills: str | None = None
    learning_preference: str = "text"  # video | text | project


class GenerationRequest(BaseModel):
    """A filled prompt ready to send."""

    prompt: str
    shape: RoadmapShape = RoadmapShape.STEPS


class GenerationOutcome(BaseModel):
    """Result of GenerationClient.generate; never an exception."""

    status: GenerationStatus
    attempts: int = 0
    raw_text: str | None = None
    draft: RoadmapDraft | None = None
    error: str | None = None
    # Name of the first missing/malformed field on schema-invalid
    field: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == GenerationStatus.OK

    @property
    def retryable_by_user(self) -> bool:
        """Whether regenerating with the same prompt is likely to help."""
        return self.status in (
            GenerationStatus.EXHAUSTED_RETRIES,
            GenerationStatus.NO_JSON_FOUND,
            GenerationStatus.PARSE_ERROR,
        )


class GenerateRoadmapRequest(BaseModel):
    """API body for custom roadmap generation."""

    profile: UserProfile


class GenerateSectionedRequest(BaseModel):
    """API body for sectioned roadmap generation."""

    form: RoadmapFormData


class PersonalizeOutcome(BaseModel):
    """Generated extra steps and the write that appended them."""

    generation: GenerationOutcome
    write: WriteResult | None = None
    added: int = 0

    @property
    def ok(self) -> bool:
        return self.generation.ok and self.write is not None and self.write.ok


class GenerationResponse(BaseModel):
    outcome: GenerationOutcome
    notifications: list[Notification] = Field(default_factory=list)


class PersonalizeResponse(BaseModel):
    outcome: PersonalizeOutcome
    roadmap: Roadmap | None = None
    notifications: list[Notification] = Field(default_factory=list)
