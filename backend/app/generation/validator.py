"""Validate and normalize parsed model output into roadmap drafts.

Normalization rules:
- an item may be a plain string or an object carrying ``label`` (or
  ``name``/``step``); either way it becomes a ``TrackableItem`` whose label
  is that string
- ``completed`` is always False; a model never dictates completion state
- unknown keys are dropped, never rejected
- a roadmap needs a non-empty title and at least one item
"""

from typing import Any

from pydantic import BaseModel, Field

from app.core.errors import SchemaValidationError
from app.core.logging import get_logger
from app.schemas.generation import GenerationStatus, RoadmapShape
from app.schemas.roadmap import ItemCategory, RoadmapDraft, TrackableItem

logger = get_logger(__name__)

_LABEL_KEYS = ("label", "name", "step")
_EST_TIME_KEYS = ("estTime", "est_time")
_LINK_KEYS = ("resource", "link", "url")


class ValidationResult(BaseModel):
    status: GenerationStatus
    draft: RoadmapDraft | None = None
    # Populated for every shape; for STEP_LIST it is the only payload
    items: list[TrackableItem] = Field(default_factory=list)
    field: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == GenerationStatus.OK


def _first_str(raw: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _normalize_item(
    raw: Any, path: str, position: int, section: str | None = None
) -> TrackableItem:
    if isinstance(raw, str):
        label = raw.strip()
        if not label:
            raise SchemaValidationError("Item label is empty", field=f"{path}.label")
        return TrackableItem(label=label, order=position, section=section, completed=False)

    if not isinstance(raw, dict):
        raise SchemaValidationError("Item must be a string or an object", field=path)

    label = _first_str(raw, _LABEL_KEYS)
    if label is None:
        raise SchemaValidationError("Item has no label", field=f"{path}.label")

    order = raw.get("order")
    if not isinstance(order, int) or isinstance(order, bool):
        order = position

    return TrackableItem(
        label=label,
        order=order,
        est_time=_first_str(raw, _EST_TIME_KEYS),
        link=_first_str(raw, _LINK_KEYS),
        tooltip=_first_str(raw, ("tooltip",)),
        section=section,
        completed=False,
        category=ItemCategory.STEP,
    )


def _require_title(value: dict) -> str:
    title = value.get("title")
    if not isinstance(title, str) or not title.strip():
        raise SchemaValidationError("Roadmap title is missing or empty", field="title")
    return title.strip()


def _require_list(value: Any, field: str) -> list:
    if not isinstance(value, list):
        raise SchemaValidationError(f"'{field}' must be a list", field=field)
    if not value:
        raise SchemaValidationError(f"'{field}' must not be empty", field=field)
    return value


def _normalize_steps(raw_steps: Any, field: str = "steps") -> list[TrackableItem]:
    steps = _require_list(raw_steps, field)
    return [_normalize_item(raw, f"{field}[{i}]", i + 1) for i, raw in enumerate(steps)]


def _normalize_sections(raw_sections: Any) -> list[TrackableItem]:
    sections = _require_list(raw_sections, "sections")
    items: list[TrackableItem] = []
    for i, section in enumerate(sections):
        path = f"sections[{i}]"
        if not isinstance(section, dict):
            raise SchemaValidationError("Section must be an object", field=path)
        title = section.get("title")
        if not isinstance(title, str) or not title.strip():
            raise SchemaValidationError("Section title is missing", field=f"{path}.title")
        raw_items = _require_list(section.get("items"), f"{path}.items")
        for j, raw in enumerate(raw_items):
            items.append(_normalize_item(raw, f"{path}.items[{j}]", len(items) + 1, title.strip()))
    return items


def _validate(value: Any, shape: RoadmapShape) -> ValidationResult:
    if shape == RoadmapShape.STEP_LIST:
        # Tolerate {"steps": [...]} wrappers around the expected bare list
        if isinstance(value, dict) and "steps" in value:
            value = value["steps"]
        items = _normalize_steps(value)
        return ValidationResult(status=GenerationStatus.OK, items=items)

    if not isinstance(value, dict):
        raise SchemaValidationError("Roadmap must be a JSON object", field="root")

    title = _require_title(value)
    if shape == RoadmapShape.SECTIONS:
        items = _normalize_sections(value.get("sections"))
        kind = value.get("type") if isinstance(value.get("type"), str) else "role"
    else:
        items = _normalize_steps(value.get("steps"))
        kind = None

    draft = RoadmapDraft(title=title, type=kind, items=items)
    return ValidationResult(status=GenerationStatus.OK, draft=draft, items=items)


def validate_roadmap(value: Any, shape: RoadmapShape = RoadmapShape.STEPS) -> ValidationResult:
    """Validate a parsed value against a roadmap shape.

    Args:
        value: Output of the extractor
        shape: Expected top-level shape

    Returns:
        ValidationResult; on failure ``field`` names the first missing or
        malformed required field (e.g. ``steps[2].label``)
    """
    try:
        return _validate(value, shape)
    except SchemaValidationError as e:
        logger.info("Roadmap schema invalid", field=e.field, error=e.message, shape=shape.value)
        return ValidationResult(
            status=GenerationStatus.SCHEMA_INVALID,
            field=e.field,
            error=e.message,
        )
