"""Roadmap template routes."""

from fastapi import APIRouter, HTTPException, status

from app.data.roadmap_templates import ROADMAP_TEMPLATES, get_template
from app.schemas.roadmap import RoadmapTemplate

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[RoadmapTemplate])
async def list_templates() -> list[RoadmapTemplate]:
    """List curated roadmap templates."""
    return ROADMAP_TEMPLATES


@router.get("/{template_id}", response_model=RoadmapTemplate)
async def get_template_by_id(template_id: str) -> RoadmapTemplate:
    """Get a template by ID."""
    template = get_template(template_id)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Template not found",
        )
    return template
