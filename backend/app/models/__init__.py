"""Database models."""

from app.models.roadmap import (
    RoadmapResource,
    RoadmapSkill,
    RoadmapTimeline,
    RoadmapTool,
    UserRoadmap,
    UserRoadmapStep,
)
from app.models.user import User, UserPreference

__all__ = [
    "User",
    "UserPreference",
    "UserRoadmap",
    "UserRoadmapStep",
    "RoadmapSkill",
    "RoadmapTool",
    "RoadmapResource",
    "RoadmapTimeline",
]
