"""Roadmap models for the remote structured store.

A roadmap aggregate (``user_roadmaps``) owns five child collections. Every
child row carries its own ``completed`` flag and a foreign key back to the
roadmap; rows are removed together with their roadmap.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


def _roadmap_fk() -> Mapped[str]:
    return mapped_column(ForeignKey("user_roadmaps.id", ondelete="CASCADE"), index=True)


class UserRoadmap(Base):
    __tablename__ = "user_roadmaps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    template_id: Mapped[str | None] = mapped_column(String, nullable=True)
    provenance: Mapped[str] = mapped_column(String, default="user_authored")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )


class UserRoadmapStep(Base):
    """Ordered step; also holds items of sectioned AI roadmaps."""

    __tablename__ = "user_roadmap_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    roadmap_id: Mapped[str] = _roadmap_fk()

    label: Mapped[str] = mapped_column(Text)
    order_number: Mapped[int] = mapped_column(Integer)
    est_time: Mapped[str | None] = mapped_column(String, nullable=True)
    section: Mapped[str | None] = mapped_column(String, nullable=True)
    link: Mapped[str | None] = mapped_column(String, nullable=True)
    tooltip: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class RoadmapSkill(Base):
    __tablename__ = "roadmap_skills"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    roadmap_id: Mapped[str] = _roadmap_fk()
    label: Mapped[str] = mapped_column(String)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class RoadmapTool(Base):
    __tablename__ = "roadmap_tools"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    roadmap_id: Mapped[str] = _roadmap_fk()
    label: Mapped[str] = mapped_column(String)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class RoadmapResource(Base):
    __tablename__ = "roadmap_resources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    roadmap_id: Mapped[str] = _roadmap_fk()
    label: Mapped[str] = mapped_column(String)
    url: Mapped[str | None] = mapped_column(String, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class RoadmapTimeline(Base):
    __tablename__ = "roadmap_timeline"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    roadmap_id: Mapped[str] = _roadmap_fk()
    step: Mapped[str] = mapped_column(Text)
    order_number: Mapped[int] = mapped_column(Integer)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
