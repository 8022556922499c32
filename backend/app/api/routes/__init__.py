"""API routes."""

from app.api.routes import preferences, roadmaps, templates, websocket

__all__ = ["roadmaps", "templates", "preferences", "websocket"]
