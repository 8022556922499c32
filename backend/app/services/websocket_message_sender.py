"""WebSocket message sender service.

All server-to-client events on a roadmap connection go through here so the
payload shape stays consistent: ``{"type": ..., "data": {...}}``.
"""

from fastapi import WebSocket

from app.core.logging import get_logger
from app.core.notifications import Notification, Notifier
from app.schemas.roadmap import (
    ItemCategory,
    ProgressSnapshot,
    Roadmap,
    ToggleOutcome,
    TrackableItem,
)

logger = get_logger(__name__)


async def _send_event(websocket: WebSocket, event_type: str, data: dict | None = None) -> None:
    """Send a WebSocket event with consistent structure.

    Args:
        websocket: WebSocket connection
        event_type: Type of event (e.g., "progress", "notification")
        data: Optional data payload for the event
    """
    payload = {"type": event_type}
    if data is not None:
        payload["data"] = data
    await websocket.send_json(payload)


async def send_roadmap(
    websocket: WebSocket, *, roadmap: Roadmap, progress: ProgressSnapshot
) -> None:
    """Send the full roadmap view, used on connect."""
    await _send_event(
        websocket,
        "roadmap",
        {
            "roadmap": roadmap.model_dump(mode="json"),
            "sections": [s.model_dump(mode="json") for s in roadmap.sections()],
            "progress": progress.model_dump(),
        },
    )
    logger.info("Roadmap sent", roadmap_id=roadmap.id, items=len(roadmap.items))


async def send_progress(websocket: WebSocket, *, progress: ProgressSnapshot) -> None:
    """Send recomputed progress; milestone crossings get their own event."""
    await _send_event(websocket, "progress", progress.model_dump())
    if progress.milestone.any:
        await _send_event(websocket, "milestone", progress.milestone.model_dump())
        logger.info("Milestone sent", percentage=progress.percentage)
    logger.debug("Progress sent", percentage=progress.percentage)


async def send_toggle_result(websocket: WebSocket, *, outcome: ToggleOutcome) -> None:
    await _send_event(
        websocket,
        "toggle_result",
        {
            "ok": outcome.ok,
            "item_id": outcome.item_id,
            "completed": outcome.completed,
            "error": outcome.error,
        },
    )


async def send_notification(websocket: WebSocket, *, notification: Notification) -> None:
    """Send a transient user notification."""
    await _send_event(websocket, "notification", notification.model_dump(mode="json"))
    logger.debug("Notification sent", kind=notification.kind.value)


async def send_roadmap_refresh(
    websocket: WebSocket,
    *,
    category: ItemCategory,
    items: list[TrackableItem],
) -> None:
    """Send a re-fetched collection that replaces the client's copy."""
    await _send_event(
        websocket,
        "roadmap_refresh",
        {"category": category.value, "items": [i.model_dump(mode="json") for i in items]},
    )
    logger.info("Roadmap refresh sent", category=category.value, count=len(items))


async def send_error(websocket: WebSocket, *, message: str) -> None:
    """Send error message to client."""
    await _send_event(websocket, "error", {"message": message})
    logger.warning("Error sent", message=message)


def websocket_notifier(websocket: WebSocket) -> Notifier:
    """Build a notifier that pushes notifications over a WebSocket."""

    async def notify(notification: Notification) -> None:
        await send_notification(websocket, notification=notification)

    return notify
