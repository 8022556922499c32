"""WebSocket routes for live roadmap progress."""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from app.api.deps import CLIENT_ID_HEADER, build_persistence, is_valid_client_id
from app.core.auth import get_optional_user_from_ws
from app.core.logging import bind_request_context, clear_request_context, get_logger
from app.generation.client import get_generation_client
from app.schemas.roadmap import (
    ItemCategory,
    ProgressSnapshot,
    RoadmapClientMessage,
    TrackableItem,
)
from app.services.realtime_reconciler import RealtimeReconciler
from app.services.roadmap_sync_controller import RoadmapSyncController
from app.services.websocket_message_sender import (
    send_error,
    send_progress,
    send_roadmap,
    send_roadmap_refresh,
    send_toggle_result,
    websocket_notifier,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/ws", tags=["websocket"])


class ConnectionManager:
    """Track open WebSocket connections per roadmap."""

    def __init__(self):
        self.active_connections: dict[str, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, roadmap_id: str):
        await websocket.accept()
        self.active_connections.setdefault(roadmap_id, set()).add(websocket)
        logger.info(
            "WebSocket connected",
            roadmap_id=roadmap_id,
            connections=len(self.active_connections[roadmap_id]),
        )

    def disconnect(self, websocket: WebSocket, roadmap_id: str):
        sockets = self.active_connections.get(roadmap_id)
        if sockets and websocket in sockets:
            sockets.discard(websocket)
            if not sockets:
                del self.active_connections[roadmap_id]
            logger.info("WebSocket disconnected", roadmap_id=roadmap_id)


manager = ConnectionManager()


async def handle_client_message(
    websocket: WebSocket,
    controller: RoadmapSyncController,
    message: RoadmapClientMessage,
) -> None:
    """Dispatch one client action to the controller."""
    if message.action == "toggle":
        if not message.item_id:
            await send_error(websocket, message="toggle requires item_id")
            return
        outcome = await controller.toggle_item(message.item_id, message.completed)
        await send_toggle_result(websocket, outcome=outcome)
    elif message.action == "reset":
        await controller.reset()
    elif message.action == "progress":
        await send_progress(websocket, progress=controller.progress())


@router.websocket("/roadmaps/{roadmap_id}")
async def roadmap_websocket(websocket: WebSocket, roadmap_id: str):
    """Live view of one roadmap.

    Pushes ``roadmap`` on connect, then ``progress``, ``milestone``,
    ``notification`` and ``roadmap_refresh`` events. Accepts ``toggle``,
    ``reset`` and ``progress`` actions from the client.
    """
    await manager.connect(websocket, roadmap_id)

    user_id = get_optional_user_from_ws(websocket)
    client_id = websocket.headers.get(CLIENT_ID_HEADER) or websocket.query_params.get("client_id")
    if not is_valid_client_id(client_id):
        client_id = None
    bind_request_context(roadmap_id=roadmap_id, user_id=user_id)

    async def on_progress(snap: ProgressSnapshot) -> None:
        await send_progress(websocket, progress=snap)

    persistence = build_persistence(user_id, client_id)
    controller = RoadmapSyncController(
        persistence,
        get_generation_client(),
        notifier=websocket_notifier(websocket),
        on_progress=on_progress,
    )

    async def on_refresh(category: ItemCategory, items: list[TrackableItem]) -> None:
        await send_roadmap_refresh(websocket, category=category, items=items)
        await controller.apply_refresh(category, items)

    try:
        roadmap = await controller.load(roadmap_id)
        if roadmap is None:
            await send_error(websocket, message="Roadmap not found")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        await send_roadmap(websocket, roadmap=roadmap, progress=controller.progress())

        async with RealtimeReconciler(persistence, roadmap_id, on_refresh):
            while True:
                data = await websocket.receive_text()
                try:
                    message = RoadmapClientMessage(**json.loads(data))
                except (json.JSONDecodeError, TypeError, ValidationError) as e:
                    await send_error(websocket, message=f"Invalid request format: {e}")
                    continue

                logger.info("WebSocket message received", action=message.action)
                await handle_client_message(websocket, controller, message)

    except WebSocketDisconnect:
        logger.info("Client disconnected", roadmap_id=roadmap_id)
    finally:
        manager.disconnect(websocket, roadmap_id)
        clear_request_context()
