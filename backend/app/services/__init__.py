"""Service layer modules."""

from app.services import (
    change_feed,
    local_cache,
    persistence_coordinator,
    progress_service,
    realtime_reconciler,
    roadmap_store,
    roadmap_sync_controller,
    websocket_message_sender,
)

__all__ = [
    "change_feed",
    "local_cache",
    "persistence_coordinator",
    "progress_service",
    "realtime_reconciler",
    "roadmap_store",
    "roadmap_sync_controller",
    "websocket_message_sender",
]
