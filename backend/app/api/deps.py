"""API dependencies."""

import re
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.core.auth import OptionalUserDep
from app.core.config import get_settings
from app.core.notifications import CollectingNotifier
from app.generation.client import GenerationClient, get_generation_client
from app.services.change_feed import get_change_feed
from app.services.local_cache import LocalCache
from app.services.persistence_coordinator import DualStorePersistence
from app.services.roadmap_sync_controller import RoadmapSyncController

CLIENT_ID_HEADER = "X-Client-Id"
DEFAULT_NAMESPACE = "default"

_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_client_id(client_id: str | None) -> bool:
    return bool(client_id) and _CLIENT_ID_RE.match(client_id) is not None


def cache_location(user_id: int | None, client_id: str | None) -> tuple[Path, str]:
    """Directory and namespace of the local cache for one caller.

    Signed-in users get a mirror of their own; anonymous clients live in a
    separate tree so no client id can name a user's mirror.
    """
    root = Path(get_settings().LOCAL_CACHE_DIR)
    if user_id is not None:
        return root / "users", str(user_id)
    return root / "anonymous", client_id or DEFAULT_NAMESPACE


def build_persistence(user_id: int | None, client_id: str | None) -> DualStorePersistence:
    """Build persistence for one caller."""
    directory, namespace = cache_location(user_id, client_id)
    cache = LocalCache(directory, key=get_settings().LOCAL_CACHE_KEY, namespace=namespace)
    return DualStorePersistence(user_id=user_id, local_cache=cache, feed=get_change_feed())


def get_client_id(
    x_client_id: Annotated[str | None, Header(alias=CLIENT_ID_HEADER)] = None,
) -> str | None:
    if x_client_id is None:
        return None
    if not is_valid_client_id(x_client_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {CLIENT_ID_HEADER} header",
        )
    return x_client_id


def get_persistence(
    user_id: OptionalUserDep,
    client_id: Annotated[str | None, Depends(get_client_id)],
) -> DualStorePersistence:
    """Get persistence dependency for the current caller."""
    return build_persistence(user_id, client_id)


def get_notifier() -> CollectingNotifier:
    """Collect notifications raised while handling one request."""
    return CollectingNotifier()


def get_controller(
    persistence: Annotated[DualStorePersistence, Depends(get_persistence)],
    client: Annotated[GenerationClient, Depends(get_generation_client)],
    notifier: Annotated[CollectingNotifier, Depends(get_notifier)],
) -> RoadmapSyncController:
    """Get a roadmap controller for the current request."""
    return RoadmapSyncController(persistence, client, notifier=notifier)


# Dependency aliases
PersistenceDep = Annotated[DualStorePersistence, Depends(get_persistence)]
NotifierDep = Annotated[CollectingNotifier, Depends(get_notifier)]
ControllerDep = Annotated[RoadmapSyncController, Depends(get_controller)]
