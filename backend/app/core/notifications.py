"""Transient, non-blocking user notifications.

Services report user-visible events through a ``Notifier`` callable
instead of talking to a transport directly. The WebSocket route plugs in
a notifier that pushes events to the client; HTTP routes collect them into
the response body.
"""

from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import BaseModel

from app.core.logging import get_logger

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationKind(str, Enum):
    GENERATION_RETRYING = "generation_retrying"
    GENERATION_FAILED = "generation_failed"
    GENERATION_UNUSABLE = "generation_unusable"
    GENERATION_SUCCEEDED = "generation_succeeded"
    PERSISTENCE_FAILED = "persistence_failed"
    ROADMAP_SAVED = "roadmap_saved"
    ROADMAP_RESET = "roadmap_reset"
    ROADMAP_DELETED = "roadmap_deleted"
    ROADMAP_PERSONALIZED = "roadmap_personalized"
    MILESTONE = "milestone"


class Notification(BaseModel):
    kind: NotificationKind
    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO


Notifier = Callable[[Notification], Awaitable[None]]


async def log_notifier(notification: Notification) -> None:
    """Default notifier: log only."""
    logger.info(
        "Notification",
        kind=notification.kind.value,
        level=notification.level.value,
        title=notification.title,
    )


class CollectingNotifier:
    """Notifier that keeps notifications in memory (HTTP responses, tests)."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    async def __call__(self, notification: Notification) -> None:
        self.notifications.append(notification)
        await log_notifier(notification)

    def kinds(self) -> list[NotificationKind]:
        return [n.kind for n in self.notifications]
