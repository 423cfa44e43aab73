"""Outbound notifications.

The engine only ever *emits* notifications; storing and delivering them is
somebody else's job.  ``QueueNotifier`` serializes a Notification onto the
``notifications`` task queue and returns.  The worker picks it up.

Callers wrap ``notify`` in ``run_best_effort``: a full queue or an
unreachable Redis becomes a degraded result, never a failed enrollment.
"""

from __future__ import annotations

import datetime
import logging
from typing import Protocol
from uuid import UUID

from app.core.errors import DependencyFailure
from app.models.notification import Notification, NotificationType, RelatedEntity
from app.services.task_queue import NOTIFICATIONS_QUEUE, TaskQueue, task_queue

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        related_entity: RelatedEntity | None = None,
    ) -> Notification: ...


def to_payload(notification: Notification) -> dict:
    return {
        "id": str(notification.id),
        "user_id": str(notification.user_id),
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "created_at": notification.created_at.isoformat(),
        "related_entity": (
            notification.related_entity.to_dict()
            if notification.related_entity is not None
            else None
        ),
    }


def from_payload(payload: dict) -> Notification:
    related = payload.get("related_entity")
    return Notification(
        id=UUID(payload["id"]),
        user_id=UUID(payload["user_id"]),
        title=payload["title"],
        message=payload["message"],
        type=payload["type"],
        created_at=datetime.datetime.fromisoformat(payload["created_at"]),
        related_entity=RelatedEntity.from_dict(related) if related else None,
    )


class QueueNotifier:
    def __init__(self, queue: TaskQueue) -> None:
        self._queue = queue

    async def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        related_entity: RelatedEntity | None = None,
    ) -> Notification:
        notification = Notification.new(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            created_at=datetime.datetime.now(datetime.UTC),
            related_entity=related_entity,
        )
        try:
            await self._queue.enqueue(NOTIFICATIONS_QUEUE, to_payload(notification))
        except Exception as exc:
            raise DependencyFailure(
                f"could not enqueue notification for user {user_id}"
            ) from exc
        logger.debug("Notification %s queued for user=%s", notification.id, user_id)
        return notification


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

notifier: Notifier = QueueNotifier(task_queue)
