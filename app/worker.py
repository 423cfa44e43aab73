"""Background worker process.

RUN:  python -m app.worker

Same image as the API, different command:
  api:    uvicorn app.main:app --host 0.0.0.0 --port 8000
  worker: python -m app.worker

The loop polls every registered queue, hands each task to its handler,
and logs the outcome.  A failing task is logged and dropped; the loop
keeps going.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.core.metrics import QUEUE_DEPTH
from app.services.notification_service import from_payload
from app.services.task_queue import NOTIFICATIONS_QUEUE, TaskQueue, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(NOTIFICATIONS_QUEUE)
async def handle_notification(payload: dict) -> None:
    """Deliver one notification.

    Delivery channels (in-app inbox, email, push) are outside the engine;
    here a notification is validated and logged with its action link.
    """
    notification = from_payload(payload)
    logger.info(
        "Notification %s for user=%s [%s] %s: %s (action=%s)",
        notification.id,
        notification.user_id,
        notification.type,
        notification.title,
        notification.message,
        notification.action_url or "-",
        extra={"user_id": str(notification.user_id)},
    )


async def process_one(queue: TaskQueue, queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle a single task.  Returns False when the queue was empty."""
    task = await queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False
    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    QUEUE_DEPTH.labels(queue_name=queue_name).set(await queue.queue_length(queue_name))
    return True


async def run_worker() -> None:
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            await process_one(task_queue, queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
