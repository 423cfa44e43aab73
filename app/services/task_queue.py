"""Background task queue on Redis lists.

Notifications are the only work the engine hands off: an enrollment must
not wait on (or fail because of) whatever channel eventually delivers
"you have been enrolled".  The API process enqueues, ``app.worker``
drains.

  Producer (API):    LPUSH task onto tasks:<queue>  -> returns immediately
  Consumer (Worker): BRPOP from tasks:<queue>       -> handles it -> loops

LPUSH at the head and BRPOP at the tail gives FIFO order.  BRPOP blocks
inside Redis until a task arrives, so an idle worker costs nothing.

Delivery is at-most-once: a worker crashing mid-task loses that task.
That is acceptable for notifications, which are best-effort already.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from app.core.metrics import QUEUE_DEPTH
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

NOTIFICATIONS_QUEUE = "notifications"


@dataclass(frozen=True, slots=True)
class Task:
    """A unit of background work.

    queue:   which list it sits on ("notifications").
    payload: JSON-serializable data for the handler.
    """

    id: str
    queue: str
    payload: dict

    def to_json(self) -> str:
        return json.dumps({"id": self.id, "queue": self.queue, "payload": self.payload})

    @staticmethod
    def from_json(raw: str | bytes) -> Task:
        data = json.loads(raw)
        return Task(id=data["id"], queue=data["queue"], payload=data["payload"])


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """FIFO lists in a dict.  Used when REDIS_URL is unset and in tests."""

    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        # Round-trip through JSON so tests catch unserializable payloads.
        task = Task.from_json(
            Task(id=str(uuid.uuid4()), queue=queue, payload=payload).to_json()
        )
        self._queues.setdefault(queue, []).append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(self._queues[queue]))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        tasks = self._queues.get(queue, [])
        if not tasks:
            return None
        task = tasks.pop(0)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))

    def clear(self) -> None:
        self._queues.clear()


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        await self._redis.lpush(f"{self._PREFIX}{queue}", task.to_json())
        logger.debug("Enqueued task id=%s queue=%s", task.id, queue)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        # None on timeout.
        result = await self._redis.brpop(f"{self._PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, raw = result
        return Task.from_json(raw)

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(f"{self._PREFIX}{queue}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
