from __future__ import annotations

import asyncio
import datetime
import logging
from uuid import uuid4

import pytest

from app.models.notification import Notification, RelatedEntity
from app.services.notification_service import from_payload, notifier, to_payload
from app.services.task_queue import NOTIFICATIONS_QUEUE, InMemoryTaskQueue, Task
from app.worker import HANDLERS, process_one
from tests.conftest import queue


@pytest.mark.parametrize(
    "kind,prefix",
    [
        ("course", "/courses/"),
        ("payment", "/payments/"),
        ("support_ticket", "/support/tickets/"),
        ("assessment", "/assessments/"),
    ],
)
def test_related_entity_action_urls(kind: str, prefix: str) -> None:
    entity_id = uuid4()
    entity = RelatedEntity(kind=kind, id=entity_id)  # type: ignore[arg-type]
    assert entity.action_url() == f"{prefix}{entity_id}"


def test_related_entity_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError, match="unknown related entity kind"):
        RelatedEntity.from_dict({"kind": "forum_post", "id": str(uuid4())})


def test_notification_without_related_entity_has_no_action() -> None:
    n = Notification.new(
        user_id=uuid4(),
        title="Maintenance",
        message="Tonight",
        type="system",
        created_at=datetime.datetime.now(datetime.UTC),
    )
    assert n.action_url is None
    assert from_payload(to_payload(n)) == n


def test_payload_preserves_related_entity() -> None:
    n = Notification.new(
        user_id=uuid4(),
        title="Receipt",
        message="Paid",
        type="payment",
        created_at=datetime.datetime.now(datetime.UTC),
        related_entity=RelatedEntity(kind="payment", id=uuid4()),
    )
    assert from_payload(to_payload(n)).related_entity == n.related_entity


# ---- queue ----


def test_in_memory_queue_is_fifo() -> None:
    q = InMemoryTaskQueue()

    async def scenario():
        for i in range(3):
            await q.enqueue("jobs", {"n": i})
        assert await q.queue_length("jobs") == 3
        return [(await q.dequeue("jobs")).payload["n"] for _ in range(3)]

    assert asyncio.run(scenario()) == [0, 1, 2]
    assert asyncio.run(q.dequeue("jobs")) is None


def test_in_memory_queue_rejects_unserializable_payloads() -> None:
    with pytest.raises(TypeError):
        asyncio.run(InMemoryTaskQueue().enqueue("jobs", {"when": object()}))


def test_task_json_round_trip() -> None:
    task = Task(id="t-1", queue="notifications", payload={"a": 1})
    assert Task.from_json(task.to_json()) == task


# ---- worker ----


def test_worker_handles_queued_notification(caplog: pytest.LogCaptureFixture) -> None:
    course_id = uuid4()
    asyncio.run(
        notifier.notify(
            uuid4(),
            "Course Enrollment",
            "You have successfully enrolled in X!",
            "course",
            RelatedEntity(kind="course", id=course_id),
        )
    )

    with caplog.at_level(logging.INFO, logger="worker"):
        handled = asyncio.run(process_one(queue, NOTIFICATIONS_QUEUE))

    assert handled is True
    assert f"/courses/{course_id}" in caplog.text
    assert asyncio.run(queue.queue_length(NOTIFICATIONS_QUEUE)) == 0


def test_worker_reports_empty_queue() -> None:
    assert asyncio.run(process_one(queue, NOTIFICATIONS_QUEUE)) is False


def test_worker_survives_bad_payload(caplog: pytest.LogCaptureFixture) -> None:
    asyncio.run(queue.enqueue(NOTIFICATIONS_QUEUE, {"garbage": True}))
    with caplog.at_level(logging.ERROR, logger="worker"):
        assert asyncio.run(process_one(queue, NOTIFICATIONS_QUEUE)) is True
    assert "failed" in caplog.text


def test_worker_registers_notifications_handler() -> None:
    assert NOTIFICATIONS_QUEUE in HANDLERS
