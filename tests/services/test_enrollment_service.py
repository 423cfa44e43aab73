from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from app.core.errors import (
    ConflictError,
    DependencyFailure,
    InvalidStateError,
    NotFoundError,
)
from app.services.enrollment_service import enrollment_service
from app.services.notification_service import from_payload, notifier
from app.services.task_queue import NOTIFICATIONS_QUEUE
from tests.conftest import add_course, add_payment, add_user, queue, store


def _enroll(student_id, course_id, payment_id):
    return asyncio.run(enrollment_service.enroll(student_id, course_id, payment_id))


def _counts(student, course) -> tuple:
    """Everything an enrollment touches, as a comparable tuple."""
    user = asyncio.run(store.users.get(student.id))
    return (
        asyncio.run(store.enrollments.count()),
        asyncio.run(store.progress.get(student.id, course.id)) is not None,
        asyncio.run(store.courses.get(course.id)).total_students,
        len(user.student.enrolled_courses),
    )


def _enrollment_metric(result: str) -> float:
    return REGISTRY.get_sample_value("enrollments_total", {"result": result}) or 0.0


@pytest.fixture
def shop():
    student = add_user("student")
    course = add_course("Python 101")
    payment = add_payment(student, course)
    return student, course, payment


def test_enroll_creates_all_records(shop) -> None:
    student, course, payment = shop
    result = _enroll(student.id, course.id, payment.id)

    enrollment = result.enrollment
    assert enrollment.status == "active"
    assert enrollment.progress == 0
    assert enrollment.payment_id == payment.id
    assert result.progress.enrollment_id == enrollment.id
    assert result.progress.overall_progress == 0
    assert result.progress.curriculum_progress == ()
    assert result.degraded == ()

    assert asyncio.run(store.courses.get(course.id)).total_students == 1
    user = asyncio.run(store.users.get(student.id))
    (enrolled,) = user.student.enrolled_courses
    assert enrolled.course_id == course.id
    assert enrolled.enrolled_at == enrollment.enrolled_at


def test_enroll_queues_a_course_notification(shop) -> None:
    student, course, payment = shop
    _enroll(student.id, course.id, payment.id)

    task = asyncio.run(queue.dequeue(NOTIFICATIONS_QUEUE))
    notification = from_payload(task.payload)
    assert notification.user_id == student.id
    assert notification.title == "Course Enrollment"
    assert notification.message == "You have successfully enrolled in Python 101!"
    assert notification.type == "course"
    assert notification.related_entity.kind == "course"
    assert notification.related_entity.id == course.id
    assert notification.action_url == f"/courses/{course.id}"


def test_duplicate_enrollment_is_conflict_and_changes_nothing(shop) -> None:
    student, course, payment = shop
    _enroll(student.id, course.id, payment.id)
    second_payment = add_payment(student, course)
    before = _counts(student, course)

    with pytest.raises(ConflictError, match="Already enrolled"):
        _enroll(student.id, course.id, second_payment.id)

    assert _counts(student, course) == before


def test_reused_payment_is_conflict(shop) -> None:
    student, course, payment = shop
    _enroll(student.id, course.id, payment.id)
    other_course = add_course("Other")
    with pytest.raises(ConflictError):
        _enroll(student.id, other_course.id, payment.id)


@pytest.mark.parametrize("status", ["pending", "failed", "refunded"])
def test_unfinished_payment_is_invalid_state(status: str) -> None:
    student = add_user("student")
    course = add_course()
    payment = add_payment(student, course, status=status)
    with pytest.raises(InvalidStateError, match="Payment not completed"):
        _enroll(student.id, course.id, payment.id)


def test_payment_of_another_student_is_conflict(shop) -> None:
    _, course, payment = shop
    thief = add_user("student")
    with pytest.raises(ConflictError, match="different student"):
        _enroll(thief.id, course.id, payment.id)


def test_payment_for_another_course_is_conflict(shop) -> None:
    student, _, payment = shop
    other_course = add_course("Other")
    with pytest.raises(ConflictError, match="different course"):
        _enroll(student.id, other_course.id, payment.id)


def test_missing_course_payment_or_student_is_not_found(shop) -> None:
    student, course, payment = shop
    with pytest.raises(NotFoundError, match="Course not found"):
        _enroll(student.id, uuid4(), payment.id)
    with pytest.raises(NotFoundError, match="Payment not found"):
        _enroll(student.id, course.id, uuid4())


def test_instructor_cannot_enroll() -> None:
    instructor = add_user("instructor")
    course = add_course()
    payment = add_payment(instructor, course)
    with pytest.raises(NotFoundError, match="Student not found"):
        _enroll(instructor.id, course.id, payment.id)


def test_failure_inside_transaction_rolls_back_every_write(
    shop, monkeypatch: pytest.MonkeyPatch
) -> None:
    student, course, payment = shop
    before = _counts(student, course)

    async def broken(course_id, delta=1):
        raise RuntimeError("counter store down")

    monkeypatch.setattr(store.courses, "increment_total_students", broken)
    failed_before = _enrollment_metric("failed")

    with pytest.raises(RuntimeError):
        _enroll(student.id, course.id, payment.id)

    monkeypatch.undo()
    assert _counts(student, course) == before
    assert asyncio.run(store.enrollments.get_by_payment(payment.id)) is None
    assert _enrollment_metric("failed") - failed_before == 1


def test_failed_progress_creation_leaves_no_enrollment_behind(
    shop, monkeypatch: pytest.MonkeyPatch
) -> None:
    student, course, payment = shop
    before = _counts(student, course)

    async def broken(progress):
        raise RuntimeError("progress store down")

    monkeypatch.setattr(store.progress, "add", broken)
    with pytest.raises(RuntimeError, match="progress store down"):
        _enroll(student.id, course.id, payment.id)
    monkeypatch.undo()

    assert asyncio.run(store.enrollments.get_by_payment(payment.id)) is None
    assert asyncio.run(store.courses.get(course.id)).total_students == 0
    user = asyncio.run(store.users.get(student.id))
    assert user.student.enrolled_courses == ()
    assert _counts(student, course) == before


def test_notification_failure_degrades_but_keeps_enrollment(
    shop, monkeypatch: pytest.MonkeyPatch
) -> None:
    student, course, payment = shop

    async def unavailable(queue_name, payload):
        raise ConnectionError("redis down")

    monkeypatch.setattr(queue, "enqueue", unavailable)
    result = _enroll(student.id, course.id, payment.id)

    assert result.degraded == ("notification",)
    assert asyncio.run(store.enrollments.get(result.enrollment.id)) is not None


def test_queue_notifier_wraps_enqueue_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    async def unavailable(queue_name, payload):
        raise ConnectionError("redis down")

    monkeypatch.setattr(queue, "enqueue", unavailable)
    with pytest.raises(DependencyFailure):
        asyncio.run(notifier.notify(uuid4(), "t", "m", "system"))


def test_enrollment_metrics_by_outcome(shop) -> None:
    student, course, payment = shop
    created, rejected = _enrollment_metric("created"), _enrollment_metric("rejected")

    _enroll(student.id, course.id, payment.id)
    with pytest.raises(ConflictError):
        _enroll(student.id, course.id, payment.id)

    assert _enrollment_metric("created") - created == 1
    assert _enrollment_metric("rejected") - rejected == 1


# ---- reads ----


def test_list_enrollments_newest_first() -> None:
    student = add_user("student")
    first, second = add_course("First"), add_course("Second")
    for course in (first, second):
        _enroll(student.id, course.id, add_payment(student, course).id)

    enrollments = asyncio.run(enrollment_service.list_enrollments(student.id))
    assert [e.course_id for e in enrollments] == [second.id, first.id]


def test_certificate_eligibility_requires_completion(shop) -> None:
    student, course, payment = shop
    enrollment = _enroll(student.id, course.id, payment.id).enrollment

    with pytest.raises(InvalidStateError, match="Course not completed"):
        asyncio.run(
            enrollment_service.certificate_eligibility(
                student.id, course.id, enrollment.id
            )
        )

    asyncio.run(
        store.enrollments.mark_completed(student.id, course.id, enrollment.enrolled_at)
    )
    eligible = asyncio.run(
        enrollment_service.certificate_eligibility(student.id, course.id, enrollment.id)
    )
    assert eligible.status == "completed"


def test_certificate_eligibility_for_mismatched_pair_is_not_found(shop) -> None:
    student, course, payment = shop
    enrollment = _enroll(student.id, course.id, payment.id).enrollment
    with pytest.raises(NotFoundError, match="Enrollment not found"):
        asyncio.run(
            enrollment_service.certificate_eligibility(uuid4(), course.id, enrollment.id)
        )
    with pytest.raises(NotFoundError, match="Enrollment not found"):
        asyncio.run(
            enrollment_service.certificate_eligibility(student.id, course.id, uuid4())
        )
