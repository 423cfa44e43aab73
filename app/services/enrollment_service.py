"""Enrollment: turning a completed payment into course access.

    enroll(student, course, payment)
      checks (no writes yet)
        course exists                      NotFound
        payment exists                     NotFound
        payment.status == completed        InvalidState
        payment.student == student         Conflict
        payment.course == course           Conflict
        payment not used by an enrollment  Conflict
        no enrollment for (student,course) Conflict
        student exists with role student   NotFound
      one transaction
        enrollment (active, progress 0)
        progress record (empty, overall 0)
        course.total_students += 1
        student.enrolled_courses += {course, now}
      after commit
        "Course Enrollment" notification   best-effort

The checks are repeated by the storage layer's unique constraints, so two
racing enrollments for the same pair or payment still produce exactly one
enrollment; the loser gets Conflict and its transaction rolls back whole.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from uuid import UUID

from app.core.errors import (
    ConflictError,
    EngineError,
    InvalidStateError,
    NotFoundError,
)
from app.core.metrics import ENROLLMENTS
from app.models.enrollment import Enrollment
from app.models.notification import RelatedEntity
from app.models.progress import Progress
from app.models.user import EnrolledCourse
from app.repos.unit_of_work import UnitOfWork, unit_of_work
from app.services.notification_service import Notifier, notifier
from app.services.post_commit import run_best_effort

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnrollmentResult:
    enrollment: Enrollment
    progress: Progress
    degraded: tuple[str, ...] = ()


class EnrollmentService:
    def __init__(self, uow: UnitOfWork, notifier: Notifier) -> None:
        self._uow = uow
        self._notifier = notifier

    async def enroll(
        self, student_id: UUID, course_id: UUID, payment_id: UUID
    ) -> EnrollmentResult:
        try:
            result = await self._enroll(student_id, course_id, payment_id)
        except EngineError as exc:
            ENROLLMENTS.labels(result="rejected").inc()
            logger.warning(
                "Enrollment rejected student=%s course=%s: %s",
                student_id,
                course_id,
                exc.message,
                extra={"student_id": str(student_id), "course_id": str(course_id)},
            )
            raise
        except Exception:
            ENROLLMENTS.labels(result="failed").inc()
            raise
        ENROLLMENTS.labels(result="created").inc()
        return result

    async def _enroll(
        self, student_id: UUID, course_id: UUID, payment_id: UUID
    ) -> EnrollmentResult:
        now = datetime.datetime.now(datetime.UTC)
        async with self._uow.transaction() as repos:
            course = await repos.courses.get(course_id)
            if course is None:
                raise NotFoundError("Course not found")

            payment = await repos.payments.get(payment_id)
            if payment is None:
                raise NotFoundError("Payment not found")
            if payment.status != "completed":
                raise InvalidStateError("Payment not completed")
            if payment.student_id != student_id:
                raise ConflictError("Payment belongs to a different student")
            if payment.course_id != course_id:
                raise ConflictError("Payment is for a different course")
            if await repos.enrollments.get_by_payment(payment_id) is not None:
                raise ConflictError("Payment already used for an enrollment")
            if await repos.enrollments.get_for(student_id, course_id) is not None:
                raise ConflictError("Already enrolled in this course")

            student = await repos.users.get(student_id)
            if student is None or not student.is_student:
                raise NotFoundError("Student not found")

            enrollment = Enrollment.new(
                student_id=student_id,
                course_id=course_id,
                payment_id=payment_id,
                enrolled_at=now,
            )
            await repos.enrollments.add(enrollment)
            progress = Progress.new(
                student_id=student_id,
                course_id=course_id,
                enrollment_id=enrollment.id,
            )
            await repos.progress.add(progress)
            await repos.courses.increment_total_students(course_id)
            await repos.users.append_enrolled_course(
                student_id, EnrolledCourse(course_id=course_id, enrolled_at=now)
            )

        logger.info(
            "Enrolled student=%s in course=%s enrollment=%s",
            student_id,
            course_id,
            enrollment.id,
            extra={"student_id": str(student_id), "course_id": str(course_id)},
        )

        ok = await run_best_effort(
            "notification",
            lambda: self._notifier.notify(
                student_id,
                "Course Enrollment",
                f"You have successfully enrolled in {course.title}!",
                "course",
                RelatedEntity(kind="course", id=course_id),
            ),
            student_id=student_id,
            course_id=course_id,
        )
        return EnrollmentResult(
            enrollment=enrollment,
            progress=progress,
            degraded=() if ok else ("notification",),
        )

    async def list_enrollments(self, student_id: UUID) -> list[Enrollment]:
        async with self._uow.transaction() as repos:
            return await repos.enrollments.list_by_student(student_id)

    async def certificate_eligibility(
        self, student_id: UUID, course_id: UUID, enrollment_id: UUID
    ) -> Enrollment:
        """The completed enrollment a certificate may be issued against."""
        async with self._uow.transaction() as repos:
            enrollment = await repos.enrollments.get(enrollment_id)
        if (
            enrollment is None
            or enrollment.student_id != student_id
            or enrollment.course_id != course_id
        ):
            raise NotFoundError("Enrollment not found")
        if not enrollment.is_completed:
            raise InvalidStateError("Course not completed")
        return enrollment


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

enrollment_service = EnrollmentService(unit_of_work, notifier)
