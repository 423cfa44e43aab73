"""Curriculum progress: lecture touches, lecture completion, read views.

complete_lecture sequence:
  validate course + lecture (NotFound)
  -> upsert curriculum entry completed=true           \
  -> recompute overall progress                        |  one transaction
  -> mirror into enrollment.progress                   |
  -> at 100: enrollment active->completed (once),      |
     course appended to completed_courses             /
  -> after commit, if the enrollment just completed: badge evaluation
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from uuid import UUID

from app.core.errors import InvalidInputError, NotFoundError
from app.core.metrics import PROGRESS_EVENTS
from app.models.course import Course
from app.models.progress import Progress
from app.repos.unit_of_work import Repos, UnitOfWork, unit_of_work
from app.services.badge_service import BadgeService, badge_service
from app.services.overall_progress import compute_overall_progress
from app.services.post_commit import run_best_effort

logger = logging.getLogger(__name__)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    progress: Progress
    course_completed: bool = False
    degraded: tuple[str, ...] = ()


async def recompute_and_propagate(
    repos: Repos, progress: Progress, course: Course, at: datetime.datetime
) -> tuple[Progress, bool]:
    """Write the derived percentage and its consequences.

    Returns the updated record and whether this call moved the enrollment
    to completed.  The enrollment's own status is the guard, so a second
    call at 100% reports False and nothing fires twice.
    """
    value = compute_overall_progress(progress, course)
    updated = await repos.progress.set_overall_progress(
        progress.student_id, progress.course_id, value
    )
    if updated is None:
        raise NotFoundError("Progress not found")
    await repos.enrollments.update_progress(
        progress.student_id, progress.course_id, value, at
    )

    crossed = False
    if value == 100:
        crossed = await repos.enrollments.mark_completed(
            progress.student_id, progress.course_id, at
        )
        await repos.users.add_completed_course(progress.student_id, progress.course_id)
        if crossed:
            PROGRESS_EVENTS.labels(event="course_completed").inc()
            logger.info(
                "Course completed student=%s course=%s",
                progress.student_id,
                progress.course_id,
                extra={
                    "student_id": str(progress.student_id),
                    "course_id": str(progress.course_id),
                },
            )
    return updated, crossed


class ProgressService:
    def __init__(self, uow: UnitOfWork, badges: BadgeService) -> None:
        self._uow = uow
        self._badges = badges

    async def record_lecture_touch(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        time_spent: int,
    ) -> Progress:
        """Accumulate watch time on a lecture.  Never touches completion."""
        if isinstance(time_spent, bool) or not isinstance(time_spent, int):
            raise InvalidInputError("timeSpent must be an integer number of seconds")
        if time_spent <= 0:
            raise InvalidInputError("timeSpent must be positive")

        now = _now()
        async with self._uow.transaction() as repos:
            curriculum = await repos.courses.get_curriculum(course_id)
            if curriculum is None:
                raise NotFoundError("Course not found")
            if not any(section.id == section_id for section in curriculum):
                raise NotFoundError("Section not found")
            if not await repos.courses.lecture_exists(course_id, section_id, lecture_id):
                raise NotFoundError("Lecture not found")

            progress = await repos.progress.touch_lecture(
                student_id, course_id, section_id, lecture_id, time_spent, now
            )
            if progress is None:
                raise NotFoundError("Progress not found")

        PROGRESS_EVENTS.labels(event="lecture_touched").inc()
        logger.debug(
            "Lecture touched student=%s course=%s lecture=%s +%ds",
            student_id,
            course_id,
            lecture_id,
            time_spent,
        )
        return progress

    async def complete_lecture(
        self, student_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> ProgressUpdate:
        now = _now()
        async with self._uow.transaction() as repos:
            course = await repos.courses.get(course_id)
            if course is None:
                raise NotFoundError("Course not found")
            section = course.section_for_lecture(lecture_id)
            if section is None:
                raise NotFoundError("Lecture not found in course curriculum")

            progress = await repos.progress.complete_lecture(
                student_id, course_id, section.id, lecture_id, now
            )
            if progress is None:
                raise NotFoundError("Progress not found")

            progress, crossed = await recompute_and_propagate(
                repos, progress, course, now
            )

        PROGRESS_EVENTS.labels(event="lecture_completed").inc()
        logger.info(
            "Lecture completed student=%s course=%s lecture=%s overall=%d",
            student_id,
            course_id,
            lecture_id,
            progress.overall_progress,
            extra={"student_id": str(student_id), "course_id": str(course_id)},
        )

        degraded: tuple[str, ...] = ()
        if crossed:
            ok = await run_best_effort(
                "badge_evaluation",
                lambda: self._badges.check_and_assign_badges(student_id),
                student_id=student_id,
                course_id=course_id,
            )
            if not ok:
                degraded = ("badge_evaluation",)
        return ProgressUpdate(
            progress=progress, course_completed=crossed, degraded=degraded
        )

    async def get_progress(self, student_id: UUID, course_id: UUID) -> Progress:
        async with self._uow.transaction() as repos:
            progress = await repos.progress.get(student_id, course_id)
        if progress is None:
            raise NotFoundError("Progress not found")
        return progress

    async def list_course_progress(self, course_id: UUID) -> list[Progress]:
        async with self._uow.transaction() as repos:
            if await repos.courses.get(course_id) is None:
                raise NotFoundError("Course not found")
            return await repos.progress.list_by_course(course_id)

    async def list_student_progress(self, student_id: UUID) -> list[Progress]:
        async with self._uow.transaction() as repos:
            user = await repos.users.get(student_id)
            if user is None or not user.is_student:
                raise NotFoundError("Student not found")
            return await repos.progress.list_by_student(student_id)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

progress_service = ProgressService(unit_of_work, badge_service)
