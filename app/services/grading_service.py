"""Assessment submission and manual grading.

Per (student, assessment) the entry moves not_started -> submitted -> graded
and never back.  The existence of an entry is what blocks a second submit,
and the entry's status is what blocks a second grade.

Only multiple_choice and true_false questions are scored at submit time.
short_answer, essay and code questions contribute 0 until an instructor
grades the submission, and grading replaces the whole score.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from uuid import UUID

from app.core.config import SETTINGS
from app.core.errors import InvalidInputError, NotFoundError
from app.core.metrics import PROGRESS_EVENTS
from app.models.assessment import Assessment, Question
from app.models.progress import AssessmentEntry, Progress
from app.models.user import AssessmentResult
from app.repos.unit_of_work import UnitOfWork, unit_of_work
from app.services.badge_service import BadgeService, badge_service
from app.services.post_commit import run_best_effort
from app.services.progress_service import recompute_and_propagate

logger = logging.getLogger(__name__)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _normalize_bool(value: object) -> str | None:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value.strip().lower()
    return None


def _question_score(question: Question, answer: object) -> int:
    if answer is None:
        return 0
    if question.type == "multiple_choice":
        correct = question.correct_option
        if correct is not None and str(answer) == str(correct.id):
            return question.points
        return 0
    if question.type == "true_false":
        expected = _normalize_bool(question.correct_answer)
        if expected is not None and _normalize_bool(answer) == expected:
            return question.points
        return 0
    return 0


def score_answers(assessment: Assessment, answers: Mapping[str, object]) -> int:
    """Sum the points of every auto-gradable question answered correctly."""
    return sum(
        _question_score(question, answers.get(str(question.id)))
        for question in assessment.questions
    )


def percentage_of(score: float, total_points: int) -> float:
    if total_points <= 0:
        return 0.0
    return score / total_points * 100


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    score: int
    total_points: int
    percentage: float
    passed: bool
    progress: Progress
    degraded: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GradeResult:
    progress: Progress
    course_completed: bool = False
    degraded: tuple[str, ...] = ()


class GradingService:
    def __init__(self, uow: UnitOfWork, badges: BadgeService) -> None:
        self._uow = uow
        self._badges = badges

    async def submit(
        self,
        student_id: UUID,
        course_id: UUID,
        assessment_id: UUID,
        answers: Mapping[str, object],
    ) -> SubmissionResult:
        now = _now()
        async with self._uow.transaction() as repos:
            assessment = await repos.assessments.get(assessment_id)
            if assessment is None or assessment.course_id != course_id:
                raise NotFoundError("Assessment not found")
            progress = await repos.progress.get(student_id, course_id)
            if progress is None:
                raise NotFoundError("Progress not found")

            score = score_answers(assessment, answers)
            total = assessment.total_points
            percentage = percentage_of(score, total)
            threshold = (
                assessment.pass_percentage
                if assessment.pass_percentage is not None
                else SETTINGS.default_pass_percentage
            )
            passed = percentage >= threshold

            # Raises ConflictError when an entry for this assessment exists.
            progress = await repos.progress.add_assessment_entry(
                student_id,
                course_id,
                AssessmentEntry(
                    assessment_id=assessment_id,
                    status="submitted",
                    score=score,
                    total_points=total,
                    submission_date=now,
                ),
            )
            if progress is None:
                raise NotFoundError("Progress not found")
            await repos.users.append_assessment_result(
                student_id,
                AssessmentResult(
                    course_id=course_id,
                    assessment_id=assessment_id,
                    score=score,
                    total_points=total,
                    passed=passed,
                    taken_at=now,
                ),
            )

        PROGRESS_EVENTS.labels(event="assessment_submitted").inc()
        logger.info(
            "Assessment submitted student=%s assessment=%s score=%d/%d passed=%s",
            student_id,
            assessment_id,
            score,
            total,
            passed,
            extra={
                "student_id": str(student_id),
                "course_id": str(course_id),
                "assessment_id": str(assessment_id),
            },
        )

        ok = await run_best_effort(
            "badge_evaluation",
            lambda: self._badges.check_and_assign_badges(student_id),
            student_id=student_id,
            course_id=course_id,
        )
        return SubmissionResult(
            score=score,
            total_points=total,
            percentage=percentage,
            passed=passed,
            progress=progress,
            degraded=() if ok else ("badge_evaluation",),
        )

    async def grade(
        self,
        instructor_id: UUID,
        assessment_id: UUID,
        student_id: UUID,
        score: float,
        feedback: str | None = None,
    ) -> GradeResult:
        now = _now()
        async with self._uow.transaction() as repos:
            assessment = await repos.assessments.get(assessment_id)
            # Same answer for "missing" and "not yours".
            if assessment is None or assessment.instructor_id != instructor_id:
                raise NotFoundError("Assessment not found")
            if isinstance(score, bool) or not isinstance(score, int | float):
                raise InvalidInputError("score must be a number")
            if not 0 <= score <= assessment.total_points:
                raise InvalidInputError(
                    f"score must be between 0 and {assessment.total_points}"
                )

            student = await repos.users.get(student_id)
            if student is None or not student.is_student:
                raise NotFoundError("Student not found")
            course_id = assessment.course_id
            if await repos.progress.get(student_id, course_id) is None:
                raise NotFoundError("Progress not found")
            course = await repos.courses.get(course_id)
            if course is None:
                raise NotFoundError("Course not found")

            progress = await repos.progress.grade_assessment_entry(
                student_id,
                course_id,
                assessment_id,
                score=float(score),
                feedback=feedback,
                graded_by=instructor_id,
                at=now,
            )
            if progress is None:
                raise NotFoundError("Progress not found")
            progress, crossed = await recompute_and_propagate(
                repos, progress, course, now
            )

        PROGRESS_EVENTS.labels(event="assessment_graded").inc()
        logger.info(
            "Assessment graded student=%s assessment=%s by=%s score=%s overall=%d",
            student_id,
            assessment_id,
            instructor_id,
            score,
            progress.overall_progress,
            extra={
                "student_id": str(student_id),
                "course_id": str(course_id),
                "assessment_id": str(assessment_id),
            },
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
        return GradeResult(
            progress=progress, course_completed=crossed, degraded=degraded
        )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

grading_service = GradingService(unit_of_work, badge_service)
