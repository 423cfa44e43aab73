from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

AssessmentStatus = Literal["not_started", "in_progress", "submitted", "graded"]


@dataclass(frozen=True, slots=True)
class CurriculumEntry:
    """Per-lecture completion and time tracking, created on first touch."""

    section_id: UUID
    lecture_id: UUID
    completed: bool = False
    completion_date: datetime | None = None
    time_spent: int = 0  # seconds, only ever accumulates
    last_accessed: datetime | None = None


@dataclass(frozen=True, slots=True)
class AssessmentEntry:
    """Per-assessment submission/grading record.  At most one per assessment."""

    assessment_id: UUID
    status: AssessmentStatus = "not_started"
    score: float | None = None
    total_points: int | None = None
    submission_date: datetime | None = None
    grading_date: datetime | None = None
    graded_by: UUID | None = None
    feedback: str | None = None


@dataclass(frozen=True, slots=True)
class Progress:
    """Per-(student, course) progress record.

    ``overall_progress`` is derived, see app/services/overall_progress.py.
    No student action writes it directly.
    """

    id: UUID
    student_id: UUID
    course_id: UUID
    enrollment_id: UUID
    curriculum_progress: tuple[CurriculumEntry, ...] = ()
    assessment_progress: tuple[AssessmentEntry, ...] = ()
    overall_progress: int = 0
    last_accessed: datetime | None = None

    @staticmethod
    def new(*, student_id: UUID, course_id: UUID, enrollment_id: UUID) -> Progress:
        return Progress(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            enrollment_id=enrollment_id,
        )

    def find_lecture(self, section_id: UUID, lecture_id: UUID) -> CurriculumEntry | None:
        for entry in self.curriculum_progress:
            if entry.section_id == section_id and entry.lecture_id == lecture_id:
                return entry
        return None

    def find_assessment(self, assessment_id: UUID) -> AssessmentEntry | None:
        for entry in self.assessment_progress:
            if entry.assessment_id == assessment_id:
                return entry
        return None

    @property
    def completed_lectures(self) -> int:
        return sum(1 for entry in self.curriculum_progress if entry.completed)

    @property
    def latest_graded(self) -> AssessmentEntry | None:
        latest: AssessmentEntry | None = None
        for entry in self.assessment_progress:
            if entry.status != "graded" or entry.grading_date is None:
                continue
            # Later entries win ties on grading_date.
            if latest is None or entry.grading_date >= latest.grading_date:  # type: ignore[operator]
                latest = entry
        return latest
