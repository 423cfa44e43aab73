"""Progress endpoints.

Student-facing writes take the student id from the token, never from the
body, so a student can only move their own progress.

  GET  /v1/progress/{course_id}                              student
  POST /v1/progress/{course_id}/lectures/touch               student
  POST /v1/progress/{course_id}/lectures/{lecture_id}/complete  student
  GET  /v1/progress/course/{course_id}                       instructor|admin
  GET  /v1/progress/student/{student_id}                     admin
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import require_role, subject_id
from app.models.principal import Principal
from app.models.progress import AssessmentEntry, CurriculumEntry, Progress
from app.services.progress_service import progress_service

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class CurriculumEntryOut(BaseModel):
    section_id: UUID
    lecture_id: UUID
    completed: bool
    completion_date: datetime.datetime | None
    time_spent: int
    last_accessed: datetime.datetime | None

    @staticmethod
    def from_model(e: CurriculumEntry) -> CurriculumEntryOut:
        return CurriculumEntryOut(
            section_id=e.section_id,
            lecture_id=e.lecture_id,
            completed=e.completed,
            completion_date=e.completion_date,
            time_spent=e.time_spent,
            last_accessed=e.last_accessed,
        )


class AssessmentEntryOut(BaseModel):
    assessment_id: UUID
    status: str
    score: float | None
    total_points: int | None
    submission_date: datetime.datetime | None
    grading_date: datetime.datetime | None
    graded_by: UUID | None
    feedback: str | None

    @staticmethod
    def from_model(e: AssessmentEntry) -> AssessmentEntryOut:
        return AssessmentEntryOut(
            assessment_id=e.assessment_id,
            status=e.status,
            score=e.score,
            total_points=e.total_points,
            submission_date=e.submission_date,
            grading_date=e.grading_date,
            graded_by=e.graded_by,
            feedback=e.feedback,
        )


class ProgressOut(BaseModel):
    id: UUID
    student_id: UUID
    course_id: UUID
    enrollment_id: UUID
    overall_progress: int
    last_accessed: datetime.datetime | None
    curriculum_progress: list[CurriculumEntryOut]
    assessment_progress: list[AssessmentEntryOut]

    @staticmethod
    def from_model(p: Progress) -> ProgressOut:
        return ProgressOut(
            id=p.id,
            student_id=p.student_id,
            course_id=p.course_id,
            enrollment_id=p.enrollment_id,
            overall_progress=p.overall_progress,
            last_accessed=p.last_accessed,
            curriculum_progress=[
                CurriculumEntryOut.from_model(e) for e in p.curriculum_progress
            ],
            assessment_progress=[
                AssessmentEntryOut.from_model(e) for e in p.assessment_progress
            ],
        )


class LectureTouchIn(BaseModel):
    section_id: UUID
    lecture_id: UUID
    time_spent: int  # seconds


class ProgressUpdateOut(BaseModel):
    progress: ProgressOut
    course_completed: bool
    degraded: list[str]


@router.get("/course/{course_id}", response_model=list[ProgressOut])
async def list_course_progress(
    course_id: UUID,
    _principal: Annotated[
        Principal, Depends(require_role("instructor", "admin"))
    ],
) -> list[ProgressOut]:
    records = await progress_service.list_course_progress(course_id)
    return [ProgressOut.from_model(p) for p in records]


@router.get("/student/{student_id}", response_model=list[ProgressOut])
async def list_student_progress(
    student_id: UUID,
    _principal: Annotated[Principal, Depends(require_role("admin"))],
) -> list[ProgressOut]:
    records = await progress_service.list_student_progress(student_id)
    return [ProgressOut.from_model(p) for p in records]


@router.get("/{course_id}", response_model=ProgressOut)
async def get_my_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> ProgressOut:
    progress = await progress_service.get_progress(subject_id(principal), course_id)
    return ProgressOut.from_model(progress)


@router.post("/{course_id}/lectures/touch", response_model=ProgressOut)
async def touch_lecture(
    course_id: UUID,
    body: LectureTouchIn,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> ProgressOut:
    progress = await progress_service.record_lecture_touch(
        subject_id(principal),
        course_id,
        body.section_id,
        body.lecture_id,
        body.time_spent,
    )
    return ProgressOut.from_model(progress)


@router.post(
    "/{course_id}/lectures/{lecture_id}/complete",
    response_model=ProgressUpdateOut,
)
async def complete_lecture(
    course_id: UUID,
    lecture_id: UUID,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> ProgressUpdateOut:
    update = await progress_service.complete_lecture(
        subject_id(principal), course_id, lecture_id
    )
    return ProgressUpdateOut(
        progress=ProgressOut.from_model(update.progress),
        course_completed=update.course_completed,
        degraded=list(update.degraded),
    )
