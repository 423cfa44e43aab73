"""Assessment submission and grading endpoints.

  POST /v1/courses/{course_id}/assessments/{assessment_id}/submit  student
  POST /v1/assessments/{assessment_id}/grade                      instructor

Submitting twice, or grading twice, is a 409: neither call is safe to
retry blindly.
"""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.dependencies import require_role, subject_id
from app.api.progress import ProgressOut
from app.models.principal import Principal
from app.services.grading_service import grading_service

router = APIRouter(tags=["assessments"])


class SubmissionIn(BaseModel):
    # question id -> selected option id, or true/false value
    answers: dict[str, Any] = Field(default_factory=dict)


class SubmissionOut(BaseModel):
    score: int
    total_points: int
    percentage: float
    passed: bool
    progress: ProgressOut
    degraded: list[str]


class GradeIn(BaseModel):
    student_id: UUID
    score: float
    feedback: str | None = None


class GradeOut(BaseModel):
    progress: ProgressOut
    course_completed: bool
    degraded: list[str]


@router.post(
    "/v1/courses/{course_id}/assessments/{assessment_id}/submit",
    response_model=SubmissionOut,
)
async def submit_assessment(
    course_id: UUID,
    assessment_id: UUID,
    body: SubmissionIn,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> SubmissionOut:
    result = await grading_service.submit(
        subject_id(principal), course_id, assessment_id, body.answers
    )
    return SubmissionOut(
        score=result.score,
        total_points=result.total_points,
        percentage=result.percentage,
        passed=result.passed,
        progress=ProgressOut.from_model(result.progress),
        degraded=list(result.degraded),
    )


@router.post("/v1/assessments/{assessment_id}/grade", response_model=GradeOut)
async def grade_assessment(
    assessment_id: UUID,
    body: GradeIn,
    principal: Annotated[Principal, Depends(require_role("instructor"))],
) -> GradeOut:
    result = await grading_service.grade(
        subject_id(principal),
        assessment_id,
        body.student_id,
        body.score,
        body.feedback,
    )
    return GradeOut(
        progress=ProgressOut.from_model(result.progress),
        course_completed=result.course_completed,
        degraded=list(result.degraded),
    )
