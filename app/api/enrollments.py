"""Enrollment endpoints.

  POST /v1/enrollments                                  student
  GET  /v1/enrollments                                  student (own)
  GET  /v1/enrollments/{id}/certificate-eligibility     instructor|admin
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from app.api.dependencies import require_role, subject_id
from app.models.enrollment import Enrollment
from app.models.principal import Principal
from app.services.enrollment_service import enrollment_service

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class EnrollIn(BaseModel):
    course_id: UUID
    payment_id: UUID


class EnrollmentOut(BaseModel):
    id: UUID
    student_id: UUID
    course_id: UUID
    payment_id: UUID | None
    enrolled_at: datetime.datetime
    status: str
    progress: int
    completed_at: datetime.datetime | None
    last_accessed_at: datetime.datetime | None

    @staticmethod
    def from_model(e: Enrollment) -> EnrollmentOut:
        return EnrollmentOut(
            id=e.id,
            student_id=e.student_id,
            course_id=e.course_id,
            payment_id=e.payment_id,
            enrolled_at=e.enrolled_at,
            status=e.status,
            progress=e.progress,
            completed_at=e.completed_at,
            last_accessed_at=e.last_accessed_at,
        )


class EnrollmentCreatedOut(BaseModel):
    enrollment: EnrollmentOut
    progress_id: UUID
    degraded: list[str]


@router.post(
    "",
    response_model=EnrollmentCreatedOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    body: EnrollIn,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> EnrollmentCreatedOut:
    result = await enrollment_service.enroll(
        subject_id(principal), body.course_id, body.payment_id
    )
    return EnrollmentCreatedOut(
        enrollment=EnrollmentOut.from_model(result.enrollment),
        progress_id=result.progress.id,
        degraded=list(result.degraded),
    )


@router.get("", response_model=list[EnrollmentOut])
async def list_my_enrollments(
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> list[EnrollmentOut]:
    enrollments = await enrollment_service.list_enrollments(subject_id(principal))
    return [EnrollmentOut.from_model(e) for e in enrollments]


@router.get(
    "/{enrollment_id}/certificate-eligibility",
    response_model=EnrollmentOut,
)
async def certificate_eligibility(
    enrollment_id: UUID,
    student_id: Annotated[UUID, Query()],
    course_id: Annotated[UUID, Query()],
    _principal: Annotated[
        Principal, Depends(require_role("instructor", "admin"))
    ],
) -> EnrollmentOut:
    enrollment = await enrollment_service.certificate_eligibility(
        student_id, course_id, enrollment_id
    )
    return EnrollmentOut.from_model(enrollment)
