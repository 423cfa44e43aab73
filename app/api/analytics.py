from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.dependencies import require_role
from app.models.principal import Principal
from app.services.analytics_service import analytics_service

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


class CourseDropOutsOut(BaseModel):
    course_id: UUID
    course_title: str | None
    count: int


class DropOutReportOut(BaseModel):
    drop_out_rate: float
    total_enrollments: int
    breakdown: list[CourseDropOutsOut]


@router.get("/drop-outs", response_model=DropOutReportOut)
async def drop_outs(
    _principal: Annotated[Principal, Depends(require_role("admin"))],
    inactive_days: Annotated[int | None, Query(gt=0)] = None,
) -> DropOutReportOut:
    report = await analytics_service.drop_out_report(inactive_days)
    return DropOutReportOut(
        drop_out_rate=round(report.drop_out_rate, 2),
        total_enrollments=report.total_enrollments,
        breakdown=[
            CourseDropOutsOut(
                course_id=b.course_id, course_title=b.course_title, count=b.count
            )
            for b in report.breakdown
        ],
    )
