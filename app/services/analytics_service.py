"""Admin drop-out report.

A drop-out is an unfinished progress record (overall < 100) whose last
activity is older than the inactivity window.  Records that were never
touched at all have no last activity and are not counted: a student who
enrolled yesterday and has not started yet is not a drop-out.
"""

from __future__ import annotations

import datetime
from collections import Counter
from dataclasses import dataclass
from uuid import UUID

from app.core.config import SETTINGS
from app.core.errors import InvalidInputError
from app.repos.unit_of_work import UnitOfWork, unit_of_work


@dataclass(frozen=True, slots=True)
class CourseDropOuts:
    course_id: UUID
    course_title: str | None
    count: int


@dataclass(frozen=True, slots=True)
class DropOutReport:
    drop_out_rate: float
    total_enrollments: int
    breakdown: tuple[CourseDropOuts, ...]


class AnalyticsService:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    async def drop_out_report(
        self,
        inactive_days: int | None = None,
        *,
        now: datetime.datetime | None = None,
    ) -> DropOutReport:
        days = SETTINGS.drop_out_inactive_days if inactive_days is None else inactive_days
        if days <= 0:
            raise InvalidInputError("inactive_days must be positive")
        cutoff = (now or datetime.datetime.now(datetime.UTC)) - datetime.timedelta(
            days=days
        )

        async with self._uow.transaction() as repos:
            inactive = await repos.progress.list_inactive(cutoff)
            total = await repos.enrollments.count()
            per_course = Counter(p.course_id for p in inactive)
            breakdown = []
            for course_id, count in per_course.most_common():
                course = await repos.courses.get(course_id)
                breakdown.append(
                    CourseDropOuts(
                        course_id=course_id,
                        course_title=course.title if course is not None else None,
                        count=count,
                    )
                )

        rate = len(inactive) / total * 100 if total else 0.0
        return DropOutReport(
            drop_out_rate=rate,
            total_enrollments=total,
            breakdown=tuple(breakdown),
        )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

analytics_service = AnalyticsService(unit_of_work)
