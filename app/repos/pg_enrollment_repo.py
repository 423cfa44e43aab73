"""PostgreSQL implementation of EnrollmentRepo.

The unique constraints on (student_id, course_id) and payment_id are the
last line against racing enrollments.  ``add`` inserts inside a SAVEPOINT
so a violation can be inspected and turned into ConflictError while the
outer transaction stays usable long enough to roll back cleanly.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError
from app.db.tables import EnrollmentRow
from app.models.enrollment import Enrollment


class PgEnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        row = await self._session.get(EnrollmentRow, enrollment_id)
        return _row_to_enrollment(row) if row is not None else None

    async def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.student_id == student_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row is not None else None

    async def get_by_payment(self, payment_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(EnrollmentRow.payment_id == payment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row is not None else None

    async def add(self, enrollment: Enrollment) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    EnrollmentRow(
                        id=enrollment.id,
                        student_id=enrollment.student_id,
                        course_id=enrollment.course_id,
                        payment_id=enrollment.payment_id,
                        enrolled_at=enrollment.enrolled_at,
                        status=enrollment.status,
                        progress=enrollment.progress,
                        completed_at=enrollment.completed_at,
                        last_accessed_at=enrollment.last_accessed_at,
                    )
                )
        except IntegrityError as exc:
            if await self.get_for(enrollment.student_id, enrollment.course_id):
                raise ConflictError("Already enrolled in this course") from exc
            raise ConflictError("Payment already used for an enrollment") from exc

    async def list_by_student(self, student_id: UUID) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.student_id == student_id)
            .order_by(EnrollmentRow.enrolled_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def count(self) -> int:
        return await self._session.scalar(select(func.count()).select_from(EnrollmentRow)) or 0

    async def update_progress(
        self, student_id: UUID, course_id: UUID, progress: int, at: datetime
    ) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.student_id == student_id,
                EnrollmentRow.course_id == course_id,
            )
            .values(progress=progress, last_accessed_at=at)
        )
        await self._session.execute(stmt)

    async def mark_completed(
        self, student_id: UUID, course_id: UUID, completed_at: datetime
    ) -> bool:
        """Conditional UPDATE: only the call that flips the status sees a row."""
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.student_id == student_id,
                EnrollmentRow.course_id == course_id,
                EnrollmentRow.status != "completed",
            )
            .values(status="completed", completed_at=completed_at)
            .returning(EnrollmentRow.id)
        )
        return (await self._session.execute(stmt)).first() is not None


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        student_id=row.student_id,
        course_id=row.course_id,
        payment_id=row.payment_id,
        enrolled_at=row.enrolled_at,
        status=row.status,  # type: ignore[arg-type]
        progress=row.progress,
        completed_at=row.completed_at,
        last_accessed_at=row.last_accessed_at,
    )
