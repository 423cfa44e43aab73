from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

EnrollmentStatus = Literal["pending", "active", "completed", "cancelled"]


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One (student, course) pair.  Unique per pair; never deleted here.

    ``progress`` mirrors Progress.overall_progress so the certificate and
    analytics readers never need to join against the progress store.
    """

    id: UUID
    student_id: UUID
    course_id: UUID
    payment_id: UUID | None
    enrolled_at: datetime
    status: EnrollmentStatus = "active"
    progress: int = 0
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None

    @staticmethod
    def new(
        *,
        student_id: UUID,
        course_id: UUID,
        payment_id: UUID | None,
        enrolled_at: datetime,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            payment_id=payment_id,
            enrolled_at=enrolled_at,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"
