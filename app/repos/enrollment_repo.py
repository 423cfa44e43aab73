from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from app.core.errors import ConflictError
from app.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def get_by_payment(self, payment_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def list_by_student(self, student_id: UUID) -> list[Enrollment]: ...
    async def count(self) -> int: ...
    async def update_progress(
        self, student_id: UUID, course_id: UUID, progress: int, at: datetime
    ) -> None: ...
    async def mark_completed(
        self, student_id: UUID, course_id: UUID, completed_at: datetime
    ) -> bool: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}
        self._lock = threading.Lock()

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        enrollment_id = self._by_pair.get((student_id, course_id))
        return self._by_id.get(enrollment_id) if enrollment_id else None

    async def get_by_payment(self, payment_id: UUID) -> Enrollment | None:
        for enrollment in self._by_id.values():
            if enrollment.payment_id == payment_id:
                return enrollment
        return None

    async def add(self, enrollment: Enrollment) -> None:
        # Mirrors the unique (student, course) and unique payment constraints.
        with self._lock:
            key = (enrollment.student_id, enrollment.course_id)
            if key in self._by_pair:
                raise ConflictError("Already enrolled in this course")
            if enrollment.payment_id is not None and any(
                e.payment_id == enrollment.payment_id for e in self._by_id.values()
            ):
                raise ConflictError("Payment already used for an enrollment")
            self._by_id[enrollment.id] = enrollment
            self._by_pair[key] = enrollment.id

    async def list_by_student(self, student_id: UUID) -> list[Enrollment]:
        enrollments = [e for e in self._by_id.values() if e.student_id == student_id]
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    async def count(self) -> int:
        return len(self._by_id)

    async def update_progress(
        self, student_id: UUID, course_id: UUID, progress: int, at: datetime
    ) -> None:
        with self._lock:
            enrollment_id = self._by_pair.get((student_id, course_id))
            if enrollment_id is None:
                return
            current = self._by_id[enrollment_id]
            self._by_id[enrollment_id] = replace(
                current, progress=progress, last_accessed_at=at
            )

    async def mark_completed(
        self, student_id: UUID, course_id: UUID, completed_at: datetime
    ) -> bool:
        """Flip status to completed.  False when already completed or missing."""
        with self._lock:
            enrollment_id = self._by_pair.get((student_id, course_id))
            if enrollment_id is None:
                return False
            current = self._by_id[enrollment_id]
            if current.status == "completed":
                return False
            self._by_id[enrollment_id] = replace(
                current, status="completed", completed_at=completed_at
            )
            return True

    def snapshot(self) -> tuple[dict[UUID, Enrollment], dict[tuple[UUID, UUID], UUID]]:
        return dict(self._by_id), dict(self._by_pair)

    def restore(
        self, state: tuple[dict[UUID, Enrollment], dict[tuple[UUID, UUID], UUID]]
    ) -> None:
        by_id, by_pair = state
        self._by_id = dict(by_id)
        self._by_pair = dict(by_pair)

    def clear(self) -> None:
        self._by_id.clear()
        self._by_pair.clear()
