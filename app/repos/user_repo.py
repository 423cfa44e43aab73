from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.core.errors import NotFoundError
from app.models.user import AssessmentResult, EnrolledCourse, StudentProfile, User


class UserRepo(Protocol):
    async def get(self, user_id: UUID) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def append_enrolled_course(
        self, student_id: UUID, enrolled: EnrolledCourse
    ) -> None: ...
    async def add_completed_course(self, student_id: UUID, course_id: UUID) -> bool: ...
    async def append_assessment_result(
        self, student_id: UUID, result: AssessmentResult
    ) -> None: ...
    async def add_badges(
        self, student_id: UUID, badge_ids: tuple[UUID, ...]
    ) -> tuple[UUID, ...]: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}
        self._emails: set[str] = set()
        self._lock = threading.Lock()

    async def get(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        with self._lock:
            if user.email in self._emails:
                raise ValueError("email already exists")
            self._by_id[user.id] = user
            self._emails.add(user.email)

    def _update_student(self, student_id: UUID, profile: StudentProfile) -> None:
        self._by_id[student_id] = replace(self._by_id[student_id], student=profile)

    def _require_student(self, student_id: UUID) -> StudentProfile:
        user = self._by_id.get(student_id)
        if user is None or not user.is_student:
            raise NotFoundError("Student not found")
        return user.student  # type: ignore[return-value]

    async def append_enrolled_course(
        self, student_id: UUID, enrolled: EnrolledCourse
    ) -> None:
        with self._lock:
            profile = self._require_student(student_id)
            self._update_student(
                student_id,
                replace(profile, enrolled_courses=(*profile.enrolled_courses, enrolled)),
            )

    async def add_completed_course(self, student_id: UUID, course_id: UUID) -> bool:
        """Append course_id once.  Returns False when it was already there."""
        with self._lock:
            profile = self._require_student(student_id)
            if course_id in profile.completed_courses:
                return False
            self._update_student(
                student_id,
                replace(
                    profile, completed_courses=(*profile.completed_courses, course_id)
                ),
            )
            return True

    async def append_assessment_result(
        self, student_id: UUID, result: AssessmentResult
    ) -> None:
        with self._lock:
            profile = self._require_student(student_id)
            self._update_student(
                student_id,
                replace(
                    profile, assessment_results=(*profile.assessment_results, result)
                ),
            )

    async def add_badges(
        self, student_id: UUID, badge_ids: tuple[UUID, ...]
    ) -> tuple[UUID, ...]:
        """Set-insert badge ids.  Returns only the ids that were not already held."""
        with self._lock:
            profile = self._require_student(student_id)
            held = set(profile.badges)
            added: list[UUID] = []
            for badge_id in badge_ids:
                if badge_id not in held:
                    held.add(badge_id)
                    added.append(badge_id)
            if added:
                self._update_student(
                    student_id, replace(profile, badges=(*profile.badges, *added))
                )
            return tuple(added)

    def snapshot(self) -> tuple[dict[UUID, User], set[str]]:
        return dict(self._by_id), set(self._emails)

    def restore(self, state: tuple[dict[UUID, User], set[str]]) -> None:
        by_id, emails = state
        self._by_id = dict(by_id)
        self._emails = set(emails)

    def clear(self) -> None:
        self._by_id.clear()
        self._emails.clear()
