from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

Role = Literal["admin", "instructor", "student"]


@dataclass(frozen=True, slots=True)
class EnrolledCourse:
    course_id: UUID
    enrolled_at: datetime


@dataclass(frozen=True, slots=True)
class AssessmentResult:
    """One submission in the student's global, append-only result history."""

    course_id: UUID
    assessment_id: UUID
    score: float
    total_points: int
    passed: bool
    taken_at: datetime

    @property
    def percentage(self) -> float:
        if not self.total_points:
            return 0.0
        return self.score / self.total_points * 100


@dataclass(frozen=True, slots=True)
class StudentProfile:
    enrolled_courses: tuple[EnrolledCourse, ...] = ()
    completed_courses: tuple[UUID, ...] = ()  # append-only, duplicate guarded
    assessment_results: tuple[AssessmentResult, ...] = ()
    badges: tuple[UUID, ...] = ()  # set semantics, grant order preserved


@dataclass(frozen=True, slots=True)
class InstructorProfile:
    bio: str = ""


@dataclass(frozen=True, slots=True)
class AdminProfile:
    permissions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class User:
    """Single user record tagged by ``role``.

    Exactly one role payload is set, matching the tag.  Code that needs
    student data branches on ``role`` (or calls ``is_student``) instead of
    checking the record's type.
    """

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool = True
    student: StudentProfile | None = None
    instructor: InstructorProfile | None = None
    admin: AdminProfile | None = None

    @staticmethod
    def new(
        *,
        email: str,
        role: Role,
        first_name: str = "",
        last_name: str = "",
    ) -> User:
        # Keep creation centralized so the payload always matches the tag.
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            role=role,
            student=StudentProfile() if role == "student" else None,
            instructor=InstructorProfile() if role == "instructor" else None,
            admin=AdminProfile() if role == "admin" else None,
        )

    @property
    def is_student(self) -> bool:
        return self.role == "student" and self.student is not None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
