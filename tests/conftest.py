from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Tests always run against the in-memory stores.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.models.assessment import Assessment, Option, Question  # noqa: E402
from app.models.course import Course, Lecture, Section  # noqa: E402
from app.models.payment import Payment  # noqa: E402
from app.models.user import User  # noqa: E402
from app.repos.unit_of_work import InMemoryUnitOfWork, unit_of_work  # noqa: E402
from app.services import token_service  # noqa: E402
from app.services.enrollment_service import enrollment_service  # noqa: E402
from app.services.task_queue import InMemoryTaskQueue, task_queue  # noqa: E402

assert isinstance(unit_of_work, InMemoryUnitOfWork)
assert isinstance(task_queue, InMemoryTaskQueue)
store: InMemoryUnitOfWork = unit_of_work
queue: InMemoryTaskQueue = task_queue


@pytest.fixture(autouse=True)
def reset_stores() -> None:
    """Every test starts from empty repos and an empty task queue."""
    store.clear()
    queue.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(sub: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=sub, roles=roles)


def auth(user: User | str, role: str | None = None) -> dict[str, str]:
    """Authorization header for a seeded user (role defaults to the user's)."""
    if isinstance(user, User):
        token = mint_token(str(user.id), [role or user.role])
    else:
        token = mint_token(user, [role or "student"])
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


def add_user(role: str = "student", email: str | None = None) -> User:
    email = email or f"{role}-{uuid4().hex[:8]}@example.com"
    user = User.new(email=email, role=role)  # type: ignore[arg-type]
    asyncio.run(store.users.add(user))
    return user


def add_course(
    title: str = "Intro to Testing",
    *,
    lectures_per_section: tuple[int, ...] = (2, 2),
    instructor: User | None = None,
) -> Course:
    sections = tuple(
        Section.new(
            title=f"Section {i + 1}",
            lectures=tuple(
                Lecture.new(title=f"Lecture {i + 1}.{j + 1}", duration_min=10)
                for j in range(count)
            ),
        )
        for i, count in enumerate(lectures_per_section)
    )
    course = Course.new(
        title=title,
        instructor_id=instructor.id if instructor else None,
        curriculum=sections,
    )
    asyncio.run(store.courses.add(course))
    return course


def add_quiz(
    course: Course,
    instructor: User,
    *,
    points: tuple[int, ...] = (5, 5),
    pass_percentage: float | None = None,
) -> Assessment:
    """Multiple-choice quiz; option "A" is the correct one for every question."""
    questions = tuple(
        Question.new(
            text=f"Question {i + 1}",
            type="multiple_choice",
            options=(
                Option.new(text="A", is_correct=True),
                Option.new(text="B"),
            ),
            points=p,
        )
        for i, p in enumerate(points)
    )
    assessment = Assessment.new(
        course_id=course.id,
        instructor_id=instructor.id,
        title="Quiz",
        questions=questions,
        pass_percentage=pass_percentage,
    )
    asyncio.run(store.assessments.add(assessment))
    return assessment


def add_payment(student: User, course: Course, status: str = "completed") -> Payment:
    payment = Payment.new(
        student_id=student.id,
        course_id=course.id,
        amount=49.0,
        status=status,  # type: ignore[arg-type]
    )
    asyncio.run(store.payments.add(payment))
    return payment


def correct_answers(assessment: Assessment) -> dict[str, str]:
    return {
        str(q.id): str(q.correct_option.id)  # type: ignore[union-attr]
        for q in assessment.questions
    }


def enroll(student: User, course: Course):
    payment = add_payment(student, course)
    return asyncio.run(enrollment_service.enroll(student.id, course.id, payment.id))


@dataclass
class Classroom:
    """One instructor, one student enrolled in a 4-lecture course with a quiz."""

    instructor: User
    student: User
    course: Course
    quiz: Assessment

    @property
    def lectures(self) -> list[tuple[Section, Lecture]]:
        return [(s, lec) for s in self.course.curriculum for lec in s.lectures]


@pytest.fixture
def classroom() -> Classroom:
    instructor = add_user("instructor")
    student = add_user("student")
    course = add_course(instructor=instructor)
    quiz = add_quiz(course, instructor)
    enroll(student, course)
    queue.clear()
    return Classroom(instructor=instructor, student=student, course=course, quiz=quiz)
