from __future__ import annotations

import asyncio
import datetime
from dataclasses import replace
from uuid import uuid4

import pytest

from app.core.errors import ConflictError, NotFoundError
from app.models.enrollment import Enrollment
from app.models.progress import AssessmentEntry, Progress
from app.models.user import User
from app.repos.enrollment_repo import InMemoryEnrollmentRepo
from app.repos.progress_repo import InMemoryProgressRepo
from app.repos.unit_of_work import InMemoryUnitOfWork
from app.repos.user_repo import InMemoryUserRepo

T0 = datetime.datetime(2026, 2, 1, tzinfo=datetime.UTC)


def _enrollment(student_id=None, course_id=None, payment_id=None) -> Enrollment:
    return Enrollment.new(
        student_id=student_id or uuid4(),
        course_id=course_id or uuid4(),
        payment_id=payment_id or uuid4(),
        enrolled_at=T0,
    )


# ---- unit of work ----


def test_transaction_rolls_back_every_repo_on_error() -> None:
    uow = InMemoryUnitOfWork()
    kept = _enrollment()
    asyncio.run(uow.enrollments.add(kept))

    async def failing():
        async with uow.transaction() as repos:
            await repos.enrollments.add(_enrollment())
            await repos.users.add(User.new(email="gone@example.com", role="student"))
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(failing())

    assert asyncio.run(uow.enrollments.count()) == 1
    assert asyncio.run(uow.enrollments.get(kept.id)) == kept
    # The email is free again after the rollback.
    asyncio.run(uow.users.add(User.new(email="gone@example.com", role="student")))


def test_transaction_commits_on_clean_exit() -> None:
    uow = InMemoryUnitOfWork()

    async def ok():
        async with uow.transaction() as repos:
            await repos.enrollments.add(_enrollment())

    asyncio.run(ok())
    assert asyncio.run(uow.enrollments.count()) == 1


# ---- enrollments ----


def test_enrollment_pair_is_unique() -> None:
    repo = InMemoryEnrollmentRepo()
    first = _enrollment()
    asyncio.run(repo.add(first))
    with pytest.raises(ConflictError, match="Already enrolled"):
        asyncio.run(repo.add(_enrollment(first.student_id, first.course_id)))


def test_enrollment_payment_is_unique() -> None:
    repo = InMemoryEnrollmentRepo()
    first = _enrollment()
    asyncio.run(repo.add(first))
    with pytest.raises(ConflictError, match="Payment already used"):
        asyncio.run(repo.add(_enrollment(payment_id=first.payment_id)))


def test_mark_completed_succeeds_once() -> None:
    repo = InMemoryEnrollmentRepo()
    e = _enrollment()
    asyncio.run(repo.add(e))

    assert asyncio.run(repo.mark_completed(e.student_id, e.course_id, T0)) is True
    assert asyncio.run(repo.mark_completed(e.student_id, e.course_id, T0)) is False
    assert asyncio.run(repo.mark_completed(uuid4(), e.course_id, T0)) is False
    stored = asyncio.run(repo.get(e.id))
    assert stored.status == "completed"
    assert stored.completed_at == T0


# ---- progress ----


def _progress_repo() -> tuple[InMemoryProgressRepo, Progress]:
    repo = InMemoryProgressRepo()
    progress = Progress.new(
        student_id=uuid4(), course_id=uuid4(), enrollment_id=uuid4()
    )
    asyncio.run(repo.add(progress))
    return repo, progress


def test_progress_pair_is_unique() -> None:
    repo, progress = _progress_repo()
    with pytest.raises(ConflictError):
        asyncio.run(repo.add(progress))


def test_writes_to_missing_record_return_none() -> None:
    repo = InMemoryProgressRepo()
    touched = repo.touch_lecture(uuid4(), uuid4(), uuid4(), uuid4(), 5, T0)
    assert asyncio.run(touched) is None
    assert asyncio.run(repo.set_overall_progress(uuid4(), uuid4(), 10)) is None


def test_complete_then_touch_keeps_completion() -> None:
    repo, p = _progress_repo()
    section, lecture = uuid4(), uuid4()
    asyncio.run(repo.complete_lecture(p.student_id, p.course_id, section, lecture, T0))
    updated = asyncio.run(
        repo.touch_lecture(p.student_id, p.course_id, section, lecture, 40, T0)
    )
    entry = updated.find_lecture(section, lecture)
    assert entry.completed is True
    assert entry.time_spent == 40


def test_grade_entry_transitions() -> None:
    repo, p = _progress_repo()
    assessment_id = uuid4()

    def grade():
        return asyncio.run(
            repo.grade_assessment_entry(
                p.student_id,
                p.course_id,
                assessment_id,
                score=3,
                feedback=None,
                graded_by=uuid4(),
                at=T0,
            )
        )

    with pytest.raises(NotFoundError):
        grade()
    asyncio.run(
        repo.add_assessment_entry(
            p.student_id,
            p.course_id,
            AssessmentEntry(
                assessment_id=assessment_id, status="submitted", total_points=5
            ),
        )
    )
    assert grade().find_assessment(assessment_id).status == "graded"
    with pytest.raises(ConflictError):
        grade()


def test_latest_graded_prefers_later_entry_on_ties() -> None:
    first, second = (
        AssessmentEntry(assessment_id=uuid4(), status="graded", score=s, grading_date=T0)
        for s in (1, 2)
    )
    p = replace(
        Progress.new(student_id=uuid4(), course_id=uuid4(), enrollment_id=uuid4()),
        assessment_progress=(first, second),
    )
    assert p.latest_graded == second


# ---- users ----


def test_user_email_is_normalized_and_unique() -> None:
    repo = InMemoryUserRepo()
    user = User.new(email="  Ada@Example.COM ", role="student")
    assert user.email == "ada@example.com"
    asyncio.run(repo.add(user))
    with pytest.raises(ValueError):
        asyncio.run(repo.add(User.new(email="ada@example.com", role="admin")))


def test_role_payload_matches_tag() -> None:
    student = User.new(email="s@example.com", role="student")
    admin = User.new(email="a@example.com", role="admin")
    assert student.is_student and student.instructor is None
    assert not admin.is_student and admin.admin is not None


def test_completed_courses_are_duplicate_guarded() -> None:
    repo = InMemoryUserRepo()
    user = User.new(email="s@example.com", role="student")
    asyncio.run(repo.add(user))
    course_id = uuid4()
    assert asyncio.run(repo.add_completed_course(user.id, course_id)) is True
    assert asyncio.run(repo.add_completed_course(user.id, course_id)) is False
    assert asyncio.run(repo.get(user.id)).student.completed_courses == (course_id,)


def test_add_badges_returns_only_new_ids_in_order() -> None:
    repo = InMemoryUserRepo()
    user = User.new(email="s@example.com", role="student")
    asyncio.run(repo.add(user))
    a, b, c = uuid4(), uuid4(), uuid4()

    assert asyncio.run(repo.add_badges(user.id, (a, b))) == (a, b)
    assert asyncio.run(repo.add_badges(user.id, (b, c, c))) == (c,)
    assert asyncio.run(repo.get(user.id)).student.badges == (a, b, c)


def test_student_writes_reject_non_students() -> None:
    repo = InMemoryUserRepo()
    admin = User.new(email="a@example.com", role="admin")
    asyncio.run(repo.add(admin))
    with pytest.raises(NotFoundError):
        asyncio.run(repo.add_badges(admin.id, (uuid4(),)))
