from __future__ import annotations

import asyncio
import dataclasses
import datetime
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from app.core.errors import NotFoundError
from app.models.badge import Badge
from app.models.user import AssessmentResult, StudentProfile
from app.services.badge_service import badge_service, qualifies
from app.services.grading_service import grading_service
from tests.conftest import add_user, store

NOW = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)


def _add_badge(**kwargs) -> Badge:
    badge = Badge.new(name=kwargs.pop("name", f"badge-{uuid4().hex[:6]}"), **kwargs)
    asyncio.run(store.badges.add(badge))
    return badge


def _complete_courses(student, n: int) -> list:
    course_ids = [uuid4() for _ in range(n)]
    for course_id in course_ids:
        asyncio.run(store.users.add_completed_course(student.id, course_id))
    return course_ids


def _check(student) -> tuple:
    return asyncio.run(badge_service.check_and_assign_badges(student.id))


def _held(student) -> tuple:
    return asyncio.run(store.users.get(student.id)).student.badges


def _result(score: float, total: int = 10, passed: bool = True, course_id=None):
    return AssessmentResult(
        course_id=course_id or uuid4(),
        assessment_id=uuid4(),
        score=score,
        total_points=total,
        passed=passed,
        taken_at=NOW,
    )


# ---- course_completion ----


def test_completion_count_badge_waits_for_threshold() -> None:
    student = add_user("student")
    badge = _add_badge(criteria="course_completion", threshold=3)

    _complete_courses(student, 2)
    assert _check(student) == ()

    _complete_courses(student, 1)
    assert _check(student) == (badge.id,)
    assert _check(student) == ()
    assert _check(student) == ()
    assert _held(student) == (badge.id,)


def test_course_scoped_badge_needs_that_course() -> None:
    student = add_user("student")
    target = uuid4()
    badge = _add_badge(criteria="course_completion", course_id=target)

    _complete_courses(student, 5)
    assert _check(student) == ()

    asyncio.run(store.users.add_completed_course(student.id, target))
    assert _check(student) == (badge.id,)


def test_unscoped_completion_badge_without_threshold_never_qualifies() -> None:
    student = add_user("student")
    _add_badge(criteria="course_completion")
    _complete_courses(student, 10)
    assert _check(student) == ()


# ---- assessment_score ----


def test_assessment_score_counts_passed_results() -> None:
    badge = Badge.new(name="Scholar", criteria="assessment_score", threshold=2)
    one_pass = StudentProfile(assessment_results=(_result(9), _result(2, passed=False)))
    two_passes = StudentProfile(assessment_results=(_result(9), _result(7)))
    assert qualifies(badge, one_pass) is False
    assert qualifies(badge, two_passes) is True


def test_assessment_score_respects_min_score() -> None:
    badge = Badge.new(name="Ace", criteria="assessment_score", threshold=1, min_score=90)
    assert qualifies(badge, StudentProfile(assessment_results=(_result(8),))) is False
    assert qualifies(badge, StudentProfile(assessment_results=(_result(9),))) is True


def test_assessment_score_min_score_zero_means_no_minimum() -> None:
    badge = Badge.new(name="Any", criteria="assessment_score", threshold=1, min_score=0)
    assert qualifies(badge, StudentProfile(assessment_results=(_result(1),))) is True


def test_assessment_score_skips_zero_point_results() -> None:
    badge = Badge.new(name="Empty", criteria="assessment_score", threshold=1)
    profile = StudentProfile(assessment_results=(_result(0, total=0),))
    assert qualifies(badge, profile) is False


def test_assessment_score_course_scope() -> None:
    course_id = uuid4()
    badge = Badge.new(
        name="Local", criteria="assessment_score", threshold=1, course_id=course_id
    )
    assert qualifies(badge, StudentProfile(assessment_results=(_result(9),))) is False
    profile = StudentProfile(assessment_results=(_result(9, course_id=course_id),))
    assert qualifies(badge, profile) is True


@pytest.mark.parametrize("criteria", ["streak", "community", "custom"])
def test_other_criteria_never_qualify(criteria: str) -> None:
    badge = Badge.new(name=criteria, criteria=criteria, threshold=0)  # type: ignore[arg-type]
    profile = StudentProfile(
        completed_courses=(uuid4(),), assessment_results=(_result(10),)
    )
    assert qualifies(badge, profile) is False


# ---- evaluator ----


def test_inactive_badges_are_not_granted() -> None:
    student = add_user("student")
    _add_badge(criteria="course_completion", threshold=1, is_active=False)
    _complete_courses(student, 1)
    assert _check(student) == ()


def test_several_badges_granted_in_one_pass() -> None:
    student = add_user("student")
    first = _add_badge(criteria="course_completion", threshold=1)
    second = _add_badge(criteria="course_completion", threshold=2)
    _complete_courses(student, 2)

    granted = _check(student)
    assert set(granted) == {first.id, second.id}
    assert set(_held(student)) == {first.id, second.id}


def test_badges_granted_counter_counts_new_grants_only() -> None:
    student = add_user("student")
    _add_badge(criteria="course_completion", threshold=1)
    _complete_courses(student, 1)

    before = REGISTRY.get_sample_value("badges_granted_total") or 0.0
    _check(student)
    _check(student)
    after = REGISTRY.get_sample_value("badges_granted_total") or 0.0
    assert after - before == 1


def test_check_for_unknown_or_non_student_grants_nothing() -> None:
    instructor = add_user("instructor")
    _add_badge(criteria="course_completion", threshold=0)
    assert asyncio.run(badge_service.check_and_assign_badges(uuid4())) == ()
    assert _check(instructor) == ()


def test_student_role_without_profile_is_skipped_not_crashed() -> None:
    hollow = dataclasses.replace(
        add_user("student"), id=uuid4(), email="hollow@example.com", student=None
    )
    asyncio.run(store.users.add(hollow))
    _add_badge(criteria="course_completion", threshold=0)

    assert _check(hollow) == ()
    with pytest.raises(NotFoundError, match="Student not found"):
        asyncio.run(badge_service.list_badges(hollow.id))


def test_list_badges_returns_held_badges() -> None:
    student = add_user("student")
    badge = _add_badge(name="Starter", criteria="course_completion", threshold=1)
    _complete_courses(student, 1)
    _check(student)

    badges = asyncio.run(badge_service.list_badges(student.id))
    assert [b.name for b in badges] == ["Starter"]
    assert badges[0].id == badge.id


def test_list_badges_unknown_student() -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(badge_service.list_badges(uuid4()))


def test_badge_names_are_unique() -> None:
    _add_badge(name="Dup", criteria="custom")
    with pytest.raises(ValueError):
        _add_badge(name="Dup", criteria="custom")


# ---- post-commit hook failure ----


def test_failed_badge_evaluation_degrades_but_keeps_submission(
    classroom, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken(student_id):
        raise RuntimeError("badge store unavailable")

    monkeypatch.setattr(badge_service, "check_and_assign_badges", broken)
    before = (
        REGISTRY.get_sample_value(
            "post_commit_failures_total", {"hook": "badge_evaluation"}
        )
        or 0.0
    )

    result = asyncio.run(
        grading_service.submit(
            classroom.student.id, classroom.course.id, classroom.quiz.id, {}
        )
    )

    assert result.degraded == ("badge_evaluation",)
    progress = asyncio.run(store.progress.get(classroom.student.id, classroom.course.id))
    assert progress.find_assessment(classroom.quiz.id) is not None
    after = REGISTRY.get_sample_value(
        "post_commit_failures_total", {"hook": "badge_evaluation"}
    )
    assert after - before == 1
