"""Badge qualification evaluator.

Reads the student's completed courses and assessment history, checks every
active catalog badge the student does not hold yet, and grants all the new
ones in a single set-insert.  Grants are never revoked or re-evaluated, so
calling this any number of times after one qualifying event leaves the
same badge set as calling it once.

Supported criteria:
  course_completion  the scoped course is in completed_courses, or (unscoped)
                     the completed-course count >= threshold
  assessment_score   count of passed results (optionally >= min_score %,
                     optionally in the badge's course) >= threshold
  streak, community, custom  never qualify here
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.errors import NotFoundError
from app.core.metrics import BADGES_GRANTED
from app.models.badge import Badge
from app.models.user import StudentProfile
from app.repos.unit_of_work import UnitOfWork, unit_of_work

logger = logging.getLogger(__name__)


def _course_completion(badge: Badge, profile: StudentProfile) -> bool:
    if badge.course_id is not None:
        return badge.course_id in profile.completed_courses
    if badge.threshold is None:
        return False
    return len(profile.completed_courses) >= badge.threshold


def _assessment_score(badge: Badge, profile: StudentProfile) -> bool:
    if badge.threshold is None:
        return False
    passed = 0
    for result in profile.assessment_results:
        if not result.total_points:
            continue
        if not result.passed:
            continue
        # A min_score of 0 behaves like no minimum.
        if badge.min_score and result.percentage < badge.min_score:
            continue
        if badge.course_id is not None and result.course_id != badge.course_id:
            continue
        passed += 1
    return passed >= badge.threshold


_RULES = {
    "course_completion": _course_completion,
    "assessment_score": _assessment_score,
}


def qualifies(badge: Badge, profile: StudentProfile) -> bool:
    rule = _RULES.get(badge.criteria)
    if rule is None:
        return False
    return rule(badge, profile)


class BadgeService:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    async def check_and_assign_badges(self, student_id: UUID) -> tuple[UUID, ...]:
        """Grant every newly qualifying badge.  Returns the ids granted now."""
        async with self._uow.transaction() as repos:
            user = await repos.users.get(student_id)
            profile = user.student if user is not None and user.is_student else None
            if profile is None:
                logger.info("Badge check skipped: no student with id=%s", student_id)
                return ()

            held = set(profile.badges)
            earned = tuple(
                badge.id
                for badge in await repos.badges.list_active()
                if badge.id not in held and qualifies(badge, profile)
            )
            if not earned:
                return ()
            added = await repos.users.add_badges(student_id, earned)

        if added:
            BADGES_GRANTED.inc(len(added))
            logger.info(
                "Granted %d badge(s) to student=%s: %s",
                len(added),
                student_id,
                ", ".join(str(b) for b in added),
                extra={"student_id": str(student_id)},
            )
        return added

    async def list_badges(self, student_id: UUID) -> list[Badge]:
        async with self._uow.transaction() as repos:
            user = await repos.users.get(student_id)
            profile = user.student if user is not None and user.is_student else None
            if profile is None:
                raise NotFoundError("Student not found")
            return await repos.badges.get_many(profile.badges)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

badge_service = BadgeService(unit_of_work)
