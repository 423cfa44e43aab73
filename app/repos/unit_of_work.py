"""Transaction boundary for multi-repo writes.

    async with unit_of_work.transaction() as repos:
        await repos.enrollments.add(...)
        await repos.progress.add(...)

Everything written through ``repos`` inside the block commits together or
not at all.  Enrollment is the one operation that strictly needs this
(four writes, all-or-nothing); the progress and grading paths use it too so
that an entry write and its recomputed percentage land as a unit.

InMemoryUnitOfWork snapshots every repo on entry and restores the snapshot
if the block raises.  The in-memory repos never suspend inside a method,
so on a single event loop no other transaction can observe the partial
state between the first write and the restore.

PgUnitOfWork opens one AsyncSession per transaction and wraps the block in
``session.begin()``: commit on clean exit, rollback on exception.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.engine import async_session_factory
from app.repos.assessment_repo import AssessmentRepo, InMemoryAssessmentRepo
from app.repos.badge_repo import BadgeRepo, InMemoryBadgeRepo
from app.repos.course_repo import CourseRepo, InMemoryCourseRepo
from app.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from app.repos.payment_repo import InMemoryPaymentRepo, PaymentRepo
from app.repos.pg_assessment_repo import PgAssessmentRepo
from app.repos.pg_badge_repo import PgBadgeRepo
from app.repos.pg_course_repo import PgCourseRepo
from app.repos.pg_enrollment_repo import PgEnrollmentRepo
from app.repos.pg_payment_repo import PgPaymentRepo
from app.repos.pg_progress_repo import PgProgressRepo
from app.repos.pg_user_repo import PgUserRepo
from app.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from app.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Repos:
    courses: CourseRepo
    enrollments: EnrollmentRepo
    progress: ProgressRepo
    users: UserRepo
    badges: BadgeRepo
    assessments: AssessmentRepo
    payments: PaymentRepo


class UnitOfWork(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[Repos]: ...


class InMemoryUnitOfWork:
    def __init__(self) -> None:
        self.courses = InMemoryCourseRepo()
        self.enrollments = InMemoryEnrollmentRepo()
        self.progress = InMemoryProgressRepo()
        self.users = InMemoryUserRepo()
        self.badges = InMemoryBadgeRepo()
        self.assessments = InMemoryAssessmentRepo()
        self.payments = InMemoryPaymentRepo()
        self._repos = Repos(
            courses=self.courses,
            enrollments=self.enrollments,
            progress=self.progress,
            users=self.users,
            badges=self.badges,
            assessments=self.assessments,
            payments=self.payments,
        )

    def _all(self) -> tuple:
        return (
            self.courses,
            self.enrollments,
            self.progress,
            self.users,
            self.badges,
            self.assessments,
            self.payments,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Repos]:
        snapshots = [repo.snapshot() for repo in self._all()]
        try:
            yield self._repos
        except BaseException:
            for repo, state in zip(self._all(), snapshots, strict=True):
                repo.restore(state)
            logger.debug("In-memory transaction rolled back")
            raise

    def clear(self) -> None:
        for repo in self._all():
            repo.clear()


class PgUnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Repos]:
        async with self._session_factory() as session:
            async with session.begin():
                yield Repos(
                    courses=PgCourseRepo(session),
                    enrollments=PgEnrollmentRepo(session),
                    progress=PgProgressRepo(session),
                    users=PgUserRepo(session),
                    badges=PgBadgeRepo(session),
                    assessments=PgAssessmentRepo(session),
                    payments=PgPaymentRepo(session),
                )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    unit_of_work: UnitOfWork = PgUnitOfWork(async_session_factory)
else:
    unit_of_work = InMemoryUnitOfWork()
