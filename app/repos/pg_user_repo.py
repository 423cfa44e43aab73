"""PostgreSQL implementation of UserRepo.

One ``users`` row carries the role tag and the instructor/admin payload
columns.  The student payload lives in four child tables, loaded only
when the tag says student.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.tables import (
    StudentAssessmentResultRow,
    StudentBadgeRow,
    StudentCompletedCourseRow,
    StudentEnrolledCourseRow,
    UserRow,
)
from app.models.user import (
    AdminProfile,
    AssessmentResult,
    EnrolledCourse,
    InstructorProfile,
    StudentProfile,
    User,
)


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> User | None:
        row = await self._session.get(UserRow, user_id)
        if row is None:
            return None
        student = await self._load_student(row.id) if row.role == "student" else None
        return _row_to_user(row, student)

    async def add(self, user: User) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    UserRow(
                        id=user.id,
                        email=user.email,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        role=user.role,
                        is_active=user.is_active,
                        bio=user.instructor.bio if user.instructor else None,
                        permissions=list(user.admin.permissions) if user.admin else None,
                    )
                )
        except IntegrityError as exc:
            raise ValueError("email already exists") from exc

    async def _require_student(self, student_id: UUID) -> None:
        role = await self._session.scalar(
            select(UserRow.role).where(UserRow.id == student_id)
        )
        if role != "student":
            raise NotFoundError("Student not found")

    async def append_enrolled_course(
        self, student_id: UUID, enrolled: EnrolledCourse
    ) -> None:
        await self._require_student(student_id)
        self._session.add(
            StudentEnrolledCourseRow(
                student_id=student_id,
                course_id=enrolled.course_id,
                enrolled_at=enrolled.enrolled_at,
            )
        )
        await self._session.flush()

    async def add_completed_course(self, student_id: UUID, course_id: UUID) -> bool:
        await self._require_student(student_id)
        stmt = (
            pg_insert(StudentCompletedCourseRow)
            .values(student_id=student_id, course_id=course_id)
            .on_conflict_do_nothing(index_elements=["student_id", "course_id"])
            .returning(StudentCompletedCourseRow.course_id)
        )
        return (await self._session.execute(stmt)).first() is not None

    async def append_assessment_result(
        self, student_id: UUID, result: AssessmentResult
    ) -> None:
        await self._require_student(student_id)
        self._session.add(
            StudentAssessmentResultRow(
                student_id=student_id,
                course_id=result.course_id,
                assessment_id=result.assessment_id,
                score=result.score,
                total_points=result.total_points,
                passed=result.passed,
                taken_at=result.taken_at,
            )
        )
        await self._session.flush()

    async def add_badges(
        self, student_id: UUID, badge_ids: tuple[UUID, ...]
    ) -> tuple[UUID, ...]:
        await self._require_student(student_id)
        if not badge_ids:
            return ()
        stmt = (
            pg_insert(StudentBadgeRow)
            .values([{"student_id": student_id, "badge_id": b} for b in badge_ids])
            .on_conflict_do_nothing(index_elements=["student_id", "badge_id"])
            .returning(StudentBadgeRow.badge_id)
        )
        inserted = set((await self._session.execute(stmt)).scalars().all())
        return tuple(b for b in dict.fromkeys(badge_ids) if b in inserted)

    async def _load_student(self, student_id: UUID) -> StudentProfile:
        enrolled = (
            await self._session.execute(
                select(StudentEnrolledCourseRow)
                .where(StudentEnrolledCourseRow.student_id == student_id)
                .order_by(StudentEnrolledCourseRow.enrolled_at)
            )
        ).scalars().all()
        completed = (
            await self._session.execute(
                select(StudentCompletedCourseRow.course_id)
                .where(StudentCompletedCourseRow.student_id == student_id)
                .order_by(StudentCompletedCourseRow.added_at)
            )
        ).scalars().all()
        results = (
            await self._session.execute(
                select(StudentAssessmentResultRow)
                .where(StudentAssessmentResultRow.student_id == student_id)
                .order_by(StudentAssessmentResultRow.taken_at)
            )
        ).scalars().all()
        badges = (
            await self._session.execute(
                select(StudentBadgeRow.badge_id)
                .where(StudentBadgeRow.student_id == student_id)
                .order_by(StudentBadgeRow.granted_at)
            )
        ).scalars().all()
        return StudentProfile(
            enrolled_courses=tuple(
                EnrolledCourse(course_id=e.course_id, enrolled_at=e.enrolled_at)
                for e in enrolled
            ),
            completed_courses=tuple(completed),
            assessment_results=tuple(
                AssessmentResult(
                    course_id=r.course_id,
                    assessment_id=r.assessment_id,
                    score=r.score,
                    total_points=r.total_points,
                    passed=r.passed,
                    taken_at=r.taken_at,
                )
                for r in results
            ),
            badges=tuple(badges),
        )


def _row_to_user(row: UserRow, student: StudentProfile | None) -> User:
    return User(
        id=row.id,
        email=row.email,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        role=row.role,  # type: ignore[arg-type]
        is_active=row.is_active,
        student=student,
        instructor=InstructorProfile(bio=row.bio or "") if row.role == "instructor" else None,
        admin=(
            AdminProfile(permissions=tuple(row.permissions or ()))
            if row.role == "admin"
            else None
        ),
    )
