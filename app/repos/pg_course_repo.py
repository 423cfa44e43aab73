"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.tables import CourseLectureRow, CourseRow, CourseSectionRow
from app.models.course import Course, Lecture, Section


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return _row_to_course(row, await self._load_curriculum(course_id))

    async def add(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                instructor_id=course.instructor_id,
                status=course.status,
                total_students=course.total_students,
            )
        )
        for s_pos, section in enumerate(course.curriculum):
            self._session.add(
                CourseSectionRow(
                    id=section.id,
                    course_id=course.id,
                    position=s_pos,
                    title=section.title,
                )
            )
            for l_pos, lecture in enumerate(section.lectures):
                self._session.add(
                    CourseLectureRow(
                        id=lecture.id,
                        section_id=section.id,
                        position=l_pos,
                        title=lecture.title,
                        content_id=lecture.content_id,
                        duration_min=lecture.duration_min,
                        is_preview=lecture.is_preview,
                    )
                )
        await self._session.flush()

    async def get_curriculum(self, course_id: UUID) -> tuple[Section, ...] | None:
        exists = await self._session.scalar(
            select(func.count()).select_from(CourseRow).where(CourseRow.id == course_id)
        )
        if not exists:
            return None
        return await self._load_curriculum(course_id)

    async def lecture_exists(
        self, course_id: UUID, section_id: UUID, lecture_id: UUID
    ) -> bool:
        stmt = (
            select(func.count())
            .select_from(CourseLectureRow)
            .join(CourseSectionRow, CourseLectureRow.section_id == CourseSectionRow.id)
            .where(CourseSectionRow.course_id == course_id)
            .where(CourseSectionRow.id == section_id)
            .where(CourseLectureRow.id == lecture_id)
        )
        return bool(await self._session.scalar(stmt))

    async def increment_total_students(self, course_id: UUID, delta: int = 1) -> None:
        # Single UPDATE: the increment happens in the database, not in Python.
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course_id)
            .values(total_students=CourseRow.total_students + delta)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Course not found")

    async def _load_curriculum(self, course_id: UUID) -> tuple[Section, ...]:
        sections = (
            await self._session.execute(
                select(CourseSectionRow)
                .where(CourseSectionRow.course_id == course_id)
                .order_by(CourseSectionRow.position)
            )
        ).scalars().all()
        if not sections:
            return ()
        lectures = (
            await self._session.execute(
                select(CourseLectureRow)
                .where(CourseLectureRow.section_id.in_([s.id for s in sections]))
                .order_by(CourseLectureRow.position)
            )
        ).scalars().all()
        by_section: dict[UUID, list[Lecture]] = {s.id: [] for s in sections}
        for row in lectures:
            by_section[row.section_id].append(
                Lecture(
                    id=row.id,
                    title=row.title,
                    content_id=row.content_id,
                    duration_min=row.duration_min,
                    is_preview=row.is_preview,
                )
            )
        return tuple(
            Section(id=s.id, title=s.title, lectures=tuple(by_section[s.id]))
            for s in sections
        )


def _row_to_course(row: CourseRow, curriculum: tuple[Section, ...]) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        instructor_id=row.instructor_id,
        status=row.status,
        curriculum=curriculum,
        total_students=row.total_students,
    )
