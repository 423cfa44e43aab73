"""PostgreSQL implementation of ProgressRepo.

Every entry-level write is one SQL statement, so concurrent writers on the
same progress record cannot lose each other's updates:

  touch_lecture      INSERT ... ON CONFLICT (pk) DO UPDATE
                       SET time_spent = time_spent + excluded.time_spent
  complete_lecture   INSERT ... ON CONFLICT (pk) DO UPDATE SET completed = true
  add_assessment     INSERT ... ON CONFLICT DO NOTHING RETURNING
  grade_assessment   UPDATE ... WHERE status <> 'graded' RETURNING

Each write first takes SELECT ... FOR UPDATE on the progress row, so the
recompute that follows in the same transaction never reads a snapshot that
misses another writer's entry.

Reads after a write use populate_existing so the session's identity map
never hands back a row object from before the statement ran.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.db.tables import ProgressAssessmentEntryRow, ProgressLectureEntryRow, ProgressRow
from app.models.progress import AssessmentEntry, CurriculumEntry, Progress


class PgProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, student_id: UUID, course_id: UUID) -> Progress | None:
        stmt = (
            select(ProgressRow)
            .where(ProgressRow.student_id == student_id, ProgressRow.course_id == course_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return (await self._assemble([row]))[0]

    async def add(self, progress: Progress) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    ProgressRow(
                        id=progress.id,
                        student_id=progress.student_id,
                        course_id=progress.course_id,
                        enrollment_id=progress.enrollment_id,
                        overall_progress=progress.overall_progress,
                        last_accessed=progress.last_accessed,
                    )
                )
        except IntegrityError as exc:
            raise ConflictError("Progress record already exists") from exc

    async def touch_lecture(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        seconds: int,
        at: datetime,
    ) -> Progress | None:
        progress_id = await self._progress_id(student_id, course_id)
        if progress_id is None:
            return None
        stmt = pg_insert(ProgressLectureEntryRow).values(
            progress_id=progress_id,
            section_id=section_id,
            lecture_id=lecture_id,
            completed=False,
            time_spent=seconds,
            last_accessed=at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["progress_id", "section_id", "lecture_id"],
            set_={
                "time_spent": ProgressLectureEntryRow.time_spent
                + stmt.excluded.time_spent,
                "last_accessed": stmt.excluded.last_accessed,
            },
        )
        await self._session.execute(stmt)
        await self._touch(progress_id, at)
        return await self.get(student_id, course_id)

    async def complete_lecture(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        at: datetime,
    ) -> Progress | None:
        progress_id = await self._progress_id(student_id, course_id)
        if progress_id is None:
            return None
        stmt = pg_insert(ProgressLectureEntryRow).values(
            progress_id=progress_id,
            section_id=section_id,
            lecture_id=lecture_id,
            completed=True,
            completion_date=at,
            time_spent=0,
            last_accessed=at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["progress_id", "section_id", "lecture_id"],
            set_={"completed": True, "completion_date": stmt.excluded.completion_date},
        )
        await self._session.execute(stmt)
        await self._touch(progress_id, at)
        return await self.get(student_id, course_id)

    async def add_assessment_entry(
        self, student_id: UUID, course_id: UUID, entry: AssessmentEntry
    ) -> Progress | None:
        progress_id = await self._progress_id(student_id, course_id)
        if progress_id is None:
            return None
        stmt = (
            pg_insert(ProgressAssessmentEntryRow)
            .values(
                progress_id=progress_id,
                assessment_id=entry.assessment_id,
                status=entry.status,
                score=entry.score,
                total_points=entry.total_points,
                submission_date=entry.submission_date,
                grading_date=entry.grading_date,
                graded_by=entry.graded_by,
                feedback=entry.feedback,
            )
            .on_conflict_do_nothing(index_elements=["progress_id", "assessment_id"])
            .returning(ProgressAssessmentEntryRow.assessment_id)
        )
        if (await self._session.execute(stmt)).first() is None:
            raise ConflictError("Assessment already submitted")
        if entry.submission_date is not None:
            await self._touch(progress_id, entry.submission_date)
        return await self.get(student_id, course_id)

    async def grade_assessment_entry(
        self,
        student_id: UUID,
        course_id: UUID,
        assessment_id: UUID,
        *,
        score: float,
        feedback: str | None,
        graded_by: UUID,
        at: datetime,
    ) -> Progress | None:
        progress_id = await self._progress_id(student_id, course_id)
        if progress_id is None:
            return None
        stmt = (
            update(ProgressAssessmentEntryRow)
            .where(
                ProgressAssessmentEntryRow.progress_id == progress_id,
                ProgressAssessmentEntryRow.assessment_id == assessment_id,
                ProgressAssessmentEntryRow.status != "graded",
            )
            .values(
                status="graded",
                score=score,
                feedback=feedback,
                graded_by=graded_by,
                grading_date=at,
            )
            .returning(ProgressAssessmentEntryRow.assessment_id)
            .execution_options(synchronize_session=False)
        )
        if (await self._session.execute(stmt)).first() is None:
            status = await self._session.scalar(
                select(ProgressAssessmentEntryRow.status).where(
                    ProgressAssessmentEntryRow.progress_id == progress_id,
                    ProgressAssessmentEntryRow.assessment_id == assessment_id,
                )
            )
            if status is None:
                raise NotFoundError("Assessment submission not found")
            raise ConflictError("Assessment already graded")
        return await self.get(student_id, course_id)

    async def set_overall_progress(
        self, student_id: UUID, course_id: UUID, value: int
    ) -> Progress | None:
        stmt = (
            update(ProgressRow)
            .where(ProgressRow.student_id == student_id, ProgressRow.course_id == course_id)
            .values(overall_progress=value)
            .returning(ProgressRow.id)
            .execution_options(synchronize_session=False)
        )
        if (await self._session.execute(stmt)).first() is None:
            return None
        return await self.get(student_id, course_id)

    async def list_by_course(self, course_id: UUID) -> list[Progress]:
        return await self._list(select(ProgressRow).where(ProgressRow.course_id == course_id))

    async def list_by_student(self, student_id: UUID) -> list[Progress]:
        return await self._list(
            select(ProgressRow).where(ProgressRow.student_id == student_id)
        )

    async def list_inactive(self, before: datetime) -> list[Progress]:
        return await self._list(
            select(ProgressRow).where(
                ProgressRow.overall_progress < 100,
                ProgressRow.last_accessed.is_not(None),
                ProgressRow.last_accessed < before,
            )
        )

    # -- helpers --

    async def _progress_id(self, student_id: UUID, course_id: UUID) -> UUID | None:
        """Resolve and row-lock the progress record for this transaction.

        Writers on one (student, course) queue here until the holder
        commits, so the percentage recomputed afterwards is built from
        every entry committed before it.
        """
        return await self._session.scalar(
            select(ProgressRow.id)
            .where(ProgressRow.student_id == student_id, ProgressRow.course_id == course_id)
            .with_for_update()
        )

    async def _touch(self, progress_id: UUID, at: datetime) -> None:
        await self._session.execute(
            update(ProgressRow)
            .where(ProgressRow.id == progress_id)
            .values(last_accessed=at)
            .execution_options(synchronize_session=False)
        )

    async def _list(self, stmt) -> list[Progress]:
        rows = (
            await self._session.execute(stmt.execution_options(populate_existing=True))
        ).scalars().all()
        return await self._assemble(list(rows))

    async def _assemble(self, rows: list[ProgressRow]) -> list[Progress]:
        if not rows:
            return []
        ids = [r.id for r in rows]
        lectures = (
            await self._session.execute(
                select(ProgressLectureEntryRow)
                .where(ProgressLectureEntryRow.progress_id.in_(ids))
                .execution_options(populate_existing=True)
            )
        ).scalars().all()
        assessments = (
            await self._session.execute(
                select(ProgressAssessmentEntryRow)
                .where(ProgressAssessmentEntryRow.progress_id.in_(ids))
                .order_by(ProgressAssessmentEntryRow.submission_date)
                .execution_options(populate_existing=True)
            )
        ).scalars().all()

        curriculum: dict[UUID, list[CurriculumEntry]] = {i: [] for i in ids}
        for e in lectures:
            curriculum[e.progress_id].append(
                CurriculumEntry(
                    section_id=e.section_id,
                    lecture_id=e.lecture_id,
                    completed=e.completed,
                    completion_date=e.completion_date,
                    time_spent=e.time_spent,
                    last_accessed=e.last_accessed,
                )
            )
        graded: dict[UUID, list[AssessmentEntry]] = {i: [] for i in ids}
        for a in assessments:
            graded[a.progress_id].append(
                AssessmentEntry(
                    assessment_id=a.assessment_id,
                    status=a.status,  # type: ignore[arg-type]
                    score=a.score,
                    total_points=a.total_points,
                    submission_date=a.submission_date,
                    grading_date=a.grading_date,
                    graded_by=a.graded_by,
                    feedback=a.feedback,
                )
            )
        return [
            Progress(
                id=r.id,
                student_id=r.student_id,
                course_id=r.course_id,
                enrollment_id=r.enrollment_id,
                curriculum_progress=tuple(curriculum[r.id]),
                assessment_progress=tuple(graded[r.id]),
                overall_progress=r.overall_progress,
                last_accessed=r.last_accessed,
            )
            for r in rows
        ]
