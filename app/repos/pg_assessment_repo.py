"""PostgreSQL implementation of AssessmentRepo.

An assessment is stored as three tables (assessment, questions, options)
and reassembled here into the nested dataclass.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import AssessmentOptionRow, AssessmentQuestionRow, AssessmentRow
from app.models.assessment import Assessment, Option, Question


class PgAssessmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, assessment_id: UUID) -> Assessment | None:
        row = await self._session.get(AssessmentRow, assessment_id)
        if row is None:
            return None
        questions = await self._load_questions([row.id])
        return _row_to_assessment(row, questions.get(row.id, ()))

    async def add(self, assessment: Assessment) -> None:
        self._session.add(
            AssessmentRow(
                id=assessment.id,
                course_id=assessment.course_id,
                instructor_id=assessment.instructor_id,
                title=assessment.title,
                type=assessment.type,
                total_points=assessment.total_points,
                pass_percentage=assessment.pass_percentage,
                is_published=assessment.is_published,
            )
        )
        for q_pos, question in enumerate(assessment.questions):
            self._session.add(
                AssessmentQuestionRow(
                    id=question.id,
                    assessment_id=assessment.id,
                    position=q_pos,
                    text=question.text,
                    type=question.type,
                    correct_answer=question.correct_answer,
                    points=question.points,
                )
            )
            for o_pos, option in enumerate(question.options):
                self._session.add(
                    AssessmentOptionRow(
                        id=option.id,
                        question_id=question.id,
                        position=o_pos,
                        text=option.text,
                        is_correct=option.is_correct,
                    )
                )
        await self._session.flush()

    async def list_by_course(self, course_id: UUID) -> list[Assessment]:
        rows = (
            await self._session.execute(
                select(AssessmentRow).where(AssessmentRow.course_id == course_id)
            )
        ).scalars().all()
        questions = await self._load_questions([r.id for r in rows])
        return [_row_to_assessment(r, questions.get(r.id, ())) for r in rows]

    async def _load_questions(
        self, assessment_ids: list[UUID]
    ) -> dict[UUID, tuple[Question, ...]]:
        if not assessment_ids:
            return {}
        q_rows = (
            await self._session.execute(
                select(AssessmentQuestionRow)
                .where(AssessmentQuestionRow.assessment_id.in_(assessment_ids))
                .order_by(AssessmentQuestionRow.position)
            )
        ).scalars().all()
        options: dict[UUID, list[Option]] = {q.id: [] for q in q_rows}
        if q_rows:
            o_rows = (
                await self._session.execute(
                    select(AssessmentOptionRow)
                    .where(AssessmentOptionRow.question_id.in_(list(options)))
                    .order_by(AssessmentOptionRow.position)
                )
            ).scalars().all()
            for o in o_rows:
                options[o.question_id].append(
                    Option(id=o.id, text=o.text, is_correct=o.is_correct)
                )

        out: dict[UUID, list[Question]] = {}
        for q in q_rows:
            out.setdefault(q.assessment_id, []).append(
                Question(
                    id=q.id,
                    text=q.text,
                    type=q.type,  # type: ignore[arg-type]
                    options=tuple(options[q.id]),
                    correct_answer=q.correct_answer,
                    points=q.points,
                )
            )
        return {k: tuple(v) for k, v in out.items()}


def _row_to_assessment(
    row: AssessmentRow, questions: tuple[Question, ...]
) -> Assessment:
    return Assessment(
        id=row.id,
        course_id=row.course_id,
        instructor_id=row.instructor_id,
        title=row.title,
        type=row.type,
        questions=questions,
        total_points=row.total_points,
        pass_percentage=row.pass_percentage,
        is_published=row.is_published,
    )
