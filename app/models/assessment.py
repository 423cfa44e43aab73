from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

QuestionType = Literal["multiple_choice", "true_false", "short_answer", "essay", "code"]


@dataclass(frozen=True, slots=True)
class Option:
    id: UUID
    text: str
    is_correct: bool = False

    @staticmethod
    def new(*, text: str, is_correct: bool = False) -> Option:
        return Option(id=uuid4(), text=text, is_correct=is_correct)


@dataclass(frozen=True, slots=True)
class Question:
    id: UUID
    text: str
    type: QuestionType
    options: tuple[Option, ...] = ()
    correct_answer: str | None = None
    points: int = 1

    @staticmethod
    def new(
        *,
        text: str,
        type: QuestionType,
        options: tuple[Option, ...] = (),
        correct_answer: str | None = None,
        points: int = 1,
    ) -> Question:
        return Question(
            id=uuid4(),
            text=text,
            type=type,
            options=options,
            correct_answer=correct_answer,
            points=points,
        )

    @property
    def correct_option(self) -> Option | None:
        for option in self.options:
            if option.is_correct:
                return option
        return None


@dataclass(frozen=True, slots=True)
class Assessment:
    id: UUID
    course_id: UUID
    instructor_id: UUID
    title: str
    type: str  # quiz|assignment|exam|project
    questions: tuple[Question, ...] = ()
    total_points: int = 0
    pass_percentage: float | None = None
    is_published: bool = False

    @staticmethod
    def new(
        *,
        course_id: UUID,
        instructor_id: UUID,
        title: str,
        type: str = "quiz",
        questions: tuple[Question, ...] = (),
        pass_percentage: float | None = None,
        is_published: bool = True,
    ) -> Assessment:
        # total_points is fixed at creation from the question weights.
        return Assessment(
            id=uuid4(),
            course_id=course_id,
            instructor_id=instructor_id,
            title=title,
            type=type,
            questions=questions,
            total_points=sum(q.points for q in questions),
            pass_percentage=pass_percentage,
            is_published=is_published,
        )
