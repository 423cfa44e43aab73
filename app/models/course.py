from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Lecture:
    id: UUID
    title: str
    content_id: UUID | None = None
    duration_min: int | None = None
    is_preview: bool = False

    @staticmethod
    def new(
        *,
        title: str,
        content_id: UUID | None = None,
        duration_min: int | None = None,
        is_preview: bool = False,
    ) -> Lecture:
        return Lecture(
            id=uuid4(),
            title=title,
            content_id=content_id,
            duration_min=duration_min,
            is_preview=is_preview,
        )


@dataclass(frozen=True, slots=True)
class Section:
    id: UUID
    title: str
    lectures: tuple[Lecture, ...] = ()

    @staticmethod
    def new(*, title: str, lectures: tuple[Lecture, ...] = ()) -> Section:
        return Section(id=uuid4(), title=title, lectures=lectures)

    def has_lecture(self, lecture_id: UUID) -> bool:
        return any(lec.id == lecture_id for lec in self.lectures)


@dataclass(frozen=True, slots=True)
class Course:
    """Catalog entry.  The engine only reads it, except for total_students."""

    id: UUID
    title: str
    instructor_id: UUID | None = None
    status: str = "draft"  # draft|published|archived
    curriculum: tuple[Section, ...] = ()
    total_students: int = 0

    @staticmethod
    def new(
        *,
        title: str,
        instructor_id: UUID | None = None,
        curriculum: tuple[Section, ...] = (),
        status: str = "published",
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            instructor_id=instructor_id,
            status=status,
            curriculum=curriculum,
        )

    @property
    def total_lectures(self) -> int:
        # Denominator of the curriculum component of overall progress.
        return sum(len(section.lectures) for section in self.curriculum)

    def find_section(self, section_id: UUID) -> Section | None:
        for section in self.curriculum:
            if section.id == section_id:
                return section
        return None

    def section_for_lecture(self, lecture_id: UUID) -> Section | None:
        for section in self.curriculum:
            if section.has_lecture(lecture_id):
                return section
        return None

    def lecture_exists(self, section_id: UUID, lecture_id: UUID) -> bool:
        section = self.find_section(section_id)
        return section is not None and section.has_lecture(lecture_id)
