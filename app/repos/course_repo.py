from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.core.errors import NotFoundError
from app.models.course import Course, Section


class CourseRepo(Protocol):
    """Course catalog as the engine sees it: read-only apart from the counter."""

    async def get(self, course_id: UUID) -> Course | None: ...
    async def add(self, course: Course) -> None: ...
    async def get_curriculum(self, course_id: UUID) -> tuple[Section, ...] | None: ...
    async def lecture_exists(
        self, course_id: UUID, section_id: UUID, lecture_id: UUID
    ) -> bool: ...
    async def increment_total_students(self, course_id: UUID, delta: int = 1) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}
        self._lock = threading.Lock()

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def add(self, course: Course) -> None:
        with self._lock:
            if course.id in self._by_id:
                raise ValueError("course already exists")
            self._by_id[course.id] = course

    async def get_curriculum(self, course_id: UUID) -> tuple[Section, ...] | None:
        course = self._by_id.get(course_id)
        return course.curriculum if course is not None else None

    async def lecture_exists(
        self, course_id: UUID, section_id: UUID, lecture_id: UUID
    ) -> bool:
        course = self._by_id.get(course_id)
        return course is not None and course.lecture_exists(section_id, lecture_id)

    async def increment_total_students(self, course_id: UUID, delta: int = 1) -> None:
        with self._lock:
            course = self._by_id.get(course_id)
            if course is None:
                raise NotFoundError("Course not found")
            self._by_id[course_id] = replace(
                course, total_students=course.total_students + delta
            )

    def snapshot(self) -> dict[UUID, Course]:
        return dict(self._by_id)

    def restore(self, state: dict[UUID, Course]) -> None:
        self._by_id = dict(state)

    def clear(self) -> None:
        self._by_id.clear()
