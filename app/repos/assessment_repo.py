from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.assessment import Assessment


class AssessmentRepo(Protocol):
    async def get(self, assessment_id: UUID) -> Assessment | None: ...
    async def add(self, assessment: Assessment) -> None: ...
    async def list_by_course(self, course_id: UUID) -> list[Assessment]: ...


class InMemoryAssessmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Assessment] = {}

    async def get(self, assessment_id: UUID) -> Assessment | None:
        return self._by_id.get(assessment_id)

    async def add(self, assessment: Assessment) -> None:
        if assessment.id in self._by_id:
            raise ValueError("assessment already exists")
        self._by_id[assessment.id] = assessment

    async def list_by_course(self, course_id: UUID) -> list[Assessment]:
        return [a for a in self._by_id.values() if a.course_id == course_id]

    def snapshot(self) -> dict[UUID, Assessment]:
        return dict(self._by_id)

    def restore(self, state: dict[UUID, Assessment]) -> None:
        self._by_id = dict(state)

    def clear(self) -> None:
        self._by_id.clear()
