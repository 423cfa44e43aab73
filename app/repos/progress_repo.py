"""Progress store: one record per (student, course).

Entry-level writes are single repo calls so that each one is atomic on its
own.  Two lecture completions racing on the same record must both land;
that rules out "load the record in the service, edit it, save it back".
The in-memory repo does the read and the write under one lock with no
await in between; the Postgres repo pushes the same upsert into SQL.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from app.core.errors import ConflictError, NotFoundError
from app.models.progress import AssessmentEntry, CurriculumEntry, Progress


class ProgressRepo(Protocol):
    async def get(self, student_id: UUID, course_id: UUID) -> Progress | None: ...
    async def add(self, progress: Progress) -> None: ...
    async def touch_lecture(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        seconds: int,
        at: datetime,
    ) -> Progress | None: ...
    async def complete_lecture(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        at: datetime,
    ) -> Progress | None: ...
    async def add_assessment_entry(
        self, student_id: UUID, course_id: UUID, entry: AssessmentEntry
    ) -> Progress | None: ...
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
    ) -> Progress | None: ...
    async def set_overall_progress(
        self, student_id: UUID, course_id: UUID, value: int
    ) -> Progress | None: ...
    async def list_by_course(self, course_id: UUID) -> list[Progress]: ...
    async def list_by_student(self, student_id: UUID) -> list[Progress]: ...
    async def list_inactive(self, before: datetime) -> list[Progress]: ...


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Progress] = {}
        self._lock = threading.Lock()

    async def get(self, student_id: UUID, course_id: UUID) -> Progress | None:
        return self._store.get((student_id, course_id))

    async def add(self, progress: Progress) -> None:
        with self._lock:
            key = (progress.student_id, progress.course_id)
            if key in self._store:
                raise ConflictError("Progress record already exists")
            self._store[key] = progress

    async def touch_lecture(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        seconds: int,
        at: datetime,
    ) -> Progress | None:
        with self._lock:
            current = self._store.get((student_id, course_id))
            if current is None:
                return None
            entry = current.find_lecture(section_id, lecture_id)
            if entry is None:
                entry = CurriculumEntry(section_id=section_id, lecture_id=lecture_id)
            entry = replace(entry, time_spent=entry.time_spent + seconds, last_accessed=at)
            updated = replace(
                current,
                curriculum_progress=_upsert_lecture(current.curriculum_progress, entry),
                last_accessed=at,
            )
            self._store[(student_id, course_id)] = updated
            return updated

    async def complete_lecture(
        self,
        student_id: UUID,
        course_id: UUID,
        section_id: UUID,
        lecture_id: UUID,
        at: datetime,
    ) -> Progress | None:
        with self._lock:
            current = self._store.get((student_id, course_id))
            if current is None:
                return None
            entry = current.find_lecture(section_id, lecture_id)
            if entry is None:
                entry = CurriculumEntry(
                    section_id=section_id, lecture_id=lecture_id, last_accessed=at
                )
            entry = replace(entry, completed=True, completion_date=at)
            updated = replace(
                current,
                curriculum_progress=_upsert_lecture(current.curriculum_progress, entry),
                last_accessed=at,
            )
            self._store[(student_id, course_id)] = updated
            return updated

    async def add_assessment_entry(
        self, student_id: UUID, course_id: UUID, entry: AssessmentEntry
    ) -> Progress | None:
        with self._lock:
            current = self._store.get((student_id, course_id))
            if current is None:
                return None
            if current.find_assessment(entry.assessment_id) is not None:
                raise ConflictError("Assessment already submitted")
            updated = replace(
                current,
                assessment_progress=(*current.assessment_progress, entry),
                last_accessed=entry.submission_date or current.last_accessed,
            )
            self._store[(student_id, course_id)] = updated
            return updated

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
        with self._lock:
            current = self._store.get((student_id, course_id))
            if current is None:
                return None
            entry = current.find_assessment(assessment_id)
            if entry is None:
                raise NotFoundError("Assessment submission not found")
            if entry.status == "graded":
                raise ConflictError("Assessment already graded")
            graded = replace(
                entry,
                status="graded",
                score=score,
                feedback=feedback,
                graded_by=graded_by,
                grading_date=at,
            )
            updated = replace(
                current,
                assessment_progress=tuple(
                    graded if e.assessment_id == assessment_id else e
                    for e in current.assessment_progress
                ),
            )
            self._store[(student_id, course_id)] = updated
            return updated

    async def set_overall_progress(
        self, student_id: UUID, course_id: UUID, value: int
    ) -> Progress | None:
        with self._lock:
            current = self._store.get((student_id, course_id))
            if current is None:
                return None
            updated = replace(current, overall_progress=value)
            self._store[(student_id, course_id)] = updated
            return updated

    async def list_by_course(self, course_id: UUID) -> list[Progress]:
        return [p for p in self._store.values() if p.course_id == course_id]

    async def list_by_student(self, student_id: UUID) -> list[Progress]:
        return [p for p in self._store.values() if p.student_id == student_id]

    async def list_inactive(self, before: datetime) -> list[Progress]:
        return [
            p
            for p in self._store.values()
            if p.overall_progress < 100
            and p.last_accessed is not None
            and p.last_accessed < before
        ]

    def snapshot(self) -> dict[tuple[UUID, UUID], Progress]:
        return dict(self._store)

    def restore(self, state: dict[tuple[UUID, UUID], Progress]) -> None:
        self._store = dict(state)

    def clear(self) -> None:
        self._store.clear()


def _upsert_lecture(
    entries: tuple[CurriculumEntry, ...], entry: CurriculumEntry
) -> tuple[CurriculumEntry, ...]:
    replaced = False
    out: list[CurriculumEntry] = []
    for existing in entries:
        if (
            existing.section_id == entry.section_id
            and existing.lecture_id == entry.lecture_id
        ):
            out.append(entry)
            replaced = True
        else:
            out.append(existing)
    if not replaced:
        out.append(entry)
    return tuple(out)
