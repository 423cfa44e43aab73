from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

BadgeCriteria = Literal[
    "course_completion", "streak", "assessment_score", "community", "custom"
]


@dataclass(frozen=True, slots=True)
class Badge:
    """Global catalog entry.  Shared and read-only; students own grants, not badges."""

    id: UUID
    name: str
    criteria: BadgeCriteria
    icon: str = ""
    description: str = ""
    threshold: int | None = None
    min_score: float | None = None  # percentage, assessment_score only
    course_id: UUID | None = None  # course-scoped badge when set
    is_secret: bool = False
    is_active: bool = True

    @staticmethod
    def new(
        *,
        name: str,
        criteria: BadgeCriteria,
        threshold: int | None = None,
        min_score: float | None = None,
        course_id: UUID | None = None,
        icon: str = "",
        description: str = "",
        is_secret: bool = False,
        is_active: bool = True,
    ) -> Badge:
        return Badge(
            id=uuid4(),
            name=name,
            criteria=criteria,
            icon=icon,
            description=description,
            threshold=threshold,
            min_score=min_score,
            course_id=course_id,
            is_secret=is_secret,
            is_active=is_active,
        )
