from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity taken from a verified bearer token.

    The services trust it; ownership beyond role membership (an
    instructor grading only their own assessments, a student reading only
    their own progress) is checked there.
    """

    user_id: str
    roles: frozenset[str]

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return bool(self.roles & roles)

    @property
    def user_uuid(self) -> UUID:
        return UUID(self.user_id)
