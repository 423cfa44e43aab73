from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

NotificationType = Literal["system", "course", "payment", "support", "announcement"]
RelatedEntityKind = Literal["course", "payment", "support_ticket", "assessment"]


@dataclass(frozen=True, slots=True)
class RelatedEntity:
    """Tagged reference: ``kind`` says which collection ``id`` points into."""

    kind: RelatedEntityKind
    id: UUID

    def action_url(self) -> str:
        if self.kind == "course":
            return f"/courses/{self.id}"
        if self.kind == "payment":
            return f"/payments/{self.id}"
        if self.kind == "support_ticket":
            return f"/support/tickets/{self.id}"
        if self.kind == "assessment":
            return f"/assessments/{self.id}"
        raise ValueError(f"unknown related entity kind: {self.kind!r}")

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "id": str(self.id)}

    @staticmethod
    def from_dict(data: dict) -> RelatedEntity:
        kind = data.get("kind")
        if kind not in ("course", "payment", "support_ticket", "assessment"):
            raise ValueError(f"unknown related entity kind: {kind!r}")
        return RelatedEntity(kind=kind, id=UUID(str(data["id"])))


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    created_at: datetime
    related_entity: RelatedEntity | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        created_at: datetime,
        related_entity: RelatedEntity | None = None,
    ) -> Notification:
        return Notification(
            id=uuid4(),
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            created_at=created_at,
            related_entity=related_entity,
        )

    @property
    def action_url(self) -> str | None:
        if self.related_entity is None:
            return None
        return self.related_entity.action_url()
