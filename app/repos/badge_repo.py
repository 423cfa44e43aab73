from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.badge import Badge


class BadgeRepo(Protocol):
    async def get(self, badge_id: UUID) -> Badge | None: ...
    async def add(self, badge: Badge) -> None: ...
    async def list_active(self) -> list[Badge]: ...
    async def get_many(self, badge_ids: tuple[UUID, ...]) -> list[Badge]: ...


class InMemoryBadgeRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Badge] = {}
        self._names: set[str] = set()

    async def get(self, badge_id: UUID) -> Badge | None:
        return self._by_id.get(badge_id)

    async def add(self, badge: Badge) -> None:
        # Badge names are unique across the catalog.
        if badge.name in self._names:
            raise ValueError("badge name already exists")
        self._by_id[badge.id] = badge
        self._names.add(badge.name)

    async def list_active(self) -> list[Badge]:
        return [b for b in self._by_id.values() if b.is_active]

    async def get_many(self, badge_ids: tuple[UUID, ...]) -> list[Badge]:
        return [self._by_id[i] for i in badge_ids if i in self._by_id]

    def snapshot(self) -> tuple[dict[UUID, Badge], set[str]]:
        return dict(self._by_id), set(self._names)

    def restore(self, state: tuple[dict[UUID, Badge], set[str]]) -> None:
        by_id, names = state
        self._by_id = dict(by_id)
        self._names = set(names)

    def clear(self) -> None:
        self._by_id.clear()
        self._names.clear()
