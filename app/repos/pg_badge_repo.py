"""PostgreSQL implementation of BadgeRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import BadgeRow
from app.models.badge import Badge


class PgBadgeRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, badge_id: UUID) -> Badge | None:
        row = await self._session.get(BadgeRow, badge_id)
        return _row_to_badge(row) if row is not None else None

    async def add(self, badge: Badge) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(
                    BadgeRow(
                        id=badge.id,
                        name=badge.name,
                        criteria=badge.criteria,
                        icon=badge.icon,
                        description=badge.description,
                        threshold=badge.threshold,
                        min_score=badge.min_score,
                        course_id=badge.course_id,
                        is_secret=badge.is_secret,
                        is_active=badge.is_active,
                    )
                )
        except IntegrityError as exc:
            raise ValueError("badge name already exists") from exc

    async def list_active(self) -> list[Badge]:
        rows = (
            await self._session.execute(
                select(BadgeRow).where(BadgeRow.is_active.is_(True))
            )
        ).scalars().all()
        return [_row_to_badge(r) for r in rows]

    async def get_many(self, badge_ids: tuple[UUID, ...]) -> list[Badge]:
        if not badge_ids:
            return []
        rows = (
            await self._session.execute(
                select(BadgeRow).where(BadgeRow.id.in_(badge_ids))
            )
        ).scalars().all()
        by_id = {r.id: _row_to_badge(r) for r in rows}
        # Keep the caller's order (grant order).
        return [by_id[i] for i in badge_ids if i in by_id]


def _row_to_badge(row: BadgeRow) -> Badge:
    return Badge(
        id=row.id,
        name=row.name,
        criteria=row.criteria,  # type: ignore[arg-type]
        icon=row.icon,
        description=row.description,
        threshold=row.threshold,
        min_score=row.min_score,
        course_id=row.course_id,
        is_secret=row.is_secret,
        is_active=row.is_active,
    )
