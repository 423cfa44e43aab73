from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import require_role, subject_id
from app.models.principal import Principal
from app.services.badge_service import badge_service

router = APIRouter(prefix="/v1/badges", tags=["badges"])


class BadgeOut(BaseModel):
    id: UUID
    name: str
    criteria: str
    icon: str
    description: str
    course_id: UUID | None


class BadgeCheckOut(BaseModel):
    granted: list[UUID]


@router.post("/check", response_model=BadgeCheckOut)
async def check_badges(
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> BadgeCheckOut:
    """Re-run badge evaluation for the caller.  Safe to repeat."""
    granted = await badge_service.check_and_assign_badges(subject_id(principal))
    return BadgeCheckOut(granted=list(granted))


@router.get("/me", response_model=list[BadgeOut])
async def my_badges(
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> list[BadgeOut]:
    badges = await badge_service.list_badges(subject_id(principal))
    return [
        BadgeOut(
            id=b.id,
            name=b.name,
            criteria=b.criteria,
            icon=b.icon,
            description=b.description,
            course_id=b.course_id,
        )
        for b in badges
    ]
