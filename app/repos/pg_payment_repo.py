"""PostgreSQL implementation of PaymentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import PaymentRow
from app.models.payment import Payment


class PgPaymentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, payment_id: UUID) -> Payment | None:
        row = await self._session.get(PaymentRow, payment_id)
        if row is None:
            return None
        return Payment(
            id=row.id,
            student_id=row.student_id,
            course_id=row.course_id,
            amount=row.amount,
            currency=row.currency,
            status=row.status,  # type: ignore[arg-type]
            method=row.method,
        )

    async def add(self, payment: Payment) -> None:
        self._session.add(
            PaymentRow(
                id=payment.id,
                student_id=payment.student_id,
                course_id=payment.course_id,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                method=payment.method,
            )
        )
        await self._session.flush()
