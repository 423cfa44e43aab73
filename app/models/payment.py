from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

PaymentStatus = Literal["pending", "completed", "failed", "refunded"]


@dataclass(frozen=True, slots=True)
class Payment:
    """What the payment collaborator reports about a purchase.

    Gateway order creation and signature verification live outside the
    engine; by the time enrollment reads a payment it is just a status.
    """

    id: UUID
    student_id: UUID
    course_id: UUID
    amount: float
    currency: str = "USD"
    status: PaymentStatus = "pending"
    method: str = "other"

    @staticmethod
    def new(
        *,
        student_id: UUID,
        course_id: UUID,
        amount: float,
        currency: str = "USD",
        status: PaymentStatus = "pending",
        method: str = "other",
    ) -> Payment:
        return Payment(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            amount=amount,
            currency=currency,
            status=status,
            method=method,
        )
