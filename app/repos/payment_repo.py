from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.payment import Payment


class PaymentRepo(Protocol):
    async def get(self, payment_id: UUID) -> Payment | None: ...
    async def add(self, payment: Payment) -> None: ...


class InMemoryPaymentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Payment] = {}

    async def get(self, payment_id: UUID) -> Payment | None:
        return self._by_id.get(payment_id)

    async def add(self, payment: Payment) -> None:
        if payment.id in self._by_id:
            raise ValueError("payment already exists")
        self._by_id[payment.id] = payment

    def snapshot(self) -> dict[UUID, Payment]:
        return dict(self._by_id)

    def restore(self, state: dict[UUID, Payment]) -> None:
        self._by_id = dict(state)

    def clear(self) -> None:
        self._by_id.clear()
