"""
Activation payment check.

The payment-gateway integration owns the activation fee invoice; the
ledger only asks whether it was confirmed paid.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.activation_payment_repository import (
    ActivationPaymentRepository,
)


class ActivationPaymentChecker(Protocol):
    """Answers whether a user's one-time activation fee is paid."""

    async def has_completed_activation(self, user_id: int) -> bool:
        ...


class DatabaseActivationPaymentChecker:
    """Reads the activation_payments table kept by the gateway sync."""

    def __init__(self, session: AsyncSession) -> None:
        self.payment_repo = ActivationPaymentRepository(session)

    async def has_completed_activation(self, user_id: int) -> bool:
        return await self.payment_repo.has_completed(user_id)
