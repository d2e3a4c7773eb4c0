"""
Activation payment repository.

Data access layer for ActivationPayment model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activation_payment import ActivationPayment
from app.models.enums import ActivationPaymentStatus
from app.repositories.base import BaseRepository


class ActivationPaymentRepository(BaseRepository[ActivationPayment]):
    """Activation payment repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize activation payment repository."""
        super().__init__(ActivationPayment, session)

    async def get_by_user_id(self, user_id: int) -> ActivationPayment | None:
        """Get the activation payment of a user."""
        return await self.get_by(user_id=user_id)

    async def has_completed(self, user_id: int) -> bool:
        """Whether the user's activation fee was confirmed paid."""
        return await self.exists(
            user_id=user_id,
            status=ActivationPaymentStatus.COMPLETED.value,
        )
