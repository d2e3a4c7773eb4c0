"""
ActivationPayment model.

Mirror of the one-time activation fee invoice kept by the payment-gateway
integration. The ledger only reads it.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import ActivationPaymentStatus
from app.models.types import MoneyType


class ActivationPayment(Base):
    """Activation fee payment, one per user."""

    __tablename__ = "activation_payments"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, nullable=False, unique=True, index=True
    )
    external_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True
    )
    amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ActivationPaymentStatus.PENDING.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_completed(self) -> bool:
        """Whether the fee was confirmed paid."""
        return self.status == ActivationPaymentStatus.COMPLETED

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ActivationPayment(user_id={self.user_id}, "
            f"status={self.status})>"
        )
