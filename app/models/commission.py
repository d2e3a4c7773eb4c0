"""
AffiliateCommission model.

One ledger row per (purchase, beneficiary level, kind).
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import CommissionStatus
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.affiliate import AffiliateProfile


class AffiliateCommission(Base):
    """
    AffiliateCommission entity.

    Commission credited to an upline for a qualifying purchase:
    - Created PENDING by the fan-out engine
    - Approved or rejected by an admin
    - Spent oldest-first by withdrawal completion (amount reduced in place,
      WITHDRAWN once it reaches zero)

    Attributes:
        id: Primary key
        affiliate_id: Beneficiary affiliate
        user_id: Beneficiary user (owner of the balance)
        transaction_id: Source purchase ledger reference
        buyer_id: Purchasing affiliate
        level: Upline level (1..10)
        kind: BASE / BONUS (level 1) or LEVEL (2..10)
        amount: Current amount, reduced by withdrawals
        original_amount: Amount at creation (or admin override)
        status: PENDING / APPROVED / REJECTED / PAID / WITHDRAWN
        rejection_reason: Admin reason when REJECTED
        platform_affiliate_id: Beneficiary id on the external platform
        created_at: Creation timestamp (FIFO order)
        approved_at: Approval timestamp
        updated_at: Last change
    """

    __tablename__ = "affiliate_commissions"
    __table_args__ = (
        UniqueConstraint(
            "affiliate_id",
            "transaction_id",
            "level",
            "kind",
            name="uq_commission_affiliate_transaction_level_kind",
        ),
        Index(
            "ix_commission_user_status_created",
            "user_id",
            "status",
            "created_at",
        ),
        CheckConstraint(
            'amount >= 0', name='check_commission_amount_non_negative'
        ),
        CheckConstraint(
            'level >= 1 AND level <= 10', name='check_commission_level_range'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Beneficiary
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("affiliate_profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )

    # Source purchase
    transaction_id: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True
    )
    buyer_id: Mapped[int] = mapped_column(
        ForeignKey("affiliate_profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)

    amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    original_amount: Mapped[int] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionStatus.PENDING.value,
        index=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )

    platform_affiliate_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    affiliate: Mapped["AffiliateProfile"] = relationship(
        "AffiliateProfile",
        back_populates="commissions",
        foreign_keys=[affiliate_id],
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateCommission(id={self.id}, "
            f"affiliate_id={self.affiliate_id}, level={self.level}, "
            f"kind={self.kind}, amount={self.amount}, status={self.status})>"
        )
