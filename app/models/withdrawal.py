"""
Withdrawal models.

CommissionWithdrawal is a cash-out request; WithdrawalDeduction is the
audit trail of which commission rows funded a completed withdrawal.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import WithdrawalStatus
from app.models.types import MoneyType


class CommissionWithdrawal(Base):
    """
    CommissionWithdrawal entity.

    Lifecycle:
    - PENDING on request (after balance pre-check)
    - APPROVED or REJECTED by an admin
    - COMPLETED once funded from approved commissions (FIFO debit)

    Attributes:
        id: Primary key
        user_id: Requesting user
        amount: Requested amount
        status: PENDING / APPROVED / REJECTED / COMPLETED
        bank_name: Destination bank
        account_number: Destination account (masked in user output)
        account_holder: Destination account holder
        notes: Admin notes / rejection reason
        requested_at: Request timestamp
        approved_at: Approval timestamp
        completed_at: Completion timestamp
    """

    __tablename__ = "commission_withdrawals"
    __table_args__ = (
        CheckConstraint(
            'amount > 0', name='check_withdrawal_amount_positive'
        ),
        Index("ix_withdrawal_user_status", "user_id", "status"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    user_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WithdrawalStatus.PENDING.value,
        index=True,
    )

    # Destination
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_number: Mapped[str] = mapped_column(String(64), nullable=False)
    account_holder: Mapped[str] = mapped_column(String(255), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    deductions: Mapped[list["WithdrawalDeduction"]] = relationship(
        "WithdrawalDeduction",
        back_populates="withdrawal",
        lazy="raise",
    )

    @property
    def is_in_flight(self) -> bool:
        """Whether the request still reserves balance."""
        return self.status in (
            WithdrawalStatus.PENDING,
            WithdrawalStatus.APPROVED,
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionWithdrawal(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status={self.status})>"
        )


class WithdrawalDeduction(Base):
    """
    WithdrawalDeduction entity.

    One row per commission touched by a withdrawal completion.
    Sum of amount over a withdrawal equals the withdrawal amount.
    """

    __tablename__ = "withdrawal_deductions"
    __table_args__ = (
        CheckConstraint(
            'amount > 0', name='check_deduction_amount_positive'
        ),
        CheckConstraint(
            'amount_after = amount_before - amount',
            name='check_deduction_arithmetic'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    withdrawal_id: Mapped[int] = mapped_column(
        ForeignKey("commission_withdrawals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    commission_id: Mapped[int] = mapped_column(
        ForeignKey("affiliate_commissions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    amount_before: Mapped[int] = mapped_column(MoneyType, nullable=False)
    amount_after: Mapped[int] = mapped_column(MoneyType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    withdrawal: Mapped["CommissionWithdrawal"] = relationship(
        "CommissionWithdrawal",
        back_populates="deductions",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<WithdrawalDeduction(withdrawal_id={self.withdrawal_id}, "
            f"commission_id={self.commission_id}, amount={self.amount})>"
        )
