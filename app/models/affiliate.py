"""
AffiliateProfile model.

Represents one node of the referral network.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.models.base import Base
from app.models.enums import AffiliateStatus
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.commission import AffiliateCommission


class AffiliateProfile(Base):
    """
    AffiliateProfile entity.

    Node of the referral tree:
    - referred_by_id is the upline, set once at registration
    - status gates commission eligibility (only ACTIVE earns)
    - total_earnings / total_paid accumulate approved amounts

    Attributes:
        id: Primary key
        user_id: Owning user (identity lives outside the ledger)
        code: Display/referral code
        referred_by_id: Upline affiliate, immutable once set
        status: PENDING / ACTIVE / SUSPENDED / INACTIVE
        total_earnings: Cumulative approved amount
        total_paid: Cumulative released amount (legacy mirror)
        platform_affiliate_id: Id on the external affiliate platform
        registered_at: Registration timestamp
        activated_at: When the node became ACTIVE
    """

    __tablename__ = "affiliate_profiles"
    __table_args__ = (
        CheckConstraint(
            'total_earnings >= 0',
            name='check_affiliate_total_earnings_non_negative'
        ),
        CheckConstraint(
            'total_paid >= 0',
            name='check_affiliate_total_paid_non_negative'
        ),
        CheckConstraint(
            'referred_by_id IS NULL OR referred_by_id <> id',
            name='check_affiliate_not_self_referred'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    user_id: Mapped[int] = mapped_column(
        Integer, nullable=False, unique=True, index=True
    )
    code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, index=True
    )

    # Upline
    referred_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("affiliate_profiles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AffiliateStatus.PENDING.value,
        index=True,
    )

    # Totals
    total_earnings: Mapped[int] = mapped_column(
        MoneyType, default=0, nullable=False
    )
    total_paid: Mapped[int] = mapped_column(
        MoneyType, default=0, nullable=False
    )

    # External platform
    platform_affiliate_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    # Timestamps
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    commissions: Mapped[list["AffiliateCommission"]] = relationship(
        "AffiliateCommission",
        back_populates="affiliate",
        foreign_keys="AffiliateCommission.affiliate_id",
        lazy="raise",
    )

    @validates("referred_by_id")
    def _validate_referred_by_id(
        self, key: str, value: int | None
    ) -> int | None:
        """Upline can be assigned once and never changed."""
        current = self.__dict__.get(key)
        if current is not None and value != current:
            raise ValueError(
                f"Affiliate {self.id} already has upline {current}, "
                f"cannot reassign to {value}"
            )
        return value

    @property
    def is_active(self) -> bool:
        """Whether the node currently earns commissions."""
        return self.status == AffiliateStatus.ACTIVE

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateProfile(id={self.id}, code={self.code}, "
            f"referred_by_id={self.referred_by_id}, status={self.status})>"
        )
