"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.activation_payment import ActivationPayment
from app.models.affiliate import AffiliateProfile
from app.models.base import Base
from app.models.commission import AffiliateCommission
from app.models.enums import (
    EARNED_COMMISSION_STATUSES,
    IN_FLIGHT_WITHDRAWAL_STATUSES,
    SPENDABLE_COMMISSION_STATUSES,
    ActivationPaymentStatus,
    AffiliateStatus,
    CommissionKind,
    CommissionStatus,
    WithdrawalStatus,
)
from app.models.withdrawal import CommissionWithdrawal, WithdrawalDeduction


__all__ = [
    "Base",
    # Network
    "AffiliateProfile",
    "ActivationPayment",
    # Ledger
    "AffiliateCommission",
    "CommissionWithdrawal",
    "WithdrawalDeduction",
    # Enums
    "ActivationPaymentStatus",
    "AffiliateStatus",
    "CommissionKind",
    "CommissionStatus",
    "WithdrawalStatus",
    "EARNED_COMMISSION_STATUSES",
    "IN_FLIGHT_WITHDRAWAL_STATUSES",
    "SPENDABLE_COMMISSION_STATUSES",
]
