"""
Status and kind enumerations.

Closed sets of states used by the ledger. Legal transitions between them
live next to the services that apply them.
"""

from enum import StrEnum


class AffiliateStatus(StrEnum):
    """Affiliate node lifecycle status."""

    PENDING = "PENDING"  # Registered, activation not complete
    ACTIVE = "ACTIVE"  # Eligible to earn commissions
    SUSPENDED = "SUSPENDED"  # Admin hold
    INACTIVE = "INACTIVE"  # Admin deactivated


class CommissionStatus(StrEnum):
    """Commission record lifecycle status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"  # Legacy alias of APPROVED, never produced
    WITHDRAWN = "WITHDRAWN"


class CommissionKind(StrEnum):
    """Distinguishes the rows a single purchase creates for one level."""

    BASE = "BASE"  # Level 1 base amount
    BONUS = "BONUS"  # Level 1 bonus amount
    LEVEL = "LEVEL"  # Levels 2..max, single row


class WithdrawalStatus(StrEnum):
    """Withdrawal request lifecycle status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class ActivationPaymentStatus(StrEnum):
    """One-time activation fee payment status (set by the gateway sync)."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"


# Statuses whose amounts can fund a withdrawal
SPENDABLE_COMMISSION_STATUSES = (
    CommissionStatus.APPROVED,
    CommissionStatus.PAID,
)

# Statuses counted in lifetime earnings
EARNED_COMMISSION_STATUSES = (
    CommissionStatus.PENDING,
    CommissionStatus.APPROVED,
    CommissionStatus.PAID,
    CommissionStatus.WITHDRAWN,
)

# Withdrawals that still reserve balance
IN_FLIGHT_WITHDRAWAL_STATUSES = (
    WithdrawalStatus.PENDING,
    WithdrawalStatus.APPROVED,
)
