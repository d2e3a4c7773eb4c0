"""
Transition tables for ledger entities.

Each table maps a state to the set of states reachable from it. There are
no implicit transitions: anything missing from the table is rejected.
"""

from collections.abc import Mapping
from enum import StrEnum
from typing import Generic, TypeVar

from app.models.enums import (
    AffiliateStatus,
    CommissionStatus,
    WithdrawalStatus,
)
from app.utils.exceptions import StateConflictError


S = TypeVar("S", bound=StrEnum)


class TransitionTable(Generic[S]):
    """Validates state transitions against a fixed table."""

    def __init__(
        self,
        entity: str,
        enum_type: type[S],
        transitions: Mapping[S, frozenset[S]],
    ) -> None:
        self.entity = entity
        self.enum_type = enum_type
        self._transitions = dict(transitions)

    def allowed_from(self, current: str) -> frozenset[S]:
        """States reachable from current."""
        try:
            state = self.enum_type(current)
        except ValueError:
            return frozenset()
        return self._transitions.get(state, frozenset())

    def can_transition(self, current: str, target: S) -> bool:
        """Check a transition without raising."""
        return target in self.allowed_from(current)

    def ensure(self, current: str, target: S, entity_id=None) -> None:
        """
        Raise StateConflictError unless current -> target is legal.

        Args:
            current: Current state value
            target: Requested state
            entity_id: Id included in the error for the caller
        """
        if not self.can_transition(current, target):
            raise StateConflictError(
                self.entity, current, target, entity_id=entity_id
            )


COMMISSION_TRANSITIONS: TransitionTable[CommissionStatus] = TransitionTable(
    "Commission",
    CommissionStatus,
    {
        CommissionStatus.PENDING: frozenset({
            CommissionStatus.APPROVED,
            CommissionStatus.REJECTED,
            # Legacy: rows imported as PAID, no operation produces it
            CommissionStatus.PAID,
        }),
        # Partial debits keep APPROVED; full debit moves to WITHDRAWN
        CommissionStatus.APPROVED: frozenset({
            CommissionStatus.APPROVED,
            CommissionStatus.WITHDRAWN,
        }),
        CommissionStatus.PAID: frozenset({
            CommissionStatus.PAID,
            CommissionStatus.WITHDRAWN,
        }),
        CommissionStatus.REJECTED: frozenset(),
        CommissionStatus.WITHDRAWN: frozenset(),
    },
)


WITHDRAWAL_TRANSITIONS: TransitionTable[WithdrawalStatus] = TransitionTable(
    "Withdrawal",
    WithdrawalStatus,
    {
        WithdrawalStatus.PENDING: frozenset({
            WithdrawalStatus.APPROVED,
            WithdrawalStatus.REJECTED,
            WithdrawalStatus.COMPLETED,
        }),
        WithdrawalStatus.APPROVED: frozenset({WithdrawalStatus.COMPLETED}),
        WithdrawalStatus.REJECTED: frozenset(),
        WithdrawalStatus.COMPLETED: frozenset(),
    },
)


AFFILIATE_TRANSITIONS: TransitionTable[AffiliateStatus] = TransitionTable(
    "Affiliate",
    AffiliateStatus,
    {
        AffiliateStatus.PENDING: frozenset({
            AffiliateStatus.ACTIVE,
            AffiliateStatus.SUSPENDED,
            AffiliateStatus.INACTIVE,
        }),
        AffiliateStatus.ACTIVE: frozenset({
            AffiliateStatus.SUSPENDED,
            AffiliateStatus.INACTIVE,
        }),
        AffiliateStatus.SUSPENDED: frozenset({
            AffiliateStatus.ACTIVE,
            AffiliateStatus.INACTIVE,
        }),
        AffiliateStatus.INACTIVE: frozenset({
            AffiliateStatus.ACTIVE,
            AffiliateStatus.SUSPENDED,
        }),
    },
)
