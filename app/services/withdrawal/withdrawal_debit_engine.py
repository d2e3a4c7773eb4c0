"""
Withdrawal debit engine.

Funds a withdrawal on completion by consuming the user's approved
commission rows oldest-first, splitting the last row when it holds more
than is still needed.
"""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import AffiliateCommission
from app.models.enums import CommissionStatus, WithdrawalStatus
from app.models.withdrawal import CommissionWithdrawal
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.utils.cache import LedgerCache
from app.utils.datetime_utils import utc_now
from app.utils.db_decorators import with_rollback_on_error
from app.utils.exceptions import InsufficientBalanceError, NotFoundError
from app.utils.state_machine import (
    COMMISSION_TRANSITIONS,
    WITHDRAWAL_TRANSITIONS,
)


@dataclass(frozen=True)
class DeductionLine:
    """What one commission row contributed."""

    commission_id: int
    amount: int
    amount_before: int
    amount_after: int
    status_after: str


@dataclass
class DebitReport:
    """Completed withdrawal with its per-row deductions."""

    withdrawal: CommissionWithdrawal
    deductions: list[DeductionLine] = field(default_factory=list)

    @property
    def total_debited(self) -> int:
        return sum(line.amount for line in self.deductions)


def plan_fifo_debit(
    rows: list[AffiliateCommission], amount: int
) -> list[tuple[AffiliateCommission, int]]:
    """
    Decide how much to take from each row, oldest first.

    Args:
        rows: Spendable rows in FIFO order
        amount: Amount to fund

    Returns:
        List of (row, take) with sum(take) == amount

    Raises:
        InsufficientBalanceError: rows can't cover the amount
    """
    available = sum(row.amount for row in rows)
    if available < amount:
        raise InsufficientBalanceError(amount, available)

    plan = []
    remaining = amount
    for row in rows:
        if remaining <= 0:
            break
        take = min(row.amount, remaining)
        if take <= 0:
            continue
        plan.append((row, take))
        remaining -= take
    return plan


class WithdrawalDebitEngine:
    """
    Completes withdrawals against the commission ledger.

    The user's affiliate row is locked first, then the withdrawal, then
    the spendable rows, so two completions for one user never interleave
    and can't spend the same row twice.
    """

    def __init__(
        self, session: AsyncSession, cache: LedgerCache | None = None
    ) -> None:
        """
        Initialize debit engine.

        Args:
            session: Async database session
            cache: Ledger cache for balance invalidation
        """
        self.session = session
        self.cache = cache or LedgerCache()
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)

    @with_rollback_on_error
    async def complete(
        self, withdrawal_id: int, notes: str | None = None
    ) -> DebitReport:
        """
        Mark a withdrawal COMPLETED and consume approved rows FIFO.

        All-or-nothing: if the spendable rows don't cover the amount,
        nothing is touched and the withdrawal keeps its status.

        Args:
            withdrawal_id: Withdrawal ID
            notes: Optional admin notes

        Returns:
            DebitReport with the per-row deductions

        Raises:
            NotFoundError: withdrawal does not exist
            StateConflictError: withdrawal not PENDING/APPROVED
            InsufficientBalanceError: approved rows don't cover the amount
        """
        withdrawal = await self.withdrawal_repo.get_by_id(withdrawal_id)
        if not withdrawal:
            raise NotFoundError("Withdrawal", withdrawal_id)

        affiliate = await self.affiliate_repo.lock_by_user_id(
            withdrawal.user_id
        )
        withdrawal = await self.withdrawal_repo.get_for_update(withdrawal_id)
        WITHDRAWAL_TRANSITIONS.ensure(
            withdrawal.status, WithdrawalStatus.COMPLETED, withdrawal_id
        )

        rows = await self.commission_repo.get_spendable_for_update(
            withdrawal.user_id
        )
        try:
            plan = plan_fifo_debit(rows, withdrawal.amount)
        except InsufficientBalanceError as e:
            logger.warning(
                "Withdrawal completion refused: insufficient approved balance",
                extra={
                    "withdrawal_id": withdrawal_id,
                    "user_id": withdrawal.user_id,
                    "requested": str(e.requested),
                    "available": str(e.available),
                    "shortfall": str(e.shortfall),
                },
            )
            raise

        report = DebitReport(withdrawal=withdrawal)
        for row, take in plan:
            before = row.amount
            after = before - take
            target = (
                CommissionStatus.WITHDRAWN if after == 0 else CommissionStatus(row.status)
            )
            COMMISSION_TRANSITIONS.ensure(row.status, target, row.id)

            row.amount = after
            row.status = target.value
            self.withdrawal_repo.add_deduction(
                withdrawal_id=withdrawal.id,
                commission_id=row.id,
                amount=take,
                amount_before=before,
            )
            report.deductions.append(DeductionLine(
                commission_id=row.id,
                amount=take,
                amount_before=before,
                amount_after=after,
                status_after=target.value,
            ))
            logger.info(
                "Commission debited",
                extra={
                    "withdrawal_id": withdrawal.id,
                    "commission_id": row.id,
                    "amount": str(take),
                    "amount_before": str(before),
                    "amount_after": str(after),
                    "status": target.value,
                },
            )

        withdrawal.status = WithdrawalStatus.COMPLETED.value
        withdrawal.completed_at = utc_now()
        if notes:
            withdrawal.notes = notes.strip()

        await self.session.flush()
        await self.session.commit()

        await self.cache.invalidate_owner(
            withdrawal.user_id, affiliate.id if affiliate else None
        )

        logger.info(
            "Withdrawal completed",
            extra={
                "withdrawal_id": withdrawal.id,
                "user_id": withdrawal.user_id,
                "amount": str(withdrawal.amount),
                "rows_touched": len(report.deductions),
            },
        )
        return report
