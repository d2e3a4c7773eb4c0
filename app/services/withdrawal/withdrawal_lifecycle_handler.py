"""
Withdrawal lifecycle handling module.

Handles withdrawal approval, rejection and completion. Completion is
delegated to the debit engine, the only path that spends commission rows.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WithdrawalStatus
from app.models.withdrawal import CommissionWithdrawal
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.withdrawal.withdrawal_debit_engine import (
    DebitReport,
    WithdrawalDebitEngine,
)
from app.utils.cache import LedgerCache
from app.utils.datetime_utils import utc_now
from app.utils.db_decorators import with_rollback_on_error
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.state_machine import WITHDRAWAL_TRANSITIONS


class WithdrawalLifecycleHandler:
    """Handles withdrawal lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        cache: LedgerCache | None = None,
        debit_engine: WithdrawalDebitEngine | None = None,
    ) -> None:
        """
        Initialize withdrawal lifecycle handler.

        Args:
            session: Database session
            cache: Ledger cache for balance invalidation
            debit_engine: Engine used on completion
        """
        self.session = session
        self.cache = cache or LedgerCache()
        self.affiliate_repo = AffiliateRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.debit_engine = debit_engine or WithdrawalDebitEngine(
            session, self.cache
        )

    async def _lock(self, withdrawal_id: int) -> CommissionWithdrawal:
        """Lock the owner's affiliate row, then the withdrawal."""
        withdrawal = await self.withdrawal_repo.get_by_id(withdrawal_id)
        if not withdrawal:
            raise NotFoundError("Withdrawal", withdrawal_id)
        await self.affiliate_repo.lock_by_user_id(withdrawal.user_id)
        return await self.withdrawal_repo.get_for_update(withdrawal_id)

    @with_rollback_on_error
    async def approve_withdrawal(
        self, withdrawal_id: int, notes: str | None = None
    ) -> CommissionWithdrawal:
        """
        PENDING -> APPROVED.

        Raises:
            StateConflictError: withdrawal is not PENDING
        """
        withdrawal = await self._lock(withdrawal_id)
        WITHDRAWAL_TRANSITIONS.ensure(
            withdrawal.status, WithdrawalStatus.APPROVED, withdrawal_id
        )

        withdrawal.status = WithdrawalStatus.APPROVED.value
        withdrawal.approved_at = utc_now()
        if notes and notes.strip():
            withdrawal.notes = notes.strip()

        await self.session.commit()
        await self.cache.invalidate_user(withdrawal.user_id)

        logger.info(
            "Withdrawal approved",
            extra={
                "withdrawal_id": withdrawal_id,
                "user_id": withdrawal.user_id,
                "amount": str(withdrawal.amount),
            },
        )
        return withdrawal

    @with_rollback_on_error
    async def reject_withdrawal(
        self, withdrawal_id: int, notes: str
    ) -> CommissionWithdrawal:
        """
        PENDING -> REJECTED, releasing the reserved balance.

        Raises:
            ValidationError: notes missing
            StateConflictError: withdrawal is not PENDING
        """
        if not notes or not notes.strip():
            raise ValidationError(
                "Rejection notes are required", field="notes"
            )

        withdrawal = await self._lock(withdrawal_id)
        WITHDRAWAL_TRANSITIONS.ensure(
            withdrawal.status, WithdrawalStatus.REJECTED, withdrawal_id
        )

        withdrawal.status = WithdrawalStatus.REJECTED.value
        withdrawal.notes = notes.strip()

        await self.session.commit()
        await self.cache.invalidate_user(withdrawal.user_id)

        logger.info(
            "Withdrawal rejected",
            extra={
                "withdrawal_id": withdrawal_id,
                "user_id": withdrawal.user_id,
                "amount": str(withdrawal.amount),
                "notes": withdrawal.notes,
            },
        )
        return withdrawal

    async def complete_withdrawal(
        self, withdrawal_id: int, notes: str | None = None
    ) -> DebitReport:
        """PENDING/APPROVED -> COMPLETED through the FIFO debit."""
        return await self.debit_engine.complete(withdrawal_id, notes=notes)
