"""
Commission ledger.

Applies the commission status machine for admin decisions: approval
(optionally with an overridden amount), rejection, and bulk approval of
one affiliate's pending rows. Amount reductions of approved rows belong
to the withdrawal debit engine, not to this module.
"""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import AffiliateProfile
from app.models.commission import AffiliateCommission
from app.models.enums import CommissionStatus
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.utils.cache import LedgerCache
from app.utils.datetime_utils import utc_now
from app.utils.db_decorators import with_rollback_on_error
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.state_machine import COMMISSION_TRANSITIONS


@dataclass
class GroupApprovalResult:
    """Outcome of approving every pending row of one affiliate."""

    affiliate_id: int
    approved: list[AffiliateCommission] = field(default_factory=list)
    rows_total: int = 0
    credited_amount: int = 0
    override_applied: bool = False


class CommissionLedger:
    """Status transitions of commission rows and their balance effects."""

    def __init__(
        self, session: AsyncSession, cache: LedgerCache | None = None
    ) -> None:
        """
        Initialize commission ledger.

        Args:
            session: Async database session
            cache: Ledger cache for balance invalidation
        """
        self.session = session
        self.cache = cache or LedgerCache()
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)

    async def get(self, commission_id: int) -> AffiliateCommission:
        """Get commission or raise NotFoundError."""
        commission = await self.commission_repo.get_by_id(commission_id)
        if not commission:
            raise NotFoundError("Commission", commission_id)
        return commission

    async def _lock(
        self, commission_id: int
    ) -> tuple[AffiliateProfile, AffiliateCommission]:
        """
        Lock beneficiary affiliate, then the commission row.

        Affiliate first, so every balance-changing path takes the
        per-user lock in the same order.
        """
        commission = await self.get(commission_id)
        affiliate = await self.affiliate_repo.get_for_update(
            commission.affiliate_id
        )
        if not affiliate:
            raise NotFoundError("Affiliate", commission.affiliate_id)
        commission = await self.commission_repo.get_for_update(commission_id)
        return affiliate, commission

    @with_rollback_on_error
    async def approve(
        self, commission_id: int, amount: int | None = None
    ) -> AffiliateCommission:
        """
        PENDING -> APPROVED.

        Args:
            commission_id: Commission ID
            amount: Replacement amount (verbatim, not pro-rated); None keeps
                the row amount

        Returns:
            Approved commission

        Raises:
            NotFoundError: commission does not exist
            StateConflictError: row is not PENDING
            ValidationError: replacement amount not positive
        """
        if amount is not None and (
            isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0
        ):
            raise ValidationError(
                f"Approved amount must be a positive integer, got {amount}",
                field="amount",
                received=amount,
            )

        affiliate, commission = await self._lock(commission_id)
        COMMISSION_TRANSITIONS.ensure(
            commission.status, CommissionStatus.APPROVED, commission_id
        )

        previous_amount = commission.amount
        if amount is not None:
            commission.amount = amount
            commission.original_amount = amount
        commission.status = CommissionStatus.APPROVED.value
        commission.approved_at = utc_now()

        affiliate.total_earnings += commission.amount
        affiliate.total_paid += commission.amount

        await self.session.commit()
        await self.cache.invalidate_owner(
            commission.user_id, commission.affiliate_id
        )

        logger.info(
            "Commission approved",
            extra={
                "commission_id": commission_id,
                "affiliate_id": commission.affiliate_id,
                "amount": str(commission.amount),
                "previous_amount": str(previous_amount),
                "adjusted": amount is not None,
            },
        )
        return commission

    @with_rollback_on_error
    async def reject(
        self, commission_id: int, reason: str
    ) -> AffiliateCommission:
        """
        PENDING -> REJECTED. Terminal, no balance effect.

        Raises:
            ValidationError: reason missing
            StateConflictError: row is not PENDING
        """
        if not reason or not reason.strip():
            raise ValidationError(
                "Rejection reason is required", field="reason"
            )

        _, commission = await self._lock(commission_id)
        COMMISSION_TRANSITIONS.ensure(
            commission.status, CommissionStatus.REJECTED, commission_id
        )

        commission.status = CommissionStatus.REJECTED.value
        commission.rejection_reason = reason.strip()

        await self.session.commit()
        await self.cache.invalidate_owner(
            commission.user_id, commission.affiliate_id
        )

        logger.info(
            "Commission rejected",
            extra={
                "commission_id": commission_id,
                "affiliate_id": commission.affiliate_id,
                "amount": str(commission.amount),
                "reason": commission.rejection_reason,
            },
        )
        return commission

    @with_rollback_on_error
    async def approve_pending_for_affiliate(
        self, affiliate_id: int, total_override: int | None = None
    ) -> GroupApprovalResult:
        """
        Approve every PENDING row of one affiliate in one transaction.

        With a positive total_override the affiliate totals grow by that
        number instead of the row sum; row amounts are left as they are.
        An override of 0 means no override.

        Args:
            affiliate_id: Beneficiary affiliate ID
            total_override: Amount credited for the whole group, 0 or None
                to credit the row sum

        Returns:
            GroupApprovalResult
        """
        if total_override is not None and (
            isinstance(total_override, bool)
            or not isinstance(total_override, int)
            or total_override < 0
        ):
            raise ValidationError(
                f"Override total must be a non-negative integer, "
                f"got {total_override}",
                field="total_override",
                received=total_override,
            )

        affiliate = await self.affiliate_repo.get_for_update(affiliate_id)
        if not affiliate:
            raise NotFoundError("Affiliate", affiliate_id)

        pending = await self.commission_repo.get_pending_for_affiliate(
            affiliate_id, for_update=True
        )
        result = GroupApprovalResult(affiliate_id=affiliate_id)
        if not pending:
            return result

        approved_at = utc_now()
        for commission in pending:
            COMMISSION_TRANSITIONS.ensure(
                commission.status, CommissionStatus.APPROVED, commission.id
            )
            commission.status = CommissionStatus.APPROVED.value
            commission.approved_at = approved_at

        result.approved = pending
        result.rows_total = sum(commission.amount for commission in pending)
        result.override_applied = bool(total_override)
        result.credited_amount = (
            total_override if result.override_applied else result.rows_total
        )

        affiliate.total_earnings += result.credited_amount
        affiliate.total_paid += result.credited_amount

        await self.session.commit()
        await self.cache.invalidate_owner(affiliate.user_id, affiliate_id)

        if result.override_applied and result.credited_amount != result.rows_total:
            logger.warning(
                "Group approval credited an override total",
                extra={
                    "affiliate_id": affiliate_id,
                    "rows_total": str(result.rows_total),
                    "credited_amount": str(result.credited_amount),
                },
            )
        logger.info(
            "Affiliate commissions approved",
            extra={
                "affiliate_id": affiliate_id,
                "count": len(pending),
                "credited_amount": str(result.credited_amount),
            },
        )
        return result
