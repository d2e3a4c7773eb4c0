"""
Admin approval workflow.

Admin-facing operations over the commission ledger: single approval,
approval with an adjusted amount, best-effort batches, per-affiliate
group approval, rejection, and the pending queue.
"""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import AffiliateCommission
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.services.commission.ledger import CommissionLedger, GroupApprovalResult
from app.utils.cache import LedgerCache
from app.utils.exceptions import LedgerError, ValidationError


@dataclass
class BatchApprovalResult:
    """Per-id outcome of a batch approval."""

    approved: list[AffiliateCommission] = field(default_factory=list)
    failed: dict[int, dict] = field(default_factory=dict)

    @property
    def approved_ids(self) -> list[int]:
        return [commission.id for commission in self.approved]

    @property
    def approved_amount(self) -> int:
        return sum(commission.amount for commission in self.approved)


class AdminApprovalWorkflow:
    """Admin decisions on PENDING commission rows."""

    def __init__(
        self,
        session: AsyncSession,
        cache: LedgerCache | None = None,
        ledger: CommissionLedger | None = None,
    ) -> None:
        """
        Initialize approval workflow.

        Args:
            session: Async database session
            cache: Ledger cache for balance invalidation
            ledger: Commission ledger (built from session/cache if omitted)
        """
        self.session = session
        self.cache = cache or LedgerCache()
        self.ledger = ledger or CommissionLedger(session, self.cache)
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)

    async def approve(self, commission_id: int) -> AffiliateCommission:
        """Approve one row with its full amount."""
        return await self.ledger.approve(commission_id)

    async def approve_with_adjusted_amount(
        self, commission_id: int, amount: int
    ) -> AffiliateCommission:
        """Approve one row, replacing its amount verbatim."""
        if amount is None:
            raise ValidationError("Adjusted amount is required", field="amount")
        return await self.ledger.approve(commission_id, amount=amount)

    async def approve_batch(
        self, commission_ids: list[int]
    ) -> BatchApprovalResult:
        """
        Approve several rows independently.

        Not transactional: each id commits on its own and failures are
        collected per id, so partial success is expected.

        Args:
            commission_ids: Commission IDs (duplicates processed once)

        Returns:
            BatchApprovalResult with approved rows and per-id errors
        """
        if not commission_ids:
            raise ValidationError(
                "At least one commission id is required",
                field="commission_ids",
            )

        result = BatchApprovalResult()
        for commission_id in dict.fromkeys(commission_ids):
            try:
                commission = await self.ledger.approve(commission_id)
            except LedgerError as e:
                result.failed[commission_id] = e.to_dict()
            except SQLAlchemyError as e:
                logger.error(
                    f"Database error approving commission {commission_id}: {e}",
                    exc_info=True,
                )
                result.failed[commission_id] = {
                    "code": "DATABASE_ERROR",
                    "message": str(e),
                    "details": {"id": commission_id},
                }
            else:
                result.approved.append(commission)

        if result.failed:
            # A failed id rolled back the session and expired earlier rows
            for commission in result.approved:
                await self.session.refresh(commission)

        logger.info(
            "Commission batch approval finished",
            extra={
                "requested": len(commission_ids),
                "approved": len(result.approved),
                "failed": len(result.failed),
                "approved_amount": str(result.approved_amount),
            },
        )
        return result

    async def approve_affiliate_group(
        self, affiliate_id: int, total_override: int | None = None
    ) -> GroupApprovalResult:
        """Approve every PENDING row of one affiliate."""
        return await self.ledger.approve_pending_for_affiliate(
            affiliate_id, total_override=total_override
        )

    async def reject(
        self, commission_id: int, reason: str
    ) -> AffiliateCommission:
        """Reject one row with a mandatory reason."""
        return await self.ledger.reject(commission_id, reason)

    async def list_pending_grouped(
        self, search: str | None = None
    ) -> dict:
        """
        Pending queue grouped by affiliate.

        Args:
            search: Optional match on affiliate code or user id

        Returns:
            Dict with groups and totals
        """
        groups = await self.commission_repo.get_pending_grouped_by_affiliate(
            search=search.strip() if search else None
        )
        return {
            "groups": groups,
            "total_affiliates": len(groups),
            "total_commissions": sum(group["count"] for group in groups),
            "total_amount": sum(group["amount"] for group in groups),
        }

    async def get_global_stats(self) -> dict:
        """Counts and amounts of all commission rows per status."""
        by_status = await self.commission_repo.get_summary_by_status()
        affiliates = await self.affiliate_repo.count_by_status()
        return {
            "affiliates_by_status": affiliates,
            "by_status": by_status,
            "total_count": sum(entry["count"] for entry in by_status.values()),
            "pending_amount": by_status["PENDING"]["amount"],
            "approved_amount": (
                by_status["APPROVED"]["amount"] + by_status["PAID"]["amount"]
            ),
        }
