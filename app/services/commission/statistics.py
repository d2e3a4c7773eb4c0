"""
Commission statistics module.

Per-affiliate summaries, level breakdown and the dashboard view.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import (
    CACHE_KEY_COMMISSION_STATS,
    CACHE_KEY_DASHBOARD,
    RECENT_COMMISSIONS_LIMIT,
)
from app.models.commission import AffiliateCommission
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.services.balance.aggregator import BalanceAggregator
from app.services.commission.config import CommissionSchedule
from app.utils.cache import LedgerCache
from app.utils.exceptions import NotFoundError


def commission_to_dict(commission: AffiliateCommission) -> dict:
    """Output shape of a commission row."""
    return {
        "id": commission.id,
        "affiliate_id": commission.affiliate_id,
        "transaction_id": commission.transaction_id,
        "buyer_id": commission.buyer_id,
        "level": commission.level,
        "kind": commission.kind,
        "amount": commission.amount,
        "original_amount": commission.original_amount,
        "status": commission.status,
        "created_at": commission.created_at,
        "approved_at": commission.approved_at,
    }


class CommissionStatisticsService:
    """Read-only commission views for affiliates."""

    def __init__(
        self,
        session: AsyncSession,
        schedule: CommissionSchedule | None = None,
        cache: LedgerCache | None = None,
    ) -> None:
        """Initialize statistics service."""
        self.session = session
        self.schedule = schedule or CommissionSchedule.from_settings()
        self.cache = cache or LedgerCache()
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.balance_aggregator = BalanceAggregator(session, self.cache)

    async def get_summary(self, affiliate_id: int) -> dict:
        """
        Totals of one beneficiary by status.

        Args:
            affiliate_id: Beneficiary affiliate ID

        Returns:
            Dict with by_status ({status: {"count", "amount"}}) plus
            total_amount and total_count over non-rejected rows
        """
        by_status = await self.commission_repo.get_summary_by_status(
            affiliate_id
        )
        earned = {
            status: entry
            for status, entry in by_status.items()
            if status != "REJECTED"
        }
        return {
            "affiliate_id": affiliate_id,
            "by_status": by_status,
            "total_amount": sum(entry["amount"] for entry in earned.values()),
            "total_count": sum(entry["count"] for entry in earned.values()),
        }

    async def get_level_breakdown(self, affiliate_id: int) -> list[dict]:
        """
        Every schedule level with what the affiliate earned there.

        Levels without rows are included with zero totals so the schedule
        is visible.
        """
        breakdown = await self.commission_repo.get_level_breakdown(
            affiliate_id
        )
        levels = []
        for level in range(1, self.schedule.max_level + 1):
            entry = breakdown.get(
                level, {"count": 0, "total": 0, "pending": 0, "approved": 0}
            )
            levels.append({
                "level": level,
                "fixed_amount": self.schedule.level_total(level),
                **entry,
            })
        return levels

    async def get_recent(
        self, affiliate_id: int, limit: int = RECENT_COMMISSIONS_LIMIT
    ) -> list[dict]:
        """Most recent rows of a beneficiary."""
        commissions = await self.commission_repo.get_recent(
            affiliate_id, limit
        )
        return [commission_to_dict(commission) for commission in commissions]

    async def get_commission_stats(self, affiliate_id: int) -> dict:
        """Summary and level breakdown, served from cache within TTL."""
        key = CACHE_KEY_COMMISSION_STATS.format(affiliate_id=affiliate_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached

        stats = {
            "summary": await self.get_summary(affiliate_id),
            "levels": await self.get_level_breakdown(affiliate_id),
        }
        await self.cache.set_json(key, stats)
        return stats

    async def get_dashboard(self, user_id: int) -> dict:
        """
        Dashboard view of one user: balance, commission stats, recent rows.

        Cached under the user's dashboard key for the configured TTL.
        """
        key = CACHE_KEY_DASHBOARD.format(user_id=user_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached

        affiliate = await self.affiliate_repo.get_by_user_id(user_id)
        if not affiliate:
            raise NotFoundError("Affiliate for user", user_id)

        balance = await self.balance_aggregator.dashboard_balance(user_id)
        dashboard = {
            "affiliate": {
                "id": affiliate.id,
                "code": affiliate.code,
                "status": affiliate.status,
                "total_earnings": affiliate.total_earnings,
                "total_paid": affiliate.total_paid,
            },
            "balance": balance.to_dict(),
            "commissions": await self.get_commission_stats(affiliate.id),
            "recent": await self.get_recent(affiliate.id),
        }
        await self.cache.set_json(key, dashboard)
        return dashboard
