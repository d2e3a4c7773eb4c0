"""
Commission repository.

Data access layer for AffiliateCommission model.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import String, case, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import AffiliateProfile
from app.models.commission import AffiliateCommission
from app.models.enums import (
    EARNED_COMMISSION_STATUSES,
    SPENDABLE_COMMISSION_STATUSES,
    CommissionStatus,
)
from app.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[AffiliateCommission]):
    """Commission repository with ledger queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(AffiliateCommission, session)

    async def find_existing(
        self,
        affiliate_id: int,
        transaction_id: str,
        level: int,
        kind: str,
    ) -> AffiliateCommission | None:
        """
        Find row by its idempotency tuple.

        Args:
            affiliate_id: Beneficiary affiliate ID
            transaction_id: Ledger reference of the purchase
            level: Upline level
            kind: Row kind

        Returns:
            Existing row or None
        """
        return await self.get_by(
            affiliate_id=affiliate_id,
            transaction_id=transaction_id,
            level=level,
            kind=kind,
        )

    async def get_spendable_for_update(
        self, user_id: int
    ) -> list[AffiliateCommission]:
        """
        Lock every spendable row of a user, oldest first.

        Ordering is (created_at, id) so rows created in the same instant
        are still consumed deterministically.

        Args:
            user_id: Balance owner

        Returns:
            APPROVED/PAID rows with positive amount in FIFO order
        """
        stmt = (
            select(AffiliateCommission)
            .where(
                AffiliateCommission.user_id == user_id,
                AffiliateCommission.status.in_(SPENDABLE_COMMISSION_STATUSES),
                AffiliateCommission.amount > 0,
            )
            .order_by(
                AffiliateCommission.created_at.asc(),
                AffiliateCommission.id.asc(),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_amount(
        self,
        user_id: int,
        statuses: Sequence[str],
    ) -> int:
        """
        Sum row amounts of a user in the given statuses.

        Args:
            user_id: Balance owner
            statuses: Statuses to include

        Returns:
            Sum of amounts (0 when no rows)
        """
        stmt = select(
            func.coalesce(func.sum(AffiliateCommission.amount), 0)
        ).where(
            AffiliateCommission.user_id == user_id,
            AffiliateCommission.status.in_(statuses),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def sum_spendable(self, user_id: int) -> int:
        """Sum of APPROVED (and legacy PAID) amounts of a user."""
        return await self.sum_amount(user_id, SPENDABLE_COMMISSION_STATUSES)

    async def sum_earned(self, user_id: int) -> int:
        """Sum of all non-rejected amounts currently on the ledger."""
        return await self.sum_amount(user_id, EARNED_COMMISSION_STATUSES)

    async def get_pending_for_affiliate(
        self, affiliate_id: int, for_update: bool = False
    ) -> list[AffiliateCommission]:
        """
        Get PENDING rows of an affiliate, oldest first.

        Args:
            affiliate_id: Beneficiary affiliate ID
            for_update: Lock the rows

        Returns:
            Pending rows
        """
        stmt = (
            select(AffiliateCommission)
            .where(
                AffiliateCommission.affiliate_id == affiliate_id,
                AffiliateCommission.status == CommissionStatus.PENDING,
            )
            .order_by(
                AffiliateCommission.created_at.asc(),
                AffiliateCommission.id.asc(),
            )
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_summary_by_status(
        self, affiliate_id: int | None = None
    ) -> dict[str, dict[str, int]]:
        """
        Amount and count per status.

        Args:
            affiliate_id: Restrict to one beneficiary (None for global)

        Returns:
            Dict status -> {"count": n, "amount": sum}, every status present
        """
        stmt = select(
            AffiliateCommission.status,
            func.count(AffiliateCommission.id).label("count"),
            func.coalesce(func.sum(AffiliateCommission.amount), 0).label(
                "amount"
            ),
        ).group_by(AffiliateCommission.status)
        if affiliate_id is not None:
            stmt = stmt.where(AffiliateCommission.affiliate_id == affiliate_id)

        result = await self.session.execute(stmt)
        summary = {
            status.value: {"count": 0, "amount": 0}
            for status in CommissionStatus
        }
        for row in result.all():
            summary[row.status] = {
                "count": row.count,
                "amount": int(row.amount),
            }
        return summary

    async def get_level_breakdown(
        self, affiliate_id: int
    ) -> dict[int, dict[str, int]]:
        """
        Per-level totals for one beneficiary.

        Args:
            affiliate_id: Beneficiary affiliate ID

        Returns:
            Dict level -> {"count", "total", "pending", "approved"},
            only for levels that have rows
        """
        approved_amount = case(
            (
                AffiliateCommission.status.in_(SPENDABLE_COMMISSION_STATUSES),
                AffiliateCommission.amount,
            ),
            else_=0,
        )
        pending_amount = case(
            (
                AffiliateCommission.status == CommissionStatus.PENDING,
                AffiliateCommission.amount,
            ),
            else_=0,
        )
        stmt = (
            select(
                AffiliateCommission.level,
                func.count(AffiliateCommission.id).label("count"),
                func.coalesce(func.sum(AffiliateCommission.amount), 0).label(
                    "total"
                ),
                func.coalesce(func.sum(pending_amount), 0).label("pending"),
                func.coalesce(func.sum(approved_amount), 0).label("approved"),
            )
            .where(
                AffiliateCommission.affiliate_id == affiliate_id,
                AffiliateCommission.status.in_(EARNED_COMMISSION_STATUSES),
            )
            .group_by(AffiliateCommission.level)
        )
        result = await self.session.execute(stmt)
        return {
            row.level: {
                "count": row.count,
                "total": int(row.total),
                "pending": int(row.pending),
                "approved": int(row.approved),
            }
            for row in result.all()
        }

    async def get_recent(
        self, affiliate_id: int, limit: int
    ) -> list[AffiliateCommission]:
        """Most recent rows of a beneficiary, newest first."""
        stmt = (
            select(AffiliateCommission)
            .where(AffiliateCommission.affiliate_id == affiliate_id)
            .order_by(
                AffiliateCommission.created_at.desc(),
                AffiliateCommission.id.desc(),
            )
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_earnings_from_buyers(
        self, affiliate_id: int, buyer_ids: Sequence[int]
    ) -> dict[int, int]:
        """
        Non-rejected amounts an affiliate earned from each buyer.

        Args:
            affiliate_id: Beneficiary affiliate ID
            buyer_ids: Purchasing affiliate IDs

        Returns:
            Dict buyer ID -> earned amount
        """
        earnings = {buyer_id: 0 for buyer_id in buyer_ids}
        if not buyer_ids:
            return earnings
        stmt = (
            select(
                AffiliateCommission.buyer_id,
                func.coalesce(
                    func.sum(AffiliateCommission.original_amount), 0
                ).label("earned"),
            )
            .where(
                AffiliateCommission.affiliate_id == affiliate_id,
                AffiliateCommission.buyer_id.in_(buyer_ids),
                AffiliateCommission.status.in_(EARNED_COMMISSION_STATUSES),
            )
            .group_by(AffiliateCommission.buyer_id)
        )
        result = await self.session.execute(stmt)
        for row in result.all():
            earnings[row.buyer_id] = int(row.earned)
        return earnings

    async def get_pending_grouped_by_affiliate(
        self, search: str | None = None
    ) -> list[dict]:
        """
        PENDING rows aggregated per beneficiary for the admin queue.

        Args:
            search: Optional case-insensitive match on affiliate code

        Returns:
            List of {"affiliate_id", "user_id", "code", "count", "amount",
            "oldest_at"} ordered by oldest pending row
        """
        stmt = (
            select(
                AffiliateProfile.id.label("affiliate_id"),
                AffiliateProfile.user_id,
                AffiliateProfile.code,
                func.count(AffiliateCommission.id).label("count"),
                func.coalesce(func.sum(AffiliateCommission.amount), 0).label(
                    "amount"
                ),
                func.min(AffiliateCommission.created_at).label("oldest_at"),
            )
            .join(
                AffiliateProfile,
                AffiliateProfile.id == AffiliateCommission.affiliate_id,
            )
            .where(AffiliateCommission.status == CommissionStatus.PENDING)
            .group_by(
                AffiliateProfile.id,
                AffiliateProfile.user_id,
                AffiliateProfile.code,
            )
            .order_by(func.min(AffiliateCommission.created_at).asc())
        )
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(AffiliateProfile.code).like(pattern),
                    cast(AffiliateProfile.user_id, String).like(pattern),
                )
            )

        result = await self.session.execute(stmt)
        groups = []
        for row in result.all():
            oldest_at: datetime | None = row.oldest_at
            groups.append({
                "affiliate_id": row.affiliate_id,
                "user_id": row.user_id,
                "code": row.code,
                "count": row.count,
                "amount": int(row.amount),
                "oldest_at": oldest_at,
            })
        return groups

    async def get_status_totals_for_affiliates(
        self, affiliate_ids: Sequence[int]
    ) -> dict[int, dict[str, int]]:
        """
        Own earnings of several affiliates split by status bucket.

        Args:
            affiliate_ids: Beneficiary affiliate IDs

        Returns:
            Dict affiliate ID -> {"total", "pending", "approved"}
        """
        totals = {
            affiliate_id: {"total": 0, "pending": 0, "approved": 0}
            for affiliate_id in affiliate_ids
        }
        if not affiliate_ids:
            return totals
        stmt = (
            select(
                AffiliateCommission.affiliate_id,
                AffiliateCommission.status,
                func.coalesce(func.sum(AffiliateCommission.amount), 0).label(
                    "amount"
                ),
            )
            .where(
                AffiliateCommission.affiliate_id.in_(affiliate_ids),
                AffiliateCommission.status.in_(EARNED_COMMISSION_STATUSES),
            )
            .group_by(
                AffiliateCommission.affiliate_id,
                AffiliateCommission.status,
            )
        )
        result = await self.session.execute(stmt)
        for row in result.all():
            entry = totals[row.affiliate_id]
            amount = int(row.amount)
            entry["total"] += amount
            if row.status == CommissionStatus.PENDING:
                entry["pending"] += amount
            elif row.status in SPENDABLE_COMMISSION_STATUSES:
                entry["approved"] += amount
        return totals
