"""
Affiliate repository.

Data access layer for AffiliateProfile model (the referral graph).
"""

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import AffiliateProfile
from app.models.enums import AffiliateStatus
from app.repositories.base import BaseRepository


class AffiliateRepository(BaseRepository[AffiliateProfile]):
    """Affiliate repository with graph-specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate repository."""
        super().__init__(AffiliateProfile, session)

    async def get_by_user_id(self, user_id: int) -> AffiliateProfile | None:
        """
        Get affiliate owned by a user.

        Args:
            user_id: Owning user ID

        Returns:
            Affiliate or None
        """
        return await self.get_by(user_id=user_id)

    async def get_by_code(self, code: str) -> AffiliateProfile | None:
        """
        Get affiliate by display/referral code.

        Args:
            code: Affiliate code

        Returns:
            Affiliate or None
        """
        return await self.get_by(code=code)

    async def lock_by_user_id(self, user_id: int) -> AffiliateProfile | None:
        """
        Lock the affiliate row of a user (SELECT ... FOR UPDATE).

        Serializes balance-changing operations per user.

        Args:
            user_id: Owning user ID

        Returns:
            Locked affiliate or None if the user has no affiliate profile
        """
        stmt = (
            select(AffiliateProfile)
            .where(AffiliateProfile.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_parent_id(self, affiliate_id: int) -> int | None:
        """
        Get upline ID of an affiliate without loading the entity.

        Args:
            affiliate_id: Affiliate ID

        Returns:
            Upline ID, or None for a root or unknown affiliate
        """
        stmt = select(AffiliateProfile.referred_by_id).where(
            AffiliateProfile.id == affiliate_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_children(
        self, parent_ids: Sequence[int]
    ) -> list[AffiliateProfile]:
        """
        Get direct downlines of a set of affiliates.

        Args:
            parent_ids: Upline IDs (one BFS frontier)

        Returns:
            Affiliates whose upline is in parent_ids
        """
        if not parent_ids:
            return []
        stmt = (
            select(AffiliateProfile)
            .where(AffiliateProfile.referred_by_id.in_(parent_ids))
            .order_by(AffiliateProfile.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_direct_referrals(
        self, affiliate_id: int, limit: int | None = None
    ) -> list[AffiliateProfile]:
        """
        Get direct downlines, newest first.

        Args:
            affiliate_id: Upline ID
            limit: Max number of results

        Returns:
            Direct referrals
        """
        stmt = (
            select(AffiliateProfile)
            .where(AffiliateProfile.referred_by_id == affiliate_id)
            .order_by(
                AffiliateProfile.registered_at.desc(),
                AffiliateProfile.id.desc(),
            )
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_direct_referrals(
        self, affiliate_ids: Sequence[int]
    ) -> dict[int, int]:
        """
        Count direct downlines for several affiliates in one query.

        Args:
            affiliate_ids: Upline IDs

        Returns:
            Dict mapping affiliate ID to direct referral count
        """
        counts = {affiliate_id: 0 for affiliate_id in affiliate_ids}
        if not affiliate_ids:
            return counts
        stmt = (
            select(
                AffiliateProfile.referred_by_id,
                func.count(AffiliateProfile.id).label("count"),
            )
            .where(AffiliateProfile.referred_by_id.in_(affiliate_ids))
            .group_by(AffiliateProfile.referred_by_id)
        )
        result = await self.session.execute(stmt)
        for row in result.all():
            counts[row.referred_by_id] = row.count
        return counts

    async def count_by_status(self) -> dict[str, int]:
        """Count affiliates per status."""
        stmt = select(
            AffiliateProfile.status, func.count(AffiliateProfile.id)
        ).group_by(AffiliateProfile.status)
        result = await self.session.execute(stmt)
        counts = {status.value: 0 for status in AffiliateStatus}
        for status, count in result.all():
            counts[status] = count
        return counts
