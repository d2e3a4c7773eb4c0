"""
Referral network module.

Downline statistics computed with bounded, level-by-level traversal:
network size per level, counts for many roots, direct referrals with
their earnings, and the referral hierarchy tree.
"""

from collections.abc import Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import (
    CACHE_KEY_REFERRAL_TREE,
    DIRECT_REFERRALS_LIMIT,
    NETWORK_ABSOLUTE_MAX_DEPTH,
)
from app.config.settings import settings
from app.models.affiliate import AffiliateProfile
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.utils.cache import LedgerCache
from app.utils.exceptions import NotFoundError


def _clamp_depth(max_depth: int | None) -> int:
    """Configured depth, never above the absolute bound."""
    if max_depth is None:
        max_depth = settings.network_max_depth
    return max(0, min(max_depth, NETWORK_ABSOLUTE_MAX_DEPTH))


class ReferralNetworkService:
    """Read-only downline traversal."""

    def __init__(
        self, session: AsyncSession, cache: LedgerCache | None = None
    ) -> None:
        """Initialize network service."""
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.cache = cache or LedgerCache()

    async def _levels(
        self, root_id: int, max_depth: int
    ) -> list[list[AffiliateProfile]]:
        """
        Breadth-first downline frontiers, one list per level.

        Nodes already seen are dropped so a corrupted graph can't loop.
        """
        levels: list[list[AffiliateProfile]] = []
        seen = {root_id}
        frontier = [root_id]

        for _ in range(max_depth):
            if not frontier:
                break
            children = [
                child
                for child in await self.affiliate_repo.get_children(frontier)
                if child.id not in seen
            ]
            if not children:
                break
            seen.update(child.id for child in children)
            levels.append(children)
            frontier = [child.id for child in children]

        return levels

    async def get_network_stats(
        self, affiliate_id: int, max_depth: int | None = None
    ) -> dict:
        """
        Downline size with per-level totals.

        Args:
            affiliate_id: Root affiliate ID
            max_depth: Levels to traverse (defaults to network_max_depth)

        Returns:
            Dict with total_members and members_by_level
            ({level: {"total", "active", "inactive"}})
        """
        depth = _clamp_depth(max_depth)
        members_by_level: dict[int, dict[str, int]] = {}
        total_members = 0

        for level, members in enumerate(
            await self._levels(affiliate_id, depth), start=1
        ):
            active = sum(1 for member in members if member.is_active)
            members_by_level[level] = {
                "total": len(members),
                "active": active,
                "inactive": len(members) - active,
            }
            total_members += len(members)

        return {
            "affiliate_id": affiliate_id,
            "total_members": total_members,
            "members_by_level": members_by_level,
        }

    async def get_cached_network_stats(
        self, affiliate_id: int, max_depth: int | None = None
    ) -> dict:
        """Network stats for dashboards, served from cache within TTL."""
        key = CACHE_KEY_REFERRAL_TREE.format(affiliate_id=affiliate_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            # JSON object keys come back as strings
            cached["members_by_level"] = {
                int(level): counts
                for level, counts in cached["members_by_level"].items()
            }
            return cached

        stats = await self.get_network_stats(affiliate_id, max_depth)
        await self.cache.set_json(key, stats)
        return stats

    async def get_network_counts(
        self, affiliate_ids: Sequence[int], max_depth: int | None = None
    ) -> dict[int, int]:
        """
        Downline size for many roots.

        Args:
            affiliate_ids: Root affiliate IDs
            max_depth: Levels to traverse

        Returns:
            Dict root ID -> downline count (0 for unknown roots)
        """
        depth = _clamp_depth(max_depth)
        counts: dict[int, int] = {}
        for affiliate_id in affiliate_ids:
            levels = await self._levels(affiliate_id, depth)
            counts[affiliate_id] = sum(len(members) for members in levels)
        return counts

    async def get_direct_referrals(
        self, affiliate_id: int, limit: int = DIRECT_REFERRALS_LIMIT
    ) -> dict:
        """
        Direct referrals with their own earnings.

        Args:
            affiliate_id: Upline affiliate ID
            limit: Max referrals returned (newest first)

        Returns:
            Dict with referrals list and summary
        """
        referrals = await self.affiliate_repo.get_direct_referrals(
            affiliate_id, limit=limit
        )
        ids = [referral.id for referral in referrals]
        sub_counts = await self.affiliate_repo.count_direct_referrals(ids)
        earnings = await self.commission_repo.get_status_totals_for_affiliates(
            ids
        )
        earned_from = await self.commission_repo.get_earnings_from_buyers(
            affiliate_id, ids
        )

        items = []
        for referral in referrals:
            own = earnings[referral.id]
            items.append({
                "id": referral.id,
                "user_id": referral.user_id,
                "code": referral.code,
                "status": referral.status,
                "registered_at": referral.registered_at,
                "activated_at": referral.activated_at,
                "sub_referrals_count": sub_counts[referral.id],
                "total_earnings": own["total"],
                "pending_earnings": own["pending"],
                "approved_earnings": own["approved"],
                "earned_from": earned_from[referral.id],
            })

        return {
            "referrals": items,
            "summary": {
                "total_members": len(items),
                "active_members": sum(
                    1 for referral in referrals if referral.is_active
                ),
                "total_commission_distributed": sum(
                    item["total_earnings"] for item in items
                ),
                "pending_commissions": sum(
                    item["pending_earnings"] for item in items
                ),
            },
        }

    async def get_hierarchy(
        self, affiliate_id: int, max_depth: int | None = None
    ) -> dict:
        """
        Referral tree rooted at an affiliate, built level by level.

        Each node carries what the root earned from that member's
        purchases.

        Args:
            affiliate_id: Root affiliate ID
            max_depth: Levels to include

        Returns:
            Nested dict {"id", "code", "status", "level", "earned_from",
            "children": [...]}
        """
        root = await self.affiliate_repo.get_by_id(affiliate_id)
        if not root:
            raise NotFoundError("Affiliate", affiliate_id)

        depth = _clamp_depth(max_depth)
        levels = await self._levels(affiliate_id, depth)
        member_ids = [member.id for members in levels for member in members]
        earned_from = await self.commission_repo.get_earnings_from_buyers(
            affiliate_id, member_ids
        )

        root_node = self._node(root, 0, 0)
        nodes = {root.id: root_node}
        for level, members in enumerate(levels, start=1):
            for member in members:
                node = self._node(member, level, earned_from[member.id])
                nodes[member.id] = node
                nodes[member.referred_by_id]["children"].append(node)

        logger.debug(
            "Referral hierarchy built",
            extra={
                "affiliate_id": affiliate_id,
                "depth": len(levels),
                "members": len(member_ids),
            },
        )
        return root_node

    @staticmethod
    def _node(
        affiliate: AffiliateProfile, level: int, earned_from: int
    ) -> dict:
        return {
            "id": affiliate.id,
            "code": affiliate.code,
            "status": affiliate.status,
            "level": level,
            "earned_from": earned_from,
            "children": [],
        }
