"""Tests for the referral chain walker termination rules."""

import pytest

from app.models import AffiliateStatus
from app.services.referral.chain_walker import (
    ChainTermination,
    ReferralChainWalker,
)


ACTIVE = AffiliateStatus.ACTIVE
INACTIVE = AffiliateStatus.INACTIVE
SUSPENDED = AffiliateStatus.SUSPENDED


class TestReferralChainWalker:
    """Upline walk with hard-break eligibility."""

    @pytest.mark.asyncio
    async def test_root_purchaser_has_empty_chain(self, session, builder):
        purchaser = await builder.affiliate()

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert walk.links == []
        assert walk.termination == ChainTermination.ROOT_REACHED
        assert walk.depth == 0

    @pytest.mark.asyncio
    async def test_full_active_chain_reaches_root(self, session, builder):
        upline = await builder.upline(ACTIVE, ACTIVE, ACTIVE)
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert [link.affiliate_id for link in walk.links] == [a.id for a in upline]
        assert [link.level for link in walk.links] == [1, 2, 3]
        assert walk.termination == ChainTermination.ROOT_REACHED
        assert walk.stopped_at_level is None

    @pytest.mark.asyncio
    async def test_inactive_ancestor_silences_deeper_levels(
        self, session, builder
    ):
        """A3 is inactive: A4 is never visited even though it is ACTIVE."""
        upline = await builder.upline(ACTIVE, ACTIVE, INACTIVE, ACTIVE)
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert [link.affiliate_id for link in walk.links] == [
            upline[0].id,
            upline[1].id,
        ]
        assert walk.termination == ChainTermination.INACTIVE_ANCESTOR
        assert walk.stopped_at_level == 3

    @pytest.mark.asyncio
    async def test_suspended_direct_parent_yields_nothing(
        self, session, builder
    ):
        upline = await builder.upline(SUSPENDED, ACTIVE)
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser, lock=True)

        assert walk.links == []
        assert walk.termination == ChainTermination.INACTIVE_ANCESTOR
        assert walk.stopped_at_level == 1

    @pytest.mark.asyncio
    async def test_pending_ancestor_is_not_eligible(self, session, builder):
        upline = await builder.upline(ACTIVE, AffiliateStatus.PENDING)
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert walk.depth == 1
        assert walk.termination == ChainTermination.INACTIVE_ANCESTOR

    @pytest.mark.asyncio
    async def test_dangling_parent_stops_walk(self, session, builder):
        purchaser = await builder.affiliate(referred_by_id=987_654)

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert walk.links == []
        assert walk.termination == ChainTermination.MISSING_ANCESTOR
        assert walk.stopped_at_level == 1

    @pytest.mark.asyncio
    async def test_walk_stops_at_max_level(self, session, builder):
        upline = await builder.upline(*([ACTIVE] * 11))
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert walk.depth == 10
        assert walk.links[-1].affiliate_id == upline[9].id
        assert walk.termination == ChainTermination.MAX_LEVEL

    @pytest.mark.asyncio
    async def test_exactly_ten_levels_reaches_root(self, session, builder):
        upline = await builder.upline(*([ACTIVE] * 10))
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser)

        assert walk.depth == 10
        assert walk.termination == ChainTermination.ROOT_REACHED

    @pytest.mark.asyncio
    async def test_configured_max_level_is_respected(self, session, builder):
        upline = await builder.upline(ACTIVE, ACTIVE, ACTIVE)
        purchaser = await builder.affiliate(parent=upline[0])

        walk = await ReferralChainWalker(session).walk(purchaser, max_level=2)

        assert walk.depth == 2
        assert walk.termination == ChainTermination.MAX_LEVEL

    @pytest.mark.asyncio
    async def test_links_carry_beneficiary_details(self, session, builder):
        parent = await builder.affiliate(platform_affiliate_id="PLAT-7")
        purchaser = await builder.affiliate(parent=parent)

        walk = await ReferralChainWalker(session).walk(purchaser)

        link = walk.links[0]
        assert link.user_id == parent.user_id
        assert link.platform_affiliate_id == "PLAT-7"
