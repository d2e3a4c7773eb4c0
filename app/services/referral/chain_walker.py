"""
Referral chain walker.

Walks a purchaser's upline level by level and reports every eligible
ancestor together with the reason the walk stopped.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import ABSOLUTE_MAX_LEVEL
from app.models.affiliate import AffiliateProfile
from app.repositories.affiliate_repository import AffiliateRepository


class ChainTermination(StrEnum):
    """Why a chain walk stopped."""

    ROOT_REACHED = "ROOT_REACHED"
    MAX_LEVEL = "MAX_LEVEL"
    MISSING_ANCESTOR = "MISSING_ANCESTOR"
    INACTIVE_ANCESTOR = "INACTIVE_ANCESTOR"


@dataclass(frozen=True)
class ChainLink:
    """One eligible ancestor."""

    affiliate_id: int
    user_id: int
    level: int
    platform_affiliate_id: str | None = None


@dataclass
class ChainWalk:
    """Result of walking one purchaser's upline."""

    purchaser_id: int
    links: list[ChainLink] = field(default_factory=list)
    termination: ChainTermination = ChainTermination.ROOT_REACHED
    # Level at which a missing/inactive ancestor silenced the chain
    stopped_at_level: int | None = None

    @property
    def depth(self) -> int:
        """Number of eligible levels."""
        return len(self.links)


class ReferralChainWalker:
    """
    Walks ancestry upward with a hard-break eligibility policy.

    Termination rules, checked in this order at each level:
    1. no upline (root reached)
    2. level above max_level
    3. ancestor row missing (dangling reference)
    4. ancestor not ACTIVE

    A missing or non-active ancestor ends the walk; deeper ancestors are
    never visited even if they are ACTIVE.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize chain walker.

        Args:
            session: Async database session
        """
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)

    async def walk(
        self,
        purchaser: AffiliateProfile,
        max_level: int = ABSOLUTE_MAX_LEVEL,
        lock: bool = False,
    ) -> ChainWalk:
        """
        Produce (ancestor, level) pairs for a purchaser.

        Args:
            purchaser: Purchasing affiliate
            max_level: Deepest level to visit (capped at 10)
            lock: Lock each visited ancestor row (SELECT ... FOR UPDATE),
                so eligibility is checked under the same lock that guards
                the beneficiary's ledger writes

        Returns:
            ChainWalk with links in ascending level order
        """
        max_level = min(max_level, ABSOLUTE_MAX_LEVEL)
        walk = ChainWalk(purchaser_id=purchaser.id)
        parent_id = purchaser.referred_by_id
        level = 1

        while True:
            if parent_id is None:
                walk.termination = ChainTermination.ROOT_REACHED
                break

            if level > max_level:
                walk.termination = ChainTermination.MAX_LEVEL
                break

            if lock:
                ancestor = await self.affiliate_repo.get_for_update(parent_id)
            else:
                ancestor = await self.affiliate_repo.get_by_id(parent_id)

            if ancestor is None:
                walk.termination = ChainTermination.MISSING_ANCESTOR
                walk.stopped_at_level = level
                logger.debug(
                    "Referral chain terminated: ancestor not found",
                    extra={
                        "purchaser_id": purchaser.id,
                        "ancestor_id": parent_id,
                        "level": level,
                    },
                )
                break

            if not ancestor.is_active:
                walk.termination = ChainTermination.INACTIVE_ANCESTOR
                walk.stopped_at_level = level
                logger.debug(
                    "Referral chain terminated: ancestor not active",
                    extra={
                        "purchaser_id": purchaser.id,
                        "ancestor_id": ancestor.id,
                        "ancestor_status": ancestor.status,
                        "level": level,
                    },
                )
                break

            walk.links.append(ChainLink(
                affiliate_id=ancestor.id,
                user_id=ancestor.user_id,
                level=level,
                platform_affiliate_id=ancestor.platform_affiliate_id,
            ))
            parent_id = ancestor.referred_by_id
            level += 1

        logger.debug(
            "Referral chain walked",
            extra={
                "purchaser_id": purchaser.id,
                "depth": walk.depth,
                "termination": walk.termination.value,
            },
        )
        return walk
