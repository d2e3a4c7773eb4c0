"""
Affiliate graph store.

Creates referral nodes and manages their status. The upline pointer is
written exactly once, at registration, after a cycle check.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import CYCLE_CHECK_MAX_HOPS
from app.models.affiliate import AffiliateProfile
from app.models.enums import AffiliateStatus
from app.repositories.affiliate_repository import AffiliateRepository
from app.services.referral.activation import (
    ActivationPaymentChecker,
    DatabaseActivationPaymentChecker,
)
from app.utils.cache import LedgerCache
from app.utils.datetime_utils import utc_now
from app.utils.db_decorators import with_rollback_on_error
from app.utils.exceptions import (
    NotFoundError,
    ReferralCycleError,
    ValidationError,
)
from app.utils.state_machine import AFFILIATE_TRANSITIONS


class AffiliateGraphStore:
    """Durable storage of affiliate nodes and their immutable uplines."""

    def __init__(
        self,
        session: AsyncSession,
        payment_checker: ActivationPaymentChecker | None = None,
        cache: LedgerCache | None = None,
    ) -> None:
        """
        Initialize graph store.

        Args:
            session: Async database session
            payment_checker: Activation fee check (defaults to the
                activation_payments table)
            cache: Ledger cache to invalidate on graph changes
        """
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)
        self.payment_checker = (
            payment_checker or DatabaseActivationPaymentChecker(session)
        )
        self.cache = cache or LedgerCache()

    async def get(self, affiliate_id: int) -> AffiliateProfile:
        """Get affiliate by ID or raise NotFoundError."""
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if not affiliate:
            raise NotFoundError("Affiliate", affiliate_id)
        return affiliate

    async def get_by_user(self, user_id: int) -> AffiliateProfile:
        """Get affiliate owned by a user or raise NotFoundError."""
        affiliate = await self.affiliate_repo.get_by_user_id(user_id)
        if not affiliate:
            raise NotFoundError("Affiliate for user", user_id)
        return affiliate

    async def get_by_code(self, code: str) -> AffiliateProfile:
        """Get affiliate by code or raise NotFoundError."""
        affiliate = await self.affiliate_repo.get_by_code(code)
        if not affiliate:
            raise NotFoundError("Affiliate code", code)
        return affiliate

    async def reaches(self, start_id: int, target_id: int) -> bool:
        """
        Check whether target_id is start_id or one of its ancestors.

        Stops on an already visited node so a corrupted graph can't loop.

        Args:
            start_id: Node to walk up from
            target_id: Node searched for

        Returns:
            True if following uplines from start_id reaches target_id
        """
        visited: set[int] = set()
        current: int | None = start_id
        hops = 0

        while current is not None and hops < CYCLE_CHECK_MAX_HOPS:
            if current == target_id:
                return True
            if current in visited:
                logger.error(
                    "Existing cycle detected in referral graph",
                    extra={"node_id": current, "start_id": start_id},
                )
                return True
            visited.add(current)
            current = await self.affiliate_repo.get_parent_id(current)
            hops += 1

        return False

    @with_rollback_on_error
    async def register(
        self,
        user_id: int,
        code: str,
        parent_id: int | None = None,
        platform_affiliate_id: str | None = None,
    ) -> AffiliateProfile:
        """
        Create a PENDING node with its upline.

        Args:
            user_id: Owning user
            code: Unique display/referral code
            parent_id: Upline affiliate ID (None for a root)
            platform_affiliate_id: Id on the external affiliate platform

        Returns:
            Created affiliate

        Raises:
            ValidationError: user already registered or code taken
            NotFoundError: parent does not exist
            ReferralCycleError: parent chain is already cyclic
        """
        if not code or not code.strip():
            raise ValidationError("Affiliate code is required", field="code")
        code = code.strip()

        if await self.affiliate_repo.get_by_user_id(user_id):
            raise ValidationError(
                f"User {user_id} already has an affiliate profile",
                user_id=user_id,
            )
        if await self.affiliate_repo.get_by_code(code):
            raise ValidationError(
                f"Affiliate code {code} is already taken", code=code
            )

        if parent_id is not None:
            parent = await self.affiliate_repo.get_by_id(parent_id)
            if not parent:
                raise NotFoundError("Affiliate", parent_id)
            # The new node has no id yet, so only a pre-existing loop in
            # the parent's ancestry can show up here.
            if await self._has_cycle_above(parent_id):
                raise ReferralCycleError(
                    f"Upline chain of affiliate {parent_id} is cyclic",
                    parent_id=parent_id,
                )

        affiliate = await self.affiliate_repo.create(
            user_id=user_id,
            code=code,
            referred_by_id=parent_id,
            status=AffiliateStatus.PENDING.value,
            platform_affiliate_id=platform_affiliate_id,
        )
        await self.session.commit()

        if parent_id is not None:
            await self.cache.invalidate_affiliate(parent_id)

        logger.info(
            "Affiliate registered",
            extra={
                "affiliate_id": affiliate.id,
                "user_id": user_id,
                "parent_id": parent_id,
            },
        )
        return affiliate

    @with_rollback_on_error
    async def assign_parent(
        self, affiliate_id: int, parent_id: int
    ) -> AffiliateProfile:
        """
        Set the upline of a node registered without one.

        Args:
            affiliate_id: Node without upline
            parent_id: New upline

        Raises:
            ReferralCycleError: node already has an upline, or the upline
                is the node itself or one of its downlines
        """
        affiliate = await self.affiliate_repo.get_for_update(affiliate_id)
        if not affiliate:
            raise NotFoundError("Affiliate", affiliate_id)

        if affiliate.referred_by_id is not None:
            raise ReferralCycleError(
                f"Affiliate {affiliate_id} already has upline "
                f"{affiliate.referred_by_id}",
                affiliate_id=affiliate_id,
                current_parent_id=affiliate.referred_by_id,
            )
        if not await self.affiliate_repo.get_by_id(parent_id):
            raise NotFoundError("Affiliate", parent_id)
        if await self.reaches(parent_id, affiliate_id):
            raise ReferralCycleError(
                f"Affiliate {parent_id} is a downline of {affiliate_id}",
                affiliate_id=affiliate_id,
                parent_id=parent_id,
            )

        affiliate.referred_by_id = parent_id
        await self.session.commit()
        await self.cache.invalidate_affiliate(parent_id)

        logger.info(
            "Affiliate upline assigned",
            extra={"affiliate_id": affiliate_id, "parent_id": parent_id},
        )
        return affiliate

    @with_rollback_on_error
    async def activate(self, affiliate_id: int) -> AffiliateProfile:
        """
        Move a node to ACTIVE.

        Requires a completed activation payment. Already ACTIVE is a no-op.

        Raises:
            ValidationError: activation fee not paid
            StateConflictError: transition not allowed
        """
        affiliate = await self.affiliate_repo.get_for_update(affiliate_id)
        if not affiliate:
            raise NotFoundError("Affiliate", affiliate_id)

        if affiliate.is_active:
            return affiliate

        AFFILIATE_TRANSITIONS.ensure(
            affiliate.status, AffiliateStatus.ACTIVE, affiliate_id
        )
        if not await self.payment_checker.has_completed_activation(
            affiliate.user_id
        ):
            raise ValidationError(
                f"Affiliate {affiliate_id} has not completed activation payment",
                affiliate_id=affiliate_id,
            )

        previous = affiliate.status
        affiliate.status = AffiliateStatus.ACTIVE.value
        if affiliate.activated_at is None:
            affiliate.activated_at = utc_now()
        await self.session.commit()
        await self._invalidate_upline(affiliate)

        logger.info(
            "Affiliate activated",
            extra={"affiliate_id": affiliate_id, "previous_status": previous},
        )
        return affiliate

    @with_rollback_on_error
    async def set_status(
        self, affiliate_id: int, status: AffiliateStatus
    ) -> AffiliateProfile:
        """
        Administrative status change.

        ACTIVE goes through activate(); nothing returns to PENDING.
        Historical commission rows are not touched.
        """
        status = AffiliateStatus(status)
        if status == AffiliateStatus.ACTIVE:
            return await self.activate(affiliate_id)

        affiliate = await self.affiliate_repo.get_for_update(affiliate_id)
        if not affiliate:
            raise NotFoundError("Affiliate", affiliate_id)

        AFFILIATE_TRANSITIONS.ensure(affiliate.status, status, affiliate_id)
        previous = affiliate.status
        affiliate.status = status.value
        await self.session.commit()
        await self._invalidate_upline(affiliate)

        logger.info(
            "Affiliate status changed",
            extra={
                "affiliate_id": affiliate_id,
                "previous_status": previous,
                "status": status.value,
            },
        )
        return affiliate

    async def _has_cycle_above(self, node_id: int) -> bool:
        """Whether walking up from node_id revisits a node."""
        visited: set[int] = set()
        current: int | None = node_id
        hops = 0
        while current is not None and hops < CYCLE_CHECK_MAX_HOPS:
            if current in visited:
                return True
            visited.add(current)
            current = await self.affiliate_repo.get_parent_id(current)
            hops += 1
        return False

    async def _invalidate_upline(self, affiliate: AffiliateProfile) -> None:
        """Drop the cached referral views that show this node."""
        await self.cache.invalidate_affiliate(affiliate.id)
        if affiliate.referred_by_id is not None:
            await self.cache.invalidate_affiliate(affiliate.referred_by_id)
