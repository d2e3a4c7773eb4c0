"""
Commission fan-out engine.

Turns one qualifying purchase into PENDING commission rows for every
eligible upline level. Re-delivery of the same purchase is a no-op.
"""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import UNIT_REFERENCE_TEMPLATE
from app.models.affiliate import AffiliateProfile
from app.models.commission import AffiliateCommission
from app.models.enums import AffiliateStatus, CommissionStatus
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.commission_repository import CommissionRepository
from app.services.commission.config import CommissionSchedule
from app.services.commission.platform_mirror import (
    CommissionMirror,
    NullCommissionMirror,
    safe_schedule,
)
from app.services.referral.activation import (
    ActivationPaymentChecker,
    DatabaseActivationPaymentChecker,
)
from app.services.referral.chain_walker import (
    ChainTermination,
    ChainWalk,
    ReferralChainWalker,
)
from app.utils.cache import LedgerCache
from app.utils.datetime_utils import utc_now
from app.utils.db_decorators import with_rollback_on_error
from app.utils.exceptions import InvalidPurchaseError, NotFoundError


@dataclass(frozen=True)
class SkippedCommission:
    """Idempotency tuple that already had a row."""

    affiliate_id: int
    transaction_id: str
    level: int
    kind: str
    existing_id: int


@dataclass
class FanoutResult:
    """Outcome of one distribute() call."""

    purchaser_id: int
    transaction_id: str
    quantity: int
    created: list[AffiliateCommission] = field(default_factory=list)
    skipped: list[SkippedCommission] = field(default_factory=list)
    termination: ChainTermination = ChainTermination.ROOT_REACHED
    depth: int = 0

    @property
    def total_amount(self) -> int:
        """Sum of newly created amounts."""
        return sum(commission.amount for commission in self.created)

    @property
    def is_duplicate(self) -> bool:
        """Every eligible row already existed."""
        return not self.created and bool(self.skipped)


def unit_reference(transaction_id: str, unit: int) -> str:
    """
    Ledger reference for one purchased unit.

    Unit 1 keeps the purchase reference so single-unit purchases map
    one-to-one to their source transaction.
    """
    if unit == 1:
        return transaction_id
    return UNIT_REFERENCE_TEMPLATE.format(
        transaction_id=transaction_id, unit=unit
    )


class CommissionFanoutEngine:
    """
    Creates commission rows for a qualifying purchase.

    Preconditions are all checked before the first write. Each beneficiary's
    affiliate row is locked during the walk, which serializes fan-out with
    withdrawal completion for the same user.
    """

    def __init__(
        self,
        session: AsyncSession,
        schedule: CommissionSchedule | None = None,
        payment_checker: ActivationPaymentChecker | None = None,
        mirror: CommissionMirror | None = None,
        cache: LedgerCache | None = None,
    ) -> None:
        """
        Initialize fan-out engine.

        Args:
            session: Async database session
            schedule: Commission amounts (defaults to settings)
            payment_checker: Activation fee check (defaults to database)
            mirror: External platform mirroring (defaults to none)
            cache: Ledger cache for balance invalidation
        """
        self.session = session
        self.schedule = schedule or CommissionSchedule.from_settings()
        self.payment_checker = (
            payment_checker or DatabaseActivationPaymentChecker(session)
        )
        self.mirror = mirror or NullCommissionMirror()
        self.cache = cache or LedgerCache()
        self.affiliate_repo = AffiliateRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.walker = ReferralChainWalker(session)

    async def distribute(
        self,
        purchaser_id: int,
        transaction_id: str,
        product_amount: int,
        quantity: int = 1,
    ) -> FanoutResult:
        """
        Distribute commissions for a purchase.

        Args:
            purchaser_id: Purchasing affiliate ID
            transaction_id: Source purchase reference
            product_amount: Unit price, must equal the qualifying price
            quantity: Number of units purchased

        Returns:
            FanoutResult with created and skipped rows

        Raises:
            InvalidPurchaseError: precondition violated (nothing written)
            NotFoundError: purchaser does not exist
        """
        try:
            return await self._distribute(
                purchaser_id, transaction_id, product_amount, quantity
            )
        except IntegrityError:
            # A concurrent delivery of the same purchase won the insert;
            # the retry sees its rows and skips them.
            logger.info(
                "Concurrent fan-out detected, retrying",
                extra={
                    "purchaser_id": purchaser_id,
                    "transaction_id": transaction_id,
                },
            )
            return await self._distribute(
                purchaser_id, transaction_id, product_amount, quantity
            )

    @with_rollback_on_error
    async def _distribute(
        self,
        purchaser_id: int,
        transaction_id: str,
        product_amount: int,
        quantity: int,
    ) -> FanoutResult:
        purchaser = await self._check_preconditions(
            purchaser_id, transaction_id, product_amount, quantity
        )
        result = FanoutResult(
            purchaser_id=purchaser.id,
            transaction_id=transaction_id,
            quantity=quantity,
        )

        for unit in range(1, quantity + 1):
            reference = unit_reference(transaction_id, unit)
            walk = await self.walker.walk(
                purchaser, max_level=self.schedule.max_level, lock=True
            )
            if unit == 1:
                result.termination = walk.termination
                result.depth = walk.depth
            await self._create_rows(purchaser, reference, walk, result)

        await self._activate_purchaser(purchaser)
        await self.session.flush()
        await self.session.commit()

        await self._after_commit(result)

        logger.info(
            "Commission fan-out completed",
            extra={
                "purchaser_id": purchaser.id,
                "transaction_id": transaction_id,
                "quantity": quantity,
                "created": len(result.created),
                "skipped": len(result.skipped),
                "total_amount": str(result.total_amount),
                "termination": result.termination.value,
            },
        )
        return result

    async def _check_preconditions(
        self,
        purchaser_id: int,
        transaction_id: str,
        product_amount: int,
        quantity: int,
    ) -> AffiliateProfile:
        """Validate the purchase event; raises before any write."""
        if not transaction_id or not str(transaction_id).strip():
            raise InvalidPurchaseError(
                "Transaction id is required", field="transaction_id"
            )
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidPurchaseError(
                f"Quantity must be a positive integer, got {quantity}",
                field="quantity",
                received=quantity,
            )
        required = self.schedule.required_product_amount
        if product_amount != required:
            raise InvalidPurchaseError(
                f"Product amount must be exactly {required}, "
                f"got {product_amount}",
                field="product_amount",
                received=product_amount,
                required=required,
            )

        purchaser = await self.affiliate_repo.get_by_id(purchaser_id)
        if not purchaser:
            raise NotFoundError("Affiliate", purchaser_id)

        if not await self.payment_checker.has_completed_activation(
            purchaser.user_id
        ):
            raise InvalidPurchaseError(
                f"Affiliate {purchaser.code} has not completed "
                f"activation payment",
                purchaser_id=purchaser.id,
            )
        return purchaser

    async def _create_rows(
        self,
        purchaser: AffiliateProfile,
        reference: str,
        walk: ChainWalk,
        result: FanoutResult,
    ) -> None:
        """Create missing rows for one unit, ascending by level."""
        for link in walk.links:
            for kind, amount in self.schedule.rows_for_level(link.level):
                existing = await self.commission_repo.find_existing(
                    link.affiliate_id, reference, link.level, kind.value
                )
                if existing:
                    result.skipped.append(SkippedCommission(
                        affiliate_id=link.affiliate_id,
                        transaction_id=reference,
                        level=link.level,
                        kind=kind.value,
                        existing_id=existing.id,
                    ))
                    logger.info(
                        "Commission already recorded, skipping",
                        extra={
                            "commission_id": existing.id,
                            "affiliate_id": link.affiliate_id,
                            "transaction_id": reference,
                            "level": link.level,
                            "kind": kind.value,
                        },
                    )
                    continue

                commission = await self.commission_repo.create(
                    affiliate_id=link.affiliate_id,
                    user_id=link.user_id,
                    transaction_id=reference,
                    buyer_id=purchaser.id,
                    level=link.level,
                    kind=kind.value,
                    amount=amount,
                    original_amount=amount,
                    status=CommissionStatus.PENDING.value,
                    platform_affiliate_id=link.platform_affiliate_id,
                )
                result.created.append(commission)
                logger.info(
                    "Commission created",
                    extra={
                        "commission_id": commission.id,
                        "affiliate_id": link.affiliate_id,
                        "transaction_id": reference,
                        "level": link.level,
                        "kind": kind.value,
                        "amount": str(amount),
                    },
                )

    async def _activate_purchaser(self, purchaser: AffiliateProfile) -> None:
        """
        A qualifying purchase with a paid activation fee activates a
        PENDING purchaser. Suspended or inactive nodes stay as they are.
        """
        if purchaser.status != AffiliateStatus.PENDING:
            return
        purchaser.status = AffiliateStatus.ACTIVE.value
        purchaser.activated_at = utc_now()
        logger.info(
            "Purchaser activated by qualifying purchase",
            extra={"affiliate_id": purchaser.id},
        )

    async def _after_commit(self, result: FanoutResult) -> None:
        """Cache invalidation and mirroring for created rows."""
        owners = {
            (commission.user_id, commission.affiliate_id)
            for commission in result.created
        }
        for user_id, affiliate_id in owners:
            await self.cache.invalidate_owner(user_id, affiliate_id)
        if result.created:
            await self.cache.invalidate_affiliate(result.purchaser_id)

        for commission in result.created:
            safe_schedule(self.mirror, commission)
