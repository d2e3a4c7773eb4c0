"""
Withdrawal request handling module.

Validates a cash-out request against the live balance and stores it
PENDING. The request reserves balance until it is rejected or completed.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WithdrawalStatus
from app.models.withdrawal import CommissionWithdrawal
from app.repositories.affiliate_repository import AffiliateRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.balance.aggregator import BalanceAggregator
from app.utils.cache import LedgerCache
from app.utils.db_decorators import with_rollback_on_error
from app.utils.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from app.utils.formatters import mask_account_number


# Destination fields and their column limits
DESTINATION_FIELDS = {
    "bank_name": 100,
    "account_number": 64,
    "account_holder": 255,
}


class WithdrawalRequestHandler:
    """Handles withdrawal request creation."""

    def __init__(
        self, session: AsyncSession, cache: LedgerCache | None = None
    ) -> None:
        """
        Initialize request handler.

        Args:
            session: Async database session
            cache: Ledger cache for balance invalidation
        """
        self.session = session
        self.cache = cache or LedgerCache()
        self.affiliate_repo = AffiliateRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.balance_aggregator = BalanceAggregator(session, self.cache)

    @staticmethod
    def validate_destination(**destination: str | None) -> dict[str, str]:
        """
        Check destination details are present and fit their columns.

        Returns:
            Stripped destination values

        Raises:
            ValidationError: a field is missing or too long
        """
        cleaned = {}
        missing = []
        for name, max_length in DESTINATION_FIELDS.items():
            value = (destination.get(name) or "").strip()
            if not value:
                missing.append(name)
                continue
            if len(value) > max_length:
                raise ValidationError(
                    f"{name} must be at most {max_length} characters",
                    field=name,
                )
            cleaned[name] = value
        if missing:
            raise ValidationError(
                f"Missing destination details: {', '.join(missing)}",
                fields=missing,
            )
        return cleaned

    @with_rollback_on_error
    async def request_withdrawal(
        self,
        user_id: int,
        amount: int,
        bank_name: str,
        account_number: str,
        account_holder: str,
    ) -> CommissionWithdrawal:
        """
        Create a PENDING withdrawal after a live balance check.

        The user's affiliate row is locked so concurrent requests see each
        other's reservations.

        Args:
            user_id: Requesting user
            amount: Requested amount
            bank_name: Destination bank
            account_number: Destination account
            account_holder: Destination account holder

        Returns:
            Created withdrawal

        Raises:
            ValidationError: amount or destination invalid
            NotFoundError: user has no affiliate profile
            InsufficientBalanceError: amount above available balance
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                f"Withdrawal amount must be a positive integer, got {amount}",
                field="amount",
                received=amount,
            )
        destination = self.validate_destination(
            bank_name=bank_name,
            account_number=account_number,
            account_holder=account_holder,
        )

        affiliate = await self.affiliate_repo.lock_by_user_id(user_id)
        if not affiliate:
            raise NotFoundError("Affiliate for user", user_id)

        available = await self.balance_aggregator.available_for_withdrawal(
            user_id
        )
        if amount > available:
            logger.warning(
                "Withdrawal request refused: insufficient balance",
                extra={
                    "user_id": user_id,
                    "requested": str(amount),
                    "available": str(available),
                },
            )
            raise InsufficientBalanceError(amount, available)

        withdrawal = await self.withdrawal_repo.create(
            user_id=user_id,
            amount=amount,
            status=WithdrawalStatus.PENDING.value,
            **destination,
        )
        await self.session.commit()
        await self.cache.invalidate_owner(user_id, affiliate.id)

        logger.info(
            "Withdrawal requested",
            extra={
                "withdrawal_id": withdrawal.id,
                "user_id": user_id,
                "amount": str(amount),
                "account": mask_account_number(withdrawal.account_number),
            },
        )
        return withdrawal
