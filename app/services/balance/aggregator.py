"""
Balance aggregator.

Derives a user's balance from commission rows and in-flight withdrawal
requests. Withdrawal paths read live; dashboards may read the cache.
"""

from dataclasses import asdict, dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import CACHE_KEY_BALANCE
from app.models.enums import CommissionStatus
from app.repositories.commission_repository import CommissionRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.utils.cache import LedgerCache


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Balance of one user.

    Attributes:
        total_earned: Everything ever credited and not rejected
        approved_balance: APPROVED (and legacy PAID) amounts still on rows
        pending_withdrawal: Amount reserved by PENDING/APPROVED withdrawals
        available_for_withdrawal: approved_balance - pending_withdrawal,
            never negative
        pending_commissions: PENDING rows awaiting admin approval
        withdrawn: Amount paid out by COMPLETED withdrawals
    """

    user_id: int
    total_earned: int
    approved_balance: int
    pending_withdrawal: int
    available_for_withdrawal: int
    pending_commissions: int = 0
    withdrawn: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class BalanceAggregator:
    """Computes balance snapshots from the ledger."""

    def __init__(
        self, session: AsyncSession, cache: LedgerCache | None = None
    ) -> None:
        """
        Initialize balance aggregator.

        Args:
            session: Async database session
            cache: Ledger cache for dashboard reads
        """
        self.session = session
        self.cache = cache or LedgerCache()
        self.commission_repo = CommissionRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)

    async def balance(self, user_id: int) -> BalanceSnapshot:
        """
        Live balance of a user.

        Rows shrink as withdrawals consume them, so lifetime earnings add
        back what completed withdrawals paid out.

        Args:
            user_id: Balance owner

        Returns:
            BalanceSnapshot
        """
        on_rows = await self.commission_repo.sum_earned(user_id)
        approved = await self.commission_repo.sum_spendable(user_id)
        pending_commissions = await self.commission_repo.sum_amount(
            user_id, (CommissionStatus.PENDING,)
        )
        in_flight = await self.withdrawal_repo.sum_in_flight(user_id)
        withdrawn = await self.withdrawal_repo.sum_completed(user_id)

        return BalanceSnapshot(
            user_id=user_id,
            total_earned=on_rows + withdrawn,
            approved_balance=approved,
            pending_withdrawal=in_flight,
            available_for_withdrawal=max(0, approved - in_flight),
            pending_commissions=pending_commissions,
            withdrawn=withdrawn,
        )

    async def available_for_withdrawal(self, user_id: int) -> int:
        """Live spendable amount not reserved by in-flight requests."""
        approved = await self.commission_repo.sum_spendable(user_id)
        in_flight = await self.withdrawal_repo.sum_in_flight(user_id)
        return max(0, approved - in_flight)

    async def dashboard_balance(self, user_id: int) -> BalanceSnapshot:
        """
        Balance for read-only dashboards.

        May be up to the cache TTL old; never use it to accept, approve
        or complete a withdrawal.
        """
        key = CACHE_KEY_BALANCE.format(user_id=user_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            try:
                return BalanceSnapshot(**cached)
            except TypeError:
                logger.warning(f"Dropping malformed balance cache entry {key}")
                await self.cache.delete(key)

        snapshot = await self.balance(user_id)
        await self.cache.set_json(key, snapshot.to_dict())
        return snapshot
