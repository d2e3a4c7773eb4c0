"""
Withdrawal repository.

Data access layer for CommissionWithdrawal and WithdrawalDeduction models.
"""

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    IN_FLIGHT_WITHDRAWAL_STATUSES,
    WithdrawalStatus,
)
from app.models.withdrawal import CommissionWithdrawal, WithdrawalDeduction
from app.repositories.base import BaseRepository


class WithdrawalRepository(BaseRepository[CommissionWithdrawal]):
    """Withdrawal repository with balance and history queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(CommissionWithdrawal, session)

    async def sum_amount(
        self, user_id: int, statuses: Sequence[str]
    ) -> int:
        """
        Sum withdrawal amounts of a user in the given statuses.

        Args:
            user_id: Requesting user
            statuses: Statuses to include

        Returns:
            Sum of amounts (0 when none)
        """
        stmt = select(
            func.coalesce(func.sum(CommissionWithdrawal.amount), 0)
        ).where(
            CommissionWithdrawal.user_id == user_id,
            CommissionWithdrawal.status.in_(statuses),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def sum_in_flight(self, user_id: int) -> int:
        """Amount reserved by PENDING and APPROVED requests."""
        return await self.sum_amount(user_id, IN_FLIGHT_WITHDRAWAL_STATUSES)

    async def sum_completed(self, user_id: int) -> int:
        """Amount already paid out."""
        return await self.sum_amount(user_id, (WithdrawalStatus.COMPLETED,))

    async def get_user_history(
        self,
        user_id: int,
        status: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[CommissionWithdrawal], int]:
        """
        Get withdrawals of a user, newest first.

        Args:
            user_id: Requesting user
            status: Optional status filter
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (page of withdrawals, total matching count)
        """
        filters = [CommissionWithdrawal.user_id == user_id]
        if status:
            filters.append(CommissionWithdrawal.status == status)

        count_stmt = select(func.count(CommissionWithdrawal.id)).where(*filters)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(CommissionWithdrawal)
            .where(*filters)
            .order_by(
                CommissionWithdrawal.requested_at.desc(),
                CommissionWithdrawal.id.desc(),
            )
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def list_by_status(
        self,
        status: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[CommissionWithdrawal], int]:
        """
        Admin listing, oldest request first.

        Args:
            status: Optional status filter
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (page of withdrawals, total matching count)
        """
        filters = []
        if status:
            filters.append(CommissionWithdrawal.status == status)

        count_stmt = select(func.count(CommissionWithdrawal.id)).where(*filters)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(CommissionWithdrawal)
            .where(*filters)
            .order_by(
                CommissionWithdrawal.requested_at.asc(),
                CommissionWithdrawal.id.asc(),
            )
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_summary_by_status(
        self, user_id: int | None = None
    ) -> dict[str, dict[str, int]]:
        """
        Count and amount per status.

        Args:
            user_id: Restrict to one user (None for global)

        Returns:
            Dict status -> {"count": n, "amount": sum}, every status present
        """
        stmt = select(
            CommissionWithdrawal.status,
            func.count(CommissionWithdrawal.id).label("count"),
            func.coalesce(func.sum(CommissionWithdrawal.amount), 0).label(
                "amount"
            ),
        ).group_by(CommissionWithdrawal.status)
        if user_id is not None:
            stmt = stmt.where(CommissionWithdrawal.user_id == user_id)

        result = await self.session.execute(stmt)
        summary = {
            status.value: {"count": 0, "amount": 0}
            for status in WithdrawalStatus
        }
        for row in result.all():
            summary[row.status] = {
                "count": row.count,
                "amount": int(row.amount),
            }
        return summary

    def add_deduction(
        self,
        withdrawal_id: int,
        commission_id: int,
        amount: int,
        amount_before: int,
    ) -> WithdrawalDeduction:
        """
        Record how much one commission row contributed to a withdrawal.

        Not flushed; the debit engine flushes once with the row updates.
        """
        deduction = WithdrawalDeduction(
            withdrawal_id=withdrawal_id,
            commission_id=commission_id,
            amount=amount,
            amount_before=amount_before,
            amount_after=amount_before - amount,
        )
        self.session.add(deduction)
        return deduction

    async def get_deductions(
        self, withdrawal_id: int
    ) -> list[WithdrawalDeduction]:
        """Deductions of a withdrawal in debit order."""
        stmt = (
            select(WithdrawalDeduction)
            .where(WithdrawalDeduction.withdrawal_id == withdrawal_id)
            .order_by(WithdrawalDeduction.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
