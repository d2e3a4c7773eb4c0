"""
Withdrawal query service module.

Handles queries for withdrawals: user history with balance, withdrawal
details, and the admin listing.
"""

from math import ceil

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.models.enums import WithdrawalStatus
from app.models.withdrawal import CommissionWithdrawal
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.balance.aggregator import BalanceAggregator
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.formatters import mask_account_number
from app.utils.state_machine import WITHDRAWAL_TRANSITIONS


def _page_bounds(page: int, limit: int) -> tuple[int, int]:
    """Clamp page/limit and return (limit, offset)."""
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return limit, (page - 1) * limit


def _status_filter(status: str | None) -> str | None:
    if not status:
        return None
    try:
        return WithdrawalStatus(status.upper()).value
    except ValueError:
        raise ValidationError(
            f"Unknown withdrawal status {status}",
            field="status",
            allowed=[s.value for s in WithdrawalStatus],
        ) from None


def withdrawal_to_dict(
    withdrawal: CommissionWithdrawal, admin: bool = False
) -> dict:
    """
    Output shape of a withdrawal.

    The account number is masked unless admin is set.
    """
    data = {
        "id": withdrawal.id,
        "user_id": withdrawal.user_id,
        "amount": withdrawal.amount,
        "status": withdrawal.status,
        "bank_name": withdrawal.bank_name,
        "account_number": (
            withdrawal.account_number
            if admin
            else mask_account_number(withdrawal.account_number)
        ),
        "account_holder": withdrawal.account_holder,
        "notes": withdrawal.notes or "",
        "requested_at": withdrawal.requested_at,
        "approved_at": withdrawal.approved_at,
        "completed_at": withdrawal.completed_at,
    }
    if admin:
        data["actions"] = sorted(
            WITHDRAWAL_TRANSITIONS.allowed_from(withdrawal.status)
        )
    return data


class WithdrawalQueryService:
    """Handles withdrawal query operations."""

    def __init__(
        self,
        session: AsyncSession,
        balance_aggregator: BalanceAggregator | None = None,
    ) -> None:
        """
        Initialize withdrawal query service.

        Args:
            session: Database session
            balance_aggregator: Live balance source for history views
        """
        self.session = session
        self.withdrawal_repo = WithdrawalRepository(session)
        self.balance_aggregator = balance_aggregator or BalanceAggregator(
            session
        )

    async def get_user_history(
        self,
        user_id: int,
        status: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        """
        Withdrawal history of a user with balance and status summary.

        Args:
            user_id: User ID
            status: Optional status filter
            page: Page number (1-indexed)
            limit: Items per page

        Returns:
            Dict with balance, summary, withdrawals, pagination
        """
        status = _status_filter(status)
        limit, offset = _page_bounds(page, limit)
        withdrawals, total = await self.withdrawal_repo.get_user_history(
            user_id, status=status, limit=limit, offset=offset
        )
        by_status = await self.withdrawal_repo.get_summary_by_status(user_id)
        balance = await self.balance_aggregator.balance(user_id)

        return {
            "balance": balance.to_dict(),
            "summary": {
                "by_status": by_status,
                "total_amount": sum(
                    entry["amount"] for entry in by_status.values()
                ),
                "completed_amount": by_status["COMPLETED"]["amount"],
            },
            "withdrawals": [withdrawal_to_dict(w) for w in withdrawals],
            "pagination": {
                "page": max(1, page),
                "limit": limit,
                "total": total,
                "pages": ceil(total / limit) if total else 0,
            },
        }

    async def get_details(
        self,
        withdrawal_id: int,
        user_id: int | None = None,
        admin: bool = False,
    ) -> dict:
        """
        One withdrawal, as seen by its owner or by an admin.

        A non-admin asking for someone else's withdrawal gets NotFoundError,
        same as for a missing one.

        Args:
            withdrawal_id: Withdrawal ID
            user_id: Requesting user (ignored for admin)
            admin: Admin view with full account number and deductions
        """
        withdrawal = await self.withdrawal_repo.get_by_id(withdrawal_id)
        if not withdrawal or (not admin and withdrawal.user_id != user_id):
            raise NotFoundError("Withdrawal", withdrawal_id)

        data = withdrawal_to_dict(withdrawal, admin=admin)
        if admin:
            deductions = await self.withdrawal_repo.get_deductions(
                withdrawal_id
            )
            data["deductions"] = [
                {
                    "commission_id": d.commission_id,
                    "amount": d.amount,
                    "amount_before": d.amount_before,
                    "amount_after": d.amount_after,
                }
                for d in deductions
            ]
        return data

    async def list_for_admin(
        self,
        status: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        """
        Admin listing of withdrawals, oldest request first.

        Args:
            status: Optional status filter
            page: Page number (1-indexed)
            limit: Items per page

        Returns:
            Dict with summary (count/amount per status), withdrawals,
            pagination
        """
        status = _status_filter(status)
        limit, offset = _page_bounds(page, limit)
        withdrawals, total = await self.withdrawal_repo.list_by_status(
            status=status, limit=limit, offset=offset
        )
        by_status = await self.withdrawal_repo.get_summary_by_status()

        return {
            "summary": by_status,
            "withdrawals": [
                withdrawal_to_dict(w, admin=True) for w in withdrawals
            ],
            "pagination": {
                "page": max(1, page),
                "limit": limit,
                "total": total,
                "pages": ceil(total / limit) if total else 0,
            },
        }
