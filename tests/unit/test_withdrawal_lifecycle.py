"""Tests for withdrawal approval, rejection and completion."""

import pytest

from app.models import CommissionStatus, WithdrawalStatus
from app.services.balance.aggregator import BalanceAggregator
from app.services.withdrawal import WithdrawalLifecycleHandler
from app.utils.exceptions import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)


class TestApproveWithdrawal:
    """PENDING -> APPROVED."""

    @pytest.mark.asyncio
    async def test_approve_pending(self, session, builder):
        affiliate = await builder.affiliate()
        withdrawal = await builder.withdrawal(affiliate.user_id, 10_000)

        approved = await WithdrawalLifecycleHandler(session).approve_withdrawal(
            withdrawal.id, notes=" checked "
        )

        assert approved.status == WithdrawalStatus.APPROVED.value
        assert approved.approved_at is not None
        assert approved.notes == "checked"

    @pytest.mark.asyncio
    async def test_approve_twice_conflicts(self, session, builder):
        affiliate = await builder.affiliate()
        withdrawal = await builder.withdrawal(affiliate.user_id, 10_000)
        withdrawal_id = withdrawal.id
        handler = WithdrawalLifecycleHandler(session)
        await handler.approve_withdrawal(withdrawal_id)

        with pytest.raises(StateConflictError) as exc_info:
            await handler.approve_withdrawal(withdrawal_id)

        assert exc_info.value.current == WithdrawalStatus.APPROVED.value

    @pytest.mark.asyncio
    async def test_approve_missing(self, session):
        with pytest.raises(NotFoundError):
            await WithdrawalLifecycleHandler(session).approve_withdrawal(77)


class TestRejectWithdrawal:
    """PENDING -> REJECTED."""

    @pytest.mark.asyncio
    async def test_reject_releases_reserved_balance(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)
        withdrawal = await builder.withdrawal(affiliate.user_id, 30_000)
        aggregator = BalanceAggregator(session)
        assert await aggregator.available_for_withdrawal(affiliate.user_id) == 20_000

        rejected = await WithdrawalLifecycleHandler(session).reject_withdrawal(
            withdrawal.id, "wrong account"
        )

        assert rejected.status == WithdrawalStatus.REJECTED.value
        assert rejected.notes == "wrong account"
        assert await aggregator.available_for_withdrawal(affiliate.user_id) == 50_000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("notes", ["", "  ", None])
    async def test_notes_required(self, session, builder, notes):
        affiliate = await builder.affiliate()
        withdrawal = await builder.withdrawal(affiliate.user_id, 10_000)
        withdrawal_id = withdrawal.id

        with pytest.raises(ValidationError):
            await WithdrawalLifecycleHandler(session).reject_withdrawal(
                withdrawal_id, notes
            )

        await session.refresh(withdrawal)
        assert withdrawal.status == WithdrawalStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_approved_cannot_be_rejected(self, session, builder):
        affiliate = await builder.affiliate()
        withdrawal = await builder.withdrawal(
            affiliate.user_id, 10_000, WithdrawalStatus.APPROVED
        )

        with pytest.raises(StateConflictError):
            await WithdrawalLifecycleHandler(session).reject_withdrawal(
                withdrawal.id, "too late"
            )


class TestCompleteWithdrawal:
    """Completion goes through the debit engine."""

    @pytest.mark.asyncio
    async def test_complete_after_approval(self, session, builder, cache, deleted_keys):
        affiliate = await builder.affiliate()
        commission = await builder.commission(affiliate, 50_000)
        withdrawal = await builder.withdrawal(affiliate.user_id, 50_000)
        handler = WithdrawalLifecycleHandler(session, cache)

        await handler.approve_withdrawal(withdrawal.id)
        report = await handler.complete_withdrawal(withdrawal.id)

        assert report.withdrawal.status == WithdrawalStatus.COMPLETED.value
        assert report.total_debited == 50_000
        await session.refresh(commission)
        assert commission.status == CommissionStatus.WITHDRAWN.value
        assert f"balance:{affiliate.user_id}" in deleted_keys()

    @pytest.mark.asyncio
    async def test_completed_is_terminal(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)
        withdrawal = await builder.withdrawal(affiliate.user_id, 10_000)
        withdrawal_id = withdrawal.id
        handler = WithdrawalLifecycleHandler(session)
        await handler.complete_withdrawal(withdrawal_id)

        with pytest.raises(StateConflictError):
            await handler.complete_withdrawal(withdrawal_id)
        with pytest.raises(StateConflictError):
            await handler.reject_withdrawal(withdrawal_id, "undo")
