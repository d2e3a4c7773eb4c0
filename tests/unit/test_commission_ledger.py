"""Tests for commission approval and rejection."""

import pytest

from app.models import CommissionStatus
from app.services.commission.ledger import CommissionLedger
from app.utils.exceptions import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)


PENDING = CommissionStatus.PENDING
APPROVED = CommissionStatus.APPROVED
REJECTED = CommissionStatus.REJECTED


class TestApprove:
    """PENDING -> APPROVED."""

    @pytest.mark.asyncio
    async def test_approve_full_amount(self, session, builder):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=PENDING)

        approved = await CommissionLedger(session).approve(row.id)

        assert approved.status == APPROVED.value
        assert approved.amount == 12_500
        assert approved.approved_at is not None
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 12_500
        assert affiliate.total_paid == 12_500

    @pytest.mark.asyncio
    async def test_adjusted_amount_replaces_row_amount(self, session, builder):
        """12,500 approved as 15,000 credits 15,000."""
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=PENDING)

        approved = await CommissionLedger(session).approve(row.id, amount=15_000)

        assert approved.status == APPROVED.value
        assert approved.amount == 15_000
        assert approved.original_amount == 15_000
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 15_000
        assert affiliate.total_paid == 15_000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [APPROVED, REJECTED, CommissionStatus.WITHDRAWN])
    async def test_approve_non_pending_conflicts(self, session, builder, status):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=status)
        row_id = row.id

        with pytest.raises(StateConflictError) as exc_info:
            await CommissionLedger(session).approve(row_id, amount=99_000)

        assert exc_info.value.current == status.value
        await session.refresh(row)
        assert row.status == status.value
        assert row.amount == 12_500
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -100, 1.5, True])
    async def test_invalid_adjusted_amount(self, session, builder, amount):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=PENDING)
        row_id = row.id

        with pytest.raises(ValidationError):
            await CommissionLedger(session).approve(row_id, amount=amount)

        await session.refresh(row)
        assert row.status == PENDING.value

    @pytest.mark.asyncio
    async def test_approve_missing_commission(self, session):
        with pytest.raises(NotFoundError) as exc_info:
            await CommissionLedger(session).approve(31_337)

        assert exc_info.value.to_dict()["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_approve_invalidates_owner_cache(
        self, session, builder, cache, deleted_keys
    ):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=PENDING)

        await CommissionLedger(session, cache).approve(row.id)

        assert f"balance:{affiliate.user_id}" in deleted_keys()
        assert f"commissions:{affiliate.id}" in deleted_keys()


class TestReject:
    """PENDING -> REJECTED."""

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, session, builder):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=PENDING)

        rejected = await CommissionLedger(session).reject(row.id, " duplicate order ")

        assert rejected.status == REJECTED.value
        assert rejected.rejection_reason == "duplicate order"
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", ["", "   ", None])
    async def test_reason_required(self, session, builder, reason):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=PENDING)
        row_id = row.id

        with pytest.raises(ValidationError):
            await CommissionLedger(session).reject(row_id, reason)

        await session.refresh(row)
        assert row.status == PENDING.value

    @pytest.mark.asyncio
    async def test_rejected_is_terminal(self, session, builder):
        affiliate = await builder.affiliate()
        row = await builder.commission(affiliate, 12_500, status=REJECTED)

        with pytest.raises(StateConflictError):
            await CommissionLedger(session).reject(row.id, "again")


class TestGroupApproval:
    """Approve every pending row of one affiliate."""

    @pytest.mark.asyncio
    async def test_group_without_override_credits_row_sum(self, session, builder):
        affiliate = await builder.affiliate()
        for amount in (75_000, 12_500, 12_500):
            await builder.commission(affiliate, amount, status=PENDING)

        result = await CommissionLedger(session).approve_pending_for_affiliate(
            affiliate.id
        )

        assert len(result.approved) == 3
        assert all(row.status == APPROVED.value for row in result.approved)
        assert result.rows_total == 100_000
        assert result.credited_amount == 100_000
        assert not result.override_applied
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 100_000

    @pytest.mark.asyncio
    async def test_override_changes_totals_not_rows(self, session, builder):
        affiliate = await builder.affiliate()
        for amount in (75_000, 12_500, 12_500):
            await builder.commission(affiliate, amount, status=PENDING)

        result = await CommissionLedger(session).approve_pending_for_affiliate(
            affiliate.id, total_override=90_000
        )

        assert sorted(row.amount for row in result.approved) == [
            12_500,
            12_500,
            75_000,
        ]
        assert result.rows_total == 100_000
        assert result.credited_amount == 90_000
        assert result.override_applied
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 90_000
        assert affiliate.total_paid == 90_000

    @pytest.mark.asyncio
    async def test_zero_override_credits_row_sum(self, session, builder):
        affiliate = await builder.affiliate()
        for amount in (75_000, 12_500):
            await builder.commission(affiliate, amount, status=PENDING)

        result = await CommissionLedger(session).approve_pending_for_affiliate(
            affiliate.id, total_override=0
        )

        assert not result.override_applied
        assert result.credited_amount == 87_500
        await session.refresh(affiliate)
        assert affiliate.total_earnings == 87_500
        assert affiliate.total_paid == 87_500

    @pytest.mark.asyncio
    async def test_group_skips_rows_of_other_states(self, session, builder):
        affiliate = await builder.affiliate()
        pending = await builder.commission(affiliate, 12_500, status=PENDING)
        rejected = await builder.commission(affiliate, 12_500, status=REJECTED)

        result = await CommissionLedger(session).approve_pending_for_affiliate(
            affiliate.id
        )

        assert [row.id for row in result.approved] == [pending.id]
        await session.refresh(rejected)
        assert rejected.status == REJECTED.value

    @pytest.mark.asyncio
    async def test_group_without_pending_rows(self, session, builder):
        affiliate = await builder.affiliate()

        result = await CommissionLedger(session).approve_pending_for_affiliate(
            affiliate.id
        )

        assert result.approved == []
        assert result.credited_amount == 0

    @pytest.mark.asyncio
    async def test_group_unknown_affiliate(self, session):
        with pytest.raises(NotFoundError):
            await CommissionLedger(session).approve_pending_for_affiliate(9_999)

    @pytest.mark.asyncio
    async def test_negative_override_rejected(self, session, builder):
        affiliate = await builder.affiliate()
        affiliate_id = affiliate.id

        with pytest.raises(ValidationError):
            await CommissionLedger(session).approve_pending_for_affiliate(
                affiliate_id, total_override=-1
            )
