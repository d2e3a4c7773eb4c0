"""Tests for withdrawal history and admin listing."""

import pytest

from app.models import WithdrawalStatus
from app.services.withdrawal import (
    WithdrawalDebitEngine,
    WithdrawalQueryService,
)
from app.utils.exceptions import NotFoundError, ValidationError


class TestUserHistory:
    """Owner view."""

    @pytest.mark.asyncio
    async def test_history_masks_account_and_reports_balance(
        self, session, builder
    ):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)
        await builder.withdrawal(affiliate.user_id, 20_000)

        history = await WithdrawalQueryService(session).get_user_history(
            affiliate.user_id
        )

        assert history["withdrawals"][0]["account_number"] == "****7890"
        assert history["balance"]["available_for_withdrawal"] == 30_000
        assert history["summary"]["by_status"]["PENDING"]["amount"] == 20_000
        assert history["summary"]["completed_amount"] == 0
        assert history["pagination"] == {
            "page": 1,
            "limit": 20,
            "total": 1,
            "pages": 1,
        }

    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(self, session, builder):
        affiliate = await builder.affiliate()
        for amount in (1_000, 2_000, 3_000):
            await builder.withdrawal(affiliate.user_id, amount)

        service = WithdrawalQueryService(session)
        first = await service.get_user_history(affiliate.user_id, page=1, limit=2)
        second = await service.get_user_history(affiliate.user_id, page=2, limit=2)

        assert [w["amount"] for w in first["withdrawals"]] == [3_000, 2_000]
        assert [w["amount"] for w in second["withdrawals"]] == [1_000]
        assert first["pagination"]["pages"] == 2

    @pytest.mark.asyncio
    async def test_status_filter(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.withdrawal(affiliate.user_id, 1_000)
        await builder.withdrawal(
            affiliate.user_id, 2_000, WithdrawalStatus.REJECTED
        )

        history = await WithdrawalQueryService(session).get_user_history(
            affiliate.user_id, status="rejected"
        )

        assert [w["amount"] for w in history["withdrawals"]] == [2_000]

    @pytest.mark.asyncio
    async def test_unknown_status_filter(self, session):
        with pytest.raises(ValidationError):
            await WithdrawalQueryService(session).get_user_history(
                1, status="LOST"
            )


class TestDetails:
    """Single withdrawal views."""

    @pytest.mark.asyncio
    async def test_owner_sees_masked_details(self, session, builder):
        affiliate = await builder.affiliate()
        withdrawal = await builder.withdrawal(affiliate.user_id, 1_000)

        details = await WithdrawalQueryService(session).get_details(
            withdrawal.id, user_id=affiliate.user_id
        )

        assert details["account_number"] == "****7890"
        assert "deductions" not in details

    @pytest.mark.asyncio
    async def test_other_user_gets_not_found(self, session, builder):
        affiliate = await builder.affiliate()
        withdrawal = await builder.withdrawal(affiliate.user_id, 1_000)

        with pytest.raises(NotFoundError):
            await WithdrawalQueryService(session).get_details(
                withdrawal.id, user_id=affiliate.user_id + 1
            )

    @pytest.mark.asyncio
    async def test_admin_sees_deductions(self, session, builder):
        affiliate = await builder.affiliate()
        commission = await builder.commission(affiliate, 50_000)
        withdrawal = await builder.withdrawal(affiliate.user_id, 20_000)
        await WithdrawalDebitEngine(session).complete(withdrawal.id)

        details = await WithdrawalQueryService(session).get_details(
            withdrawal.id, admin=True
        )

        assert details["account_number"] == "1234567890"
        assert details["actions"] == []
        assert details["deductions"] == [
            {
                "commission_id": commission.id,
                "amount": 20_000,
                "amount_before": 50_000,
                "amount_after": 30_000,
            }
        ]


class TestAdminListing:
    """Admin queue."""

    @pytest.mark.asyncio
    async def test_oldest_first_with_actions(self, session, builder):
        alice = await builder.affiliate()
        bob = await builder.affiliate()
        await builder.withdrawal(alice.user_id, 1_000)
        await builder.withdrawal(bob.user_id, 2_000, WithdrawalStatus.APPROVED)

        listing = await WithdrawalQueryService(session).list_for_admin()

        assert [w["amount"] for w in listing["withdrawals"]] == [1_000, 2_000]
        assert listing["withdrawals"][0]["actions"] == [
            "APPROVED",
            "COMPLETED",
            "REJECTED",
        ]
        assert listing["withdrawals"][1]["actions"] == ["COMPLETED"]
        assert listing["summary"]["PENDING"]["count"] == 1
        assert listing["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_filter_by_status(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.withdrawal(affiliate.user_id, 1_000)
        await builder.withdrawal(
            affiliate.user_id, 2_000, WithdrawalStatus.APPROVED
        )

        listing = await WithdrawalQueryService(session).list_for_admin(
            status="APPROVED"
        )

        assert [w["amount"] for w in listing["withdrawals"]] == [2_000]
