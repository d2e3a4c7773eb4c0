"""Tests for withdrawal request creation."""

import pytest

from app.models import CommissionStatus, WithdrawalStatus
from app.services.withdrawal import WithdrawalRequestHandler
from app.utils.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


DESTINATION = {
    "bank_name": "BCA",
    "account_number": "9876543210",
    "account_holder": "Jane Doe",
}


class TestRequestWithdrawal:
    """Live balance checks on request."""

    @pytest.mark.asyncio
    async def test_request_within_available(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)

        withdrawal = await WithdrawalRequestHandler(session).request_withdrawal(
            affiliate.user_id, 50_000, **DESTINATION
        )

        assert withdrawal.id is not None
        assert withdrawal.status == WithdrawalStatus.PENDING.value
        assert withdrawal.amount == 50_000
        assert withdrawal.account_number == "9876543210"

    @pytest.mark.asyncio
    async def test_in_flight_requests_reserve_balance(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)
        await builder.withdrawal(affiliate.user_id, 30_000)
        handler = WithdrawalRequestHandler(session)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await handler.request_withdrawal(
                affiliate.user_id, 20_001, **DESTINATION
            )

        assert exc_info.value.available == 20_000

    @pytest.mark.asyncio
    async def test_rejected_requests_release_balance(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)
        await builder.withdrawal(
            affiliate.user_id, 50_000, WithdrawalStatus.REJECTED
        )

        withdrawal = await WithdrawalRequestHandler(session).request_withdrawal(
            affiliate.user_id, 50_000, **DESTINATION
        )

        assert withdrawal.amount == 50_000

    @pytest.mark.asyncio
    async def test_pending_commissions_not_available(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000, status=CommissionStatus.PENDING)

        with pytest.raises(InsufficientBalanceError):
            await WithdrawalRequestHandler(session).request_withdrawal(
                affiliate.user_id, 1, **DESTINATION
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, 10.5, True])
    async def test_invalid_amount(self, session, builder, amount):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)

        with pytest.raises(ValidationError):
            await WithdrawalRequestHandler(session).request_withdrawal(
                affiliate.user_id, amount, **DESTINATION
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["bank_name", "account_number", "account_holder"])
    async def test_missing_destination(self, session, builder, field):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)
        destination = {**DESTINATION, field: "  "}

        with pytest.raises(ValidationError) as exc_info:
            await WithdrawalRequestHandler(session).request_withdrawal(
                affiliate.user_id, 10_000, **destination
            )

        assert exc_info.value.details["fields"] == [field]

    @pytest.mark.asyncio
    async def test_user_without_affiliate(self, session):
        with pytest.raises(NotFoundError):
            await WithdrawalRequestHandler(session).request_withdrawal(
                123_456, 10_000, **DESTINATION
            )

    @pytest.mark.asyncio
    async def test_owner_cache_invalidated(
        self, session, builder, cache, deleted_keys
    ):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 50_000)

        await WithdrawalRequestHandler(session, cache).request_withdrawal(
            affiliate.user_id, 10_000, **DESTINATION
        )

        assert f"balance:{affiliate.user_id}" in deleted_keys()


class TestValidateDestination:
    """Destination field checks."""

    def test_values_are_stripped(self):
        cleaned = WithdrawalRequestHandler.validate_destination(
            bank_name=" BCA ",
            account_number="123",
            account_holder="Jane",
        )

        assert cleaned == {
            "bank_name": "BCA",
            "account_number": "123",
            "account_holder": "Jane",
        }

    def test_too_long_account_number(self):
        with pytest.raises(ValidationError) as exc_info:
            WithdrawalRequestHandler.validate_destination(
                bank_name="BCA",
                account_number="1" * 65,
                account_holder="Jane",
            )

        assert exc_info.value.details["field"] == "account_number"
