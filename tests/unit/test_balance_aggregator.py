"""Tests for balance aggregation."""

import json

import pytest

from app.models import CommissionStatus, WithdrawalStatus
from app.services.balance.aggregator import BalanceAggregator, BalanceSnapshot


class TestBalance:
    """Live balance from commission rows and withdrawals."""

    @pytest.mark.asyncio
    async def test_balance_components(self, session, builder):
        affiliate = await builder.affiliate()
        user_id = affiliate.user_id
        await builder.commission(affiliate, 50_000, status=CommissionStatus.APPROVED)
        await builder.commission(affiliate, 10_000, status=CommissionStatus.PAID)
        await builder.commission(affiliate, 12_500, status=CommissionStatus.PENDING)
        await builder.commission(affiliate, 5_000, status=CommissionStatus.REJECTED)
        await builder.commission(affiliate, 0, status=CommissionStatus.WITHDRAWN)
        await builder.withdrawal(user_id, 20_000, WithdrawalStatus.PENDING)
        await builder.withdrawal(user_id, 5_000, WithdrawalStatus.APPROVED)
        await builder.withdrawal(user_id, 30_000, WithdrawalStatus.COMPLETED)
        await builder.withdrawal(user_id, 99_000, WithdrawalStatus.REJECTED)

        snapshot = await BalanceAggregator(session).balance(user_id)

        assert snapshot.approved_balance == 60_000
        assert snapshot.pending_withdrawal == 25_000
        assert snapshot.available_for_withdrawal == 35_000
        assert snapshot.pending_commissions == 12_500
        assert snapshot.withdrawn == 30_000
        # Rows on the ledger plus what completed withdrawals consumed
        assert snapshot.total_earned == 50_000 + 10_000 + 12_500 + 30_000

    @pytest.mark.asyncio
    async def test_available_never_negative(self, session, builder):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 10_000)
        await builder.withdrawal(affiliate.user_id, 25_000, WithdrawalStatus.APPROVED)

        aggregator = BalanceAggregator(session)
        snapshot = await aggregator.balance(affiliate.user_id)

        assert snapshot.available_for_withdrawal == 0
        assert await aggregator.available_for_withdrawal(affiliate.user_id) == 0

    @pytest.mark.asyncio
    async def test_unknown_user_has_zero_balance(self, session):
        snapshot = await BalanceAggregator(session).balance(55_555)

        assert snapshot == BalanceSnapshot(
            user_id=55_555,
            total_earned=0,
            approved_balance=0,
            pending_withdrawal=0,
            available_for_withdrawal=0,
        )

    @pytest.mark.asyncio
    async def test_other_users_rows_ignored(self, session, builder):
        mine = await builder.affiliate()
        other = await builder.affiliate()
        await builder.commission(mine, 10_000)
        await builder.commission(other, 70_000)

        snapshot = await BalanceAggregator(session).balance(mine.user_id)

        assert snapshot.approved_balance == 10_000


class TestDashboardBalance:
    """Cached balance for dashboards."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, session, cache, mock_redis_client):
        cached = BalanceSnapshot(
            user_id=7,
            total_earned=1,
            approved_balance=2,
            pending_withdrawal=0,
            available_for_withdrawal=2,
        )
        mock_redis_client.get.return_value = json.dumps(cached.to_dict())

        snapshot = await BalanceAggregator(session, cache).dashboard_balance(7)

        assert snapshot == cached
        mock_redis_client.get.assert_awaited_once_with("balance:7")
        mock_redis_client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_miss_stores_live_value(
        self, session, builder, cache, mock_redis_client
    ):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 10_000)

        snapshot = await BalanceAggregator(session, cache).dashboard_balance(
            affiliate.user_id
        )

        assert snapshot.approved_balance == 10_000
        key, value = mock_redis_client.set.await_args.args
        assert key == f"balance:{affiliate.user_id}"
        assert json.loads(value)["approved_balance"] == 10_000
        assert mock_redis_client.set.await_args.kwargs["ex"] == 300

    @pytest.mark.asyncio
    async def test_malformed_cache_entry_recomputed(
        self, session, builder, cache, mock_redis_client
    ):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 10_000)
        mock_redis_client.get.return_value = json.dumps({"unexpected": 1})

        snapshot = await BalanceAggregator(session, cache).dashboard_balance(
            affiliate.user_id
        )

        assert snapshot.approved_balance == 10_000
        mock_redis_client.delete.assert_awaited()
