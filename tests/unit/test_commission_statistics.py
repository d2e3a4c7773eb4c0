"""Tests for commission statistics and the dashboard view."""

import json

import pytest

from app.models import CommissionKind, CommissionStatus
from app.services.commission.statistics import CommissionStatisticsService
from app.utils.exceptions import NotFoundError


class TestSummary:
    """Per-status totals."""

    @pytest.mark.asyncio
    async def test_rejected_excluded_from_totals(self, session, builder, schedule):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 12_500, status=CommissionStatus.PENDING)
        await builder.commission(affiliate, 75_000, status=CommissionStatus.APPROVED)
        await builder.commission(affiliate, 5_000, status=CommissionStatus.REJECTED)

        summary = await CommissionStatisticsService(
            session, schedule=schedule
        ).get_summary(affiliate.id)

        assert summary["total_amount"] == 87_500
        assert summary["total_count"] == 2
        assert summary["by_status"]["REJECTED"] == {"count": 1, "amount": 5_000}


class TestLevelBreakdown:
    """Every schedule level is listed."""

    @pytest.mark.asyncio
    async def test_levels_with_and_without_rows(self, session, builder, schedule):
        affiliate = await builder.affiliate()
        await builder.commission(
            affiliate, 75_000, level=1, kind=CommissionKind.BASE
        )
        await builder.commission(
            affiliate,
            12_500,
            level=1,
            kind=CommissionKind.BONUS,
            status=CommissionStatus.PENDING,
        )
        await builder.commission(affiliate, 12_500, level=3)

        levels = await CommissionStatisticsService(
            session, schedule=schedule
        ).get_level_breakdown(affiliate.id)

        assert [entry["level"] for entry in levels] == list(range(1, 11))
        assert levels[0] == {
            "level": 1,
            "fixed_amount": 87_500,
            "count": 2,
            "total": 87_500,
            "pending": 12_500,
            "approved": 75_000,
        }
        assert levels[1]["count"] == 0
        assert levels[1]["fixed_amount"] == 12_500
        assert levels[2]["total"] == 12_500


class TestRecent:
    """Newest rows first."""

    @pytest.mark.asyncio
    async def test_recent_limit_and_order(self, session, builder, schedule):
        affiliate = await builder.affiliate()
        for amount in (1_000, 2_000, 3_000):
            await builder.commission(affiliate, amount)

        recent = await CommissionStatisticsService(
            session, schedule=schedule
        ).get_recent(affiliate.id, limit=2)

        assert [row["amount"] for row in recent] == [3_000, 2_000]
        assert recent[0]["status"] == CommissionStatus.APPROVED.value


class TestDashboard:
    """Cached dashboard view."""

    @pytest.mark.asyncio
    async def test_dashboard_built_and_cached(
        self, session, builder, schedule, cache, mock_redis_client
    ):
        affiliate = await builder.affiliate()
        await builder.commission(affiliate, 10_000)

        dashboard = await CommissionStatisticsService(
            session, schedule=schedule, cache=cache
        ).get_dashboard(affiliate.user_id)

        assert dashboard["affiliate"]["code"] == affiliate.code
        assert dashboard["balance"]["available_for_withdrawal"] == 10_000
        assert dashboard["commissions"]["summary"]["total_amount"] == 10_000
        assert len(dashboard["recent"]) == 1
        stored = {
            call.args[0] for call in mock_redis_client.set.await_args_list
        }
        assert stored == {
            f"dashboard:{affiliate.user_id}",
            f"balance:{affiliate.user_id}",
            f"commissions:{affiliate.id}",
        }

    @pytest.mark.asyncio
    async def test_dashboard_cache_hit(
        self, session, schedule, cache, mock_redis_client
    ):
        mock_redis_client.get.return_value = json.dumps({"cached": True})

        dashboard = await CommissionStatisticsService(
            session, schedule=schedule, cache=cache
        ).get_dashboard(42)

        assert dashboard == {"cached": True}

    @pytest.mark.asyncio
    async def test_dashboard_unknown_user(self, session, schedule):
        with pytest.raises(NotFoundError):
            await CommissionStatisticsService(
                session, schedule=schedule
            ).get_dashboard(42)
