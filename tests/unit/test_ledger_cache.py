"""Tests for the Redis-backed ledger cache."""

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.utils.cache import LedgerCache


class TestReads:
    """get_json behaviour."""

    @pytest.mark.asyncio
    async def test_without_client_everything_misses(self):
        cache = LedgerCache()

        assert not cache.enabled
        assert await cache.get_json("balance:1") is None
        assert await cache.delete("balance:1") == 0
        await cache.set_json("balance:1", {"a": 1})

    @pytest.mark.asyncio
    async def test_hit_is_decoded(self, cache, mock_redis_client):
        mock_redis_client.get.return_value = json.dumps({"a": 1})

        assert await cache.get_json("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_redis_failure_is_a_miss(self, cache, mock_redis_client):
        mock_redis_client.get.side_effect = RedisConnectionError("down")

        assert await cache.get_json("k") is None

    @pytest.mark.asyncio
    async def test_undecodable_entry_dropped(self, cache, mock_redis_client):
        mock_redis_client.get.return_value = "{not json"

        assert await cache.get_json("k") is None
        mock_redis_client.delete.assert_awaited_once_with("k")


class TestWrites:
    """set_json and invalidation."""

    @pytest.mark.asyncio
    async def test_default_ttl(self, cache, mock_redis_client):
        await cache.set_json("k", {"a": 1})

        mock_redis_client.set.assert_awaited_once_with(
            "k", json.dumps({"a": 1}), ex=300
        )

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_writes(self, mock_redis_client):
        cache = LedgerCache(mock_redis_client, default_ttl=0)

        await cache.set_json("k", {"a": 1})

        mock_redis_client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_failure_swallowed(self, cache, mock_redis_client):
        mock_redis_client.set.side_effect = RedisConnectionError("down")

        await cache.set_json("k", {"a": 1})

    @pytest.mark.asyncio
    async def test_invalidate_owner(self, cache, deleted_keys):
        await cache.invalidate_owner(7, affiliate_id=3)

        assert deleted_keys() == {
            "balance:7",
            "dashboard:7",
            "commissions:3",
            "referrals:3",
        }

    @pytest.mark.asyncio
    async def test_invalidate_user_only(self, cache, deleted_keys):
        await cache.invalidate_owner(7)

        assert deleted_keys() == {"balance:7", "dashboard:7"}

    @pytest.mark.asyncio
    async def test_delete_failure_reports_zero(self, cache, mock_redis_client):
        mock_redis_client.delete.side_effect = RedisConnectionError("down")

        assert await cache.delete("k") == 0
