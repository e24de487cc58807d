"""Unit tests for DedupChecker and the backlog it scans."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from vaa_listener.config import DedupFailurePolicy
from vaa_listener.dedup import REASON_IN_BACKLOG, REASON_STORE_UNAVAILABLE, DedupChecker
from vaa_listener.utils.redis_utility import RedisTables
from vaa_listener.utils.state_manager import Backlog

KEY = "2:0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"


def make_store(tables: dict | None = None) -> AsyncMock:
    """Queue store mock backed by a {table: {key: value}} mapping."""
    tables = tables or {}
    store = AsyncMock()
    store.get = AsyncMock(side_effect=lambda table, key: tables.get(table, {}).get(key))
    return store


class TestBacklog:
    """Tests for the bounded backlog."""

    def test_find_key_returns_match(self):
        """Test that a predicate search actually returns the matching record."""
        backlog = Backlog()
        backlog.push("1:abc", "00")
        backlog.push(KEY, "ff")

        assert backlog.find_key(KEY) == (KEY, "ff")
        assert backlog.find_key("9:missing") is None

    def test_oldest_evicted_when_full(self):
        """Test that the backlog drops its oldest record at capacity."""
        backlog = Backlog(max_size=3)
        for i in range(5):
            backlog.push(f"key{i}", f"vaa{i}")

        assert len(backlog) == 3
        assert [key for key, _ in backlog] == ["key2", "key3", "key4"]
        assert backlog.find_key("key0") is None

    def test_pop_oldest(self):
        """Test FIFO draining by the forwarder."""
        backlog = Backlog()
        backlog.push("a", "1")
        backlog.push("b", "2")

        assert backlog.pop_oldest() == ("a", "1")
        assert backlog.pop_oldest() == ("b", "2")
        assert backlog.pop_oldest() is None

    def test_stats(self):
        """Test backlog statistics."""
        backlog = Backlog(max_size=10)
        backlog.push("a", "1")
        assert backlog.get_stats() == {'backlog_size': 1, 'max_backlog_size': 10}


class TestDedupChecker:
    """Test suite for DedupChecker."""

    @pytest.mark.asyncio
    async def test_not_duplicate_when_absent_everywhere(self):
        """Test that a key absent from all three sources passes."""
        store = make_store()
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) is None
        assert [call.args for call in store.get.await_args_list] == [
            (RedisTables.INCOMING, KEY),
            (RedisTables.WORKING, KEY),
        ]

    @pytest.mark.asyncio
    async def test_duplicate_in_backlog(self):
        """Test that a backlog hit is reported and short-circuits the store."""
        backlog = Backlog()
        backlog.push(KEY, "0100")
        store = make_store()
        checker = DedupChecker(backlog, store)

        assert await checker.check(KEY) == REASON_IN_BACKLOG
        store.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_in_incoming(self):
        """Test that an INCOMING hit skips the WORKING lookup."""
        store = make_store({RedisTables.INCOMING: {KEY: "queued"}})
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) == "VAA was already in INCOMING table"
        assert store.get.await_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_in_working(self):
        """Test that a WORKING hit is reported."""
        store = make_store({RedisTables.WORKING: {KEY: "in flight"}})
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) == "VAA was already in WORKING table"

    @pytest.mark.asyncio
    async def test_other_keys_do_not_match(self):
        """Test that only the exact key is treated as a duplicate."""
        backlog = Backlog()
        backlog.push("2:0xother", "00")
        store = make_store({RedisTables.INCOMING: {"1:" + KEY: "queued"}})
        checker = DedupChecker(backlog, store)

        assert await checker.check(KEY) is None

    @pytest.mark.asyncio
    async def test_store_unavailable_fails_open(self):
        """Test that a connection failure is logged and treated as not duplicate."""
        store = AsyncMock()
        store.get = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) is None

    @pytest.mark.asyncio
    async def test_store_os_error_fails_open(self):
        """Test that socket-level errors are also caught."""
        store = AsyncMock()
        store.get = AsyncMock(side_effect=OSError("network unreachable"))
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) is None

    @pytest.mark.asyncio
    async def test_store_timeout_fails_open(self):
        """Test that a slow store is bounded by the timeout."""
        async def slow_get(table, key):
            await asyncio.sleep(5)
            return "queued"

        store = AsyncMock()
        store.get = AsyncMock(side_effect=slow_get)
        checker = DedupChecker(Backlog(), store, timeout=0.01)

        assert await checker.check(KEY) is None

    @pytest.mark.asyncio
    async def test_store_unavailable_fails_closed(self):
        """Test that the fail-closed policy rejects when the store is down."""
        store = AsyncMock()
        store.get = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        checker = DedupChecker(Backlog(), store, failure_policy=DedupFailurePolicy.FAIL_CLOSED)

        assert await checker.check(KEY) == REASON_STORE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_backlog_checked_even_when_store_down(self):
        """Test that a backlog hit is still reported during an outage."""
        backlog = Backlog()
        backlog.push(KEY, "0100")
        store = AsyncMock()
        store.get = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        checker = DedupChecker(backlog, store)

        assert await checker.check(KEY) == REASON_IN_BACKLOG

    @pytest.mark.asyncio
    async def test_no_store_configured(self):
        """Test that a missing store follows the failure policy."""
        assert await DedupChecker(Backlog(), None).check(KEY) is None
        closed = DedupChecker(Backlog(), None, failure_policy=DedupFailurePolicy.FAIL_CLOSED)
        assert await closed.check(KEY) == REASON_STORE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_undecodable_record_fails_open(self):
        """Test that a non-redis error from the store is resolved by the policy."""
        store = AsyncMock()
        store.get = AsyncMock(side_effect=UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"))
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) is None

    @pytest.mark.asyncio
    async def test_unexpected_store_error_fails_closed(self):
        """Test that the fail-closed policy also covers unexpected store errors."""
        store = AsyncMock()
        store.get = AsyncMock(side_effect=RuntimeError("event loop is closed"))
        checker = DedupChecker(Backlog(), store, failure_policy=DedupFailurePolicy.FAIL_CLOSED)

        assert await checker.check(KEY) == REASON_STORE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_binary_record_counts_as_duplicate(self):
        """Test that raw bytes values are treated as present."""
        store = make_store({RedisTables.WORKING: {KEY: b"\xff\x00"}})
        checker = DedupChecker(Backlog(), store)

        assert await checker.check(KEY) == "VAA was already in WORKING table"
