"""Tests for the in-memory rate limiter backend."""

import asyncio

import pytest

from rolling_limiter.rate_limit import InMemoryRateLimiter


class TestInMemoryStorage:
    """Tests for timestamp retention and expiry."""

    @pytest.fixture
    def limiter(self, clock):
        return InMemoryRateLimiter(interval=10, max_in_interval=3, clock=clock)

    @pytest.mark.asyncio
    async def test_records_consecutive_microseconds_for_bulk_count(self, limiter, clock):
        clock.set_ms(5)
        timestamps = await limiter.get_timestamps("k", 3)
        assert timestamps == [5000, 5001, 5002]

    @pytest.mark.asyncio
    async def test_evicts_timestamps_outside_window(self, limiter, clock):
        clock.set_ms(0)
        await limiter.get_timestamps("k", 1)
        clock.set_ms(6)
        await limiter.get_timestamps("k", 1)

        clock.set_ms(10)
        assert await limiter.get_timestamps("k", 0) == [6000]

    @pytest.mark.asyncio
    async def test_returned_list_is_a_copy(self, limiter, clock):
        timestamps = await limiter.get_timestamps("k", 1)
        timestamps.append(123)
        assert await limiter.get_timestamps("k", 0) == [0]

    @pytest.mark.asyncio
    async def test_entry_expires_interval_after_last_write(self, limiter, clock):
        clock.set_ms(0)
        await limiter.limit("k")
        clock.set_ms(4)
        await limiter.limit("k")
        assert limiter.entry_count() == 1

        clock.set_ms(13)
        assert limiter.entry_count() == 1

        clock.set_ms(14)
        assert limiter.entry_count() == 0
        assert await limiter.get_timestamps("k", 0) == []

    @pytest.mark.asyncio
    async def test_reads_do_not_extend_expiry(self, limiter, clock):
        clock.set_ms(0)
        await limiter.limit("k")

        clock.set_ms(9)
        await limiter.would_limit("k")

        clock.set_ms(10)
        assert limiter.entry_count() == 0

    @pytest.mark.asyncio
    async def test_reads_never_create_entries(self, limiter, clock):
        assert await limiter.would_limit("ghost") is False
        assert "ghost" not in limiter._storage

    @pytest.mark.asyncio
    async def test_clear_removes_entry(self, limiter, clock):
        await limiter.limit("k")
        await limiter.clear("k")
        assert limiter.entry_count() == 0

    @pytest.mark.asyncio
    async def test_clear_unknown_id_is_noop(self, limiter):
        await limiter.clear("never-seen")

    @pytest.mark.asyncio
    async def test_concurrent_limits_never_exceed_max(self, clock):
        limiter = InMemoryRateLimiter(interval=1000, max_in_interval=10, clock=clock)

        results = await asyncio.gather(*(limiter.limit("k") for _ in range(50)))

        assert results.count(False) == 10
        assert len(await limiter.get_timestamps("k", 0)) == 50


class TestInMemoryCleanup:
    """Tests for the expiry sweep."""

    @pytest.mark.asyncio
    async def test_cleanup_removes_only_expired_entries(self, clock):
        limiter = InMemoryRateLimiter(interval=10, max_in_interval=3, clock=clock)

        clock.set_ms(0)
        await limiter.limit("old")
        clock.set_ms(5)
        await limiter.limit("fresh")

        clock.set_ms(10)
        assert await limiter.cleanup() == 1
        assert set(limiter._storage) == {"fresh"}

    @pytest.mark.asyncio
    async def test_sweeper_runs_cleanup_periodically(self, clock):
        limiter = InMemoryRateLimiter(interval=10, max_in_interval=3, clock=clock)
        await limiter.limit("k")
        clock.set_ms(50)

        await limiter.start_sweeper(interval_seconds=0.01)
        try:
            for _ in range(50):
                if not limiter._storage:
                    break
                await asyncio.sleep(0.01)
        finally:
            await limiter.stop_sweeper()

        assert limiter._storage == {}
        assert limiter._sweep_task is None

    @pytest.mark.asyncio
    async def test_start_sweeper_twice_keeps_one_task(self, clock):
        limiter = InMemoryRateLimiter(interval=10, max_in_interval=3, clock=clock)
        await limiter.start_sweeper(interval_seconds=10)
        task = limiter._sweep_task
        await limiter.start_sweeper(interval_seconds=10)
        assert limiter._sweep_task is task
        await limiter.aclose()
        assert limiter._sweep_task is None

    @pytest.mark.asyncio
    async def test_stop_sweeper_without_start(self, clock):
        limiter = InMemoryRateLimiter(interval=10, max_in_interval=3, clock=clock)
        await limiter.stop_sweeper()
