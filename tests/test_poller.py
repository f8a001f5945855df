"""
Tests for the price feed poller.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from quickmarket.errors import FeedUnavailable, InvalidSample
from quickmarket.market.poller import PricePoller
from quickmarket.market.price_cache import PriceCache


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run without advancing real time much."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_source(*results):
    source = MagicMock()
    source.fetch_spot_price = AsyncMock(side_effect=list(results))
    return source


@pytest.fixture
def cache(tmp_path):
    return PriceCache(tmp_path / "prices.db")


class TestFetchOnce:
    """Tests for a single fetch."""

    @pytest.mark.asyncio
    async def test_success(self):
        poller = PricePoller("bitcoin", make_source(100.0), on_sample=MagicMock())
        assert await poller.fetch_once() == 100.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [FeedUnavailable("down"), InvalidSample("nan")])
    async def test_failures_are_silent(self, error):
        """Should swallow recoverable failures and count them."""
        poller = PricePoller("bitcoin", make_source(error), on_sample=MagicMock())

        assert await poller.fetch_once() is None
        assert poller.failures == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [0.0, -5.0, float("nan"), "abc", None])
    async def test_invalid_price_is_a_failure(self, raw):
        """Should reject prices from any source that are not finite and positive."""
        poller = PricePoller("bitcoin", make_source(raw), on_sample=MagicMock())

        assert await poller.fetch_once() is None
        assert poller.failures == 1

    @pytest.mark.asyncio
    async def test_invalid_price_never_reaches_owner(self):
        on_sample = MagicMock(return_value=True)
        poller = PricePoller("bitcoin", make_source(0.0), on_sample=on_sample)

        assert await poller.tick() is False
        on_sample.assert_not_called()


class TestPolling:
    """Tests for the polling schedule."""

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self, cache):
        """Should fetch on start without waiting an interval."""
        clock = FakeClock(1000.0)
        on_sample = MagicMock(return_value=True)
        poller = PricePoller(
            "bitcoin", make_source(100.0), on_sample=on_sample,
            price_cache=cache, interval_seconds=3600, clock=clock,
        )

        poller.start()
        await settle()

        on_sample.assert_called_once()
        sample = on_sample.call_args.args[0]
        assert (sample.timestamp, sample.price) == (1000.0, 100.0)
        assert cache.get("bitcoin") == 100.0

        await poller.stop()
        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_ticks_repeat_on_interval(self):
        source = MagicMock()
        source.fetch_spot_price = AsyncMock(return_value=100.0)
        poller = PricePoller(
            "bitcoin", source, on_sample=MagicMock(return_value=True),
            interval_seconds=0.01,
        )

        poller.start()
        await asyncio.sleep(0.1)
        await poller.stop()

        assert source.fetch_spot_price.await_count >= 3

    @pytest.mark.asyncio
    async def test_rejected_sample_not_cached(self, cache):
        """Should only write prices the owner accepted."""
        poller = PricePoller(
            "bitcoin", make_source(100.0), on_sample=MagicMock(return_value=False),
            price_cache=cache, interval_seconds=3600,
        )

        poller.start()
        await settle()
        await poller.stop()

        assert cache.get("bitcoin") is None

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_schedule(self):
        """Should keep ticking after a failed fetch."""
        attempts = 0

        async def fetch(asset_id):
            nonlocal attempts
            attempts += 1
            if attempts <= 2:
                raise FeedUnavailable("down")
            return 100.0 + attempts

        source = MagicMock()
        source.fetch_spot_price = fetch
        on_sample = MagicMock(return_value=True)
        poller = PricePoller("bitcoin", source, on_sample=on_sample, interval_seconds=0.01)

        poller.start()
        await asyncio.sleep(0.1)
        await poller.stop()

        prices = [call.args[0].price for call in on_sample.call_args_list]
        assert poller.failures == 2
        assert prices[0] == 103.0

    @pytest.mark.asyncio
    async def test_slow_fetch_does_not_block_next_tick(self):
        """Should start the next tick while a previous fetch hangs."""
        gate = asyncio.Event()
        calls = []

        async def fetch(asset_id):
            calls.append(asset_id)
            if len(calls) == 1:
                await gate.wait()
            return 100.0

        source = MagicMock()
        source.fetch_spot_price = fetch
        poller = PricePoller(
            "bitcoin", source, on_sample=MagicMock(return_value=True),
            interval_seconds=0.01,
        )

        poller.start()
        await asyncio.sleep(0.05)

        assert len(calls) >= 2
        await poller.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_fetch(self):
        gate = asyncio.Event()

        async def fetch(asset_id):
            await gate.wait()
            return 100.0

        source = MagicMock()
        source.fetch_spot_price = fetch
        on_sample = MagicMock(return_value=True)
        poller = PricePoller("bitcoin", source, on_sample=on_sample, interval_seconds=3600)

        poller.start()
        await settle()
        await poller.stop()
        gate.set()
        await settle()

        on_sample.assert_not_called()

    @pytest.mark.asyncio
    async def test_late_result_from_old_generation_discarded(self):
        """Should drop a fetch that completes after the poller was stopped."""
        gate = asyncio.Event()
        results = iter([(None, 100.0), (gate, 200.0)])

        async def fetch(asset_id):
            wait_on, price = next(results)
            if wait_on is not None:
                await wait_on.wait()
            return price

        source = MagicMock()
        source.fetch_spot_price = fetch
        on_sample = MagicMock(return_value=True)
        poller = PricePoller("bitcoin", source, on_sample=on_sample, interval_seconds=3600)

        poller.start()
        await settle()
        late = asyncio.create_task(poller.tick())
        await settle()
        await poller.stop()
        gate.set()

        assert await late is False
        assert [c.args[0].price for c in on_sample.call_args_list] == [100.0]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        source = MagicMock()
        source.fetch_spot_price = AsyncMock(return_value=100.0)
        poller = PricePoller(
            "bitcoin", source, on_sample=MagicMock(return_value=True), interval_seconds=3600
        )

        poller.start()
        poller.start()
        await settle()
        await poller.stop()

        assert source.fetch_spot_price.await_count == 1
        assert poller.generation == 2
