"""
Price Feed Poller

Fetches one asset's spot price on a fixed cadence, starting immediately.
Each tick runs as its own task so a hung request never delays the next
tick; results are tagged with the time the request was issued and with
the poller generation, so late or superseded responses can be dropped.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from quickmarket.errors import FeedUnavailable, InvalidSample
from quickmarket.market.models import PriceSample, validate_price
from quickmarket.market.price_cache import PriceCache
from quickmarket.utils.logger import MarketEventLogger

logger = logging.getLogger(__name__)


class PricePoller:
    """
    Best-effort periodic price sampler for one asset.

    Failures are logged and dropped; the next scheduled tick retries.
    Accepted prices are written through to the price cache.
    """

    def __init__(
        self,
        asset_id: str,
        source,
        on_sample: Callable[[PriceSample], bool],
        price_cache: Optional[PriceCache] = None,
        interval_seconds: float = 10.0,
        clock: Callable[[], float] = time.time,
        events: Optional[MarketEventLogger] = None,
    ):
        self.asset_id = asset_id
        self.source = source
        self.price_cache = price_cache
        self.interval_seconds = interval_seconds
        self._on_sample = on_sample
        self._clock = clock
        self._events = events or MarketEventLogger()

        self._running = False
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()

        # Stats
        self.ticks = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    async def fetch_once(self) -> Optional[float]:
        """One validated price from the source; None on any recoverable failure."""
        try:
            return validate_price(await self.source.fetch_spot_price(self.asset_id))
        except FeedUnavailable as e:
            self.failures += 1
            self._events.feed_unavailable(self.asset_id, str(e))
        except InvalidSample as e:
            self.failures += 1
            logger.debug(f"Rejected price for {self.asset_id}: {e}")
        return None

    async def tick(self) -> bool:
        """
        Fetch and commit one sample.

        Returns True if the owner accepted the sample.
        """
        generation = self._generation
        issued_at = self._clock()
        self.ticks += 1

        price = await self.fetch_once()
        if price is None:
            return False

        if not self._running or generation != self._generation:
            logger.debug(
                f"Discarding late price for {self.asset_id} "
                f"(generation {generation}, now {self._generation})"
            )
            return False

        accepted = self._on_sample(PriceSample(timestamp=issued_at, price=price))
        if accepted and self.price_cache is not None:
            self.price_cache.set(self.asset_id, price)
        return accepted

    def start(self) -> None:
        """Start polling on the running event loop; first tick fires immediately."""
        if self._running:
            return
        self._running = True
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation))
        logger.debug(
            f"Poller started for {self.asset_id} every {self.interval_seconds}s"
        )

    async def _run(self, generation: int) -> None:
        while self._running and generation == self._generation:
            task = asyncio.create_task(self.tick())
            self._inflight.add(task)
            task.add_done_callback(self._tick_done)
            await asyncio.sleep(self.interval_seconds)

    def _tick_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Price tick for {self.asset_id} failed: {error!r}")

    async def stop(self) -> None:
        """Cancel the schedule and any in-flight fetches."""
        if not self._running and self._task is None:
            return
        self._running = False
        self._generation += 1

        tasks = list(self._inflight)
        if self._task is not None:
            tasks.append(self._task)
            self._task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        logger.debug(f"Poller stopped for {self.asset_id}")
