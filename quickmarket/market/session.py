"""
Quick-Market Session - Live Pricing for One Open Market

Composes the per-market pieces the UI binds to:
- SeriesBuffer seeded from the price cache (or placeholders)
- PricePoller on the slow cadence (10s)
- Countdown on the fast cadence (1s), independent of polling
- OddsCalculator recomputed on every accepted sample

Derived state is cached and pushed to subscribers after each committed
change. Expiry hooks are the attachment point for settlement; nothing
is settled here.
"""
import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from quickmarket.config import EngineConfig
from quickmarket.market.countdown import Countdown
from quickmarket.market.models import DEFAULT_ODDS, MarketState, OddsView, PriceSample, QuickMarket
from quickmarket.market.odds import OddsCalculator
from quickmarket.market.poller import PricePoller
from quickmarket.market.price_cache import PriceCache
from quickmarket.market.series import SeriesBuffer
from quickmarket.utils.logger import MarketEventLogger

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Everything a view renders for one market."""
    market_id: str
    asset_id: Optional[str]
    current_price: Optional[float]
    start_price: Optional[float]
    delta: float
    ready: bool
    seconds_left: int
    odds: OddsView
    series: list[dict] = field(default_factory=list)
    expired: bool = False
    active: bool = True

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "asset_id": self.asset_id,
            "current_price": self.current_price,
            "start_price": self.start_price,
            "delta": self.delta,
            "ready": self.ready,
            "seconds_left": self.seconds_left,
            "odds": self.odds.to_dict(),
            "series": self.series,
            "expired": self.expired,
            "active": self.active,
        }


Listener = Callable[[SessionSnapshot], None]
ExpiryHook = Callable[[SessionSnapshot], object]


class QuickMarketSession:
    """
    Live pricing state for one quick market while its view is open.

    Call `activate()` when the view opens and `deactivate()` when it
    closes; both must run on the event loop. All per-session state is
    dropped on deactivation, only the price cache outlives it.
    """

    def __init__(
        self,
        market: QuickMarket,
        price_source,
        price_cache: Optional[PriceCache] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], float] = time.time,
        odds_calculator: Optional[OddsCalculator] = None,
    ):
        self.market = market
        self.asset_id = market.asset_id
        self.config = config or EngineConfig()
        self.price_cache = price_cache
        self.odds_calculator = odds_calculator or OddsCalculator.from_config(self.config)
        self.countdown = Countdown(market.closes_at)
        self.buffer = SeriesBuffer(self.config.series_cap)
        self.events = MarketEventLogger()
        self._clock = clock

        self.poller: Optional[PricePoller] = None
        if self.asset_id is not None:
            self.poller = PricePoller(
                asset_id=self.asset_id,
                source=price_source,
                on_sample=self._accept_sample,
                price_cache=price_cache,
                interval_seconds=self.config.poll_interval_seconds,
                clock=clock,
                events=self.events,
            )

        self._listeners: list[Listener] = []
        self._expiry_hooks: list[ExpiryHook] = []
        self._hook_tasks: set[asyncio.Task] = set()

        self._active = False
        self._generation = 0
        self._countdown_task: Optional[asyncio.Task] = None
        self._reset_state()

    def _reset_state(self) -> None:
        self.buffer.clear()
        self._state = MarketState()
        self._odds: OddsView = DEFAULT_ODDS
        self._seconds_left: Optional[int] = None
        self._expired = False
        self._samples_seen = 0
        self._snapshot: Optional[SessionSnapshot] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> MarketState:
        return self._state

    @property
    def odds(self) -> OddsView:
        return self._odds

    @property
    def current_price(self) -> Optional[float]:
        return self._state.current_price

    @property
    def start_price(self) -> Optional[float]:
        return self._state.start_price

    @property
    def seconds_left(self) -> int:
        if self._seconds_left is None:
            return self.countdown.seconds_left(self._clock())
        return self._seconds_left

    @property
    def expired(self) -> bool:
        return self._expired

    def snapshot(self) -> SessionSnapshot:
        """Cached view, rebuilt only after a committed change."""
        if self._snapshot is None:
            self._snapshot = SessionSnapshot(
                market_id=self.market.market_id,
                asset_id=self.asset_id,
                current_price=self._state.current_price,
                start_price=self._state.start_price,
                delta=self._state.delta,
                ready=self._state.ready,
                seconds_left=self.seconds_left,
                odds=self._odds,
                series=self.buffer.to_points(),
                expired=self._expired,
                active=self._active,
            )
        return self._snapshot

    # ------------------------------------------------------------------
    # Subscriptions and hooks
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_expiry_hook(self, hook: ExpiryHook) -> None:
        """
        Attach a settlement collaborator.

        Fires once per activation, when the countdown first reaches zero.
        Coroutine functions are scheduled on the loop.
        """
        self._expiry_hooks.append(hook)

    def _notify(self) -> None:
        self._snapshot = None
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Listener failed for {self.market.market_id}")

    def _fire_expiry_hooks(self) -> None:
        snapshot = self.snapshot()
        for hook in list(self._expiry_hooks):
            try:
                result = hook(snapshot)
            except Exception:
                logger.exception(f"Expiry hook failed for {self.market.market_id}")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._hook_tasks.add(task)
                task.add_done_callback(self._hook_done)

    def _hook_done(self, task: asyncio.Task) -> None:
        self._hook_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Expiry hook failed for {self.market.market_id}: {task.exception()!r}"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def activate(self) -> None:
        """Seed the series, then start polling and the countdown."""
        if self._active:
            return

        self._reset_state()
        self._active = True
        self._generation += 1
        now = self._clock()

        cached = None
        if self.price_cache is not None and self.asset_id is not None:
            cached = self.price_cache.get(self.asset_id)

        if cached is not None and cached > 0:
            # Display only: start_price waits for a fetched sample
            self.buffer.seed(
                cached,
                self.config.placeholder_count,
                self.config.placeholder_spacing_seconds,
                now,
            )
            self._state = MarketState(current_price=cached)
        else:
            self.buffer.seed_placeholder(
                self.config.placeholder_count,
                self.config.placeholder_spacing_seconds,
                now,
            )

        self._seconds_left = self.countdown.seconds_left(now)

        self.events.session_activated(
            self.market.market_id,
            self.asset_id,
            seeded_from_cache=cached is not None and cached > 0,
            generation=self._generation,
        )

        if self.poller is not None:
            self.poller.start()
        self._countdown_task = asyncio.create_task(
            self._run_countdown(self._generation)
        )
        self._notify()

    async def deactivate(self) -> None:
        """Cancel both timers and discard per-session state."""
        if not self._active:
            return
        self._active = False
        self._generation += 1

        if self.poller is not None:
            await self.poller.stop()

        if self._countdown_task is not None:
            self._countdown_task.cancel()
            await asyncio.gather(self._countdown_task, return_exceptions=True)
            self._countdown_task = None

        self.events.session_deactivated(self.market.market_id, self._samples_seen)
        self._reset_state()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _accept_sample(self, sample: PriceSample) -> bool:
        """Commit a fetched sample; False if inactive or out of order."""
        market_id = self.market.market_id
        if not self._active:
            self.events.sample_rejected(market_id, "inactive", sample.timestamp)
            return False

        if not self.buffer.append(sample):
            self.events.sample_rejected(market_id, "out_of_order", sample.timestamp)
            return False

        start_price = self._state.start_price
        if start_price is None:
            start_price = sample.price
        self._state = MarketState(start_price=start_price, current_price=sample.price)
        self._odds = self.odds_calculator.calculate(self.asset_id, self._state)
        self._samples_seen += 1

        self.events.price_accepted(market_id, sample.price, self._state.delta, self._odds.p_up)
        self._notify()
        return True

    def _update_countdown(self) -> None:
        seconds_left = self.countdown.seconds_left(self._clock())
        if self._seconds_left is not None:
            # Never count back up if the wall clock steps backwards
            seconds_left = min(seconds_left, self._seconds_left)

        changed = seconds_left != self._seconds_left
        self._seconds_left = seconds_left

        newly_expired = seconds_left == 0 and not self._expired
        if newly_expired:
            self._expired = True
            self.events.market_expired(
                self.market.market_id,
                self._state.current_price,
                self._state.start_price,
            )

        if changed or newly_expired:
            self._notify()
        if newly_expired:
            self._fire_expiry_hooks()

    async def _run_countdown(self, generation: int) -> None:
        while self._active and generation == self._generation:
            self._update_countdown()
            if self._expired:
                break
            await asyncio.sleep(self.config.countdown_interval_seconds)
