"""
Console runner for a single quick market.

Usage: python -m quickmarket.main [market_id]
Logs every snapshot until the market closes or the process is signalled.
"""

import asyncio
import signal
import sys
from typing import Optional

from .clients.coingecko_client import CoinGeckoClient
from .config import load_config, Config
from .market.catalog import get_market
from .market.price_cache import PriceCache
from .market.session import QuickMarketSession, SessionSnapshot
from .utils.formatting import format_countdown, format_delta, format_multiplier, format_price
from .utils.logger import setup_logging, get_logger

logger = get_logger("main")

DEFAULT_MARKET_ID = "q15_bitcoin"


class QuickMarketRunner:
    """
    Runs one session against the live price source.

    Coordinates:
    - CoinGecko client lifecycle
    - Session activation and teardown
    - Shutdown on expiry or signal
    """

    def __init__(self, config: Config, market_id: str):
        self.config = config
        self.market_id = market_id
        self._shutdown_event = asyncio.Event()

        self.client = CoinGeckoClient(
            base_url=config.feed.coingecko_url,
            vs_currency=config.feed.vs_currency,
            timeout_seconds=config.feed.request_timeout_seconds,
        )
        self.price_cache = PriceCache(config.cache.db_path)
        self.session: Optional[QuickMarketSession] = None

    async def initialize(self) -> None:
        market = get_market(
            self.market_id,
            duration_minutes=self.config.engine.market_duration_minutes,
        )
        if market is None:
            raise ValueError(f"Unknown market: {self.market_id}")

        await self.client.initialize()

        self.session = QuickMarketSession(
            market,
            price_source=self.client,
            price_cache=self.price_cache,
            config=self.config.engine,
        )
        self.session.subscribe(self._log_snapshot)
        self.session.add_expiry_hook(self._on_expiry)
        logger.info(f"Opening {market.title} (closes {market.closes_at.isoformat()})")

    async def run(self) -> None:
        await self.session.activate()
        await self._shutdown_event.wait()

    async def shutdown(self) -> None:
        logger.info("Shutting down")
        if self.session:
            await self.session.deactivate()
        await self.client.close()
        logger.info("Shutdown complete")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()

    def _log_snapshot(self, snapshot: SessionSnapshot) -> None:
        logger.info(
            f"{snapshot.market_id} {format_price(snapshot.current_price)} "
            f"{format_delta(snapshot.delta, snapshot.ready)} | "
            f"UP {format_multiplier(snapshot.odds.odd_up)} "
            f"DOWN {format_multiplier(snapshot.odds.odd_down)} | "
            f"{format_countdown(snapshot.seconds_left)} left"
        )

    def _on_expiry(self, snapshot: SessionSnapshot) -> None:
        # No settlement yet; just stop once the timer ends
        logger.info(f"{snapshot.market_id} expired")
        self.request_shutdown()


def setup_signal_handlers(runner: QuickMarketRunner) -> None:
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        runner.request_shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    market_id = argv[0] if argv else DEFAULT_MARKET_ID

    try:
        config = load_config()
        setup_logging(
            level=config.logging.log_level,
            json_format=config.logging.json_logging
        )
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    runner = QuickMarketRunner(config, market_id)
    setup_signal_handlers(runner)

    try:
        await runner.initialize()
        await runner.run()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise
    finally:
        await runner.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
