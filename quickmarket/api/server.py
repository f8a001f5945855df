"""
FastAPI server the UI layer binds to.
Holds at most one active quick-market session (the open market view).
"""
import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from quickmarket.clients.coingecko_client import CoinGeckoClient
from quickmarket.config import Config, load_config
from quickmarket.market.catalog import create_quick_markets, get_market
from quickmarket.market.price_cache import PriceCache
from quickmarket.market.session import QuickMarketSession, SessionSnapshot
from quickmarket.utils.formatting import (
    format_countdown,
    format_delta,
    format_implied,
    format_multiplier,
    format_price,
)
from quickmarket.utils.logger import get_logger

logger = get_logger("api")


class MarketViewController:
    """Owns the single active session and swaps it on activate/deactivate."""

    def __init__(
        self,
        config: Config,
        price_source,
        price_cache: Optional[PriceCache],
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.price_source = price_source
        self.price_cache = price_cache
        self.clock = clock
        self.session: Optional[QuickMarketSession] = None
        self._lock = asyncio.Lock()

    async def activate(self, market_id: str) -> Optional[QuickMarketSession]:
        """Open a market view; None if the market is not in the catalog."""
        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        market = get_market(
            market_id, now, self.config.engine.market_duration_minutes
        )
        if market is None:
            return None

        async with self._lock:
            if self.session is not None:
                await self.session.deactivate()
            session = QuickMarketSession(
                market,
                price_source=self.price_source,
                price_cache=self.price_cache,
                config=self.config.engine,
                clock=self.clock,
            )
            session.add_expiry_hook(self._on_expiry)
            await session.activate()
            self.session = session
        return session

    async def deactivate(self) -> bool:
        async with self._lock:
            if self.session is None:
                return False
            await self.session.deactivate()
            self.session = None
        return True

    def _on_expiry(self, snapshot: SessionSnapshot) -> None:
        # Settlement attaches here
        logger.info(
            f"Market {snapshot.market_id} closed at "
            f"{format_price(snapshot.current_price)} "
            f"(start {format_price(snapshot.start_price)})"
        )


def snapshot_payload(snapshot: SessionSnapshot) -> dict:
    """Snapshot plus pre-formatted display strings."""
    payload = snapshot.to_dict()
    payload["display"] = {
        "price": format_price(snapshot.current_price),
        "delta": format_delta(snapshot.delta, snapshot.ready),
        "countdown": format_countdown(snapshot.seconds_left),
        "odd_up": format_multiplier(snapshot.odds.odd_up),
        "odd_down": format_multiplier(snapshot.odds.odd_down),
        "implied_up": format_implied(snapshot.odds.p_up, snapshot.ready),
        "implied_down": format_implied(snapshot.odds.p_down, snapshot.ready),
    }
    return payload


def create_app(
    config: Optional[Config] = None,
    price_source=None,
    price_cache: Optional[PriceCache] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Build the app; collaborators default to CoinGecko and the SQLite cache."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or load_config()
        source = price_source
        client = None
        if source is None:
            client = CoinGeckoClient(
                base_url=cfg.feed.coingecko_url,
                vs_currency=cfg.feed.vs_currency,
                timeout_seconds=cfg.feed.request_timeout_seconds,
            )
            await client.initialize()
            source = client
        cache = price_cache or PriceCache(cfg.cache.db_path)

        app.state.config = cfg
        app.state.price_cache = cache
        app.state.controller = MarketViewController(cfg, source, cache, clock)
        try:
            yield
        finally:
            await app.state.controller.deactivate()
            if client is not None:
                await client.close()

    app = FastAPI(title="Quick Market API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Health check."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/markets")
    async def api_markets():
        """List the quick markets a view can open."""
        now = datetime.fromtimestamp(clock(), tz=timezone.utc)
        duration = app.state.config.engine.market_duration_minutes
        markets = [m.to_dict() for m in create_quick_markets(now, duration)]
        return JSONResponse(content={"markets": markets, "count": len(markets)})

    @app.post("/api/markets/{market_id}/activate")
    async def api_activate(market_id: str):
        """Open a market view, replacing any active one."""
        session = await app.state.controller.activate(market_id)
        if session is None:
            return JSONResponse(
                status_code=404,
                content={"error": f"Unknown market {market_id}"},
            )
        return JSONResponse(content=snapshot_payload(session.snapshot()))

    @app.get("/api/session")
    async def api_session():
        """Current state of the open market view."""
        session = app.state.controller.session
        if session is None:
            return JSONResponse(status_code=404, content={"error": "No active market"})
        return JSONResponse(content=snapshot_payload(session.snapshot()))

    @app.post("/api/session/deactivate")
    async def api_deactivate():
        """Close the market view."""
        closed = await app.state.controller.deactivate()
        return JSONResponse(content={"status": "deactivated" if closed else "idle"})

    @app.get("/api/prices/{asset_id}/cached")
    async def api_cached_price(asset_id: str):
        """Last price written to the cache for an asset."""
        price = app.state.price_cache.get(asset_id)
        return JSONResponse(content={"asset_id": asset_id, "price": price})

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the API server."""
    config = load_config()
    uvicorn.run(
        create_app(config=config),
        host=host or config.api.host,
        port=port or config.api.port,
    )


if __name__ == "__main__":
    run_server()
