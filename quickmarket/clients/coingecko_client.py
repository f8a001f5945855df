"""
CoinGecko client for spot prices.
No authentication; treated as unreliable (errors, rate limits).
"""

import asyncio
from typing import Optional

import aiohttp

from ..errors import FeedUnavailable
from ..market.models import validate_price
from ..utils.logger import get_logger

logger = get_logger("coingecko")


class CoinGeckoClient:
    """
    Client for the CoinGecko simple price endpoint.

    Any object with an async `fetch_spot_price(asset_id) -> float` can
    stand in for this client as a session's price source.
    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        base_url: Optional[str] = None,
        vs_currency: str = "usd",
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize CoinGecko client.

        Args:
            base_url: API root, defaults to the public endpoint
            vs_currency: Quote currency for prices
            timeout_seconds: Total request timeout; None keeps aiohttp's default
            session: Optional shared HTTP session (not closed by this client)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.vs_currency = vs_currency
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        """Initialize HTTP session."""
        if not self._session:
            if self.timeout_seconds is not None:
                timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
                self._session = aiohttp.ClientSession(timeout=timeout)
            else:
                self._session = aiohttp.ClientSession()
            self._owns_session = True
        logger.info("CoinGecko client initialized")

    async def close(self) -> None:
        """Close HTTP session if this client opened it."""
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def _request(self, endpoint: str, params: Optional[dict] = None):
        """GET a JSON document, raising FeedUnavailable on any failure."""
        if not self._session:
            await self.initialize()

        url = f"{self.base_url}{endpoint}"

        try:
            async with self._session.get(url, params=params) as response:
                response.raise_for_status()
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FeedUnavailable(f"GET {endpoint} failed: {e}") from e

    async def fetch_spot_price(self, asset_id: str) -> float:
        """
        Fetch the current spot price for one asset.

        Raises:
            FeedUnavailable: transport error, bad status, non-JSON or missing field
            InvalidSample: price is not a finite positive number
        """
        data = await self._request(
            "/simple/price",
            params={"ids": asset_id, "vs_currencies": self.vs_currency},
        )

        try:
            raw = data[asset_id][self.vs_currency]
        except (KeyError, TypeError) as e:
            raise FeedUnavailable(f"No {self.vs_currency} price for {asset_id}") from e

        return validate_price(raw)
