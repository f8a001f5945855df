"""
Tests for the CoinGecko spot price client.
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from quickmarket.clients.coingecko_client import CoinGeckoClient
from quickmarket.errors import FeedUnavailable, InvalidSample


def mock_session(payload=None, json_error=None, status_error=None, get_error=None):
    """Create a mock aiohttp session whose GET yields one response."""
    response = MagicMock()
    response.raise_for_status = MagicMock(side_effect=status_error)
    response.json = AsyncMock(return_value=payload, side_effect=json_error)

    session = MagicMock()
    session.close = AsyncMock()
    if get_error is not None:
        session.get.side_effect = get_error
    else:
        session.get.return_value.__aenter__.return_value = response
    return session


class TestFetchSpotPrice:
    """Tests for price parsing and failure mapping."""

    @pytest.mark.asyncio
    async def test_parses_price(self):
        """Should return the USD price for the asset."""
        session = mock_session({"bitcoin": {"usd": 50123.5}})
        client = CoinGeckoClient(session=session)

        price = await client.fetch_spot_price("bitcoin")

        assert price == 50123.5
        session.get.assert_called_once_with(
            "https://api.coingecko.com/api/v3/simple/price",
            params={"ids": "bitcoin", "vs_currencies": "usd"},
        )

    @pytest.mark.asyncio
    async def test_custom_base_url(self):
        session = mock_session({"solana": {"usd": 140}})
        client = CoinGeckoClient(base_url="http://localhost:9000/api/", session=session)

        assert await client.fetch_spot_price("solana") == 140.0
        assert session.get.call_args.args[0] == "http://localhost:9000/api/simple/price"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Should map transport errors to FeedUnavailable."""
        session = mock_session(get_error=aiohttp.ClientConnectionError("refused"))
        client = CoinGeckoClient(session=session)

        with pytest.raises(FeedUnavailable):
            await client.fetch_spot_price("bitcoin")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        """Should map HTTP error status to FeedUnavailable."""
        error = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=429, message="Too Many Requests"
        )
        client = CoinGeckoClient(session=mock_session(status_error=error))

        with pytest.raises(FeedUnavailable):
            await client.fetch_spot_price("bitcoin")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = CoinGeckoClient(
            session=mock_session(json_error=ValueError("Expecting value"))
        )

        with pytest.raises(FeedUnavailable):
            await client.fetch_spot_price("bitcoin")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"bitcoin": {}}, {"bitcoin": None}, []])
    async def test_missing_price(self, payload):
        client = CoinGeckoClient(session=mock_session(payload))

        with pytest.raises(FeedUnavailable):
            await client.fetch_spot_price("bitcoin")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -5, "NaN", "Infinity", "n/a"])
    async def test_invalid_price(self, value):
        """Should reject non-finite or non-positive prices."""
        client = CoinGeckoClient(session=mock_session({"bitcoin": {"usd": value}}))

        with pytest.raises(InvalidSample):
            await client.fetch_spot_price("bitcoin")


class TestSessionLifecycle:
    """Tests for HTTP session ownership."""

    @pytest.mark.asyncio
    async def test_shared_session_not_closed(self):
        session = mock_session({})
        client = CoinGeckoClient(session=session)

        await client.close()

        session.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_owned_session_closed(self):
        client = CoinGeckoClient(timeout_seconds=3)
        await client.initialize()
        owned = client._session

        await client.close()

        assert owned.closed
        assert client._session is None
