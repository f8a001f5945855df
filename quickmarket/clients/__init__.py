# Price source clients
from .coingecko_client import CoinGeckoClient, FeedUnavailable

__all__ = ["CoinGeckoClient", "FeedUnavailable"]
