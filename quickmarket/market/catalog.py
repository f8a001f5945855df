"""
Built-in quick markets and asset lookup.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from quickmarket.market.models import Asset, QuickMarket

QUICK_PREFIX = "q15_"

ASSETS = {
    "bitcoin": Asset(
        asset_id="bitcoin",
        name="Bitcoin",
        symbol="BTC",
        image="https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
    ),
    "ethereum": Asset(
        asset_id="ethereum",
        name="Ethereum",
        symbol="ETH",
        image="https://assets.coingecko.com/coins/images/279/large/ethereum.png",
    ),
    "solana": Asset(
        asset_id="solana",
        name="Solana",
        symbol="SOL",
        image="https://assets.coingecko.com/coins/images/4128/large/solana.png",
    ),
    "binancecoin": Asset(
        asset_id="binancecoin",
        name="BNB",
        symbol="BNB",
        image="https://assets.coingecko.com/coins/images/825/large/binance-coin-logo.png",
    ),
    "the-open-network": Asset(
        asset_id="the-open-network",
        name="TON",
        symbol="TON",
        image="https://assets.coingecko.com/coins/images/17980/large/ton_symbol.png",
    ),
}

# Market id suffixes that differ from the CoinGecko id
MARKET_KEY_ALIASES = {
    "ton": "the-open-network",
}


def market_key(asset_id: str) -> str:
    for key, aliased in MARKET_KEY_ALIASES.items():
        if aliased == asset_id:
            return key
    return asset_id


def resolve_asset_id(market_id: str) -> Optional[str]:
    """Map a quick-market id (q15_<key>) to its asset id; None for other markets."""
    if not market_id.startswith(QUICK_PREFIX):
        return None
    key = market_id[len(QUICK_PREFIX):]
    if not key:
        return None
    return MARKET_KEY_ALIASES.get(key, key)


def get_asset(asset_id: Optional[str]) -> Optional[Asset]:
    if asset_id is None:
        return None
    return ASSETS.get(asset_id)


def build_quick_market(
    asset: Asset,
    now: datetime,
    duration_minutes: int = 15,
) -> QuickMarket:
    return QuickMarket(
        market_id=f"{QUICK_PREFIX}{market_key(asset.asset_id)}",
        title=f"{asset.symbol} up in the next {duration_minutes} minutes?",
        asset_id=asset.asset_id,
        opened_at=now,
        closes_at=now + timedelta(minutes=duration_minutes),
        description=(
            f"Quick {duration_minutes}m market. Predict whether {asset.symbol} "
            f"will be higher than the start price when the timer ends."
        ),
        image=asset.image,
    )


def create_quick_markets(
    now: Optional[datetime] = None,
    duration_minutes: int = 15,
) -> list[QuickMarket]:
    """One market per built-in asset, all opening at `now`."""
    now = now or datetime.now(timezone.utc)
    return [
        build_quick_market(asset, now, duration_minutes)
        for asset in ASSETS.values()
    ]


def get_market(
    market_id: str,
    now: Optional[datetime] = None,
    duration_minutes: int = 15,
) -> Optional[QuickMarket]:
    """Build a fresh catalog market by id, or None if it is not in the catalog."""
    asset = get_asset(resolve_asset_id(market_id))
    if asset is None:
        return None
    return build_quick_market(
        asset, now or datetime.now(timezone.utc), duration_minutes
    )
