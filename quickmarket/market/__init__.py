from quickmarket.market.models import (
    Asset,
    QuickMarket,
    PriceSample,
    SampleKind,
    MarketState,
    OddsView,
    DEFAULT_ODDS,
)
from quickmarket.market.series import SeriesBuffer
from quickmarket.market.odds import OddsCalculator
from quickmarket.market.countdown import Countdown
from quickmarket.market.price_cache import PriceCache
from quickmarket.market.poller import PricePoller
from quickmarket.market.session import QuickMarketSession, SessionSnapshot

__all__ = [
    "Asset",
    "QuickMarket",
    "PriceSample",
    "SampleKind",
    "MarketState",
    "OddsView",
    "DEFAULT_ODDS",
    "SeriesBuffer",
    "OddsCalculator",
    "Countdown",
    "PriceCache",
    "PricePoller",
    "QuickMarketSession",
    "SessionSnapshot",
]
