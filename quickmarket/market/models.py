"""
Shared data models for quick markets.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from quickmarket.errors import InvalidSample


class SampleKind(Enum):
    """Chart seed placeholders vs observed prices."""
    PLACEHOLDER = "placeholder"
    REAL = "real"


@dataclass(frozen=True)
class Asset:
    """Crypto asset a quick market tracks."""
    asset_id: str  # CoinGecko id, e.g. "bitcoin"
    name: str
    symbol: str
    image: str = ""


@dataclass(frozen=True)
class QuickMarket:
    """A 15-minute UP/DOWN market on an asset's spot price."""
    market_id: str
    title: str
    asset_id: Optional[str]
    opened_at: datetime
    closes_at: datetime
    description: str = ""
    image: str = ""

    @property
    def is_quick(self) -> bool:
        return self.asset_id is not None

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "title": self.title,
            "asset_id": self.asset_id,
            "opened_at": self.opened_at.isoformat(),
            "closes_at": self.closes_at.isoformat(),
            "description": self.description,
            "image": self.image,
        }


@dataclass(frozen=True)
class PriceSample:
    """Single price observation."""
    timestamp: float
    price: float
    kind: SampleKind = SampleKind.REAL

    @classmethod
    def placeholder(cls, timestamp: float) -> "PriceSample":
        return cls(timestamp=timestamp, price=0.0, kind=SampleKind.PLACEHOLDER)

    @property
    def is_placeholder(self) -> bool:
        return self.kind is SampleKind.PLACEHOLDER


def validate_price(value) -> float:
    """
    Coerce a raw price to float.

    Raises:
        InvalidSample: value is not a finite number greater than zero
    """
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise InvalidSample(f"Price is not numeric: {value!r}")
    if not math.isfinite(price) or price <= 0:
        raise InvalidSample(f"Price must be finite and positive: {value!r}")
    return price


@dataclass(frozen=True)
class MarketState:
    """Price drift since the first observed sample."""
    start_price: Optional[float] = None
    current_price: Optional[float] = None

    @property
    def ready(self) -> bool:
        return (
            self.start_price is not None
            and self.current_price is not None
            and self.start_price > 0
            and self.current_price > 0
        )

    @property
    def delta(self) -> float:
        """Fractional change (current - start) / start, 0 when undefined."""
        if self.start_price is None or self.start_price <= 0 or self.current_price is None:
            return 0.0
        return (self.current_price - self.start_price) / self.start_price


@dataclass(frozen=True)
class OddsView:
    """Implied probabilities and payout multipliers for both sides."""
    p_up: float = 0.5
    p_down: float = 0.5
    odd_up: float = 2.0
    odd_down: float = 2.0

    def to_dict(self) -> dict:
        return {
            "p_up": self.p_up,
            "p_down": self.p_down,
            "odd_up": self.odd_up,
            "odd_down": self.odd_down,
        }


DEFAULT_ODDS = OddsView()
