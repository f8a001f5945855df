"""
Odds Calculator - Drift-Based Implied Probability

Maps price drift since market open to an implied UP probability and
payout multipliers for both sides:

    p_up   = clamp(0.5 + delta * K, floor, ceiling)
    p_down = 1 - p_up
    odd    = 1 / p

This is a heuristic stand-in for an order book or AMM curve, not a
fair-odds model. K and the clamp bounds are product defaults with no
calibration against realised volatility. K is larger for more volatile
assets so the same percentage move swings the odds further; the clamp
keeps both sides quotable (no 0x or infinite payouts).
"""
import logging
from typing import Optional

from quickmarket.config import EngineConfig
from quickmarket.market.models import DEFAULT_ODDS, MarketState, OddsView

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class OddsCalculator:
    """Pure function of (asset id, MarketState) to OddsView."""

    def __init__(
        self,
        sensitivity: Optional[dict[str, float]] = None,
        default_sensitivity: float = 10.0,
        prob_floor: float = 0.05,
        prob_ceiling: float = 0.95,
    ):
        self.sensitivity = dict(sensitivity or {})
        self.default_sensitivity = default_sensitivity
        self.prob_floor = prob_floor
        self.prob_ceiling = prob_ceiling

    @classmethod
    def from_config(cls, config: EngineConfig) -> "OddsCalculator":
        return cls(
            sensitivity=config.sensitivity,
            default_sensitivity=config.default_sensitivity,
            prob_floor=config.prob_floor,
            prob_ceiling=config.prob_ceiling,
        )

    def sensitivity_for(self, asset_id: str) -> float:
        """K for an asset; unknown assets fall back to the default."""
        return self.sensitivity.get(asset_id, self.default_sensitivity)

    def calculate(self, asset_id: Optional[str], state: MarketState) -> OddsView:
        """
        Derive odds for the current state.

        Returns DEFAULT_ODDS (0.5/0.5, 2.0x/2.0x) when the market has no
        asset or the state is not ready.
        """
        if asset_id is None or not state.ready:
            return DEFAULT_ODDS

        k = self.sensitivity_for(asset_id)
        p_up = clamp(0.5 + state.delta * k, self.prob_floor, self.prob_ceiling)
        p_down = 1 - p_up

        logger.debug(
            f"ODDS: asset={asset_id} K={k} delta={state.delta:+.4%} "
            f"p_up={p_up:.1%} p_down={p_down:.1%}"
        )

        return OddsView(
            p_up=p_up,
            p_down=p_down,
            odd_up=1 / p_up,
            odd_down=1 / p_down,
        )
