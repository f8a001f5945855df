"""
Display helpers for prices, countdowns and odds.
"""
import math
from typing import Optional

MISSING = "—"


def format_price(price: Optional[float]) -> str:
    """Whole dollars above 1000, up to 4 decimals below."""
    if price is None or not math.isfinite(price):
        return MISSING
    if price >= 1000:
        return f"${price:,.0f}"
    text = f"{price:,.4f}".rstrip("0").rstrip(".")
    return f"${text}"


def format_countdown(seconds_left: int) -> str:
    """m:ss"""
    seconds_left = max(0, int(seconds_left))
    return f"{seconds_left // 60}:{seconds_left % 60:02d}"


def format_delta(delta: float, ready: bool) -> str:
    if not ready:
        return MISSING
    return f"{delta * 100:+.2f}%"


def format_implied(probability: float, ready: bool) -> str:
    if not ready:
        return MISSING
    return f"{round(probability * 100)}%"


def format_multiplier(odd: float) -> str:
    return f"{odd:.2f}x"
