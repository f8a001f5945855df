"""
Countdown to a fixed market close.
"""
import math
from datetime import datetime


class Countdown:
    """Whole seconds remaining until `closes_at`, floored at zero."""

    def __init__(self, closes_at: datetime):
        self.closes_at = closes_at
        self._closes_at_ts = closes_at.timestamp()

    def seconds_left(self, now: float) -> int:
        """max(0, floor(closes_at - now)) with `now` in epoch seconds."""
        return max(0, math.floor(self._closes_at_ts - now))

    def is_expired(self, now: float) -> bool:
        return self.seconds_left(now) == 0
