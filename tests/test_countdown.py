"""
Tests for the market countdown.
"""

from datetime import datetime, timedelta, timezone

from quickmarket.market.countdown import Countdown

OPENED = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_countdown(minutes: int = 15) -> Countdown:
    return Countdown(OPENED + timedelta(minutes=minutes))


class TestCountdown:
    """Tests for seconds-left arithmetic."""

    def test_full_duration_at_open(self):
        countdown = make_countdown()
        assert countdown.seconds_left(OPENED.timestamp()) == 900

    def test_floors_partial_seconds(self):
        """Should round down fractional seconds."""
        countdown = make_countdown()
        assert countdown.seconds_left(OPENED.timestamp() + 0.5) == 899

    def test_floors_at_zero(self):
        """Should never go negative after close."""
        countdown = make_countdown()
        closes = countdown.closes_at.timestamp()

        assert countdown.seconds_left(closes) == 0
        assert countdown.seconds_left(closes + 3600) == 0
        assert countdown.is_expired(closes + 1)

    def test_non_increasing(self):
        """Should not increase as time advances."""
        countdown = make_countdown(minutes=1)
        start = OPENED.timestamp()

        values = [countdown.seconds_left(start + i * 0.37) for i in range(400)]

        assert all(b <= a for a, b in zip(values, values[1:]))
        assert values[-1] == 0
        assert min(values) >= 0
