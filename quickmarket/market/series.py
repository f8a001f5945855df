"""
Bounded rolling price series for one quick market.
"""
from collections import deque
from typing import Iterator, Optional

from quickmarket.market.models import PriceSample


class SeriesBuffer:
    """
    FIFO series of PriceSample capped at `cap` entries.

    Invariants after every operation:
    - timestamps are non-decreasing
    - len(buffer) <= cap
    - samples are all placeholders or all real, never mixed
    """

    def __init__(self, cap: int = 90):
        if cap < 1:
            raise ValueError(f"cap must be >= 1, got {cap}")
        self.cap = cap
        self._samples: deque[PriceSample] = deque(maxlen=cap)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[PriceSample]:
        return iter(self._samples)

    @property
    def samples(self) -> list[PriceSample]:
        return list(self._samples)

    @property
    def tail(self) -> Optional[PriceSample]:
        return self._samples[-1] if self._samples else None

    @property
    def is_placeholder(self) -> bool:
        """True when non-empty and holding only seed placeholders."""
        return bool(self._samples) and all(s.is_placeholder for s in self._samples)

    def seed(self, price: float, count: int, spacing_seconds: float, now: float) -> bool:
        """
        Fill an empty buffer with `count` evenly spaced samples ending at `now`.

        A price of 0 seeds placeholders. No-op (returns False) when the
        buffer already holds samples.
        """
        if self._samples or count <= 0:
            return False

        count = min(count, self.cap)
        for i in range(count - 1, -1, -1):
            ts = now - i * spacing_seconds
            if price > 0:
                self._samples.append(PriceSample(timestamp=ts, price=price))
            else:
                self._samples.append(PriceSample.placeholder(ts))
        return True

    def seed_placeholder(self, count: int, spacing_seconds: float, now: float) -> bool:
        return self.seed(0.0, count, spacing_seconds, now)

    def append(self, sample: PriceSample) -> bool:
        """
        Add a real sample at the tail.

        Replaces an all-placeholder buffer outright. Returns False (buffer
        untouched) for placeholders or a sample older than the current tail.
        """
        if sample.is_placeholder:
            return False

        if self.is_placeholder:
            self._samples.clear()
            self._samples.append(sample)
            return True

        tail = self.tail
        if tail is not None and sample.timestamp < tail.timestamp:
            return False

        # deque(maxlen=cap) evicts from the head
        self._samples.append(sample)
        return True

    def clear(self) -> None:
        self._samples.clear()

    def to_points(self) -> list[dict]:
        """Plain numeric series for consumers; placeholders report price 0."""
        return [{"t": s.timestamp, "p": s.price} for s in self._samples]
