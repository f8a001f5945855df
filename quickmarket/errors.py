"""
Recoverable failures in the pricing engine.

Neither error reaches callers of a session: the poller logs and drops
the tick, and the next scheduled tick retries.
"""


class FeedUnavailable(Exception):
    """Price request failed or returned an unusable body."""


class InvalidSample(ValueError):
    """Price is non-finite or non-positive."""
