"""
Structured logging for the quick-market engine.

Everything logs under the "quickmarket" namespace; `setup_logging`
attaches a single stdout handler there, emitting JSON lines by default.
"""

import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

ROOT_LOGGER = "quickmarket"

JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"
PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds level, logger and timestamp keys to every record."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["timestamp"] = self.formatTime(record, self.datefmt)


def setup_logging(level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """
    Route the package's logs to stdout.

    Calling it again replaces the previous handler, so the level and
    format can be changed at runtime.

    Raises:
        ValueError: unknown level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        CustomJsonFormatter(JSON_FORMAT) if json_format
        else logging.Formatter(PLAIN_FORMAT)
    )

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers = [handler]
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class MarketEventLogger:
    """Specialized logger for quick-market session events."""

    def __init__(self):
        self.logger = get_logger("events")

    def session_activated(
        self,
        market_id: str,
        asset_id: Optional[str],
        seeded_from_cache: bool,
        generation: int
    ):
        """Log when a session starts polling a market."""
        self.logger.info(
            "Session activated",
            extra={
                "event": "session_activated",
                "market_id": market_id,
                "asset_id": asset_id,
                "seeded_from_cache": seeded_from_cache,
                "generation": generation
            }
        )

    def price_accepted(
        self,
        market_id: str,
        price: float,
        delta: float,
        p_up: float
    ):
        """Log when a fetched price is committed to the series."""
        self.logger.debug(
            "Price accepted",
            extra={
                "event": "price_accepted",
                "market_id": market_id,
                "price": price,
                "delta": delta,
                "p_up": p_up
            }
        )

    def sample_rejected(
        self,
        market_id: str,
        reason: str,
        timestamp: Optional[float] = None
    ):
        """Log when a sample is dropped (stale, out of order, invalid)."""
        self.logger.debug(
            "Sample rejected",
            extra={
                "event": "sample_rejected",
                "market_id": market_id,
                "reason": reason,
                "sample_ts": timestamp
            }
        )

    def feed_unavailable(
        self,
        asset_id: str,
        error: str
    ):
        """Log when the price source fails for one tick."""
        self.logger.warning(
            "Price feed unavailable",
            extra={
                "event": "feed_unavailable",
                "asset_id": asset_id,
                "error": error
            }
        )

    def market_expired(
        self,
        market_id: str,
        current_price: Optional[float],
        start_price: Optional[float]
    ):
        """Log when the countdown reaches zero."""
        self.logger.info(
            "Market expired",
            extra={
                "event": "market_expired",
                "market_id": market_id,
                "current_price": current_price,
                "start_price": start_price
            }
        )

    def session_deactivated(
        self,
        market_id: str,
        samples_seen: int
    ):
        """Log when a session is torn down."""
        self.logger.info(
            "Session deactivated",
            extra={
                "event": "session_deactivated",
                "market_id": market_id,
                "samples_seen": samples_seen
            }
        )
