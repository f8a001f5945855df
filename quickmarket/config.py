"""
Configuration module for the quick-market engine.
Loads settings from environment variables with validation.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


# Sensitivity constant K per asset: how far a fractional price move shifts
# the implied UP probability. Product defaults, not calibrated volatility.
DEFAULT_SENSITIVITY = {
    "bitcoin": 8.0,
    "ethereum": 10.0,
    "solana": 14.0,
    "binancecoin": 12.0,
    "the-open-network": 14.0,
}


@dataclass
class FeedConfig:
    """Price source configuration."""
    coingecko_url: str = "https://api.coingecko.com/api/v3"
    vs_currency: str = "usd"
    # None keeps the HTTP client's default timeout
    request_timeout_seconds: Optional[float] = None


@dataclass
class EngineConfig:
    """Tunables for one quick-market session."""
    series_cap: int = 90
    poll_interval_seconds: float = 10.0
    countdown_interval_seconds: float = 1.0

    # Chart seed before the first tick: 20 historical points plus "now"
    placeholder_count: int = 21
    placeholder_spacing_seconds: float = 10.0

    market_duration_minutes: int = 15

    # Odds heuristic
    prob_floor: float = 0.05
    prob_ceiling: float = 0.95
    default_sensitivity: float = 10.0
    sensitivity: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SENSITIVITY)
    )

    def __post_init__(self):
        if self.series_cap < 1:
            raise ValueError(f"series_cap must be >= 1, got {self.series_cap}")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.countdown_interval_seconds <= 0:
            raise ValueError("countdown_interval_seconds must be positive")
        if self.placeholder_count < 0 or self.placeholder_spacing_seconds < 0:
            raise ValueError("placeholder seed settings must be non-negative")
        if self.market_duration_minutes <= 0:
            raise ValueError("market_duration_minutes must be positive")
        if not 0 < self.prob_floor < self.prob_ceiling < 1:
            raise ValueError(
                f"Invalid probability bounds: {self.prob_floor} / {self.prob_ceiling}"
            )
        if self.default_sensitivity <= 0:
            raise ValueError("default_sensitivity must be positive")


@dataclass
class CacheConfig:
    """Price cache storage."""
    db_path: str = "data/price_cache.db"


@dataclass
class LogConfig:
    """Logging configuration."""
    log_level: str
    json_logging: bool


@dataclass
class ApiConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class Config:
    """Main configuration container."""
    feed: FeedConfig
    engine: EngineConfig
    cache: CacheConfig
    logging: LogConfig
    api: ApiConfig


def _read_env(key: str, default, cast):
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"{key}={raw!r} is not a valid {cast.__name__}")


def get_env(key: str, default: str) -> str:
    """String setting; blank counts as unset."""
    return _read_env(key, default, str)


def get_env_bool(key: str, default: bool) -> bool:
    return _read_env(key, default, lambda v: v.lower() in ("true", "1", "yes", "on"))


def get_env_int(key: str, default: int) -> int:
    return _read_env(key, default, int)


def get_env_float(key: str, default: Optional[float]) -> Optional[float]:
    return _read_env(key, default, float)


def load_config() -> Config:
    """Build the full configuration from the environment (and .env)."""
    return Config(
        feed=FeedConfig(
            coingecko_url=get_env("COINGECKO_URL", "https://api.coingecko.com/api/v3"),
            vs_currency=get_env("VS_CURRENCY", "usd"),
            request_timeout_seconds=get_env_float("PRICE_REQUEST_TIMEOUT", None),
        ),
        engine=EngineConfig(
            series_cap=get_env_int("SERIES_CAP", 90),
            poll_interval_seconds=get_env_float("PRICE_POLL_INTERVAL", 10.0),
            countdown_interval_seconds=get_env_float("COUNTDOWN_INTERVAL", 1.0),
            placeholder_count=get_env_int("PLACEHOLDER_COUNT", 21),
            placeholder_spacing_seconds=get_env_float("PLACEHOLDER_SPACING", 10.0),
            market_duration_minutes=get_env_int("MARKET_DURATION_MINUTES", 15),
            prob_floor=get_env_float("PROB_FLOOR", 0.05),
            prob_ceiling=get_env_float("PROB_CEILING", 0.95),
            default_sensitivity=get_env_float("DEFAULT_SENSITIVITY", 10.0),
        ),
        cache=CacheConfig(db_path=get_env("PRICE_CACHE_PATH", "data/price_cache.db")),
        logging=LogConfig(
            log_level=get_env("LOG_LEVEL", "INFO"),
            json_logging=get_env_bool("JSON_LOGGING", True),
        ),
        api=ApiConfig(
            host=get_env("API_HOST", "0.0.0.0"),
            port=get_env_int("API_PORT", 8000),
        ),
    )
