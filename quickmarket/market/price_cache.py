"""
SQLite-backed last-price cache.

Stores one string value per asset so a market view can render a price
before the first network round trip completes. Never used for odds.
"""
import math
import sqlite3
import threading
from collections import defaultdict
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from quickmarket.utils.logger import get_logger

logger = get_logger("price_cache")

KEY_PREFIX = "cg:lastPrice:"


def cache_key(asset_id: str) -> str:
    return f"{KEY_PREFIX}{asset_id}"


class PriceCache:
    """Durable last-write-wins key/value store keyed by asset id."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()
        self.init_db()

    def init_db(self) -> None:
        """Create the backing table if it does not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success and is always closed."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            with conn:
                yield conn

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[key]

    def get(self, asset_id: str) -> Optional[float]:
        """Last cached price, or None if absent or unparseable."""
        key = cache_key(asset_id)
        with self._lock_for(key), self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()

        if not row:
            return None
        try:
            price = float(row[0])
        except ValueError:
            logger.debug(f"Ignoring corrupt cache entry {key}={row[0]!r}")
            return None
        if not math.isfinite(price):
            return None
        return price

    def set(self, asset_id: str, price: float) -> None:
        key = cache_key(asset_id)
        with self._lock_for(key), self._connect() as conn:
            conn.execute("""
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """, (key, repr(float(price)), datetime.now(timezone.utc).isoformat()))

    def reset(self) -> None:
        """Drop all cached prices (for testing)."""
        with self._connect() as conn:
            conn.execute("DELETE FROM kv")
