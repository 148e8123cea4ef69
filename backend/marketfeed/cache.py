"""In-process TTL cache for provider responses.

Entries carry an absolute expiry. Reads check expiry lazily and drop stale
entries; ``cleanup`` sweeps everything at once. An entry can also be set to
expire at the next UTC midnight, which bounds daily-bar data to one
calendar day.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"


# =============================================================================
# Key generation
# =============================================================================

def generate_key(*parts: Any, **labelled: Any) -> str:
    """Join key parts with ``:``, skipping None.

    Positional parts are emitted as-is; keyword parts are emitted as
    ``name=value`` so that optional parameters at different positions
    cannot produce the same key.

    >>> generate_key("binance", "BTCUSDT", "1h", limit=500, start=None)
    'binance:BTCUSDT:1h:limit=500'
    """
    pieces = [str(part) for part in parts if part is not None]
    pieces.extend(f"{name}={value}" for name, value in labelled.items() if value is not None)
    return KEY_DELIMITER.join(pieces)


def next_utc_midnight(now: float) -> float:
    """Epoch seconds of the first 00:00:00 UTC strictly after ``now``."""
    current = datetime.fromtimestamp(now, tz=timezone.utc)
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return (midnight + timedelta(days=1)).timestamp()


# =============================================================================
# Cache
# =============================================================================

@dataclass(frozen=True, slots=True)
class CacheEntry:
    data: Any
    created_at: float
    expires_at: float


class TTLCache:
    """Key → value store with absolute expiry."""

    def __init__(
        self,
        default_ttl: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def set(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        *,
        midnight_utc: bool = False,
    ) -> CacheEntry:
        """Store ``value``, replacing any existing entry.

        Args:
            key: Cache key
            value: Value to store
            ttl: Lifetime in seconds (defaults to ``default_ttl``)
            midnight_utc: Expire at the next UTC midnight instead of after ttl
        """
        now = self._clock()
        if midnight_utc:
            expires_at = next_utc_midnight(now)
        else:
            expires_at = now + (self.default_ttl if ttl is None else ttl)

        entry = CacheEntry(data=value, created_at=now, expires_at=expires_at)
        self._entries[key] = entry
        return entry

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss/expiry."""
        entry = self._live_entry(key)
        return entry.data if entry is not None else None

    def get_entry(self, key: str) -> CacheEntry | None:
        return self._live_entry(key)

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def invalidate(self, key: str) -> bool:
        """Remove one key. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_pattern(self, pattern: str | re.Pattern[str]) -> int:
        """Remove every key matching the regex. Returns the number removed."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        doomed = [key for key in self._entries if regex.search(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop all expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} entries")
        return len(expired)

    def size(self) -> int:
        """Number of stored entries (expired ones included until swept)."""
        return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry
