"""
TTL cache for raw upstream leaderboard rows.

Keyed by (track identity, race mode). Entries are immutable and replaced
wholesale, so readers never observe a partially updated entry. Staleness is
checked lazily; expired entries stay in place as a fallback for rate-limited
upstream calls.
"""

import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from velohub.data_models.leaderboard import CacheEntry
from velohub.utils.logger import setup_logger

logger = setup_logger(__name__)

CacheKey = Tuple[str, int]

DEFAULT_TTL_SECONDS = 600


class ResultCache:
    """Shared mapping from leaderboard key to the last fetched raw rows."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the entry for key whether fresh or stale, or None."""
        return self._entries.get(key)

    def put(self, key: CacheKey, raw: Iterable[Dict[str, Any]]) -> CacheEntry:
        """Replace the entry for key with freshly fetched rows."""
        entry = CacheEntry(raw=tuple(raw), fetched_at=self._clock())
        self._entries[key] = entry
        logger.debug(f"Cached {len(entry.raw)} rows for {key}")
        return entry

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self.ttl_seconds

    def age(self, entry: CacheEntry) -> float:
        return self._clock() - entry.fetched_at

    def invalidate(self, key: Optional[CacheKey] = None):
        """Drop one key, or every entry when key is None."""
        if key is None:
            logger.info("Clearing entire result cache")
            self._entries = {}
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries
