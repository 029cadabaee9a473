"""Bounded analysis cache with TTL support."""

import logging
import time
from typing import Callable, Dict, Optional

from .config import CACHE_TTL_SECONDS, MAX_CACHE_ENTRIES
from .domain.models import CachedRecord

logger = logging.getLogger(__name__)


class AnalysisCache:
    """
    In-memory store of completed analyses keyed by (ticker, profile) fingerprint.

    - Entries older than the TTL are treated as misses and evicted on lookup
      (no background timer).
    - When the entry count exceeds the cap, the entry with the oldest
      ``cached_at`` is evicted (insertion order, not access order).
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_entries: int = MAX_CACHE_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        self._records: Dict[str, CachedRecord] = {}
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock

    def get(self, key: str) -> Optional[CachedRecord]:
        """Get cached record if it exists and is not expired."""
        record = self._records.get(key)
        if record is None:
            return None

        if self.clock() - record.cached_at > self.ttl_seconds:
            del self._records[key]
            logger.debug("Cache miss (expired): %s", key)
            return None

        logger.debug("Cache hit: %s", key)
        return record

    def put(self, key: str, record: CachedRecord) -> Optional[str]:
        """
        Store record stamped with the current time.

        Returns:
            The evicted key if the insert pushed the store over capacity, else None
        """
        record.cached_at = self.clock()
        self._records[key] = record
        logger.debug("Cache set: %s", key)

        if len(self._records) <= self.max_entries:
            return None

        oldest_key = min(self._records, key=lambda k: self._records[k].cached_at)
        del self._records[oldest_key]
        logger.debug("Cache evicted oldest entry: %s", oldest_key)
        return oldest_key

    def describe_age(self, cached_at: float) -> str:
        """Human-readable age of a record, e.g. "45s", "3m", "2h"."""
        elapsed = self.clock() - cached_at

        if elapsed < 60:
            return f"{max(1, int(elapsed))}s"
        if elapsed < 3600:
            return f"{int(elapsed // 60)}m"
        return f"{int(elapsed // 3600)}h"

    def cleanup(self) -> int:
        """Remove expired records, return count of removed records."""
        now = self.clock()
        expired_keys = [
            key for key, record in self._records.items()
            if now - record.cached_at > self.ttl_seconds
        ]
        for key in expired_keys:
            del self._records[key]

        if expired_keys:
            logger.info("Cache cleanup: %d items removed", len(expired_keys))

        return len(expired_keys)

    def clear(self) -> None:
        """Clear all cache."""
        count = len(self._records)
        self._records.clear()
        logger.info("Cache cleared: %d items removed", count)

    def stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        return {"size": len(self._records), "max_entries": self.max_entries}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records
