"""RECON — Staleness-Aware Result Cache.

Entries never expire by wall-clock time: historical data for a fixed window
does not change, so `last_30d` fetched at 10am is identical at 5pm. An entry
stops being usable only when a sync evicts it, or when the requested window is
not contained in the cached one.
"""

from datetime import date, datetime, timezone
from typing import Callable, List, MutableMapping, Optional, Tuple

from pydantic import BaseModel

from app.core.dates import DateRange
from app.core.scope import Scope, WORKSPACE_PREFIX
from app.models.performance_models import PerformanceRow
from app.core.logging import get_logger

logger = get_logger("store.cache")


class CacheEntry(BaseModel):
    """Rows fetched for a scope, the descriptor asked for, and the dates it resolved to."""

    key: str
    rows: Tuple[PerformanceRow, ...] = ()
    date_range: DateRange
    since: date
    until: date
    fetched_at: datetime


def is_valid(entry: CacheEntry, requested: DateRange, today: Optional[date] = None) -> bool:
    """Whether a cached window can answer a request without a refetch."""
    # Same window: historical data for it never changes.
    if entry.date_range.same_window(requested):
        return True

    # Wider known preset whose resolved dates still contain the request; the
    # caller filters down to the narrower window.
    cached_days = entry.date_range.span_days
    requested_days = requested.span_days
    if requested_days <= 0 or cached_days < requested_days:
        return False
    since, until = requested.resolve(today)
    return entry.since <= since and until <= entry.until


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultCache:
    """Cache service shared by reference across the app.

    Storage is injected so the process can keep one map alive across
    navigation (or swap in an external mapping) without module globals.
    """

    def __init__(
        self,
        storage: Optional[MutableMapping[str, CacheEntry]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._storage: MutableMapping[str, CacheEntry] = (
            storage if storage is not None else {}
        )
        self._clock = clock

    def get(self, key: str) -> Optional[CacheEntry]:
        try:
            return self._storage.get(key)
        except Exception as e:
            # A lookup never raises; the caller recomputes instead.
            logger.warning(f"Cache read failed for {key}: {e}", extra={"cache_key": key})
            return None

    def put(
        self,
        key: str,
        rows: List[PerformanceRow],
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> CacheEntry:
        since, until = date_range.resolve(today)
        entry = CacheEntry(
            key=key,
            rows=tuple(rows),
            date_range=date_range,
            since=since,
            until=until,
            fetched_at=self._clock(),
        )
        self._storage[key] = entry
        logger.info(
            f"Cached {len(entry.rows)} rows for {key} ({date_range.label()})",
            extra={"cache_key": key},
        )
        return entry

    def lookup(
        self, scope: Scope, requested: DateRange, today: Optional[date] = None
    ) -> Optional[CacheEntry]:
        """Return the scope's entry only if it can serve the requested window."""
        key = scope.cache_key
        entry = self.get(key)
        if entry is None:
            logger.debug(f"Cache miss for {key}", extra={"cache_key": key})
            return None
        if not is_valid(entry, requested, today):
            logger.info(
                f"Cache entry for {key} ({entry.date_range.label()}) does not "
                f"cover {requested.label()}",
                extra={"cache_key": key},
            )
            return None
        logger.debug(f"Cache hit for {key}", extra={"cache_key": key})
        return entry

    def evict(self, key: str) -> bool:
        return self._storage.pop(key, None) is not None

    def evict_for_sync(self, account_id: str) -> List[str]:
        """Drop the account's key and every workspace key that includes it."""
        evicted: List[str] = []
        account_key = Scope.account(account_id).cache_key
        if self.evict(account_key):
            evicted.append(account_key)
        for key in list(self._storage.keys()):
            if not key.startswith(WORKSPACE_PREFIX):
                continue
            members = key[len(WORKSPACE_PREFIX):].split(",")
            if account_id in members and self.evict(key):
                evicted.append(key)
        if evicted:
            logger.info(
                f"Evicted {len(evicted)} cache entries before sync",
                extra={"account_id": account_id},
            )
        return evicted

    def keys(self) -> List[str]:
        return sorted(self._storage.keys())
