"""RECON — Sync Coordinator.

One small actor per account with states idle → syncing → cooling_down → idle.
The guard is taken synchronously before the first await, so a second request
arriving while a fetch is in flight is dropped, not queued. After a fetch
settles (success or failure) the account cools down before it may sync again;
the upstream returns incomplete data when called too often.
"""

import time
from datetime import date
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel

from app.config import settings
from app.connectors.base import FeedSource, SyncSource
from app.core.dates import DateRange
from app.core.errors import SourceUnavailableError
from app.core.scope import Scope
from app.models.attribution_models import AttributionFeed, FeedKind
from app.models.performance_models import PerformanceRow
from app.store.result_cache import ResultCache
from app.store.row_store import PerformanceRowStore
from app.core.logging import get_logger

logger = get_logger("sync.coordinator")


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    COOLING_DOWN = "cooling_down"


class SyncStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"  # In flight or cooling down
    DISCARDED = "discarded"  # Account context changed before completion


class SyncResult(BaseModel):
    """Outcome of one sync request, as surfaced to the user."""

    account_id: str
    status: SyncStatus
    message: str = ""
    rows: int = 0
    duration_ms: float = 0.0


class AccountSyncActor:
    """Sequential state machine guarding one account's sync."""

    def __init__(self, cooldown_seconds: float, clock: Callable[[], float]):
        self.state = SyncState.IDLE
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._settled_at: Optional[float] = None

    def cooldown_remaining(self) -> float:
        if self.state != SyncState.COOLING_DOWN or self._settled_at is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - (self._clock() - self._settled_at))

    def _tick(self) -> None:
        if self.state == SyncState.COOLING_DOWN and self.cooldown_remaining() <= 0:
            self.state = SyncState.IDLE

    def try_begin(self) -> bool:
        """Enter `syncing` if allowed. Must run before any await."""
        self._tick()
        if self.state != SyncState.IDLE:
            return False
        self.state = SyncState.SYNCING
        return True

    def settle(self) -> None:
        self._settled_at = self._clock()
        self.state = SyncState.COOLING_DOWN

    def current_state(self) -> SyncState:
        self._tick()
        return self.state


class SyncCoordinator:
    """Runs guarded syncs into the row store and guarded feed fetches."""

    def __init__(
        self,
        sync_source: SyncSource,
        row_store: PerformanceRowStore,
        cache: ResultCache,
        feed_sources: Optional[List[FeedSource]] = None,
        cooldown_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        context: Optional[Callable[[], Optional[Scope]]] = None,
        on_applied: Optional[Callable[[str, List[PerformanceRow]], None]] = None,
    ):
        self.sync_source = sync_source
        self.row_store = row_store
        self.cache = cache
        self.feed_sources = feed_sources or []
        self.cooldown_seconds = (
            settings.sync_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )
        self._clock = clock
        self._context = context
        self._on_applied = on_applied
        self._actors: Dict[str, AccountSyncActor] = {}
        self._feeds_in_flight: set = set()
        self._last_good_feeds: Dict[Tuple[str, FeedKind, date, date], AttributionFeed] = {}

    def _actor(self, account_id: str) -> AccountSyncActor:
        actor = self._actors.get(account_id)
        if actor is None:
            actor = self._actors[account_id] = AccountSyncActor(
                self.cooldown_seconds, self._clock
            )
        return actor

    def state(self, account_id: str) -> SyncState:
        return self._actor(account_id).current_state()

    def cooldown_remaining(self, account_id: str) -> float:
        return self._actor(account_id).cooldown_remaining()

    def _current_context(self) -> Optional[Scope]:
        return self._context() if self._context is not None else None

    # ── Platform sync ──

    async def sync_account(self, account_id: str, date_range: DateRange) -> SyncResult:
        """Replace an account's rows from the sync source, if the guard allows."""
        actor = self._actor(account_id)
        if not actor.try_begin():
            if actor.state == SyncState.SYNCING:
                message = "Sync already in progress"
            else:
                message = f"Cooldown active - {actor.cooldown_remaining():.0f}s remaining"
            logger.info(f"[Sync] {message}", extra={"account_id": account_id})
            return SyncResult(account_id=account_id, status=SyncStatus.SKIPPED, message=message)

        try:
            return await self._run_sync(actor, account_id, date_range)
        finally:
            if actor.state == SyncState.SYNCING:
                actor.settle()

    async def _run_sync(
        self, actor: AccountSyncActor, account_id: str, date_range: DateRange
    ) -> SyncResult:
        started = self._clock()
        context_at_start = self._current_context()
        # No stale reads while the fetch is in flight.
        self.cache.evict_for_sync(account_id)

        try:
            rows = await self.sync_source.fetch_rows(account_id, date_range)
        except SourceUnavailableError as e:
            logger.error(f"Sync failed: {e}", extra={"account_id": account_id})
            return self._finish(actor, account_id, SyncStatus.FAILED, str(e), started)
        except Exception as e:
            logger.error(f"Sync failed unexpectedly: {e}", extra={"account_id": account_id})
            return self._finish(
                actor, account_id, SyncStatus.FAILED, "Sync failed. Please try again.", started
            )

        if self._current_context() != context_at_start:
            logger.warning(
                "Account context changed during sync, discarding result",
                extra={"account_id": account_id},
            )
            return self._finish(
                actor, account_id, SyncStatus.DISCARDED, "Account context changed", started
            )

        count = self.row_store.replace(account_id, rows)
        # Reads made mid-sync may have re-cached the previous generation.
        self.cache.evict_for_sync(account_id)
        if self._on_applied is not None:
            self._on_applied(account_id, rows)
        return self._finish(actor, account_id, SyncStatus.SUCCESS, "", started, count)

    def _finish(
        self,
        actor: AccountSyncActor,
        account_id: str,
        status: SyncStatus,
        message: str,
        started: float,
        rows: int = 0,
    ) -> SyncResult:
        actor.settle()
        duration_ms = round((self._clock() - started) * 1000, 1)
        logger.info(
            f"[Sync] {status.value} ({rows} rows)",
            extra={"account_id": account_id, "duration_ms": duration_ms},
        )
        return SyncResult(
            account_id=account_id,
            status=status,
            message=message,
            rows=rows,
            duration_ms=duration_ms,
        )

    async def sync_workspace(
        self, account_ids: FrozenSet[str], date_range: DateRange
    ) -> List[SyncResult]:
        """Sync each workspace account sequentially."""
        results = []
        for account_id in sorted(account_ids):
            results.append(await self.sync_account(account_id, date_range))
        return results

    # ── Attribution feeds ──

    async def fetch_feeds(
        self, scope: Scope, since: date, until: date
    ) -> List[AttributionFeed]:
        """Fetch every configured feed; failures fall back to last-known-good.

        A feed that is unconfigured, failing, or already being fetched for the
        same scope never raises here; it contributes its last good value or
        nothing.
        """
        feeds: List[AttributionFeed] = []
        for source in self.feed_sources:
            guard = (scope.cache_key, source.kind, since, until)
            if guard in self._feeds_in_flight:
                logger.info(f"{source.kind.value} feed fetch already in flight, reusing last value")
                if guard in self._last_good_feeds:
                    feeds.append(self._last_good_feeds[guard])
                continue

            self._feeds_in_flight.add(guard)
            try:
                feed = await source.fetch_feed(scope.account_ids, since, until)
            except Exception as e:
                logger.error(f"{source.kind.value} feed fetch failed: {e}")
                feed = self._last_good_feeds.get(guard)
            else:
                if feed is not None:
                    self._last_good_feeds[guard] = feed
            finally:
                self._feeds_in_flight.discard(guard)

            if feed is not None:
                feeds.append(feed)
        return feeds
