"""RECON — Reporting Pipeline.

Runs the full data flow for one screen:
  cache lookup → row store → selection filter → reconcile → aggregate → budgets

The engine is built once per process and shared by reference, so the cache
and the selection survive navigation between screens.
"""

from datetime import date, datetime, timezone
from typing import List, Optional

from app.config import settings
from app.connectors.base import FeedSource, SyncSource
from app.core.dates import DateRange
from app.core.scope import Scope
from app.models.attribution_models import RevenueSource
from app.models.performance_models import PerformanceRow
from app.models.report_models import Report
from app.analyzer.aggregator import compute_totals
from app.analyzer.budget_engine import compute_budget_totals
from app.analyzer.reconciler import reconcile
from app.analyzer.selection import SelectionCascade
from app.store.result_cache import ResultCache
from app.store.row_store import PerformanceRowStore
from app.sync.coordinator import SyncCoordinator, SyncResult
from app.core.logging import get_logger

logger = get_logger("analyzer.pipeline")

REPORT_SCHEMA_VERSION = "1.0.0"


def _in_window(rows, since: date, until: date) -> List[PerformanceRow]:
    return [r for r in rows if since <= r.date <= until]


class ReportingEngine:
    """Session-scoped state (current scope, selection) over shared services."""

    def __init__(
        self,
        sync_source: SyncSource,
        feed_sources: Optional[List[FeedSource]] = None,
        row_store: Optional[PerformanceRowStore] = None,
        cache: Optional[ResultCache] = None,
        cooldown_seconds: Optional[float] = None,
        revenue_source: Optional[RevenueSource] = None,
    ):
        self.row_store = row_store or PerformanceRowStore()
        self.cache = cache or ResultCache()
        self.selection = SelectionCascade()
        self.scope: Optional[Scope] = None
        self.revenue_source = revenue_source or RevenueSource(settings.revenue_source)
        self.coordinator = SyncCoordinator(
            sync_source=sync_source,
            row_store=self.row_store,
            cache=self.cache,
            feed_sources=feed_sources,
            cooldown_seconds=cooldown_seconds,
            context=lambda: self.scope,
            on_applied=self._on_sync_applied,
        )

    # ── Session context ──

    def set_scope(self, scope: Scope) -> None:
        """Switch the current account / workspace."""
        if scope == self.scope:
            return
        logger.info(f"Scope changed to {scope.cache_key}")
        self.scope = scope
        self.selection.reset_for_context_change()

    def _require_scope(self, scope: Optional[Scope]) -> Scope:
        if scope is not None:
            self.set_scope(scope)
        if self.scope is None:
            raise ValueError("No account or workspace selected")
        return self.scope

    def _on_sync_applied(self, account_id: str, rows: List[PerformanceRow]) -> None:
        if self.scope is not None and self.scope.contains(account_id):
            self.selection.on_data_loaded(self.row_store.all_rows(self.scope))

    # ── Data loading ──

    def load_rows(self, scope: Scope, date_range: DateRange, today: Optional[date] = None):
        """Rows covering the requested window, from cache when it can serve them.

        Returns (rows in the cached/fetched window, whether the cache was hit).
        """
        entry = self.cache.lookup(scope, date_range, today)
        if entry is not None:
            return list(entry.rows), True

        since, until = date_range.resolve(today)
        rows = self.row_store.rows_for(scope, since, until)
        self.cache.put(scope.cache_key, rows, date_range, today)
        return rows, False

    # ── Reporting ──

    async def build_report(
        self,
        scope: Optional[Scope] = None,
        date_range: Optional[DateRange] = None,
        revenue_source: Optional[RevenueSource] = None,
        include_paused: bool = True,
        today: Optional[date] = None,
    ) -> Report:
        """Reconciled, aggregated numbers for the current selection."""
        scope = self._require_scope(scope)
        date_range = date_range or DateRange(preset=settings.default_date_preset)
        revenue_source = revenue_source or self.revenue_source
        since, until = date_range.resolve(today)
        logger.info(
            f"Building report for {scope.cache_key}: {since} → {until} ({revenue_source.value})"
        )

        # ── Step 1: Cache / Row Store ──
        loaded, cache_hit = self.load_rows(scope, date_range, today)

        # ── Step 2: Selection ──
        # Tree spans every stored row in the scope, not just the window.
        self.selection.on_data_loaded(self.row_store.all_rows(scope))
        window = _in_window(loaded, since, until)
        if not include_paused:
            window = [r for r in window if not r.is_paused]
        selected = self.selection.filter_rows(window)

        # ── Step 3: Attribution Feeds ──
        feeds = await self.coordinator.fetch_feeds(scope, since, until)

        # ── Step 4: Reconcile + Aggregate ──
        result = reconcile(selected, feeds, revenue_source)
        totals = compute_totals(result)
        budgets = compute_budget_totals(loaded, self.selection.keys)

        report = Report(
            schema_version=REPORT_SCHEMA_VERSION,
            generated_at=datetime.now(timezone.utc).isoformat(),
            scope_key=scope.cache_key,
            date_preset=date_range.preset,
            date_range_start=since.isoformat(),
            date_range_end=until.isoformat(),
            cache_hit=cache_hit,
            revenue_source=revenue_source,
            totals=totals,
            buckets=result.buckets,
            budgets=budgets,
            entities=result.entities,
            selection=self.selection.summary(),
            rows_considered=len(window),
            rows_selected=len(selected),
        )
        logger.info(
            f"Report complete. Spend: {totals.spend}. Revenue: {totals.revenue}. "
            f"ROAS: {totals.roas}. Cache hit: {cache_hit}"
        )
        return report

    # ── Sync ──

    async def sync(
        self, scope: Optional[Scope] = None, date_range: Optional[DateRange] = None
    ) -> List[SyncResult]:
        """Sync every account in the scope through the guarded coordinator.

        Syncing a scope other than the current one leaves the session scope
        and its selection alone.
        """
        scope = scope or self._require_scope(None)
        date_range = date_range or DateRange(preset=settings.default_date_preset)
        if scope.is_workspace:
            return await self.coordinator.sync_workspace(scope.account_ids, date_range)
        return [await self.coordinator.sync_account(scope.account_id, date_range)]
