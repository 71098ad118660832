"""RECON — Staged (Push-Based) Collaborator Sources.

External sync workers push raw payloads over HTTP; the coordinator later pulls
them through the SyncSource / FeedSource interfaces. The latest push for an
account is the upstream's current answer for that account.
"""

from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from app.connectors.base import FeedSource, SyncSource
from app.connectors.transformer import transform_rows
from app.core.dates import DateRange
from app.core.errors import SourceUnavailableError
from app.models.attribution_models import AttributionFeed, AttributionFeedRecord, FeedKind
from app.models.performance_models import PerformanceRow
from app.core.logging import get_logger

logger = get_logger("connectors.staged")


class StagedSyncSource(SyncSource):
    """Rows pushed by an external platform sync worker, per account."""

    def __init__(self):
        self._staged: Dict[str, List[PerformanceRow]] = {}

    def stage(self, account_id: str, raw_rows: Iterable[Dict[str, Any]]) -> int:
        rows = transform_rows(raw_rows, account_id)
        self._staged[account_id] = rows
        logger.info(f"Staged {len(rows)} rows", extra={"account_id": account_id})
        return len(rows)

    def stage_rows(self, account_id: str, rows: Iterable[PerformanceRow]) -> int:
        self._staged[account_id] = list(rows)
        return len(self._staged[account_id])

    async def fetch_rows(self, account_id: str, date_range: DateRange) -> List[PerformanceRow]:
        if account_id not in self._staged:
            raise SourceUnavailableError(
                f"No platform data has been delivered for account {account_id}",
                source="platform",
                account_id=account_id,
            )
        return list(self._staged[account_id])


class StagedFeedSource(FeedSource):
    """Attribution records pushed per account for one feed kind."""

    def __init__(self, kind: FeedKind):
        self.kind = kind
        self._records: Dict[str, List[AttributionFeedRecord]] = {}
        self._portfolio: Dict[str, tuple] = {}

    def stage(
        self,
        account_id: str,
        records: Iterable[AttributionFeedRecord],
        portfolio_conversions: Optional[float] = None,
        portfolio_revenue: Optional[float] = None,
    ) -> int:
        self._records[account_id] = list(records)
        if portfolio_conversions is not None or portfolio_revenue is not None:
            self._portfolio[account_id] = (portfolio_conversions, portfolio_revenue)
        else:
            self._portfolio.pop(account_id, None)
        logger.info(
            f"Staged {len(self._records[account_id])} {self.kind.value} records",
            extra={"account_id": account_id},
        )
        return len(self._records[account_id])

    def stage_feed(self, account_id: str, feed: AttributionFeed) -> int:
        return self.stage(
            account_id,
            feed.records.values(),
            feed.portfolio_conversions,
            feed.portfolio_revenue,
        )

    def is_available(self) -> bool:
        return bool(self._records)

    async def fetch_feed(
        self, account_ids: FrozenSet[str], since: date, until: date
    ) -> Optional[AttributionFeed]:
        if not self.is_available():
            return None

        records: List[AttributionFeedRecord] = []
        for account_id in sorted(account_ids):
            records.extend(self._records.get(account_id, []))
        feed = AttributionFeed.from_records(self.kind, records)

        # Upstream totals win per account; accounts without them fall back
        # to the sum of their own records.
        if any(a in self._portfolio for a in account_ids):
            conversions = 0.0
            revenue = 0.0
            for account_id in account_ids:
                own = self._records.get(account_id, [])
                upstream_n, upstream_rev = self._portfolio.get(account_id, (None, None))
                conversions += (
                    upstream_n if upstream_n is not None else sum(r.conversions for r in own)
                )
                revenue += (
                    upstream_rev if upstream_rev is not None else sum(r.revenue for r in own)
                )
            feed.portfolio_conversions = conversions
            feed.portfolio_revenue = revenue
        return feed
