"""RECON — Attribution Reconciler (Priority Merge).

Merges the ad platform's own conversion counts with independently collected
attribution feeds without double counting:

- verified      = min(platform, feed), revenue drawn from the platform side
- feed-only     = max(0, feed - platform), revenue drawn from the feed
- platform-only = max(0, platform - feed), revenue drawn from the platform
- manual events are added on top unconditionally

so each entity ends at max(platform, feed) conversions. Portfolio totals are
the sum of entity results; the min/max split is never re-run on aggregates.
Spend only ever comes from platform rows.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from app.models.attribution_models import (
    AttributionFeed,
    AttributionFeedRecord,
    FeedKind,
    MergeBuckets,
    ReconciledEntity,
    ReconciliationResult,
    RevenueSource,
)
from app.models.performance_models import PerformanceRow
from app.core.logging import get_logger

logger = get_logger("analyzer.reconciler")


def _share(part: float, whole: float, amount: float) -> float:
    """part/whole of amount, 0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return part / whole * amount


def priority_merge(
    platform_n: float,
    platform_rev: float,
    feed_n: float,
    feed_rev: float,
) -> MergeBuckets:
    """Split one entity's platform and feed observations into merge buckets.

    Verified revenue is taken from the platform side even when the feed's
    order values differ; when both sources agree a conversion happened the
    platform's checkout value is treated as authoritative.
    """
    verified = min(platform_n, feed_n)
    feed_only = max(0.0, feed_n - platform_n)
    platform_only = max(0.0, platform_n - feed_n)
    return MergeBuckets(
        verified_conversions=verified,
        verified_revenue=_share(verified, platform_n, platform_rev),
        feed_only_conversions=feed_only,
        feed_only_revenue=_share(feed_only, feed_n, feed_rev),
        platform_only_conversions=platform_only,
        platform_only_revenue=_share(platform_only, platform_n, platform_rev),
    )


def _merge_feeds(a: AttributionFeed, b: AttributionFeed) -> AttributionFeed:
    """Combine two feeds of one kind, keeping any upstream portfolio totals.

    A side without its own totals contributes the sum of its records.
    """
    merged = AttributionFeed.from_records(
        a.kind, list(a.records.values()) + list(b.records.values())
    )
    if a.portfolio_conversions is not None or b.portfolio_conversions is not None:
        merged.portfolio_conversions = a.total_conversions() + b.total_conversions()
    if a.portfolio_revenue is not None or b.portfolio_revenue is not None:
        merged.portfolio_revenue = a.total_revenue() + b.total_revenue()
    return merged


def index_feeds(feeds: Iterable[Optional[AttributionFeed]]) -> Dict[FeedKind, AttributionFeed]:
    """Key feeds by kind; a missing feed is simply absent (treated as empty)."""
    indexed: Dict[FeedKind, AttributionFeed] = {}
    for feed in feeds:
        if feed is None:
            continue
        existing = indexed.get(feed.kind)
        indexed[feed.kind] = feed if existing is None else _merge_feeds(existing, feed)
    return indexed


def _group_by_entity(rows: Iterable[PerformanceRow]) -> "OrderedDict[str, List[PerformanceRow]]":
    grouped: "OrderedDict[str, List[PerformanceRow]]" = OrderedDict()
    for row in rows:
        grouped.setdefault(row.entity_id, []).append(row)
    return grouped


def _base_entity(entity_id: str, rows: List[PerformanceRow]) -> ReconciledEntity:
    first = rows[0]
    return ReconciledEntity(
        entity_id=entity_id,
        entity_name=first.entity_name,
        adset_id=first.adset_id,
        adset_name=first.adset_name,
        campaign_id=first.campaign_id,
        campaign_name=first.campaign_name,
        account_id=first.account_id,
        impressions=sum(r.impressions for r in rows),
        clicks=sum(r.clicks for r in rows),
        spend=sum(r.spend for r in rows),
        results=sum(r.results for r in rows),
        result_value=sum(r.result_value for r in rows),
        original_conversions=sum(r.platform_conversions for r in rows),
        original_revenue=sum(r.platform_revenue for r in rows),
    )


def reconcile_entity(
    entity_id: str,
    rows: List[PerformanceRow],
    feeds: Dict[FeedKind, AttributionFeed],
    revenue_source: RevenueSource,
) -> ReconciledEntity:
    """Reconcile one entity's selected rows against the designated feed."""
    entity = _base_entity(entity_id, rows)
    platform_n = entity.original_conversions
    platform_rev = entity.original_revenue

    if revenue_source == RevenueSource.PIXEL:
        record = _record(feeds, FeedKind.PIXEL, entity_id)
        buckets = priority_merge(platform_n, platform_rev, record.conversions, record.revenue)
    elif revenue_source == RevenueSource.ECOMMERCE:
        record = _record(feeds, FeedKind.ECOMMERCE, entity_id)
        buckets = MergeBuckets(
            upstream_conversions=record.conversions,
            upstream_revenue=record.revenue,
        )
    else:
        buckets = MergeBuckets(
            platform_only_conversions=platform_n,
            platform_only_revenue=platform_rev,
        )

    manual = _record(feeds, FeedKind.MANUAL, entity_id)
    buckets.manual_conversions = manual.conversions
    buckets.manual_revenue = manual.revenue

    entity.buckets = buckets
    entity.conversions = buckets.conversions
    entity.revenue = buckets.revenue
    return entity


def _record(
    feeds: Dict[FeedKind, AttributionFeed], kind: FeedKind, entity_id: str
) -> AttributionFeedRecord:
    feed = feeds.get(kind)
    record = feed.get(entity_id) if feed is not None else None
    return record or AttributionFeedRecord(entity_id=entity_id)


def reconcile(
    rows: Iterable[PerformanceRow],
    feeds: Iterable[Optional[AttributionFeed]] = (),
    revenue_source: RevenueSource = RevenueSource.PIXEL,
) -> ReconciliationResult:
    """Reconcile the selected rows against zero or more feeds.

    With the e-commerce revenue source, portfolio conversions and revenue come
    from the feed's own totals, which include entities outside the current row
    selection; spend still comes from the rows and manual events still add on
    top.
    """
    indexed = index_feeds(feeds)
    grouped = _group_by_entity(rows)

    entities = [
        reconcile_entity(entity_id, entity_rows, indexed, revenue_source)
        for entity_id, entity_rows in grouped.items()
    ]

    buckets = MergeBuckets()
    for e in entities:
        buckets = buckets + e.buckets

    designated = {
        RevenueSource.PIXEL: FeedKind.PIXEL,
        RevenueSource.ECOMMERCE: FeedKind.ECOMMERCE,
    }.get(revenue_source)
    unmatched = 0
    if designated is not None and designated in indexed:
        unmatched = sum(1 for eid in indexed[designated].records if eid not in grouped)
        if unmatched:
            logger.info(
                f"{unmatched} {designated.value} feed entities are outside the current selection"
            )

    if revenue_source == RevenueSource.ECOMMERCE:
        feed = indexed.get(FeedKind.ECOMMERCE)
        if feed is not None:
            buckets.upstream_conversions = feed.total_conversions()
            buckets.upstream_revenue = feed.total_revenue()

    result = ReconciliationResult(
        revenue_source=revenue_source,
        entities=entities,
        spend=sum(e.spend for e in entities),
        impressions=sum(e.impressions for e in entities),
        clicks=sum(e.clicks for e in entities),
        results=sum(e.results for e in entities),
        conversions=buckets.conversions,
        revenue=buckets.revenue,
        buckets=buckets,
        feeds_used=sorted(indexed, key=lambda k: k.value),
        unmatched_feed_entities=unmatched,
    )
    logger.info(
        f"Reconciled {len(entities)} entities ({revenue_source.value}): "
        f"{result.conversions:.2f} conversions, {result.revenue:.2f} revenue"
    )
    return result
