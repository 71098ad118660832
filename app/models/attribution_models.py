"""RECON — Attribution Feed & Reconciliation Models."""

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field


class FeedKind(str, Enum):
    """Independent conversion sources other than the ad platform itself."""

    PIXEL = "pixel"  # First-party pixel / CRM attribution
    ECOMMERCE = "ecommerce"  # Storefront order attribution
    MANUAL = "manual"  # Offline / walk-in events logged by hand


class RevenueSource(str, Enum):
    """Which source is authoritative for conversions and revenue."""

    PLATFORM = "platform"
    PIXEL = "pixel"
    ECOMMERCE = "ecommerce"


class AttributionFeedRecord(BaseModel):
    """One entity's observation in one feed for the reporting window."""

    entity_id: str
    conversions: float = Field(default=0.0, ge=0)
    revenue: float = Field(default=0.0, ge=0)


class AttributionFeed(BaseModel):
    """A full feed for a window, keyed by entity_id.

    `portfolio_conversions` / `portfolio_revenue` are the feed's own
    deduplicated totals when the upstream provides them.
    """

    kind: FeedKind
    records: Dict[str, AttributionFeedRecord] = {}
    portfolio_conversions: Optional[float] = None
    portfolio_revenue: Optional[float] = None

    @classmethod
    def from_records(
        cls, kind: FeedKind, records: Iterable[AttributionFeedRecord]
    ) -> "AttributionFeed":
        """Build a feed, summing duplicate entity_ids."""
        merged: Dict[str, AttributionFeedRecord] = {}
        for r in records:
            prev = merged.get(r.entity_id)
            if prev is None:
                merged[r.entity_id] = r
            else:
                merged[r.entity_id] = AttributionFeedRecord(
                    entity_id=r.entity_id,
                    conversions=prev.conversions + r.conversions,
                    revenue=prev.revenue + r.revenue,
                )
        return cls(kind=kind, records=merged)

    @classmethod
    def empty(cls, kind: FeedKind) -> "AttributionFeed":
        return cls(kind=kind)

    def get(self, entity_id: str) -> Optional[AttributionFeedRecord]:
        return self.records.get(entity_id)

    def total_conversions(self) -> float:
        if self.portfolio_conversions is not None:
            return self.portfolio_conversions
        return sum(r.conversions for r in self.records.values())

    def total_revenue(self) -> float:
        if self.portfolio_revenue is not None:
            return self.portfolio_revenue
        return sum(r.revenue for r in self.records.values())


class MergeBuckets(BaseModel):
    """Priority Merge split for one entity (or summed over many)."""

    verified_conversions: float = 0.0
    verified_revenue: float = 0.0
    feed_only_conversions: float = 0.0
    feed_only_revenue: float = 0.0
    platform_only_conversions: float = 0.0
    platform_only_revenue: float = 0.0
    # Already deduplicated upstream (e-commerce revenue source).
    upstream_conversions: float = 0.0
    upstream_revenue: float = 0.0
    manual_conversions: float = 0.0
    manual_revenue: float = 0.0

    @property
    def conversions(self) -> float:
        return (
            self.verified_conversions
            + self.feed_only_conversions
            + self.platform_only_conversions
            + self.upstream_conversions
            + self.manual_conversions
        )

    @property
    def revenue(self) -> float:
        return (
            self.verified_revenue
            + self.feed_only_revenue
            + self.platform_only_revenue
            + self.upstream_revenue
            + self.manual_revenue
        )

    def __add__(self, other: "MergeBuckets") -> "MergeBuckets":
        return MergeBuckets(
            **{
                name: getattr(self, name) + getattr(other, name)
                for name in MergeBuckets.model_fields
            }
        )


class ReconciledEntity(BaseModel):
    """Per-ad reconciled values, keeping the platform's original observation."""

    entity_id: str
    entity_name: str = ""
    adset_id: str = ""
    adset_name: str = ""
    campaign_id: str = ""
    campaign_name: str = ""
    account_id: str = ""

    impressions: float = 0.0
    clicks: float = 0.0
    spend: float = 0.0
    results: float = 0.0
    result_value: float = 0.0

    conversions: float = 0.0
    revenue: float = 0.0
    original_conversions: float = 0.0
    original_revenue: float = 0.0

    buckets: MergeBuckets = MergeBuckets()


class ReconciliationResult(BaseModel):
    """Output of one reconciler run over a selection."""

    revenue_source: RevenueSource
    entities: List[ReconciledEntity] = []
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    results: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    buckets: MergeBuckets = MergeBuckets()
    feeds_used: List[FeedKind] = []
    unmatched_feed_entities: int = 0
