"""RECON — Unified Metric Registry.

Defines the canonical base metrics carried on reconciled rows and the derived
ratio metrics the aggregator computes from them. Adding a ratio to the totals
object means registering it here; the aggregator reads this table.
"""

from enum import Enum
from typing import Dict


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # Raw counts: impressions, clicks
    COST = "cost"  # Monetary: spend
    REVENUE = "revenue"  # Income: revenue
    CONVERSION = "conversion"  # Conversions and optimisation results
    DERIVED = "derived"  # Ratios computed from the above


class MetricDefinition:
    """Describes a single metric."""

    def __init__(
        self, name: str, metric_type: MetricType, unit: str = "", description: str = ""
    ):
        self.name = name
        self.metric_type = metric_type
        self.unit = unit
        self.description = description

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.metric_type.value})>"


class RatioDefinition(MetricDefinition):
    """A derived metric: numerator / denominator * scale, 0 on a zero denominator."""

    def __init__(
        self,
        name: str,
        numerator: str,
        denominator: str,
        scale: float = 1.0,
        unit: str = "",
        description: str = "",
    ):
        super().__init__(name, MetricType.DERIVED, unit, description)
        self.numerator = numerator
        self.denominator = denominator
        self.scale = scale

    def compute(self, base: Dict[str, float]) -> float:
        den = base.get(self.denominator, 0.0)
        if not den:
            return 0.0
        return base.get(self.numerator, 0.0) / den * self.scale


# ─────────────────────────────────────────────
# BASE METRICS — Summed across rows
# ─────────────────────────────────────────────

BASE_METRICS: Dict[str, MetricDefinition] = {
    "impressions": MetricDefinition(
        "impressions", MetricType.VOLUME, "count", "Number of times ad was shown"
    ),
    "clicks": MetricDefinition("clicks", MetricType.VOLUME, "count", "Total clicks"),
    "spend": MetricDefinition(
        "spend", MetricType.COST, "currency", "Platform-reported spend"
    ),
    "conversions": MetricDefinition(
        "conversions", MetricType.CONVERSION, "count", "Reconciled conversions"
    ),
    "revenue": MetricDefinition(
        "revenue", MetricType.REVENUE, "currency", "Reconciled conversion value"
    ),
    "results": MetricDefinition(
        "results", MetricType.CONVERSION, "count", "Platform optimisation results"
    ),
}


# ─────────────────────────────────────────────
# DERIVED METRICS — Computed by the aggregator
# ─────────────────────────────────────────────

DERIVED_METRICS: Dict[str, RatioDefinition] = {
    "roas": RatioDefinition(
        "roas", "revenue", "spend", unit="ratio", description="Return on ad spend"
    ),
    "cpm": RatioDefinition(
        "cpm", "spend", "impressions", 1000.0, "currency", "Cost per 1000 impressions"
    ),
    "cpc": RatioDefinition("cpc", "spend", "clicks", unit="currency", description="Cost per click"),
    "ctr": RatioDefinition(
        "ctr", "clicks", "impressions", 100.0, "%", "Click-through rate"
    ),
    "cpa": RatioDefinition(
        "cpa", "spend", "conversions", unit="currency", description="Cost per acquisition"
    ),
    "cost_per_result": RatioDefinition(
        "cost_per_result", "spend", "results", unit="currency", description="Cost per result"
    ),
    "aov": RatioDefinition(
        "aov", "revenue", "conversions", unit="currency", description="Average order value"
    ),
    "conversion_rate": RatioDefinition(
        "conversion_rate", "conversions", "clicks", 100.0, "%", "Conversions / Clicks"
    ),
}


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

ALL_METRICS: Dict[str, MetricDefinition] = {**BASE_METRICS, **DERIVED_METRICS}


def get_metric(name: str) -> MetricDefinition | None:
    """Look up a metric by name."""
    return ALL_METRICS.get(name)
