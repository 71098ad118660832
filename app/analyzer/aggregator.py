"""RECON — Aggregator.

Derives ratio metrics (ROAS, CPM, CPC, CTR, CPA, cost per result, AOV,
conversion rate) from reconciled base metrics. Any ratio with a zero
denominator is 0; how a screen renders "no data" is up to the screen.
"""

from typing import Dict, List

from app.config import settings
from app.core.metric_registry import BASE_METRICS, DERIVED_METRICS, get_metric
from app.models.attribution_models import ReconciledEntity, ReconciliationResult
from app.models.report_models import AggregateTotals
from app.core.logging import get_logger

logger = get_logger("analyzer.aggregator")


def derive_metrics(base: Dict[str, float], ndigits: int | None = None) -> Dict[str, float]:
    """Compute every registered ratio from a dict of base metrics."""
    ndigits = settings.report_rounding if ndigits is None else ndigits
    return {
        name: round(ratio.compute(base), ndigits)
        for name, ratio in DERIVED_METRICS.items()
    }


def _base_from(source) -> Dict[str, float]:
    return {name: float(getattr(source, name, 0.0) or 0.0) for name in BASE_METRICS}


def compute_totals(result: ReconciliationResult) -> AggregateTotals:
    """Portfolio totals for one reconciler run."""
    base = _base_from(result)
    derived = derive_metrics(base)
    totals = AggregateTotals(
        spend=round(base["spend"], 2),
        conversions=round(base["conversions"], 4),
        revenue=round(base["revenue"], 2),
        impressions=base["impressions"],
        clicks=base["clicks"],
        results=base["results"],
        **derived,
    )
    logger.debug(
        f"Totals: spend={totals.spend} revenue={totals.revenue} roas={totals.roas}"
    )
    return totals


def entity_metrics(entity: ReconciledEntity) -> Dict[str, float]:
    """Base and derived metrics for a single reconciled row."""
    base = _base_from(entity)
    return {**base, **derive_metrics(base)}


def rank_entities(
    entities: List[ReconciledEntity], metric: str = "roas"
) -> List[ReconciledEntity]:
    """Entities sorted by a base or derived metric, highest first."""
    if get_metric(metric) is None:
        raise KeyError(metric)
    return sorted(
        entities,
        key=lambda e: entity_metrics(e).get(metric, 0.0),
        reverse=True,
    )
