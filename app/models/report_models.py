"""RECON — Report Output Models (Versioned)."""

from typing import Dict, List, Optional

from pydantic import BaseModel

from app.models.attribution_models import MergeBuckets, ReconciledEntity, RevenueSource


class AggregateTotals(BaseModel):
    """Portfolio totals with derived ratio metrics (0 on any zero denominator)."""

    spend: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    results: float = 0.0
    roas: float = 0.0
    cpm: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0
    cpa: float = 0.0
    cost_per_result: float = 0.0
    aov: float = 0.0
    conversion_rate: float = 0.0


class OwnershipBudgets(BaseModel):
    """Daily budget split by where the ceiling lives."""

    cbo: float = 0.0
    abo: float = 0.0


class BudgetTotals(BaseModel):
    """Selected, non-paused daily budgets with CBO/ABO never double counted."""

    total: float = 0.0
    by_ownership_type: OwnershipBudgets = OwnershipBudgets()
    by_platform: Dict[str, float] = {}


class SelectionSummary(BaseModel):
    """Selection state as the table header / campaign checkboxes consume it."""

    keys: List[str] = []
    header_state: str = "none"  # "all" | "some" | "none"
    campaign_states: Dict[str, str] = {}
    auto_select_enabled: bool = True


class Report(BaseModel):
    """RECON Report v1 — one screen's worth of reconciled numbers."""

    schema_version: str = "1.0.0"
    generated_at: str = ""
    scope_key: str = ""
    date_preset: str = ""
    date_range_start: str = ""
    date_range_end: str = ""
    cache_hit: bool = False
    revenue_source: RevenueSource = RevenueSource.PLATFORM
    totals: AggregateTotals = AggregateTotals()
    buckets: MergeBuckets = MergeBuckets()
    budgets: BudgetTotals = BudgetTotals()
    entities: List[ReconciledEntity] = []
    selection: Optional[SelectionSummary] = None
    rows_considered: int = 0
    rows_selected: int = 0
