"""RECON — Budget Engine.

Sums selected, non-paused daily budgets. A campaign's ceiling lives either at
campaign level (CBO) or on its ad sets (ABO), never both, so each campaign
contributes through exactly one of the two paths.
"""

from collections import defaultdict
from typing import Dict, Iterable, Set

from app.models.performance_models import BudgetOwnership, PerformanceRow, Platform
from app.models.report_models import BudgetTotals, OwnershipBudgets
from app.core.logging import get_logger

logger = get_logger("analyzer.budget")


class _CampaignBudget:
    def __init__(self, row: PerformanceRow):
        self.key = row.campaign_key
        self.platform = row.platform
        self.paused = row.campaign_paused
        self.daily_budget = row.campaign_daily_budget or 0.0
        self.has_abo = False
        self.adsets: Dict[str, "_AdsetBudget"] = {}


class _AdsetBudget:
    def __init__(self, row: PerformanceRow):
        self.key = row.adset_key
        self.paused = row.adset_paused
        self.daily_budget = row.adset_daily_budget or 0.0


def campaign_ownership(rows: Iterable[PerformanceRow]) -> Dict[str, BudgetOwnership]:
    """Resolve each campaign to a single ownership type.

    Any ABO ad set makes the campaign's budget flow through its ad sets, so a
    stray campaign-level field is ignored instead of being counted twice.
    """
    campaigns = _collect(rows)
    return {key: _ownership(c) for key, c in campaigns.items()}


def _collect(rows: Iterable[PerformanceRow]) -> Dict[str, _CampaignBudget]:
    campaigns: Dict[str, _CampaignBudget] = {}
    for row in rows:
        campaign = campaigns.get(row.campaign_key)
        if campaign is None:
            campaign = campaigns[row.campaign_key] = _CampaignBudget(row)
        elif not campaign.daily_budget and row.campaign_daily_budget:
            campaign.daily_budget = row.campaign_daily_budget
        if row.is_abo and row.adset_key not in campaign.adsets:
            campaign.has_abo = True
            campaign.adsets[row.adset_key] = _AdsetBudget(row)
    return campaigns


def _ownership(campaign: _CampaignBudget) -> BudgetOwnership:
    if campaign.platform == Platform.GOOGLE:
        return BudgetOwnership.CBO
    if campaign.has_abo:
        return BudgetOwnership.ABO
    if campaign.daily_budget:
        return BudgetOwnership.CBO
    return BudgetOwnership.NONE


def compute_budget_totals(
    rows: Iterable[PerformanceRow], selected_keys: Set[str]
) -> BudgetTotals:
    """Daily-budget totals for the selection.

    CBO budget counts iff the campaign key is selected and the campaign is not
    paused. ABO budget counts iff the ad-set key is selected and neither the
    ad set nor its campaign is paused.
    """
    cbo = 0.0
    abo = 0.0
    by_platform: Dict[str, float] = defaultdict(float)

    for key, campaign in _collect(rows).items():
        ownership = _ownership(campaign)
        if ownership == BudgetOwnership.CBO:
            if key in selected_keys and not campaign.paused:
                cbo += campaign.daily_budget
                by_platform[campaign.platform.value] += campaign.daily_budget
        elif ownership == BudgetOwnership.ABO:
            if campaign.paused:
                continue
            for adset in campaign.adsets.values():
                if adset.key in selected_keys and not adset.paused:
                    abo += adset.daily_budget
                    by_platform[campaign.platform.value] += adset.daily_budget

    totals = BudgetTotals(
        total=round(cbo + abo, 2),
        by_ownership_type=OwnershipBudgets(cbo=round(cbo, 2), abo=round(abo, 2)),
        by_platform={k: round(v, 2) for k, v in by_platform.items()},
    )
    logger.debug(f"Budget totals: cbo={totals.by_ownership_type.cbo} abo={totals.by_ownership_type.abo}")
    return totals
