"""RECON — Performance Row Models (Immutable).

One row per ad per account-local calendar day, as delivered by the sync
collaborator. Rows are never edited in place; the next sync replaces the whole
set for the account.
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

PAUSED = "PAUSED"
COMPOSITE_SEPARATOR = "::"


def make_adset_key(campaign: str, adset: str) -> str:
    """Composite selection key for an ABO ad set."""
    return f"{campaign}{COMPOSITE_SEPARATOR}{adset}"


def split_adset_key(key: str) -> tuple[str, str]:
    campaign, _, adset = key.partition(COMPOSITE_SEPARATOR)
    return campaign, adset


def is_adset_key(key: str) -> bool:
    return COMPOSITE_SEPARATOR in key


class Platform(str, Enum):
    """Ad platform a row was synced from."""

    META = "meta"
    GOOGLE = "google"


class BudgetOwnership(str, Enum):
    """Where the daily-budget ceiling for a row's ad set lives."""

    CBO = "cbo"  # Campaign Budget Optimization
    ABO = "abo"  # Ad Set Budget Optimization
    NONE = "none"  # No budget field anywhere (e.g. lifetime-less drafts)


class PerformanceRow(BaseModel):
    """Daily platform-reported performance for a single ad.

    `platform_conversions` / `platform_revenue` are the platform's original
    observation and stay untouched by reconciliation.
    """

    model_config = {"frozen": True}

    entity_id: str = Field(description="Ad ID")
    entity_name: str = ""
    adset_id: str = ""
    adset_name: str = ""
    campaign_id: str = ""
    campaign_name: str = ""
    account_id: str = ""
    platform: Platform = Platform.META
    date: datetime.date

    impressions: float = 0.0
    clicks: float = 0.0
    spend: float = Field(default=0.0, ge=0)
    platform_conversions: float = 0.0
    platform_revenue: float = 0.0
    results: float = 0.0
    result_value: float = 0.0

    status: Optional[str] = None
    adset_status: Optional[str] = None
    campaign_status: Optional[str] = None

    campaign_daily_budget: Optional[float] = None
    campaign_lifetime_budget: Optional[float] = None
    adset_daily_budget: Optional[float] = None
    adset_lifetime_budget: Optional[float] = None

    # ── Budget ownership ──

    @property
    def has_adset_budget(self) -> bool:
        return bool(self.adset_daily_budget or self.adset_lifetime_budget)

    @property
    def has_campaign_budget(self) -> bool:
        return bool(self.campaign_daily_budget or self.campaign_lifetime_budget)

    @property
    def ownership(self) -> BudgetOwnership:
        """ABO iff the ad set carries its own budget, else CBO iff the campaign does.

        Google campaigns always own their budget at campaign level.
        """
        if self.platform == Platform.GOOGLE:
            return BudgetOwnership.CBO
        if self.has_adset_budget:
            return BudgetOwnership.ABO
        if self.has_campaign_budget:
            return BudgetOwnership.CBO
        return BudgetOwnership.NONE

    @property
    def is_abo(self) -> bool:
        return self.ownership == BudgetOwnership.ABO

    # ── Selection keys ──

    @property
    def campaign_key(self) -> str:
        return self.campaign_name or self.campaign_id

    @property
    def adset_key(self) -> str:
        return make_adset_key(self.campaign_key, self.adset_name or self.adset_id)

    # ── Status ──

    @property
    def campaign_paused(self) -> bool:
        return (self.campaign_status or "").upper() == PAUSED

    @property
    def adset_paused(self) -> bool:
        return (self.adset_status or "").upper() == PAUSED

    @property
    def is_paused(self) -> bool:
        """Paused at ad, ad set or campaign level."""
        return (
            (self.status or "").upper() == PAUSED
            or self.adset_paused
            or self.campaign_paused
        )
