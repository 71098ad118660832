"""
Daily budget total tests.

A campaign contributes through exactly one path: its own budget (CBO) or its
ad sets' budgets (ABO).
"""
from datetime import date

from app.analyzer.budget_engine import campaign_ownership, compute_budget_totals
from app.models.performance_models import BudgetOwnership, PerformanceRow, Platform


def _row(entity_id, campaign, adset="", adset_budget=None, campaign_budget=None, **kw):
    return PerformanceRow(
        entity_id=entity_id,
        campaign_name=campaign,
        adset_name=adset,
        account_id="act_1",
        date=kw.pop("day", date(2026, 3, 1)),
        adset_daily_budget=adset_budget,
        campaign_daily_budget=campaign_budget,
        **kw,
    )


ALL_KEYS = {"X", "Y", "Y::y1", "Y::y2"}


def _rows():
    return [
        _row("x-ad", "X", "x-set", campaign_budget=100),
        _row("x-ad", "X", "x-set", campaign_budget=100, day=date(2026, 3, 2)),
        _row("y1-ad", "Y", "y1", adset_budget=30),
        _row("y2-ad", "Y", "y2", adset_budget=20),
    ]


class TestBudgetTotals:
    def test_cbo_and_abo_counted_once(self):
        totals = compute_budget_totals(_rows(), ALL_KEYS)
        assert totals.by_ownership_type.cbo == 100
        assert totals.by_ownership_type.abo == 50
        assert totals.total == 150

    def test_unselected_adset_excluded(self):
        totals = compute_budget_totals(_rows(), {"X", "Y::y2"})
        assert totals.by_ownership_type.abo == 20
        assert totals.total == 120

    def test_unselected_campaign_excluded(self):
        totals = compute_budget_totals(_rows(), {"Y", "Y::y1", "Y::y2"})
        assert totals.by_ownership_type.cbo == 0
        assert totals.total == 50

    def test_paused_campaign_excludes_its_adsets(self):
        rows = [
            _row("y1-ad", "Y", "y1", adset_budget=30, campaign_status="PAUSED"),
            _row("y2-ad", "Y", "y2", adset_budget=20, campaign_status="PAUSED"),
        ]
        assert compute_budget_totals(rows, ALL_KEYS).total == 0

    def test_paused_adset_excluded(self):
        rows = [
            _row("y1-ad", "Y", "y1", adset_budget=30, adset_status="PAUSED"),
            _row("y2-ad", "Y", "y2", adset_budget=20),
        ]
        assert compute_budget_totals(rows, ALL_KEYS).total == 20

    def test_paused_cbo_campaign_excluded(self):
        rows = [_row("x-ad", "X", "x-set", campaign_budget=100, campaign_status="paused")]
        assert compute_budget_totals(rows, {"X"}).total == 0

    def test_abo_wins_over_stray_campaign_budget(self):
        """Campaign-level field on an ABO campaign is never added on top."""
        rows = [_row("y1-ad", "Y", "y1", adset_budget=30, campaign_budget=500)]
        totals = compute_budget_totals(rows, {"Y", "Y::y1"})
        assert totals.by_ownership_type.cbo == 0
        assert totals.by_ownership_type.abo == 30

    def test_google_is_always_cbo(self):
        rows = [
            _row("g-ad", "G", "g-set", adset_budget=40, campaign_budget=75, platform=Platform.GOOGLE)
        ]
        assert campaign_ownership(rows) == {"G": BudgetOwnership.CBO}
        totals = compute_budget_totals(rows, {"G"})
        assert totals.by_ownership_type.cbo == 75
        assert totals.by_platform == {"google": 75}

    def test_empty_selection(self):
        assert compute_budget_totals(_rows(), set()).total == 0
