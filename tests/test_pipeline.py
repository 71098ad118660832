"""
End-to-end reporting engine tests: sync → cache → selection → reconcile.
"""
import asyncio
from datetime import date, timedelta

from app.analyzer.pipeline import ReportingEngine
from app.connectors.staged import StagedFeedSource, StagedSyncSource
from app.core.dates import DateRange
from app.core.scope import Scope
from app.models.attribution_models import AttributionFeedRecord, FeedKind, RevenueSource
from app.models.performance_models import PerformanceRow

TODAY = date(2026, 3, 15)


def _run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


def _row(entity_id, campaign, adset, days_ago=0, account_id="act_1", **kw):
    return PerformanceRow(
        entity_id=entity_id,
        campaign_name=campaign,
        adset_name=adset,
        account_id=account_id,
        date=TODAY - timedelta(days=days_ago),
        **kw,
    )


def _engine():
    sync = StagedSyncSource()
    pixel = StagedFeedSource(FeedKind.PIXEL)
    engine = ReportingEngine(sync_source=sync, feed_sources=[pixel], cooldown_seconds=0)
    sync.stage_rows(
        "act_1",
        [
            _row("A", "X", "x1", spend=100, platform_conversions=10, platform_revenue=1000,
                 campaign_daily_budget=50),
            _row("B", "Y", "y1", spend=40, platform_conversions=5, platform_revenue=500,
                 adset_daily_budget=20),
            _row("C", "Y", "y2", days_ago=20, spend=60, platform_conversions=2,
                 platform_revenue=200, adset_daily_budget=10, adset_status="PAUSED"),
        ],
    )
    pixel.stage(
        "act_1",
        [
            AttributionFeedRecord(entity_id="A", conversions=8, revenue=900),
            AttributionFeedRecord(entity_id="B", conversions=9, revenue=1080),
        ],
    )
    return engine


SCOPE = Scope.account("act_1")


def test_report_after_sync():
    engine = _engine()
    _run(engine.sync(SCOPE, DateRange(preset="last_30d")))
    report = _run(
        engine.build_report(
            SCOPE, DateRange(preset="last_7d"), RevenueSource.PIXEL, today=TODAY
        )
    )

    assert report.cache_hit is False
    assert report.scope_key == "account:act_1"
    assert report.rows_considered == 2
    assert report.totals.spend == 140
    assert report.totals.conversions == 19
    assert report.totals.revenue == 1980
    assert report.selection.header_state == "all"
    assert report.budgets.by_ownership_type.cbo == 50
    assert report.budgets.by_ownership_type.abo == 20


def test_wider_cached_window_serves_narrower_request():
    engine = _engine()
    _run(engine.sync(SCOPE))
    _run(engine.build_report(SCOPE, DateRange(preset="last_30d"), today=TODAY))
    narrow = _run(engine.build_report(SCOPE, DateRange(preset="last_7d"), today=TODAY))

    assert narrow.cache_hit is True
    assert narrow.rows_considered == 2
    assert narrow.totals.spend == 140


def test_sync_invalidates_cached_report():
    engine = _engine()
    _run(engine.sync(SCOPE))
    _run(engine.build_report(SCOPE, DateRange(preset="last_30d"), today=TODAY))
    engine.coordinator.sync_source.stage_rows("act_1", [_row("A", "X", "x1", spend=7)])
    _run(engine.sync(SCOPE))

    report = _run(engine.build_report(SCOPE, DateRange(preset="last_30d"), today=TODAY))
    assert report.cache_hit is False
    assert report.totals.spend == 7


def test_deselected_campaign_drops_out():
    engine = _engine()
    _run(engine.sync(SCOPE))
    _run(engine.build_report(SCOPE, DateRange(preset="last_30d"), today=TODAY))
    engine.selection.toggle("X")

    report = _run(
        engine.build_report(SCOPE, DateRange(preset="last_30d"), RevenueSource.PLATFORM, today=TODAY)
    )
    assert report.totals.spend == 100
    assert report.budgets.by_ownership_type.cbo == 0


def test_exclude_paused():
    engine = _engine()
    _run(engine.sync(SCOPE))
    report = _run(
        engine.build_report(
            SCOPE, DateRange(preset="last_30d"), RevenueSource.PLATFORM,
            include_paused=False, today=TODAY,
        )
    )
    assert report.rows_considered == 2
    assert report.totals.spend == 140


def test_scope_change_resets_selection():
    engine = _engine()
    _run(engine.sync(SCOPE))
    _run(engine.build_report(SCOPE, today=TODAY))
    engine.selection.deselect_all()

    engine.set_scope(Scope.workspace(["act_1"]))
    report = _run(engine.build_report(today=TODAY))
    assert report.scope_key == "workspace:act_1"
    assert report.selection.header_state == "all"


# ────────────────────────────────────────────
# WINDOW CHANGES AND CROSS-ACCOUNT SYNC
# ────────────────────────────────────────────

LATER = date(2026, 3, 20)


def _dated(entity_id, campaign, day, spend=10.0, account_id="act_1"):
    return PerformanceRow(
        entity_id=entity_id,
        campaign_name=campaign,
        account_id=account_id,
        date=day,
        spend=spend,
    )


def _platform_engine(rows):
    sync = StagedSyncSource()
    sync.stage_rows("act_1", rows)
    return ReportingEngine(sync_source=sync, cooldown_seconds=0)


class TestWindowChanges:
    """Selection and cache behaviour as the date window moves."""

    def test_deselected_campaign_stays_out_when_window_widens(self):
        """C2 only has data outside last_7d; widening to last_30d must not re-add it."""
        engine = _platform_engine(
            [_dated("a1", "C1", date(2026, 3, 19)), _dated("a2", "C2", date(2026, 3, 1))]
        )
        _run(engine.sync(SCOPE))
        _run(engine.build_report(SCOPE, DateRange(preset="last_7d"),
                                 RevenueSource.PLATFORM, today=LATER))
        assert engine.selection.toggle("C2")

        narrow = _run(engine.build_report(SCOPE, DateRange(preset="last_7d"),
                                          RevenueSource.PLATFORM, today=LATER))
        wide = _run(engine.build_report(SCOPE, DateRange(preset="last_30d"),
                                        RevenueSource.PLATFORM, today=LATER))

        assert "C2" not in engine.selection.keys
        assert narrow.totals.spend == 10
        assert wide.totals.spend == 10

    def test_last_month_does_not_serve_last_7d(self):
        """Same 31-day span table entry, but February does not cover mid-March."""
        engine = _platform_engine(
            [_dated("a1", "C1", date(2026, 2, 10), spend=25),
             _dated("a2", "C1", date(2026, 3, 18))]
        )
        _run(engine.sync(SCOPE))
        february = _run(engine.build_report(SCOPE, DateRange(preset="last_month"),
                                            RevenueSource.PLATFORM, today=LATER))
        recent = _run(engine.build_report(SCOPE, DateRange(preset="last_7d"),
                                          RevenueSource.PLATFORM, today=LATER))

        assert february.totals.spend == 25
        assert recent.cache_hit is False
        assert recent.totals.spend == 10


class TestSyncOtherAccount:
    def test_sync_of_other_account_keeps_session(self):
        engine = _engine()
        engine.coordinator.sync_source.stage_rows(
            "act_2", [_row("Z", "Q", "q1", account_id="act_2", spend=5)]
        )
        _run(engine.sync(SCOPE))
        _run(engine.build_report(SCOPE, DateRange(preset="last_30d"), today=TODAY))
        engine.selection.toggle("X")
        keys_before = set(engine.selection.keys)

        results = _run(engine.sync(Scope.account("act_2")))

        assert results[0].status.value == "success"
        assert engine.scope == SCOPE
        assert engine.selection.keys == keys_before
        assert "X" not in engine.selection.keys
        assert engine.row_store.all_rows(Scope.account("act_2"))[0].spend == 5
