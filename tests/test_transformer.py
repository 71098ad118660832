"""
Raw payload transformer tests.

One malformed field must never reject a batch; it becomes 0.
"""
from datetime import date

from app.connectors.transformer import (
    feeds_from_pixel_events,
    normalize_event_type,
    transform_feed_records,
    transform_row,
    transform_rows,
)
from app.models.performance_models import BudgetOwnership, Platform


META_ROW = {
    "ad_id": "120001",
    "ad_name": "Carousel A",
    "adset_id": "55",
    "adset_name": "Lookalike 1%",
    "campaign_id": "9",
    "campaign_name": "Spring Sale",
    "date_start": "2026-03-04",
    "impressions": "12000",
    "clicks": "240",
    "spend": "310.55",
    "actions": [
        {"action_type": "link_click", "value": "240"},
        {"action_type": "purchase", "value": "6"},
    ],
    "action_values": [{"action_type": "purchase", "value": "540.00"}],
    "adset_daily_budget": "5000",
}


def test_meta_row():
    row = transform_row(META_ROW, "act_1")
    assert row.entity_id == "120001"
    assert row.account_id == "act_1"
    assert row.date == date(2026, 3, 4)
    assert row.spend == 310.55
    assert row.platform_conversions == 6
    assert row.platform_revenue == 540
    assert row.platform == Platform.META
    assert row.ownership == BudgetOwnership.ABO
    assert row.campaign_daily_budget is None


def test_malformed_numbers_become_zero():
    row = transform_row(
        {"ad_id": "1", "date": "2026-03-01", "spend": "abc", "clicks": None, "impressions": "-4"}
    )
    assert row.spend == 0
    assert row.clicks == 0
    assert row.impressions == 0


def test_nan_becomes_zero():
    row = transform_row({"ad_id": "1", "date": "2026-03-01", "spend": "nan"})
    assert row.spend == 0


def test_flat_conversion_fields():
    row = transform_row(
        {"entity_id": "g1", "date": "2026-03-01", "conversions": "3", "conversion_value": "90",
         "platform": "google", "campaign_daily_budget": "25"}
    )
    assert row.platform == Platform.GOOGLE
    assert row.platform_conversions == 3
    assert row.platform_revenue == 90
    assert row.ownership == BudgetOwnership.CBO


def test_batch_skips_unidentifiable_rows():
    rows = transform_rows(
        [META_ROW, {"spend": "10"}, {"ad_id": "2", "date": "not-a-date"}, "garbage"], "act_1"
    )
    assert [r.entity_id for r in rows] == ["120001"]


def test_feed_records_key_on_utm_content():
    records = transform_feed_records(
        [
            {"utm_content": "120001", "conversions": 2, "revenue": "180"},
            {"ad_id": "120002", "count": "1", "value": "oops"},
            {"conversions": 4},
        ]
    )
    assert [(r.entity_id, r.conversions, r.revenue) for r in records] == [
        ("120001", 2, 180),
        ("120002", 1, 0),
    ]


def test_normalize_event_type():
    assert normalize_event_type("CompleteRegistration") == "complete_registration"
    assert normalize_event_type("Purchase") == "purchase"
    assert normalize_event_type("add_to_cart") == "add_to_cart"


def test_pixel_events_split_into_pixel_and_manual():
    events = [
        {"utm_content": "A", "event_type": "Purchase", "event_value": 100},
        {"utm_content": "A", "event_type": "Purchase"},
        {"utm_content": "A", "event_type": "PageView"},
        {"utm_content": "A", "event_type": "Purchase", "event_value": 40, "source": "manual"},
        {"event_type": "Purchase", "event_value": 999},
    ]
    pixel, manual = feeds_from_pixel_events(events, {"purchase": 60})

    assert pixel.get("A").conversions == 2
    assert pixel.get("A").revenue == 160
    assert manual.get("A").conversions == 1
    assert manual.get("A").revenue == 40
    assert len(pixel.records) == 1
