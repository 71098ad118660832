"""RECON — Raw Collaborator Payload → Model Transformer.

Converts raw ad-platform insight rows and raw attribution payloads into
PerformanceRow / AttributionFeedRecord. A malformed numeric field becomes 0;
one bad record never rejects the batch.
"""

import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from app.models.attribution_models import AttributionFeed, AttributionFeedRecord, FeedKind
from app.models.performance_models import PerformanceRow, Platform
from app.core.logging import get_logger

logger = get_logger("connectors.transformer")

PURCHASE_ACTIONS = ("purchase", "offsite_conversion.fb_pixel_purchase", "omni_purchase")

BUDGET_FIELDS = (
    "campaign_daily_budget",
    "campaign_lifetime_budget",
    "adset_daily_budget",
    "adset_lifetime_budget",
)

STATUS_FIELDS = ("status", "adset_status", "campaign_status")

PAGEVIEW_EVENTS = ("pageview", "page_view")


def _safe_float(value: Any) -> float:
    """Safely convert a value to a non-negative float."""
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    if f != f or f < 0:  # NaN or negative
        return 0.0
    return f


def _optional_float(value: Any) -> Optional[float]:
    """Budget fields: absent/empty/zero stays None so ownership detection sees no budget."""
    if value in (None, ""):
        return None
    f = _safe_float(value)
    return f or None


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        return None


def _action_total(items: Any, action_types: Tuple[str, ...]) -> float:
    """Sum Meta `actions` / `action_values` entries of the given types."""
    total = 0.0
    for item in items or []:
        if not isinstance(item, dict):
            continue
        if item.get("action_type") in action_types:
            total += _safe_float(item.get("value", 0))
    return total


def _conversions(row: Dict[str, Any]) -> Tuple[float, float]:
    """Platform conversions and revenue, from flat fields or Meta action lists."""
    if "actions" in row or "action_values" in row:
        return (
            _action_total(row.get("actions"), PURCHASE_ACTIONS),
            _action_total(row.get("action_values"), PURCHASE_ACTIONS),
        )
    conversions = row.get("platform_conversions", row.get("purchases", row.get("conversions")))
    revenue = row.get("platform_revenue", row.get("revenue", row.get("conversion_value")))
    return _safe_float(conversions), _safe_float(revenue)


def transform_row(raw: Dict[str, Any], account_id: str = "") -> Optional[PerformanceRow]:
    """Transform one raw insight row; None if it has no entity id or date."""
    entity_id = str(raw.get("ad_id") or raw.get("entity_id") or "")
    row_date = _parse_date(raw.get("date_start") or raw.get("date"))
    if not entity_id or row_date is None:
        return None

    conversions, revenue = _conversions(raw)
    platform = str(raw.get("platform") or Platform.META.value).lower()

    try:
        return PerformanceRow(
            entity_id=entity_id,
            entity_name=str(raw.get("ad_name") or raw.get("entity_name") or ""),
            adset_id=str(raw.get("adset_id") or ""),
            adset_name=str(raw.get("adset_name") or ""),
            campaign_id=str(raw.get("campaign_id") or ""),
            campaign_name=str(raw.get("campaign_name") or ""),
            account_id=str(raw.get("ad_account_id") or raw.get("account_id") or account_id),
            platform=Platform.GOOGLE if platform == Platform.GOOGLE.value else Platform.META,
            date=row_date,
            impressions=_safe_float(raw.get("impressions")),
            clicks=_safe_float(raw.get("clicks")),
            spend=_safe_float(raw.get("spend")),
            platform_conversions=conversions,
            platform_revenue=revenue,
            results=_safe_float(raw.get("results", conversions)),
            result_value=_safe_float(raw.get("result_value", revenue)),
            **{f: (str(raw[f]) if raw.get(f) else None) for f in STATUS_FIELDS},
            **{f: _optional_float(raw.get(f)) for f in BUDGET_FIELDS},
        )
    except ValidationError as e:
        logger.warning(f"Skipping unparseable row for ad {entity_id}: {e}", extra={"entity_id": entity_id})
        return None


def transform_rows(
    raw_rows: Iterable[Dict[str, Any]], account_id: str = ""
) -> List[PerformanceRow]:
    """Transform a batch, coercing bad numbers and skipping unidentifiable rows."""
    rows: List[PerformanceRow] = []
    skipped = 0
    for raw in raw_rows:
        row = transform_row(raw, account_id) if isinstance(raw, dict) else None
        if row is None:
            skipped += 1
            continue
        rows.append(row)
    logger.info(
        f"Transformed {len(rows)} rows ({skipped} skipped)",
        extra={"account_id": account_id},
    )
    return rows


def transform_feed_records(raw_records: Iterable[Dict[str, Any]]) -> List[AttributionFeedRecord]:
    """Feed entries keyed by entity_id / ad_id / utm_content."""
    records: List[AttributionFeedRecord] = []
    for raw in raw_records:
        if not isinstance(raw, dict):
            continue
        entity_id = str(raw.get("entity_id") or raw.get("ad_id") or raw.get("utm_content") or "")
        if not entity_id:
            continue
        records.append(
            AttributionFeedRecord(
                entity_id=entity_id,
                conversions=_safe_float(raw.get("conversions", raw.get("count"))),
                revenue=_safe_float(raw.get("revenue", raw.get("value"))),
            )
        )
    return records


def normalize_event_type(event_type: str) -> str:
    """CompleteRegistration → complete_registration."""
    snake = re.sub(r"([A-Z])", r"_\1", event_type).lower().lstrip("_")
    return re.sub(r"__+", "_", snake)


def feeds_from_pixel_events(
    events: Iterable[Dict[str, Any]],
    event_values: Optional[Dict[str, float]] = None,
) -> Tuple[AttributionFeed, AttributionFeed]:
    """Fold raw pixel events into a pixel feed and a manual-events feed.

    Events are attributed to the ad named in `utm_content`. An event without
    its own value takes the workspace's configured value for its type.
    Page views are not conversions.
    """
    event_values = event_values or {}
    pixel: Dict[str, List[float]] = {}
    manual: Dict[str, List[float]] = {}

    for event in events:
        ad_id = event.get("utm_content")
        if not ad_id:
            continue
        raw_type = str(event.get("event_type") or "")
        normalized = normalize_event_type(raw_type)
        if any(p in normalized for p in PAGEVIEW_EVENTS):
            continue
        value = event.get("event_value")
        if value is None:
            value = event_values.get(normalized) or event_values.get(raw_type) or 0
        bucket = manual if event.get("source") == "manual" else pixel
        counts = bucket.setdefault(str(ad_id), [0.0, 0.0])
        counts[0] += 1
        counts[1] += _safe_float(value)

    def _feed(kind: FeedKind, data: Dict[str, List[float]]) -> AttributionFeed:
        return AttributionFeed.from_records(
            kind,
            (
                AttributionFeedRecord(entity_id=k, conversions=v[0], revenue=v[1])
                for k, v in data.items()
            ),
        )

    return _feed(FeedKind.PIXEL, pixel), _feed(FeedKind.MANUAL, manual)
