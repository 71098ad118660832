"""RECON — Ingest API Routes.

External workers push platform insight rows and attribution payloads here.
Nothing pushed becomes visible until the next sync (rows) or report (feeds).
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.connectors.transformer import feeds_from_pixel_events, transform_feed_records
from app.models.attribution_models import FeedKind
from app.services import Services, get_services
from app.core.logging import get_logger

logger = get_logger("api.ingest")

router = APIRouter(prefix="/ingest", tags=["Ingest"])


# ── Request Models ──


class RowsPayload(BaseModel):
    """Raw insight rows (Meta `/insights` shape or flat fields)."""

    rows: List[Dict[str, Any]]


class FeedPayload(BaseModel):
    """Per-ad attribution records for one feed kind."""

    records: List[Dict[str, Any]]
    portfolio_conversions: Optional[float] = None
    """Upstream total across the whole account, including unselected ads."""
    portfolio_revenue: Optional[float] = None


class PixelEventsPayload(BaseModel):
    """Raw pixel events attributed by `utm_content`."""

    events: List[Dict[str, Any]]
    event_values: Dict[str, float] = {}
    """Fallback value per event type when an event carries none."""


# ── Endpoints ──


@router.post("/{account_id}/rows")
async def ingest_rows(
    account_id: str, payload: RowsPayload, services: Services = Depends(get_services)
):
    """Stage the full row set for an account; the next sync applies it."""
    staged = services.sync_source.stage(account_id, payload.rows)
    return {
        "status": "success",
        "account_id": account_id,
        "staged": staged,
        "skipped": len(payload.rows) - staged,
    }


@router.post("/{account_id}/feeds/{kind}")
async def ingest_feed(
    account_id: str,
    kind: FeedKind,
    payload: FeedPayload,
    services: Services = Depends(get_services),
):
    records = transform_feed_records(payload.records)
    staged = services.feed(kind).stage(
        account_id,
        records,
        portfolio_conversions=payload.portfolio_conversions,
        portfolio_revenue=payload.portfolio_revenue,
    )
    return {"status": "success", "account_id": account_id, "kind": kind.value, "staged": staged}


@router.post("/{account_id}/pixel-events")
async def ingest_pixel_events(
    account_id: str,
    payload: PixelEventsPayload,
    services: Services = Depends(get_services),
):
    """Fold raw pixel events into the pixel and manual-event feeds."""
    pixel, manual = feeds_from_pixel_events(payload.events, payload.event_values)
    services.feed(FeedKind.PIXEL).stage_feed(account_id, pixel)
    services.feed(FeedKind.MANUAL).stage_feed(account_id, manual)
    logger.info(
        f"Staged pixel events: {len(pixel.records)} pixel ads, {len(manual.records)} manual ads",
        extra={"account_id": account_id},
    )
    return {
        "status": "success",
        "account_id": account_id,
        "pixel_entities": len(pixel.records),
        "manual_entities": len(manual.records),
    }
