"""RECON — Report API Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.analyzer.aggregator import entity_metrics, rank_entities
from app.config import settings
from app.core.dates import parse_date_range
from app.core.errors import InvalidDateRangeError
from app.models.attribution_models import RevenueSource
from app.models.report_models import Report
from app.services import Services, get_services, resolve_scope
from app.core.logging import get_logger

logger = get_logger("api.report")

router = APIRouter(tags=["Report"])


async def _build(
    services: Services,
    account_id: Optional[str],
    workspace: Optional[str],
    date_preset: Optional[str],
    since: Optional[str],
    until: Optional[str],
    revenue_source: Optional[RevenueSource],
    include_paused: bool,
) -> Report:
    try:
        date_range = parse_date_range(
            date_preset, since, until, default_preset=settings.default_date_preset
        )
        return await services.engine.build_report(
            scope=resolve_scope(account_id, workspace),
            date_range=date_range,
            revenue_source=revenue_source,
            include_paused=include_paused,
        )
    except InvalidDateRangeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date range: {str(e)}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/report", response_model=Report)
async def get_report(
    account_id: Optional[str] = None,
    workspace: Optional[str] = Query(None, description="Comma-separated account ids"),
    date_preset: Optional[str] = None,
    since: Optional[str] = Query(None, description="YYYY-MM-DD"),
    until: Optional[str] = Query(None, description="YYYY-MM-DD"),
    revenue_source: Optional[RevenueSource] = None,
    include_paused: bool = True,
    services: Services = Depends(get_services),
):
    """Reconciled totals, merge buckets, budgets and selection for the current view."""
    return await _build(
        services, account_id, workspace, date_preset, since, until, revenue_source, include_paused
    )


@router.get("/budgets")
async def get_budgets(
    account_id: Optional[str] = None,
    workspace: Optional[str] = None,
    date_preset: Optional[str] = None,
    include_paused: bool = True,
    services: Services = Depends(get_services),
):
    """Daily budget totals (CBO vs ABO) for the selected campaigns."""
    report = await _build(
        services, account_id, workspace, date_preset, None, None, None, include_paused
    )
    return {"status": "success", "scope": report.scope_key, "budgets": report.budgets}


@router.get("/entities")
async def get_entities(
    account_id: Optional[str] = None,
    workspace: Optional[str] = None,
    date_preset: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    revenue_source: Optional[RevenueSource] = None,
    sort_by: str = "roas",
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
):
    """Per-ad reconciled rows, ranked by a derived metric."""
    report = await _build(
        services, account_id, workspace, date_preset, since, until, revenue_source, True
    )
    try:
        ranked = rank_entities(report.entities, metric=sort_by)
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown metric: {sort_by}")
    return {
        "status": "success",
        "scope": report.scope_key,
        "count": len(ranked),
        "entities": [
            {**e.model_dump(exclude={"buckets"}), "metrics": entity_metrics(e)}
            for e in ranked[:limit]
        ],
    }
