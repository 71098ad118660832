"""RECON — Sync API Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.config import settings
from app.core.dates import parse_date_range
from app.core.errors import InvalidDateRangeError
from app.core.scope import Scope
from app.services import Services, get_services
from app.sync.coordinator import SyncResult
from app.core.logging import get_logger

logger = get_logger("api.sync")

router = APIRouter(prefix="/sync", tags=["Sync"])


class SyncRequest(BaseModel):
    """Request body for POST /sync endpoints."""

    date_range: Optional[str] = None
    """Preset to sync; defaults to the configured preset."""
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class WorkspaceSyncRequest(SyncRequest):
    account_ids: List[str]


class SyncResponse(BaseModel):
    status: str = "success"
    results: List[SyncResult]


def _date_range(request: Optional[SyncRequest]):
    request = request or SyncRequest()
    try:
        return parse_date_range(
            request.date_range,
            request.start_date,
            request.end_date,
            default_preset=settings.default_date_preset,
        )
    except InvalidDateRangeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date range: {str(e)}")


@router.post("/workspace", response_model=SyncResponse)
async def sync_workspace(
    request: WorkspaceSyncRequest, services: Services = Depends(get_services)
):
    """Sync every account in a workspace, one after another."""
    if not request.account_ids:
        raise HTTPException(status_code=400, detail="Workspace has no accounts")
    results = await services.engine.sync(
        scope=Scope.workspace(request.account_ids), date_range=_date_range(request)
    )
    return SyncResponse(results=results)


@router.post("/{account_id}", response_model=SyncResponse)
async def sync_account(
    account_id: str,
    request: Optional[SyncRequest] = None,
    services: Services = Depends(get_services),
):
    """Sync one account.

    Requests arriving while a sync is in flight or cooling down come back
    with status `skipped` rather than an error.
    """
    results = await services.engine.sync(
        scope=Scope.account(account_id), date_range=_date_range(request)
    )
    return SyncResponse(results=results)


@router.get("/{account_id}/state")
async def sync_state(account_id: str, services: Services = Depends(get_services)):
    coordinator = services.engine.coordinator
    state = coordinator.state(account_id)
    return {
        "account_id": account_id,
        "state": state.value,
        "cooldown_remaining": round(
            coordinator.cooldown_remaining(account_id), 1
        ),
    }
