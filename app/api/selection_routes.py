"""RECON — Campaign Selection API Routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.models.report_models import SelectionSummary
from app.services import Services, get_services
from app.core.logging import get_logger

logger = get_logger("api.selection")

router = APIRouter(prefix="/selection", tags=["Selection"])


class ToggleRequest(BaseModel):
    """Request body for POST /selection/toggle."""

    key: str
    """A campaign key, or `campaign::adset` for an ABO ad set."""

    model_config = {
        "json_schema_extra": {
            "examples": [{"key": "Spring Sale"}, {"key": "Spring Sale::Lookalikes"}]
        }
    }


@router.get("", response_model=SelectionSummary)
async def get_selection(services: Services = Depends(get_services)):
    """Current selection and its tri-state checkbox view."""
    return services.engine.selection.summary()


@router.post("/toggle", response_model=SelectionSummary)
async def toggle(request: ToggleRequest, services: Services = Depends(get_services)):
    """Toggle one campaign (cascading to its ABO ad sets) or one ABO ad set."""
    if not services.engine.selection.toggle(request.key):
        raise HTTPException(status_code=404, detail=f"Unknown selection key: {request.key}")
    return services.engine.selection.summary()


@router.post("/select-all", response_model=SelectionSummary)
async def select_all(services: Services = Depends(get_services)):
    services.engine.selection.select_all()
    return services.engine.selection.summary()


@router.post("/deselect-all", response_model=SelectionSummary)
async def deselect_all(services: Services = Depends(get_services)):
    """Clear the selection. Auto-select stays off until the user selects again."""
    services.engine.selection.deselect_all()
    return services.engine.selection.summary()


@router.post("/toggle-all", response_model=SelectionSummary)
async def toggle_all(services: Services = Depends(get_services)):
    """Header checkbox."""
    services.engine.selection.toggle_all()
    return services.engine.selection.summary()
