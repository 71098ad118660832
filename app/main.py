"""RECON — FastAPI Application Entry Point.

Attribution Reconciliation & Aggregation Engine.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.errors import InvalidDateRangeError, ReconError, SourceUnavailableError
from app.scheduler.jobs import start_scheduler, stop_scheduler
from app.services import build_services
from app.api.report_routes import router as report_router
from app.api.selection_routes import router as selection_router
from app.api.sync_routes import router as sync_router
from app.api.ingest_routes import router as ingest_router
from app.core.logging import get_logger

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 RECON starting up...")
    app.state.services = build_services()
    start_scheduler(app.state.services)
    yield
    stop_scheduler()
    logger.info("RECON shut down")


app = FastAPI(
    title="RECON",
    description="Attribution Reconciliation & Aggregation Engine — merge platform-reported and independently tracked conversions into one deduplicated view.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(report_router)
app.include_router(selection_router)
app.include_router(sync_router)
app.include_router(ingest_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "recon",
        "version": "1.0.0",
        "revenue_source": settings.revenue_source,
    }


# Errors that escape a route's own handling
@app.exception_handler(ReconError)
async def recon_error_handler(request: Request, exc: ReconError):
    if isinstance(exc, InvalidDateRangeError):
        status_code = 400
    elif isinstance(exc, SourceUnavailableError):
        status_code = 502
    else:
        status_code = 500
    logger.error(
        f"{request.method} {request.url.path} failed: {exc}",
        extra={"status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
