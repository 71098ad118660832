"""RECON — Process-Wide Service Wiring.

The engine, its row store and its cache are built once at startup and shared by
every request. Route handlers reach them through the `get_services` dependency.
"""

from typing import Dict, Optional

from fastapi import HTTPException, Request

from app.analyzer.pipeline import ReportingEngine
from app.connectors.staged import StagedFeedSource, StagedSyncSource
from app.core.scope import Scope
from app.models.attribution_models import FeedKind
from app.core.logging import get_logger

logger = get_logger("services")


class Services:
    """The reporting engine plus the staged sources ingest routes push into."""

    def __init__(self, cooldown_seconds: Optional[float] = None):
        self.sync_source = StagedSyncSource()
        self.feed_sources: Dict[FeedKind, StagedFeedSource] = {
            kind: StagedFeedSource(kind) for kind in FeedKind
        }
        self.engine = ReportingEngine(
            sync_source=self.sync_source,
            feed_sources=list(self.feed_sources.values()),
            cooldown_seconds=cooldown_seconds,
        )

    def feed(self, kind: FeedKind) -> StagedFeedSource:
        return self.feed_sources[kind]


def build_services(cooldown_seconds: Optional[float] = None) -> Services:
    services = Services(cooldown_seconds=cooldown_seconds)
    logger.info(
        f"Reporting engine ready (revenue source: {services.engine.revenue_source.value}, "
        f"cooldown: {services.engine.coordinator.cooldown_seconds}s)"
    )
    return services


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the process-wide services."""
    return request.app.state.services


def resolve_scope(account_id: Optional[str], workspace: Optional[str]) -> Optional[Scope]:
    """Scope from query parameters; `workspace` is a comma-separated account list.

    Returns None when neither is given, meaning "keep the current scope".
    """
    if account_id and workspace:
        raise HTTPException(
            status_code=400, detail="Pass either account_id or workspace, not both"
        )
    if workspace:
        ids = [a.strip() for a in workspace.split(",") if a.strip()]
        if not ids:
            raise HTTPException(status_code=400, detail="Workspace has no accounts")
        return Scope.workspace(ids)
    if account_id:
        return Scope.account(account_id)
    return None
