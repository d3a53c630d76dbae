"""
Health Check Endpoints

Connectivity verdict for the UI banners and the host online/offline
transition hook.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pillowstore.context import StoreContext
from pillowstore.domain.health import HealthReport
from pillowstore.serving.api.dependencies import get_context

router = APIRouter()


class ConnectivityResponse(BaseModel):
    """Connectivity verdict"""
    status: str
    message: str
    checked_at: datetime
    latency_ms: Optional[float] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    connectivity: ConnectivityResponse
    pending_writes: int


class ConnectivityChange(BaseModel):
    """Host connectivity transition"""
    online: bool


def _connectivity(report: HealthReport) -> ConnectivityResponse:
    return ConnectivityResponse(
        status=report.status.value,
        message=report.message,
        checked_at=report.checked_at,
        latency_ms=report.latency_ms,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(context: StoreContext = Depends(get_context)) -> HealthResponse:
    """
    Health check endpoint.

    "healthy" when the remote is connected, "degraded" when the client is
    serving from the local cache.
    """
    report = await context.monitor.current()
    return HealthResponse(
        status="healthy" if report.is_connected else "degraded",
        version=context.settings.version,
        environment=context.settings.app_env,
        timestamp=datetime.now(timezone.utc),
        connectivity=_connectivity(report),
        pending_writes=len(context.coordinator.pending_keys()),
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 if the application is running."""
    return {"status": "alive"}


@router.post("/health/connectivity", response_model=ConnectivityResponse)
async def connectivity_changed(
    change: ConnectivityChange,
    context: StoreContext = Depends(get_context),
) -> Any:
    """Host went online or offline"""
    if change.online:
        context.monitor.mark_online()
        report = await context.monitor.current()
    else:
        context.monitor.mark_offline()
        report = context.monitor.last_report
    return _connectivity(report)
