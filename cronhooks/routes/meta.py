from __future__ import annotations

from fastapi import APIRouter, Request

from ..config import Settings
from ..models import HealthResponse, RootResponse, SchedulerStatusResponse
from ..services.scheduler import HookScheduler

router = APIRouter(tags=["meta"])


def _settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/health", response_model=HealthResponse)
# Return service health status for monitoring and load balancers
def health(request: Request) -> HealthResponse:
    settings = _settings(request)
    return HealthResponse(ok=True, service="cronhooks", version=settings.app_version)


@router.get("/meta", response_model=RootResponse)
# Return service metadata including available API endpoints
def meta(request: Request) -> RootResponse:
    settings = _settings(request)
    endpoints = sorted(request.app.openapi().get("paths", {}))
    return RootResponse(
        status="ok",
        service="cronhooks",
        version=settings.app_version,
        endpoints=endpoints,
    )


@router.get("/meta/scheduler", response_model=SchedulerStatusResponse)
def scheduler_status(request: Request) -> SchedulerStatusResponse:
    scheduler: HookScheduler = request.app.state.scheduler
    status = scheduler.status()
    last = scheduler.stats.last_summary
    return SchedulerStatusResponse(
        running=status["running"],
        enabled=_settings(request).scheduler_enabled,
        tick_interval_seconds=status["tick_interval_seconds"],
        tolerance_seconds=status["tolerance_seconds"],
        hooks=request.app.state.hook_service.store.count(),
        stats=status["stats"],
        last_summary=last.as_log_extra() if last else None,
    )
