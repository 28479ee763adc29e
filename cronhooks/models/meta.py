from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str


class RootResponse(BaseModel):
    status: str
    service: str
    version: str
    endpoints: List[str]


class SchedulerStatusResponse(BaseModel):
    running: bool
    enabled: bool
    tick_interval_seconds: float
    tolerance_seconds: float
    hooks: int
    stats: Dict[str, Any]
    last_summary: Optional[Dict[str, Any]] = None
