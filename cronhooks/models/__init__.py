from .hooks import HookCreateRequest, HookDeleteResponse, HookListResponse, HookUpdateRequest
from .meta import HealthResponse, RootResponse, SchedulerStatusResponse

__all__ = [
    "HookCreateRequest",
    "HookDeleteResponse",
    "HookListResponse",
    "HookUpdateRequest",
    "HealthResponse",
    "RootResponse",
    "SchedulerStatusResponse",
]
