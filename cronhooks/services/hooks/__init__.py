from __future__ import annotations

from .models import HookRecord
from .service import HookService
from .store import ClaimResult, HookStore


__all__ = [
    "ClaimResult",
    "HookRecord",
    "HookService",
    "HookStore",
]
