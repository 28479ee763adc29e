from __future__ import annotations

from fastapi import APIRouter

from .hooks import router as hooks_router
from .meta import router as meta_router

api_router = APIRouter()
api_router.include_router(meta_router)
api_router.include_router(hooks_router)

__all__ = ["api_router"]
