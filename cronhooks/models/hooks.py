from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..services.hooks import HookRecord


class HookCreateRequest(BaseModel):
    # Fields stay optional here so missing ones surface as a distinct error.
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    url: Optional[str] = None
    schedule: Optional[str] = None


class HookUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    url: Optional[str] = None
    schedule: Optional[str] = None


class HookListResponse(BaseModel):
    hooks: List[HookRecord] = Field(default_factory=list)


class HookDeleteResponse(BaseModel):
    ok: bool = True
    id: str
