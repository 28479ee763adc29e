from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class HookRecord(BaseModel):
    """Serialized hook representation returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    url: str
    schedule: str
    created_at: str
    updated_at: str


__all__ = ["HookRecord"]
