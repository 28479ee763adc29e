"""Error types shared by the store, the dispatch loop and the API layer.

Validation failures are mapped to 4xx responses in the routes; everything
else is contained inside the dispatch loop and only ever logged.
"""

from __future__ import annotations

from typing import Optional


class CronhooksError(Exception):
    """Base class for service errors."""


class ValidationError(CronhooksError):
    """Rejected input at store write time."""

    MISSING_FIELD = "missing_field"
    EMPTY_FIELD = "empty_field"
    INVALID_EXPRESSION = "invalid_expression"

    def __init__(self, reason: str, message: str, *, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        self.message = message
        super().__init__(message)


class StoreError(CronhooksError):
    """Persistence failure while reading or writing hooks or watermarks."""


class DispatchError(CronhooksError):
    """Outbound callback failed; never escapes the dispatcher."""

    def __init__(self, target: str, message: str, *, status_code: Optional[int] = None):
        self.target = target
        self.status_code = status_code
        super().__init__(message)


__all__ = [
    "CronhooksError",
    "DispatchError",
    "StoreError",
    "ValidationError",
]
