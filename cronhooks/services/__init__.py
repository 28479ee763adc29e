"""Service layer components."""

from .cron import (
    CronError,
    CronNoOccurrenceError,
    CronParseError,
    next_occurrence,
    truncate_to_minute,
    validate_expression,
)
from .dispatcher import CallbackDispatcher, DispatchResult
from .hooks import ClaimResult, HookRecord, HookService, HookStore
from .scheduler import HookOutcome, HookScheduler, SchedulerStats, TickSummary


__all__ = [
    "CallbackDispatcher",
    "ClaimResult",
    "CronError",
    "CronNoOccurrenceError",
    "CronParseError",
    "DispatchResult",
    "HookOutcome",
    "HookRecord",
    "HookScheduler",
    "HookService",
    "HookStore",
    "SchedulerStats",
    "TickSummary",
    "next_occurrence",
    "truncate_to_minute",
    "validate_expression",
]
