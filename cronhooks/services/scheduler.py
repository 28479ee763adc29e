"""Background scheduler that evaluates stored hooks on a fixed tick and fires them."""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from ..errors import StoreError
from ..logging_config import logger
from .cron import CronError, as_utc, next_occurrence, truncate_to_minute
from .dispatcher import DispatchResult
from .hooks import ClaimResult, HookRecord, HookStore
from .hooks.utils import to_storage_timestamp, utc_now


MAX_TICK_INTERVAL_SECONDS = 60.0
DEFAULT_TICK_INTERVAL_SECONDS = 60.0
DEFAULT_TOLERANCE_SECONDS = 5.0
DEFAULT_MAX_CONCURRENT_DISPATCHES = 16


class Dispatcher(Protocol):
    async def dispatch(self, target: str, name: str) -> DispatchResult: ...


class HookOutcome(str, Enum):
    NOT_DUE = "not_due"
    DUPLICATE = "duplicate"
    FIRED = "fired"
    FAILED = "failed"
    VANISHED = "vanished"
    ERROR = "error"


@dataclass
class TickSummary:
    """What a single tick saw and did."""

    now: datetime
    evaluated: int = 0
    due: int = 0
    fired: int = 0
    duplicates: int = 0
    failed: int = 0
    errors: int = 0
    skipped: bool = False

    def add(self, outcome: HookOutcome) -> None:
        if outcome in (HookOutcome.FIRED, HookOutcome.FAILED, HookOutcome.DUPLICATE, HookOutcome.VANISHED):
            self.due += 1
        if outcome in (HookOutcome.FIRED, HookOutcome.FAILED):
            self.fired += 1
        if outcome is HookOutcome.FAILED:
            self.failed += 1
        elif outcome is HookOutcome.DUPLICATE:
            self.duplicates += 1
        elif outcome is HookOutcome.ERROR:
            self.errors += 1

    def as_log_extra(self) -> Dict[str, Any]:
        return {
            "tick": to_storage_timestamp(self.now),
            "evaluated": self.evaluated,
            "due": self.due,
            "fired": self.fired,
            "duplicates": self.duplicates,
            "failed": self.failed,
            "errors": self.errors,
        }


@dataclass
class SchedulerStats:
    """Cumulative counters across ticks."""

    tick_count: int = 0
    ticks_skipped: int = 0
    hooks_fired: int = 0
    dispatch_failures: int = 0
    duplicates: int = 0
    errors: int = 0
    last_tick: Optional[datetime] = None
    last_summary: Optional[TickSummary] = field(default=None, repr=False)

    def record(self, summary: TickSummary) -> None:
        self.tick_count += 1
        self.last_tick = summary.now
        self.last_summary = summary
        if summary.skipped:
            self.ticks_skipped += 1
        self.hooks_fired += summary.fired
        self.dispatch_failures += summary.failed
        self.duplicates += summary.duplicates
        self.errors += summary.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "ticks_skipped": self.ticks_skipped,
            "hooks_fired": self.hooks_fired,
            "dispatch_failures": self.dispatch_failures,
            "duplicates": self.duplicates,
            "errors": self.errors,
            "last_tick": to_storage_timestamp(self.last_tick) if self.last_tick else None,
        }


class HookScheduler:
    """Wakes on a fixed tick, works out which hooks are due and fires each once.

    Due-ness is re-derived from the stored hooks on every tick; nothing is
    cached between ticks. A hook counts as due when one of its occurrences
    lands within ``tolerance`` of the tick instant, and it fires only if the
    store accepts a watermark claim for that occurrence's UTC minute. The
    claim is taken before the callback goes out and is kept whatever the
    outcome, so each occurrence is attempted at most once.
    """

    def __init__(
        self,
        store: HookStore,
        dispatcher: Dispatcher,
        *,
        tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        tolerance_seconds: float = DEFAULT_TOLERANCE_SECONDS,
        max_concurrent_dispatches: int = DEFAULT_MAX_CONCURRENT_DISPATCHES,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        if not 0 < tick_interval_seconds <= MAX_TICK_INTERVAL_SECONDS:
            raise ValueError(
                f"tick interval must be within (0, {MAX_TICK_INTERVAL_SECONDS:g}] seconds, "
                f"got {tick_interval_seconds}"
            )
        if not 0 <= tolerance_seconds < tick_interval_seconds:
            raise ValueError("tolerance must be non-negative and shorter than the tick interval")
        if max_concurrent_dispatches < 1:
            raise ValueError("max_concurrent_dispatches must be at least 1")

        self._store = store
        self._dispatcher = dispatcher
        self._interval = tick_interval_seconds
        self._tolerance = timedelta(seconds=tolerance_seconds)
        self._clock = clock or utc_now
        self._sleep = sleep or asyncio.sleep
        self._semaphore = asyncio.Semaphore(max_concurrent_dispatches)
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._lock = asyncio.Lock()
        self._tick_lock = asyncio.Lock()
        self._last_tick_at: Optional[datetime] = None
        self._last_boundary: Optional[float] = None
        self._stats = SchedulerStats()

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    @property
    def tick_interval_seconds(self) -> float:
        return self._interval

    @property
    def stats(self) -> SchedulerStats:
        return self._stats

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "tick_interval_seconds": self._interval,
            "tolerance_seconds": self._tolerance.total_seconds(),
            "stats": self._stats.to_dict(),
        }

    async def start(self) -> None:
        async with self._lock:
            if self._task and not self._task.done():
                return
            loop = asyncio.get_running_loop()
            self._running = True
            self._task = loop.create_task(self._run(), name="hook-scheduler")
            logger.info("Hook scheduler started", extra={"interval": self._interval})

    async def stop(self) -> None:
        async with self._lock:
            self._running = False
            if self._task:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
                self._task = None
                logger.info("Hook scheduler stopped")

    async def _run(self) -> None:
        try:
            while self._running:
                now = as_utc(self._clock())
                boundary = self._next_boundary(now)
                await self._sleep(max(boundary - now.timestamp(), 0.0))
                self._last_boundary = boundary
                if not self._running:
                    break
                started = time.monotonic()
                try:
                    await self.run_tick(self._clock())
                except Exception as exc:  # pragma: no cover - defensive
                    logger.exception("Hook scheduler tick crashed", extra={"error": str(exc)})
                elapsed = time.monotonic() - started
                if elapsed > self._interval:
                    logger.warning(
                        "Tick overran its interval; skipping missed ticks",
                        extra={"elapsed_seconds": round(elapsed, 3), "interval": self._interval},
                    )
        except asyncio.CancelledError:
            raise

    def seconds_until_next_tick(self, now: datetime) -> float:
        """Delay until the next multiple of the tick interval on the UTC clock."""

        now = as_utc(now)
        return max(self._next_boundary(now) - now.timestamp(), 0.0)

    def _next_boundary(self, now: datetime) -> float:
        boundary = (math.floor(now.timestamp() / self._interval) + 1) * self._interval
        if self._last_boundary is not None and boundary <= self._last_boundary:
            # Woke marginally early; the boundary just slept for has been handled.
            boundary = self._last_boundary + self._interval
        return boundary

    async def run_tick(self, now: Optional[datetime] = None) -> TickSummary:
        """Evaluate every stored hook against *now* and fire the due ones."""

        now = as_utc(now or self._clock())
        summary = TickSummary(now=now)

        if self._tick_lock.locked():
            logger.warning("Previous tick still running; skipping", extra={"tick": to_storage_timestamp(now)})
            summary.skipped = True
            self._stats.record(summary)
            return summary

        async with self._tick_lock:
            window_start = now - timedelta(seconds=self._interval)
            if window_start > now or (self._last_tick_at is not None and now < self._last_tick_at):
                logger.warning(
                    "Clock moved backwards; skipping tick",
                    extra={
                        "tick": to_storage_timestamp(now),
                        "previous_tick": to_storage_timestamp(self._last_tick_at) if self._last_tick_at else None,
                    },
                )
                # Re-anchor on the regressed clock so later ticks are not held back.
                self._last_tick_at = now
                self._last_boundary = None
                summary.skipped = True
                self._stats.record(summary)
                return summary
            self._last_tick_at = now

            try:
                hooks = self._store.list_all()
            except StoreError as exc:
                logger.error("Listing hooks failed; skipping tick", extra={"error": str(exc)})
                summary.skipped = True
                summary.errors += 1
                self._stats.record(summary)
                return summary

            summary.evaluated = len(hooks)
            outcomes = await asyncio.gather(
                *(self._process_hook(hook, now) for hook in hooks)
            )
            for outcome in outcomes:
                summary.add(outcome)
            self._stats.record(summary)

        if summary.due or summary.errors:
            logger.info("Tick complete", extra=summary.as_log_extra())
        else:
            logger.debug("Tick complete", extra=summary.as_log_extra())
        return summary

    def due_occurrence(self, expression: str, now: datetime) -> Optional[datetime]:
        """The occurrence that makes *expression* due at *now*, if any."""

        now = as_utc(now)
        window_start = now - timedelta(seconds=self._interval)
        earliest, latest = now - self._tolerance, now + self._tolerance
        occurrence = next_occurrence(expression, window_start)
        if occurrence < earliest:
            # Ticks landing exactly on a minute see the previous minute at the window edge.
            occurrence = next_occurrence(expression, earliest)
        if occurrence > latest:
            return None
        return occurrence

    async def _process_hook(self, hook: HookRecord, now: datetime) -> HookOutcome:
        try:
            occurrence = self.due_occurrence(hook.schedule, now)
        except CronError as exc:
            logger.warning(
                "Skipping hook with unusable schedule",
                extra={"hook_id": hook.id, "schedule": hook.schedule, "error": str(exc)},
            )
            return HookOutcome.ERROR
        if occurrence is None:
            return HookOutcome.NOT_DUE

        minute = truncate_to_minute(occurrence)
        try:
            claim = self._store.claim_watermark(hook.id, minute)
        except StoreError as exc:
            logger.error(
                "Watermark update failed",
                extra={"hook_id": hook.id, "minute": to_storage_timestamp(minute), "error": str(exc)},
            )
            return HookOutcome.ERROR

        if claim is ClaimResult.ALREADY_FIRED:
            logger.debug(
                "Hook already fired for this occurrence",
                extra={"hook_id": hook.id, "minute": to_storage_timestamp(minute)},
            )
            return HookOutcome.DUPLICATE
        if claim is ClaimResult.MISSING:
            logger.info("Hook deleted before dispatch; dropping", extra={"hook_id": hook.id})
            return HookOutcome.VANISHED

        logger.info(
            "Dispatching hook",
            extra={
                "hook_id": hook.id,
                "hook_name": hook.name,
                "scheduled_for": to_storage_timestamp(occurrence),
            },
        )
        async with self._semaphore:
            try:
                result = await self._dispatcher.dispatch(hook.url, hook.name)
            except Exception as exc:
                logger.exception(
                    "Dispatcher raised unexpectedly",
                    extra={"hook_id": hook.id, "error": str(exc)},
                )
                return HookOutcome.FAILED
        return HookOutcome.FIRED if result.success else HookOutcome.FAILED


__all__ = [
    "Dispatcher",
    "HookOutcome",
    "HookScheduler",
    "SchedulerStats",
    "TickSummary",
]
