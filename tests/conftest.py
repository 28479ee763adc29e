"""Shared fixtures for the cronhooks test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Set, Tuple

import pytest

from cronhooks.services import DispatchResult, HookScheduler, HookService, HookStore


UTC = timezone.utc


def at(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=UTC)


class RecordingDispatcher:
    """Stand-in dispatcher that records calls instead of doing HTTP."""

    def __init__(self, failing_targets: Optional[Set[str]] = None) -> None:
        self.calls: List[Tuple[str, str]] = []
        self.failing_targets = set(failing_targets or ())

    async def dispatch(self, target: str, name: str) -> DispatchResult:
        self.calls.append((target, name))
        if target in self.failing_targets:
            return DispatchResult(target=target, success=False, status_code=500, error="unexpected status 500")
        return DispatchResult(target=target, success=True, status_code=200)

    def targets(self) -> List[str]:
        return [target for target, _ in self.calls]


@pytest.fixture
def store(tmp_path):
    return HookStore(tmp_path / "hooks.db")


@pytest.fixture
def service(store):
    return HookService(store)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def scheduler(store, dispatcher):
    return HookScheduler(store, dispatcher, tick_interval_seconds=60.0, tolerance_seconds=5.0)
