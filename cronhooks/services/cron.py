"""Cron expression evaluation in UTC backed by croniter."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache

from croniter import CroniterBadCronError, CroniterBadDateError, croniter


UTC = timezone.utc
CRON_FIELD_COUNT = 5
ONE_MINUTE = timedelta(minutes=1)


class CronError(Exception):
    """Base class for cron evaluation failures."""

    def __init__(self, expression: str, message: str):
        self.expression = expression
        super().__init__(message)


class CronParseError(CronError):
    """The expression does not parse as standard 5-field cron."""


class CronNoOccurrenceError(CronError):
    """The expression parses but never matches after the reference instant."""


def as_utc(moment: datetime) -> datetime:
    """Return *moment* as an aware UTC datetime; naive values are taken as UTC."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def truncate_to_minute(moment: datetime) -> datetime:
    """Drop seconds and microseconds after converting to UTC."""

    return as_utc(moment).replace(second=0, microsecond=0)


@lru_cache(maxsize=512)
def validate_expression(expression: str) -> str:
    """Return the normalized expression or raise ``CronParseError``."""

    if not isinstance(expression, str):
        raise CronParseError(str(expression), "cron expression must be a string")
    fields = expression.split()
    if len(fields) != CRON_FIELD_COUNT:
        raise CronParseError(
            expression,
            f"expected {CRON_FIELD_COUNT} fields (minute hour day month weekday), got {len(fields)}",
        )
    normalized = " ".join(fields)
    try:
        croniter(normalized)
    except (CroniterBadCronError, ValueError, KeyError) as exc:
        raise CronParseError(expression, f"invalid cron expression {normalized!r}: {exc}") from exc
    return normalized


def is_valid_expression(expression: str) -> bool:
    try:
        validate_expression(expression)
    except CronParseError:
        return False
    return True


def next_occurrence(expression: str, from_instant: datetime) -> datetime:
    """Earliest instant at or after *from_instant* matching *expression*.

    The result is an aware UTC datetime on a whole minute. Raises
    ``CronParseError`` for malformed expressions and ``CronNoOccurrenceError``
    when a valid expression has no matching instant.
    """

    normalized = validate_expression(expression)
    start = as_utc(from_instant)
    # croniter only looks strictly forward, so step back one minute from the
    # floor; an exact match on the floor minute is then the first candidate.
    iterator = croniter(normalized, truncate_to_minute(start) - ONE_MINUTE)
    try:
        candidate = iterator.get_next(datetime)
        if candidate < start:
            candidate = iterator.get_next(datetime)
    except CroniterBadDateError as exc:
        raise CronNoOccurrenceError(
            expression, f"cron expression {normalized!r} has no occurrence after {start.isoformat()}"
        ) from exc
    return as_utc(candidate)


__all__ = [
    "CRON_FIELD_COUNT",
    "CronError",
    "CronNoOccurrenceError",
    "CronParseError",
    "UTC",
    "as_utc",
    "is_valid_expression",
    "next_occurrence",
    "truncate_to_minute",
]
