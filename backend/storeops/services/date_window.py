# Overview: Target-date resolution and the single-day window over order items.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from .aggregation_errors import FilterError, ValidationError
from storeops.time_utils import business_now, day_bounds, parse_iso_date, parse_local_timestamp


def resolve_target_date(value: str | None, *, tz: tzinfo, now: datetime | None = None) -> date:
    """
    Calendar day to aggregate.

    An explicit value must be an ISO-8601 date. Without one the job
    summarizes yesterday on the business clock: the prior, closed day.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        current = now if now is not None else business_now(tz)
        return current.date() - timedelta(days=1)

    if not isinstance(value, str):
        raise ValidationError(f"Invalid date format: expected YYYY-MM-DD, got {type(value).__name__}")

    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date format: {value!r}") from exc


@dataclass
class DayWindow:
    items: list[dict]
    skipped_timestamps: int


def _item_timestamp(item: dict, tz: tzinfo) -> datetime | None:
    raw = item.get("modifiedDate")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise TypeError(f"modifiedDate must be a string, got {type(raw).__name__}")
    try:
        return parse_local_timestamp(raw, tz)
    except ValueError:
        return None


def filter_by_day(items: list[dict], day: date, tz: tzinfo) -> DayWindow:
    """
    Keep items whose modifiedDate falls inside `day` (inclusive bounds).

    Missing or unparseable modifiedDate strings are dropped and counted, not
    errored; upstream POS data is known to be dirty. Anything else that goes
    wrong here means the item shape broke its contract and raises FilterError.
    """
    day_start, day_end = day_bounds(day, tz)
    kept: list[dict] = []
    skipped = 0

    try:
        for item in items:
            ts = _item_timestamp(item, tz)
            if ts is None:
                skipped += 1
                continue
            if day_start <= ts <= day_end:
                kept.append(item)
    except Exception as exc:
        raise FilterError(f"Error filtering order items for {day.isoformat()}: {exc}") from exc

    return DayWindow(items=kept, skipped_timestamps=skipped)
