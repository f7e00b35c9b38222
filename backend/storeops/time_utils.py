from __future__ import annotations

import calendar
import re
import time as _time
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


# Seconds fraction of any length; fromisoformat on 3.10 only takes 3 or 6 digits
_FRACTION_RE = re.compile(r"(\d{2}:\d{2}:\d{2})[.,](\d+)")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LocalTimezone(tzinfo):
    """
    The process-local zone (TZ / system setting), DST decided per datetime.

    Offsets come from the C library at call time, so a winter date gets the
    winter offset even when the job runs in summer.
    """

    def _isdst(self, dt: datetime) -> bool:
        tt = (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, dt.weekday(), 0, -1)
        return _time.localtime(_time.mktime(tt)).tm_isdst > 0

    def utcoffset(self, dt: Optional[datetime]) -> timedelta:
        if dt is not None and self._isdst(dt):
            return timedelta(seconds=-_time.altzone)
        return timedelta(seconds=-_time.timezone)

    def dst(self, dt: Optional[datetime]) -> timedelta:
        if dt is not None and self._isdst(dt):
            return timedelta(seconds=_time.timezone - _time.altzone)
        return timedelta(0)

    def tzname(self, dt: Optional[datetime]) -> str:
        return _time.tzname[1 if dt is not None and self._isdst(dt) else 0]

    def fromutc(self, dt: datetime) -> datetime:
        stamp = calendar.timegm(dt.replace(tzinfo=None).timetuple())
        local = _time.localtime(stamp)
        return datetime(*local[:6], microsecond=dt.microsecond, tzinfo=self)

    def __repr__(self) -> str:
        return "LocalTimezone()"


def business_timezone(name: Optional[str]) -> tzinfo:
    """
    Timezone used for business days.

    None / "" -> the server's local timezone, which is the clock the daily
    job has always run against.

    Raises ZoneInfoNotFoundError (a KeyError) or ValueError for a bad name.
    """
    if name:
        return ZoneInfo(name)
    return LocalTimezone()


def business_now(tz: tzinfo) -> datetime:
    """Aware 'now' on the business clock."""
    return datetime.now(tz)


def _normalize_iso(s: str) -> str:
    """Trailing Z -> +00:00; seconds fraction padded or cut to microseconds."""
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return _FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", s, count=1)


def parse_local_timestamp(value: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """
    Parse a POS timestamp onto the business clock (aware datetime).

    - None / "" -> None
    - naive values are read as business-local wall time
    - "...Z" or "...+/-HH:MM" is converted to the business timezone

    Raises ValueError when the string is not ISO-8601.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    dt = datetime.fromisoformat(_normalize_iso(s))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def parse_iso_date(value: str) -> date:
    """
    Parse "YYYY-MM-DD" (or a full ISO datetime, keeping its calendar date).

    Raises ValueError on anything else.
    """
    s = value.strip()
    if not s:
        raise ValueError("Empty date string")
    try:
        return date.fromisoformat(s)
    except ValueError:
        return datetime.fromisoformat(_normalize_iso(s)).date()


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Inclusive [00:00:00, 23:59:59.999999] of `day` on the business clock."""
    return (
        datetime.combine(day, time.min, tzinfo=tz),
        datetime.combine(day, time.max, tzinfo=tz),
    )


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
