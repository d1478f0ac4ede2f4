"""
Shared helpers for the JSCalendar/JSContact ↔ iCalendar/vCard converters.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

_DURATION_RE = re.compile(
    r"^(?P<sign>[+-])?P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def _timedelta_to_duration(td: timedelta) -> str:
    """Convert a timedelta to an ISO 8601 duration string.

    Examples:
        timedelta(hours=1, minutes=30) → "PT1H30M"
        timedelta(days=1, hours=2)     → "P1DT2H"
        timedelta(0)                   → "P0D"
        timedelta(seconds=-900)        → "-PT15M"
    """
    total_seconds = int(td.total_seconds())
    sign = "-" if total_seconds < 0 else ""
    total_seconds = abs(total_seconds)

    days, rem = divmod(total_seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)

    day_part = f"{days}D" if days else ""
    time_parts = []
    if hours:
        time_parts.append(f"{hours}H")
    if minutes:
        time_parts.append(f"{minutes}M")
    if seconds:
        time_parts.append(f"{seconds}S")

    time_part = ("T" + "".join(time_parts)) if time_parts else ""

    body = day_part + time_part or "0D"
    return f"{sign}P{body}"


def _duration_to_timedelta(duration_str: str) -> timedelta:
    """Parse an ISO 8601 duration string into a timedelta.

    Handles the subset used in JSCalendar: P[nW][nD][T[nH][nM][nS]].
    Fractional seconds are truncated.

    Raises:
        ValueError: If the string cannot be parsed.
    """
    m = _DURATION_RE.match(duration_str.strip())
    if not m or duration_str.strip() in ("P", "-P", "+P", "PT"):
        raise ValueError(f"Invalid duration string: {duration_str!r}")
    parts = {k: v for k, v in m.groupdict().items() if k != "sign"}
    td = timedelta(
        weeks=int(parts["weeks"] or 0),
        days=int(parts["days"] or 0),
        hours=int(parts["hours"] or 0),
        minutes=int(parts["minutes"] or 0),
        seconds=int(float(parts["seconds"] or 0)),
    )
    return -td if m.group("sign") == "-" else td


def _format_local_dt(dt: datetime | date) -> str:
    """Format a datetime or date as a JSCalendar LocalDateTime or UTCDateTime string.

    JSCalendar uses:
      - LocalDateTime: "2024-03-15T09:00:00"    (no TZ suffix)
      - UTCDateTime:   "2024-03-15T09:00:00Z"   (uppercase Z)

    For date objects (all-day), uses T00:00:00 suffix.
    """
    if isinstance(dt, datetime):
        if dt.tzinfo is not None and dt.utcoffset() == timedelta(0):
            return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
        return dt.strftime("%Y-%m-%dT%H:%M:%S")
    return f"{dt.isoformat()}T00:00:00"


def _parse_local_dt(value: str) -> datetime:
    """Inverse of _format_local_dt: "...Z" gives an UTC datetime, anything
    else a naive (floating) one.

    Raises:
        ValueError: If the string is not a JSCalendar date-time.
    """
    if value.endswith("Z"):
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(
            tzinfo=timezone.utc
        )
    return datetime.strptime(value[:19], "%Y-%m-%dT%H:%M:%S")


class _IdSequence:
    """Hands out the map keys used in JSCalendar and JSContact id maps.

    The keys are "1", "2", ... rather than random uuids, so converting the
    same input twice yields the same output.
    """

    def __init__(self) -> None:
        self.counter = 0

    def __call__(self) -> str:
        self.counter += 1
        return str(self.counter)


def _as_list(value) -> list:
    """icalendar returns a single value or a list for repeatable properties"""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class UnsupportedEntry(ValueError):
    """The JSON object is valid, but has no legacy text representation"""
