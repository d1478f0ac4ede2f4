"""
Recurrence expansion of calendar entries into a short, ordered list of
occurrences ready to be displayed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from datetime import tzinfo
from typing import List
from typing import Tuple
from typing import Union
from zoneinfo import ZoneInfo

from jmap_convert.entries import CalendarEntry
from jmap_convert.lib import error

log = logging.getLogger("jmap_convert")

DEFAULT_MAX_OCCURRENCES = 25

FLOATING = "Floating"

## Fixed english names, the output must not depend on the process locale
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class Occurrence:
    from_: str
    to: str
    start: datetime
    end: datetime


def zone_name(dt: datetime) -> str:
    """The IANA name of the zone of dt, "UTC", or "Floating" for naive datetimes"""
    tz = dt.tzinfo
    if tz is None:
        return FLOATING
    ## zoneinfo, resp. pytz
    name = getattr(tz, "key", None) or getattr(tz, "zone", None)
    if name:
        return name
    if tz is timezone.utc:
        return "UTC"
    return dt.tzname() or FLOATING


def format_instant(dt: datetime) -> str:
    """Mon Jun 17, 2024 2:00pm (Europe/Berlin)"""
    hour = dt.hour % 12 or 12
    ampm = "am" if dt.hour < 12 else "pm"
    return (
        f"{_WEEKDAYS[dt.weekday()]} {_MONTHS[dt.month - 1]} {dt.day}, {dt.year} "
        f"{hour}:{dt.minute:02d}{ampm} ({zone_name(dt)})"
    )


def format_occurrence(start: datetime, end: datetime) -> Tuple[str, str]:
    return format_instant(start), format_instant(end)


def _resolve_timezone(default_timezone: Union[str, tzinfo, None]) -> tzinfo:
    if default_timezone is None:
        return timezone.utc
    if isinstance(default_timezone, str):
        return ZoneInfo(default_timezone)
    return default_timezone


def expand(
    entry: CalendarEntry,
    default_timezone: Union[str, tzinfo, None] = None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> List[Occurrence]:
    """The first max_occurrences occurrences of the events in entry,
    ordered by start time.

    Floating occurrences are ordered as if they were in default_timezone
    (UTC if not given); the displayed zone stays "Floating".  Occurrences
    starting at the same instant keep the order the expansion produced
    them in.  Occurrences without a start and end time (all-day events)
    are left out.
    """
    tz = _resolve_timezone(default_timezone)
    instances = []
    for event in entry.expand_dates(max_occurrences).events:
        instance = event.try_into_date_time()
        if instance is None:
            log.debug(f"skipping occurrence without date-times: {event.component.get('UID')}")
            continue
        instances.append(instance)

    def sort_key(instance) -> datetime:
        start = instance.start
        if start.tzinfo is None:
            start = start.replace(tzinfo=tz)
        return start

    ## sorted() is stable
    instances = sorted(instances, key=sort_key)
    error.assert_(len(instances) <= max_occurrences)

    occurrences = []
    for instance in instances:
        from_, to = format_occurrence(instance.start, instance.end)
        occurrences.append(Occurrence(from_=from_, to=to, start=instance.start, end=instance.end))
    return occurrences
