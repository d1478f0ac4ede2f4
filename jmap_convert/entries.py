"""
Parsed calendar and contact values, in both the legacy text form
(iCalendar, vCard) and the JSON form (JSCalendar, JSContact).

The legacy forms wrap an ``icalendar.Calendar`` respectively a vobject
VCARD component; the JSON forms wrap the plain JSON object.  Conversion
towards JSON is total, conversion back returns ``None`` when the JSON
object holds something the legacy format can't express.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Optional

import icalendar
import recurring_ical_events

from jmap_convert.convert import ical_to_jscal
from jmap_convert.convert import jscal_to_ical
from jmap_convert.convert import jscontact_to_vcard
from jmap_convert.convert import vcard_to_jscontact
from jmap_convert.lib.python_utilities import to_normal_str

log = logging.getLogger("jmap_convert")

## Errors a malformed (but syntactically valid) JSON object may cause
## while being mapped to the legacy format
_UNCONVERTIBLE = (ValueError, TypeError, KeyError, AttributeError)


@dataclass(frozen=True)
class DateTimeInstance:
    """A concrete occurrence: both ends are datetimes carrying the zone of
    the event (or no zone at all, for floating events)"""

    start: datetime
    end: datetime


@dataclass
class ExpandedEvent:
    """One materialized occurrence, as returned by the recurrence expansion.

    It may be incomplete, only ``try_into_date_time`` tells.
    """

    component: icalendar.cal.Component

    def try_into_date_time(self) -> Optional[DateTimeInstance]:
        dtstart = self.component.get("DTSTART")
        if dtstart is None:
            return None
        start = dtstart.dt
        if not isinstance(start, datetime):
            ## all-day occurrences have no time of day to show
            return None

        if self.component.get("DTEND") is not None:
            end = self.component["DTEND"].dt
        elif self.component.get("DURATION") is not None:
            end = start + self.component["DURATION"].dt
        else:
            end = start
        if not isinstance(end, datetime):
            return None
        return DateTimeInstance(start=start, end=end)


@dataclass
class CalendarExpand:
    events: list[ExpandedEvent] = field(default_factory=list)


class CalendarEntry:
    """An iCalendar object"""

    def __init__(self, calendar: icalendar.Calendar) -> None:
        self.calendar = calendar

    def __repr__(self) -> str:
        return f"CalendarEntry({len(self.calendar.subcomponents)} components)"

    def to_jscalendar(self) -> "JSCalendar":
        """
        Raises:
            ValueError: on recurrence rules the JSON form can't describe
        """
        return JSCalendar(ical_to_jscal(self.calendar))

    def to_string(self) -> str:
        return to_normal_str(self.calendar.to_ical())

    def expand_dates(self, max_count: int) -> CalendarExpand:
        """Materializes at most max_count occurrences of the events in the
        calendar.  Infinite recurrences are fine, the expansion is lazy.
        """
        calendar = self.calendar
        if any("DTSTART" not in c for c in calendar.walk("VEVENT")):
            ## an event without a start has no occurrences, and
            ## recurring_ical_events can't cope with it
            calendar = icalendar.Calendar(calendar)
            calendar.subcomponents = [
                c
                for c in self.calendar.subcomponents
                if c.name != "VEVENT" or "DTSTART" in c
            ]
        query = recurring_ical_events.of(calendar)
        return CalendarExpand(
            events=[ExpandedEvent(c) for c in itertools.islice(query.all(), max_count)]
        )


class ContactEntry:
    """A vCard object"""

    def __init__(self, vcard) -> None:
        self.vcard = vcard

    def __repr__(self) -> str:
        fn = self.vcard.contents.get("fn")
        return f"ContactEntry({fn[0].value if fn else ''!r})"

    def to_jscontact(self) -> "JSContact":
        return JSContact(vcard_to_jscontact(self.vcard))

    def to_string(self) -> str:
        return to_normal_str(self.vcard.serialize(validate=False))


class _JSONValue:
    json_type: str = ""
    label: str = ""

    def __init__(self, value: dict) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.value!r})"

    def __eq__(self, other) -> bool:
        return type(other) is type(self) and other.value == self.value

    @classmethod
    def parse(cls, text: str):
        """Parses the JSON text.

        Raises:
            ValueError: with a message fit for the user if the text is not
                JSON, or not a JSON object of the expected @type
        """
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(str(e)) from e
        if not isinstance(value, dict):
            raise ValueError(f"expected a JSON object, found {type(value).__name__}")
        if value.get("@type") != cls.json_type:
            raise ValueError(
                f"expected @type {cls.json_type!r}, found {value.get('@type')!r}"
            )
        cls._validate(value)
        return cls(value)

    @classmethod
    def _validate(cls, value: dict) -> None:
        pass

    def to_string(self) -> str:
        return json.dumps(self.value, ensure_ascii=False)

    def to_string_pretty(self) -> str:
        return json.dumps(self.value, ensure_ascii=False, indent=2)


class JSCalendar(_JSONValue):
    """A JSCalendar Group object"""

    json_type = "Group"
    label = "JSCalendar"

    @classmethod
    def _validate(cls, value: dict) -> None:
        entries = value.get("entries")
        if not isinstance(entries, list):
            raise ValueError("a Group must hold an entries list")
        if not all(isinstance(e, dict) for e in entries):
            raise ValueError("Group entries must be JSON objects")

    def into_icalendar(self) -> Optional[CalendarEntry]:
        try:
            return CalendarEntry(jscal_to_ical(self.value))
        except _UNCONVERTIBLE as e:
            log.warning(f"JSCalendar object can't be converted to iCalendar: {e}")
            return None


class JSContact(_JSONValue):
    """A JSContact Card object"""

    json_type = "Card"
    label = "JSContact"

    def into_vcard(self) -> Optional[ContactEntry]:
        try:
            return ContactEntry(jscontact_to_vcard(self.value))
        except _UNCONVERTIBLE as e:
            log.warning(f"JSContact object can't be converted to vCard: {e}")
            return None


def parse_jscalendar(text: str) -> JSCalendar:
    return JSCalendar.parse(text)


def parse_jscontact(text: str) -> JSContact:
    return JSContact.parse(text)
