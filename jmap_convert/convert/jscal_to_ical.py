"""
JSCalendar → iCalendar conversion (RFC 8984 → RFC 5545).

Public API:
    jscal_to_ical(group: dict) -> icalendar.Calendar

Accepts a JSCalendar ``Group`` (as produced by ``ical_to_jscal``) and
returns a VCALENDAR holding one VEVENT per ``Event`` entry, plus one child
VEVENT per patched recurrence override.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import icalendar
from icalendar import vCalAddress, vText

from jmap_convert.convert._utils import (
    _duration_to_timedelta,
    _parse_local_dt,
    UnsupportedEntry,
)

DEFAULT_PRODID = "-//jmap-convert//JSCalendar//EN"

_UTC_ZONES = {"Etc/UTC", "UTC", "Etc/GMT", "GMT"}

_PRIVACY_TO_CLASS = {
    "private": "PRIVATE",
    "secret": "CONFIDENTIAL",
}

_STATUS_TO_STATUS = {
    "confirmed": "CONFIRMED",
    "cancelled": "CANCELLED",
    "tentative": "TENTATIVE",
}

_PARTSTAT_MAP = {
    "needs-action": "NEEDS-ACTION",
    "accepted": "ACCEPTED",
    "declined": "DECLINED",
    "tentative": "TENTATIVE",
    "delegated": "DELEGATED",
}

_KIND_TO_CUTYPE = {
    "individual": "INDIVIDUAL",
    "group": "GROUP",
    "resource": "RESOURCE",
    "location": "ROOM",
}


def _local_to_datetime(
    start_str: str, time_zone: str | None, show_without_time: bool
) -> date | datetime | icalendar.vDatetime:
    """Turn a JSCalendar start (plus its timeZone) into something icalendar
    can hold as a DTSTART/RECURRENCE-ID value.

    Handles four cases:
    - All-day (showWithoutTime): a date
    - UTC (timeZone Etc/UTC, or a start ending with Z): an UTC datetime
    - Timezone-aware: a zoneinfo-aware datetime, or a vDatetime carrying the
      TZID as-is when the zone is unknown to zoneinfo
    - Floating (no timeZone): a naive datetime
    """
    if show_without_time:
        return date.fromisoformat(start_str[:10])

    dt = _parse_local_dt(start_str)
    if dt.tzinfo is not None or not time_zone:
        return dt
    if time_zone in _UTC_ZONES:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.replace(tzinfo=ZoneInfo(time_zone))
    except (ZoneInfoNotFoundError, ValueError):
        # Non-IANA TZID (e.g. "Eastern Standard Time"), pass it through so
        # the consuming calendar client can resolve it.
        value = icalendar.vDatetime(dt)
        value.params["TZID"] = time_zone
        return value


def _add_dt(component, name: str, value) -> None:
    if isinstance(value, icalendar.vDatetime):
        component.add(name, value.dt, parameters=dict(value.params))
    else:
        component.add(name, value)


def _jscal_rrule_to_rrule(rule: dict) -> dict:
    """Convert a JSCalendar RecurrenceRule dict to an iCalendar vRecur-compatible dict.

    Strips @type and NDay @type fields, icalendar rejects them.
    """
    freq = rule.get("frequency", "").upper()
    if not freq:
        raise UnsupportedEntry(f"recurrence rule without frequency: {rule!r}")

    ical_rule: dict = {"FREQ": freq}

    interval = rule.get("interval")
    if interval and interval != 1:
        ical_rule["INTERVAL"] = interval

    count = rule.get("count")
    if count is not None:
        ical_rule["COUNT"] = count

    until = rule.get("until")
    if until:
        ical_rule["UNTIL"] = _parse_local_dt(until)

    by_day = rule.get("byDay", [])
    if by_day:
        byday_strs = []
        for nday in by_day:
            day = nday.get("day", "").upper()
            nth = nday.get("nthOfPeriod")
            byday_strs.append(f"{nth}{day}" if nth else day)
        ical_rule["BYDAY"] = byday_strs

    by_month = rule.get("byMonth", [])
    if by_month:
        ical_rule["BYMONTH"] = [
            m if isinstance(m, int) else int(str(m).rstrip("L")) for m in by_month
        ]

    for jscal_name, ical_name in (
        ("byMonthDay", "BYMONTHDAY"),
        ("byYearDay", "BYYEARDAY"),
        ("byWeekNo", "BYWEEKNO"),
        ("byHour", "BYHOUR"),
        ("byMinute", "BYMINUTE"),
        ("bySecond", "BYSECOND"),
        ("bySetPosition", "BYSETPOS"),
    ):
        values = rule.get(jscal_name, [])
        if values:
            ical_rule[ical_name] = values

    first_day = rule.get("firstDayOfWeek")
    if first_day:
        ical_rule["WKST"] = first_day.upper()

    return ical_rule


def _participant_imip(p: dict) -> str:
    send_to = p.get("sendTo", {})
    imip = send_to.get("imip") or send_to.get("other") or p.get("email", "")
    if imip and not imip.startswith("mailto:"):
        imip = f"mailto:{imip}"
    return imip


def _participant_to_organizer(p: dict) -> vCalAddress | None:
    """Build a vCalAddress for ORGANIZER, or None if this participant is not an organizer."""
    roles = p.get("roles", {})
    if not (roles.get("owner") or roles.get("organizer")):
        return None

    addr = vCalAddress(_participant_imip(p))
    name = p.get("name")
    if name:
        addr.params["CN"] = vText(name)
    return addr


def _participant_to_attendee(p: dict) -> vCalAddress | None:
    """Build a vCalAddress for ATTENDEE, or None if participant is purely an organizer."""
    roles = p.get("roles", {})
    has_attendee_role = any(
        roles.get(r) for r in ("attendee", "chair", "informational", "optional")
    )
    if not has_attendee_role and (roles.get("owner") or roles.get("organizer")):
        return None

    addr = vCalAddress(_participant_imip(p))
    name = p.get("name")
    if name:
        addr.params["CN"] = vText(name)

    partstat = p.get("participationStatus")
    if partstat:
        addr.params["PARTSTAT"] = _PARTSTAT_MAP.get(partstat, partstat.upper())

    if p.get("expectReply"):
        addr.params["RSVP"] = "TRUE"

    kind = p.get("kind")
    if kind:
        addr.params["CUTYPE"] = _KIND_TO_CUTYPE.get(kind, kind.upper())

    if roles.get("chair"):
        addr.params["ROLE"] = "CHAIR"
    elif roles.get("optional"):
        addr.params["ROLE"] = "OPT-PARTICIPANT"
    elif roles.get("informational") and not roles.get("attendee"):
        addr.params["ROLE"] = "NON-PARTICIPANT"

    return addr


def _alert_to_valarm(alert: dict) -> icalendar.Alarm:
    """Convert a JSCalendar Alert dict to an icalendar.Alarm component."""
    alarm = icalendar.Alarm()
    action = alert.get("action", "display").upper()
    alarm.add("action", action)

    trigger = alert.get("trigger") or {}
    if trigger.get("@type") == "AbsoluteTrigger":
        alarm.add("trigger", _parse_local_dt(trigger["when"]))
    else:
        offset = _duration_to_timedelta(trigger.get("offset", "PT0S"))
        if trigger.get("relativeTo") == "end":
            alarm.add("trigger", offset, parameters={"RELATED": "END"})
        else:
            alarm.add("trigger", offset)

    description = alert.get("description")
    if description:
        alarm.add("description", description)
    elif action == "DISPLAY":
        alarm.add("description", "Reminder")

    return alarm


def _locations_to_location(locations: dict) -> str | None:
    """Extract the first location name from a JSCalendar locations map."""
    for loc in locations.values():
        name = loc.get("name")
        if name:
            return str(name)
    return None


def _add_override_child(
    cal: icalendar.Calendar, jscal: dict, override_key: str, patch: dict
) -> None:
    uid = jscal.get("uid")
    time_zone = patch.get("timeZone", jscal.get("timeZone"))
    show_without_time = patch.get("showWithoutTime", jscal.get("showWithoutTime", False))

    child = icalendar.Event()
    if uid:
        child.add("uid", uid)
    child.add("dtstamp", _updated(jscal))
    _add_dt(child, "recurrence-id", _local_to_datetime(override_key, time_zone, show_without_time))
    child_start = patch.get("start", jscal.get("start"))
    if child_start:
        _add_dt(child, "dtstart", _local_to_datetime(child_start, time_zone, show_without_time))
    child_dur = patch.get("duration", jscal.get("duration"))
    if child_dur:
        child.add("duration", _duration_to_timedelta(child_dur))
    child_title = patch.get("title", jscal.get("title"))
    if child_title:
        child.add("summary", child_title)
    child_desc = patch.get("description", jscal.get("description"))
    if child_desc:
        child.add("description", child_desc)
    child_location = _locations_to_location(patch.get("locations") or {})
    if child_location:
        child.add("location", child_location)
    if patch.get("status") == "cancelled":
        child.add("status", "CANCELLED")
    cal.add_component(child)


def _updated(jscal: dict) -> datetime:
    updated = jscal.get("updated")
    if updated:
        dt = _parse_local_dt(updated)
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return datetime(1970, 1, 1, tzinfo=timezone.utc)


def jscal_event_to_vevents(jscal: dict, cal: icalendar.Calendar) -> None:
    """Add the VEVENT for one JSCalendar Event (and its override children) to cal.

    Raises:
        UnsupportedEntry: If the entry is not an Event, or recurs without a start.
        ValueError: If a date-time or duration string is malformed.
    """
    if jscal.get("@type", "Event") != "Event":
        raise UnsupportedEntry(f"cannot convert JSCalendar {jscal.get('@type')!r} to iCalendar")

    event = icalendar.Event()

    uid = jscal.get("uid")
    if uid:
        event.add("uid", uid)
    event.add("dtstamp", _updated(jscal))

    sequence = jscal.get("sequence")
    if sequence:
        event.add("sequence", sequence)

    start_str = jscal.get("start")
    time_zone = jscal.get("timeZone")
    show_without_time = jscal.get("showWithoutTime", False)
    if start_str:
        _add_dt(event, "dtstart", _local_to_datetime(start_str, time_zone, show_without_time))
    elif jscal.get("recurrenceRules") or jscal.get("recurrenceOverrides"):
        raise UnsupportedEntry("a recurring JSCalendar event needs a start")

    duration_str = jscal.get("duration")
    if duration_str:
        event.add("duration", _duration_to_timedelta(duration_str))

    title = jscal.get("title")
    if title:
        event.add("summary", title)

    description = jscal.get("description")
    if description:
        event.add("description", description)

    priority = jscal.get("priority", 0)
    if priority:
        event.add("priority", priority)

    privacy = jscal.get("privacy")
    cls = _PRIVACY_TO_CLASS.get(privacy) if privacy else None
    if cls:
        event.add("class", cls)

    status = _STATUS_TO_STATUS.get(jscal.get("status", ""))
    if status:
        event.add("status", status)

    if jscal.get("freeBusyStatus") == "free":
        event.add("transp", "TRANSPARENT")

    color = jscal.get("color")
    if color:
        event.add("color", color)

    cats = [k for k, v in (jscal.get("keywords") or {}).items() if v]
    if cats:
        event.add("categories", cats)

    loc_name = _locations_to_location(jscal.get("locations") or {})
    if loc_name:
        event.add("location", loc_name)

    for rule in jscal.get("recurrenceRules") or []:
        event.add("rrule", _jscal_rrule_to_rrule(rule))

    for rule in jscal.get("excludedRecurrenceRules") or []:
        event.add("exrule", _jscal_rrule_to_rrule(rule))

    patched: list[tuple[str, dict]] = []
    for override_key, patch in (jscal.get("recurrenceOverrides") or {}).items():
        rid = _local_to_datetime(override_key, time_zone, show_without_time)
        if patch is None or patch.get("excluded"):
            _add_dt(event, "exdate", rid)
        elif not patch:
            _add_dt(event, "rdate", rid)
        else:
            patched.append((override_key, patch))

    participants = (jscal.get("participants") or {}).values()
    organizers = [o for o in map(_participant_to_organizer, participants) if o is not None]
    if organizers:
        event.add("organizer", organizers[0])
    for p in participants:
        att = _participant_to_attendee(p)
        if att is not None:
            event.add("attendee", att)

    for alert in (jscal.get("alerts") or {}).values():
        event.add_component(_alert_to_valarm(alert))

    cal.add_component(event)

    for override_key, patch in patched:
        _add_override_child(cal, jscal, override_key, patch)


def jscal_to_ical(group: dict) -> icalendar.Calendar:
    """Convert a JSCalendar Group dict to an icalendar.Calendar.

    Raises:
        UnsupportedEntry: If the group is empty or holds a non-Event entry.
        ValueError: If a date-time or duration string is malformed.
    """
    entries = group.get("entries") or []
    if not entries:
        raise UnsupportedEntry("a JSCalendar group without entries has no iCalendar form")

    cal = icalendar.Calendar()
    cal.add("prodid", group.get("prodId") or DEFAULT_PRODID)
    cal.add("version", "2.0")
    if group.get("title"):
        cal.add("x-wr-calname", group["title"])

    for entry in entries:
        jscal_event_to_vevents(entry, cal)

    return cal
