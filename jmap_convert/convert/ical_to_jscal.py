"""
iCalendar → JSCalendar conversion (RFC 5545 → RFC 8984).

Public API:
    ical_to_jscal(calendar) -> dict

The output is a JSCalendar ``Group`` object with one ``Event`` entry per
master VEVENT in the calendar.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import icalendar

from jmap_convert.convert._utils import (
    _as_list,
    _format_local_dt,
    _IdSequence,
    _timedelta_to_duration,
)
from jmap_convert.lib import vcal

_CLASS_MAP = {
    "PRIVATE": "private",
    "CONFIDENTIAL": "secret",
}

_STATUS_MAP = {
    "CONFIRMED": "confirmed",
    "CANCELLED": "cancelled",
    "TENTATIVE": "tentative",
}

_PARTSTAT_MAP = {
    "NEEDS-ACTION": "needs-action",
    "ACCEPTED": "accepted",
    "DECLINED": "declined",
    "TENTATIVE": "tentative",
    "DELEGATED": "delegated",
}

_CUTYPE_MAP = {
    "INDIVIDUAL": "individual",
    "GROUP": "group",
    "RESOURCE": "resource",
    "ROOM": "location",
}


def _dtstart_to_jscal(dtstart_prop) -> tuple[str, str | None, bool]:
    """Extract JSCalendar start, timeZone, showWithoutTime from a DTSTART property.

    Returns:
        (start_str, time_zone, show_without_time)
    """
    dt = dtstart_prop.dt

    if isinstance(dt, date) and not isinstance(dt, datetime):
        # VALUE=DATE, all-day event
        return f"{dt.isoformat()}T00:00:00", None, True

    tzid = dtstart_prop.params.get("TZID")
    if dt.tzinfo is not None and dt.utcoffset() == timedelta(0) and not tzid:
        return dt.strftime("%Y-%m-%dT%H:%M:%S"), "Etc/UTC", False

    if dt.tzinfo is not None or tzid:
        # Prefer the TZID parameter (IANA name) over the tzinfo repr.
        # Non-IANA TZIDs (e.g. "Eastern Standard Time" from Outlook) are
        # passed through unchanged, on a naive datetime.
        tz_str = tzid or getattr(dt.tzinfo, "key", None)
        return dt.strftime("%Y-%m-%dT%H:%M:%S"), tz_str, False

    # Floating (no timezone)
    return dt.strftime("%Y-%m-%dT%H:%M:%S"), None, False


def _rrule_to_jscal(rrule_prop) -> dict:
    """Convert an iCalendar RRULE property to a JSCalendar RecurrenceRule dict."""
    rule: dict = {"@type": "RecurrenceRule"}

    freq_list = _as_list(rrule_prop.get("FREQ"))
    if not freq_list:
        raise ValueError(f"RRULE is missing required FREQ component: {rrule_prop!r}")
    rule["frequency"] = freq_list[0].lower()

    interval_list = _as_list(rrule_prop.get("INTERVAL"))
    if interval_list and int(interval_list[0]) != 1:
        rule["interval"] = int(interval_list[0])

    wkst_list = _as_list(rrule_prop.get("WKST"))
    if wkst_list:
        rule["firstDayOfWeek"] = wkst_list[0].lower()

    count_list = _as_list(rrule_prop.get("COUNT"))
    if count_list:
        rule["count"] = int(count_list[0])

    until_list = _as_list(rrule_prop.get("UNTIL"))
    if until_list:
        rule["until"] = _format_local_dt(until_list[0])

    byday_list = _as_list(rrule_prop.get("BYDAY"))
    if byday_list:
        by_day = []
        for item in byday_list:
            s = str(item)
            day_abbr = s.lstrip("+-0123456789")
            nth_str = s[: len(s) - len(day_abbr)]
            nday: dict = {"@type": "NDay", "day": day_abbr.lower()}
            if nth_str:
                nday["nthOfPeriod"] = int(nth_str)
            by_day.append(nday)
        rule["byDay"] = by_day

    bymonth_list = _as_list(rrule_prop.get("BYMONTH"))
    if bymonth_list:
        rule["byMonth"] = [str(m) for m in bymonth_list]

    for ical_name, jscal_name in (
        ("BYMONTHDAY", "byMonthDay"),
        ("BYYEARDAY", "byYearDay"),
        ("BYWEEKNO", "byWeekNo"),
        ("BYHOUR", "byHour"),
        ("BYMINUTE", "byMinute"),
        ("BYSECOND", "bySecond"),
        ("BYSETPOS", "bySetPosition"),
    ):
        values = _as_list(rrule_prop.get(ical_name))
        if values:
            rule[jscal_name] = [int(v) for v in values]

    return rule


def _exdate_to_overrides(exdate_prop) -> dict:
    """Convert an EXDATE property (single or list) to recurrenceOverrides entries.

    Returns:
        Dict mapping LocalDateTime/UTCDateTime string → {"excluded": True}
    """
    overrides: dict = {}
    for ex in _as_list(exdate_prop):
        dts = getattr(ex, "dts", [ex])
        for dt_prop in dts:
            dt = getattr(dt_prop, "dt", dt_prop)
            overrides[_format_local_dt(dt)] = {"excluded": True}
    return overrides


def _rdate_to_overrides(rdate_prop) -> dict:
    """RDATE values become empty patches: extra occurrences with no changes"""
    overrides: dict = {}
    for rd in _as_list(rdate_prop):
        for dt_prop in getattr(rd, "dts", [rd]):
            dt = getattr(dt_prop, "dt", dt_prop)
            if isinstance(dt, tuple):
                ## PERIOD values, keep the start
                dt = dt[0]
            overrides[_format_local_dt(dt)] = {}
    return overrides


def _address_to_participant(address, roles: dict) -> dict:
    addr = str(address)
    email = addr.removeprefix("mailto:")
    p: dict = {
        "@type": "Participant",
        "roles": roles,
        "sendTo": {"imip": addr if addr.startswith("mailto:") else f"mailto:{email}"},
        "email": email,
    }
    cn = address.params.get("CN")
    if cn:
        p["name"] = str(cn)
    return p


def _organizer_to_participant(organizer) -> dict:
    """Convert an ORGANIZER property to a Participant dict."""
    return _address_to_participant(organizer, {"owner": True, "organizer": True})


def _attendee_to_participant(attendee) -> dict:
    """Convert an ATTENDEE property to a Participant dict."""
    p = _address_to_participant(attendee, {"attendee": True})

    partstat = attendee.params.get("PARTSTAT")
    if partstat:
        p["participationStatus"] = _PARTSTAT_MAP.get(partstat.upper(), partstat.lower())

    rsvp = attendee.params.get("RSVP", "")
    if str(rsvp).upper() == "TRUE":
        p["expectReply"] = True

    cutype = attendee.params.get("CUTYPE")
    if cutype:
        p["kind"] = _CUTYPE_MAP.get(cutype.upper(), cutype.lower())

    role = attendee.params.get("ROLE", "")
    if role.upper() == "CHAIR":
        p["roles"]["chair"] = True
    elif role.upper() == "OPT-PARTICIPANT":
        p["roles"]["optional"] = True
    elif role.upper() == "NON-PARTICIPANT":
        p["roles"] = {"informational": True}

    return p


def _valarm_to_alert(alarm) -> dict:
    """Convert a VALARM component to an Alert dict.

    The trigger becomes an OffsetTrigger (relative) or an AbsoluteTrigger.
    """
    action = str(alarm.get("ACTION", "display")).lower()
    alert: dict = {"@type": "Alert", "action": action}

    trigger_prop = alarm.get("TRIGGER")
    if trigger_prop is not None:
        trigger_val = trigger_prop.dt
        if isinstance(trigger_val, timedelta):
            trigger: dict = {
                "@type": "OffsetTrigger",
                "offset": _timedelta_to_duration(trigger_val),
            }
            if str(trigger_prop.params.get("RELATED", "")).upper() == "END":
                trigger["relativeTo"] = "end"
            alert["trigger"] = trigger
        elif isinstance(trigger_val, datetime):
            alert["trigger"] = {
                "@type": "AbsoluteTrigger",
                "when": trigger_val.strftime("%Y-%m-%dT%H:%M:%SZ"),
            }

    description = alarm.get("DESCRIPTION")
    if description:
        alert["description"] = str(description)

    return alert


def _categories_to_keywords(categories_prop) -> dict:
    """Convert a CATEGORIES property to a JSCalendar keywords map.

    icalendar returns one of three types depending on how CATEGORIES appears:
    - vCategory (single CATEGORIES line, possibly multi-value): access .cats
    - list of vCategory (multiple CATEGORIES lines): flatten .cats from each
    - vText (rare, single bare string value): str() and comma-split
    """
    values = []
    for item in _as_list(categories_prop):
        if hasattr(item, "cats"):
            values.extend(str(c) for c in item.cats)
        else:
            values.extend(v.strip() for v in str(item).split(",") if v.strip())
    return {v: True for v in values}


def _override_patch(child: icalendar.Event, master_jscal: dict) -> dict:
    """Build a patch holding only the fields of a RECURRENCE-ID child that
    differ from the master event."""
    patch: dict = {}
    child_summary = child.get("SUMMARY")
    if child_summary and str(child_summary) != master_jscal.get("title"):
        patch["title"] = str(child_summary)
    child_start_prop = child.get("DTSTART")
    if child_start_prop:
        child_start, _, _ = _dtstart_to_jscal(child_start_prop)
        if child_start != master_jscal.get("start"):
            patch["start"] = child_start
    child_duration = _event_duration(child)
    if child_duration is not None and child_duration != master_jscal.get("duration"):
        patch["duration"] = child_duration
    child_description = child.get("DESCRIPTION")
    if child_description and str(child_description) != master_jscal.get("description"):
        patch["description"] = str(child_description)
    child_location = child.get("LOCATION")
    if child_location:
        patch["locations"] = {"1": {"@type": "Location", "name": str(child_location)}}
    child_status = child.get("STATUS")
    if child_status and str(child_status).upper() == "CANCELLED":
        patch["status"] = "cancelled"
    return patch


def _event_duration(component) -> str | None:
    """
    Raises:
        ValueError: if DTSTART and DTEND are of different kinds (date and
        date-time, or floating and zoned)
    """
    if component.get("DURATION"):
        return _timedelta_to_duration(component["DURATION"].dt)
    if component.get("DTEND") and component.get("DTSTART"):
        start = component["DTSTART"].dt
        end = component["DTEND"].dt
        if isinstance(start, datetime) != isinstance(end, datetime) or (
            isinstance(start, datetime) and (start.tzinfo is None) != (end.tzinfo is None)
        ):
            raise ValueError(f"DTEND {end} does not match DTSTART {start}")
        return _timedelta_to_duration(end - start)
    return None


def vevent_to_jscal(master: icalendar.Event, children: list | None = None) -> dict:
    """Convert one master VEVENT (plus its RECURRENCE-ID children) to a
    JSCalendar Event dict.

    Raises:
        ValueError: If an RRULE lacks FREQ.
    """
    new_id = _IdSequence()

    jscal: dict = {"@type": "Event"}
    uid = master.get("UID")
    if uid is not None:
        jscal["uid"] = str(uid)

    dtstamp = master.get("DTSTAMP")
    if dtstamp is not None:
        jscal["updated"] = _format_local_dt(dtstamp.dt)

    summary = master.get("SUMMARY")
    if summary:
        jscal["title"] = str(summary)

    description = master.get("DESCRIPTION")
    if description:
        jscal["description"] = str(description)

    dtstart_prop = master.get("DTSTART")
    if dtstart_prop is not None:
        start, time_zone, show_without_time = _dtstart_to_jscal(dtstart_prop)
        jscal["start"] = start
        if time_zone is not None:
            jscal["timeZone"] = time_zone
        if show_without_time:
            jscal["showWithoutTime"] = True

    duration = _event_duration(master)
    if duration is not None:
        jscal["duration"] = duration

    sequence = master.get("SEQUENCE")
    if sequence is not None:
        jscal["sequence"] = int(sequence)

    priority = master.get("PRIORITY")
    if priority is not None and int(priority) != 0:
        jscal["priority"] = int(priority)

    cls = master.get("CLASS")
    if cls:
        privacy = _CLASS_MAP.get(str(cls).upper())
        if privacy:
            jscal["privacy"] = privacy

    status = master.get("STATUS")
    if status:
        status_value = _STATUS_MAP.get(str(status).upper())
        if status_value:
            jscal["status"] = status_value

    transp = master.get("TRANSP")
    if transp and str(transp).upper() == "TRANSPARENT":
        jscal["freeBusyStatus"] = "free"

    color = master.get("COLOR")
    if color:
        jscal["color"] = str(color)

    categories = master.get("CATEGORIES")
    if categories is not None:
        kw = _categories_to_keywords(categories)
        if kw:
            jscal["keywords"] = kw

    location = master.get("LOCATION")
    if location:
        jscal["locations"] = {new_id(): {"@type": "Location", "name": str(location)}}

    participants: dict = {}
    organizer = master.get("ORGANIZER")
    if organizer is not None:
        participants[new_id()] = _organizer_to_participant(organizer)
    for attendee in _as_list(master.get("ATTENDEE")):
        participants[new_id()] = _attendee_to_participant(attendee)
    if participants:
        jscal["participants"] = participants

    rrules = _as_list(master.get("RRULE"))
    if rrules:
        jscal["recurrenceRules"] = [_rrule_to_jscal(r) for r in rrules]

    exrules = _as_list(master.get("EXRULE"))
    if exrules:
        jscal["excludedRecurrenceRules"] = [_rrule_to_jscal(r) for r in exrules]

    recurrence_overrides: dict = {}
    rdate = master.get("RDATE")
    if rdate is not None:
        recurrence_overrides.update(_rdate_to_overrides(rdate))
    exdate = master.get("EXDATE")
    if exdate is not None:
        recurrence_overrides.update(_exdate_to_overrides(exdate))
    for child in children or []:
        rid_key = _format_local_dt(child["RECURRENCE-ID"].dt)
        recurrence_overrides[rid_key] = _override_patch(child, jscal)
    if recurrence_overrides:
        jscal["recurrenceOverrides"] = recurrence_overrides

    alarms = [c for c in master.subcomponents if getattr(c, "name", None) == "VALARM"]
    if alarms:
        jscal["alerts"] = {new_id(): _valarm_to_alert(alarm) for alarm in alarms}

    return jscal


def ical_to_jscal(calendar: icalendar.Calendar | str) -> dict:
    """Convert an iCalendar object (or string) to a JSCalendar Group dict.

    Sibling VEVENTs carrying a RECURRENCE-ID are folded into the
    ``recurrenceOverrides`` map of the master event with the same UID.
    An override without a master becomes an event of its own.

    Raises:
        ValueError: If the string cannot be parsed, or an RRULE is broken.
    """
    if isinstance(calendar, str):
        calendar = icalendar.Calendar.from_ical(vcal.fix(calendar))

    masters: list[icalendar.Event] = []
    children_by_uid: dict[str, list[icalendar.Event]] = {}
    for component in calendar.subcomponents:
        if not isinstance(component, icalendar.Event):
            continue
        if component.get("RECURRENCE-ID") is not None:
            children_by_uid.setdefault(str(component.get("UID")), []).append(component)
        else:
            masters.append(component)

    entries = []
    for master in masters:
        children = children_by_uid.pop(str(master.get("UID")), [])
        entries.append(vevent_to_jscal(master, children))
    for orphans in children_by_uid.values():
        for orphan in orphans:
            entries.append(vevent_to_jscal(orphan))

    group: dict = {"@type": "Group"}
    prodid = calendar.get("PRODID")
    if prodid:
        group["prodId"] = str(prodid)
    name = calendar.get("X-WR-CALNAME")
    if name:
        group["title"] = str(name)
    group["entries"] = entries
    return group
