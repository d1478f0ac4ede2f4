from datetime import datetime
from datetime import timedelta
from datetime import timezone
from zoneinfo import ZoneInfo

import icalendar
import pytest

from jmap_convert.entries import CalendarEntry
from jmap_convert.entries import CalendarExpand
from jmap_convert.entries import ExpandedEvent
from jmap_convert.expand import expand
from jmap_convert.expand import format_instant
from jmap_convert.expand import format_occurrence
from jmap_convert.expand import zone_name
from jmap_convert.parser import Parser


def _make_ical(*events: str) -> str:
    body = "".join(
        "BEGIN:VEVENT\r\n"
        f"UID:test-uid-{i}@example.com\r\n"
        "DTSTAMP:20240101T000000Z\r\n" + lines + "END:VEVENT\r\n"
        for i, lines in enumerate(events)
    )
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//Test//Test//EN\r\n" + body + "END:VCALENDAR\r\n"
    )


def _entry(*events: str) -> CalendarEntry:
    return Parser(_make_ical(*events)).entry()


class TestFormatting:
    def test_zoned(self):
        dt = datetime(2024, 6, 17, 14, 0, tzinfo=ZoneInfo("Europe/Berlin"))
        assert format_instant(dt) == "Mon Jun 17, 2024 2:00pm (Europe/Berlin)"

    def test_floating(self):
        assert format_instant(datetime(2024, 1, 1, 0, 5)) == "Mon Jan 1, 2024 12:05am (Floating)"

    def test_noon(self):
        assert format_instant(datetime(2024, 3, 9, 12, 30)) == "Sat Mar 9, 2024 12:30pm (Floating)"

    def test_utc(self):
        dt = datetime(2024, 12, 25, 23, 59, tzinfo=timezone.utc)
        assert format_instant(dt) == "Wed Dec 25, 2024 11:59pm (UTC)"

    def test_format_occurrence(self):
        start = datetime(2024, 6, 17, 9, 0)
        assert format_occurrence(start, start + timedelta(minutes=90)) == (
            "Mon Jun 17, 2024 9:00am (Floating)",
            "Mon Jun 17, 2024 10:30am (Floating)",
        )

    def test_zone_name(self):
        assert zone_name(datetime(2024, 1, 1)) == "Floating"
        assert zone_name(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "UTC"
        assert zone_name(datetime(2024, 1, 1, tzinfo=ZoneInfo("Asia/Tokyo"))) == "Asia/Tokyo"


class TestExpandedEvent:
    def _event(self, lines: str) -> ExpandedEvent:
        cal = icalendar.Calendar.from_ical(_make_ical(lines))
        return ExpandedEvent(cal.walk("VEVENT")[0])

    def test_dtend(self):
        instance = self._event(
            "DTSTART:20240615T100000Z\r\nDTEND:20240615T113000Z\r\n"
        ).try_into_date_time()
        assert instance.end - instance.start == timedelta(hours=1, minutes=30)

    def test_duration(self):
        instance = self._event("DTSTART:20240615T100000\r\nDURATION:PT45M\r\n").try_into_date_time()
        assert instance.start == datetime(2024, 6, 15, 10, 0)
        assert instance.end == datetime(2024, 6, 15, 10, 45)

    def test_no_end(self):
        instance = self._event("DTSTART:20240615T100000\r\n").try_into_date_time()
        assert instance.start == instance.end

    def test_all_day(self):
        assert self._event("DTSTART;VALUE=DATE:20240615\r\n").try_into_date_time() is None

    def test_no_start(self):
        assert self._event("SUMMARY:nothing\r\n").try_into_date_time() is None


class TestExpandDates:
    def test_is_capped(self):
        entry = _entry("DTSTART:20240101T090000Z\r\nRRULE:FREQ=DAILY\r\n")
        assert len(entry.expand_dates(7).events) == 7

    def test_single_event(self):
        entry = _entry("DTSTART:20240101T090000Z\r\n")
        assert len(entry.expand_dates(25).events) == 1

    def test_event_without_start(self):
        entry = _entry("SUMMARY:no start\r\nRRULE:FREQ=DAILY\r\n", "DTSTART:20240101T090000Z\r\n")
        assert len(entry.expand_dates(25).events) == 1
        ## the parsed calendar is left alone
        assert len(entry.calendar.walk("VEVENT")) == 2


class TestExpand:
    def test_single_event(self):
        occurrences = expand(_entry("DTSTART:20240615T100000Z\r\nDURATION:PT1H\r\n"))
        assert len(occurrences) == 1
        assert occurrences[0].from_ == "Sat Jun 15, 2024 10:00am (UTC)"
        assert occurrences[0].to == "Sat Jun 15, 2024 11:00am (UTC)"

    def test_infinite_daily_rule(self):
        occurrences = expand(
            _entry("DTSTART:20240101T090000Z\r\nDURATION:PT1H\r\nRRULE:FREQ=DAILY;INTERVAL=2\r\n")
        )
        assert len(occurrences) == 25
        starts = [o.start for o in occurrences]
        assert starts == sorted(starts)
        for a, b in zip(starts, starts[1:]):
            assert b - a == timedelta(days=2)

    def test_max_occurrences(self):
        entry = _entry("DTSTART:20240101T090000Z\r\nRRULE:FREQ=WEEKLY\r\n")
        assert len(expand(entry, max_occurrences=3)) == 3

    def test_count_below_max(self):
        entry = _entry("DTSTART:20240101T090000Z\r\nRRULE:FREQ=DAILY;COUNT=4\r\n")
        assert len(expand(entry)) == 4

    def test_floating(self):
        occurrences = expand(_entry("DTSTART:20240615T100000\r\nDTEND:20240615T110000\r\n"))
        assert occurrences[0].from_.endswith("(Floating)")
        assert occurrences[0].to.endswith("(Floating)")

    def test_zoned(self):
        occurrences = expand(
            _entry("DTSTART;TZID=Europe/Berlin:20240617T140000\r\nDURATION:PT1H\r\n")
        )
        assert occurrences[0].from_ == "Mon Jun 17, 2024 2:00pm (Europe/Berlin)"
        assert occurrences[0].to == "Mon Jun 17, 2024 3:00pm (Europe/Berlin)"

    def test_all_day_events_are_left_out(self):
        entry = _entry(
            "DTSTART;VALUE=DATE:20240615\r\n",
            "DTSTART:20240616T100000Z\r\n",
        )
        occurrences = expand(entry)
        assert len(occurrences) == 1
        assert occurrences[0].start.day == 16

    def test_exdate(self):
        entry = _entry(
            "DTSTART:20240101T090000Z\r\nRRULE:FREQ=DAILY;COUNT=3\r\nEXDATE:20240102T090000Z\r\n"
        )
        assert [o.start.day for o in expand(entry)] == [1, 3]

    def test_ordered_across_events(self):
        entry = _entry(
            "DTSTART:20240620T100000Z\r\n",
            "DTSTART:20240610T100000Z\r\n",
            "DTSTART:20240615T100000Z\r\n",
        )
        assert [o.start.day for o in expand(entry)] == [10, 15, 20]

    @pytest.mark.parametrize(
        "default_timezone,expected",
        [
            (None, ["(Floating)", "(UTC)"]),
            ("Asia/Tokyo", ["(Floating)", "(UTC)"]),
            ("America/New_York", ["(UTC)", "(Floating)"]),
        ],
    )
    def test_floating_ordered_in_default_timezone(self, default_timezone, expected):
        ## 10:00 floating and 12:00 UTC on the same day
        entry = _entry(
            "DTSTART:20240615T120000Z\r\n",
            "DTSTART:20240615T100000\r\n",
        )
        occurrences = expand(entry, default_timezone=default_timezone)
        assert [o.from_[o.from_.index("("):] for o in occurrences] == expected


class TestTieBreak:
    """Occurrences starting at the same instant keep the order in which the
    expansion produced them"""

    def _expanded(self, *events: str) -> list:
        cal = icalendar.Calendar.from_ical(_make_ical(*events))
        return [ExpandedEvent(c) for c in cal.walk("VEVENT")]

    def _expand_in_order(self, monkeypatch, expanded, **kwargs):
        monkeypatch.setattr(
            CalendarEntry, "expand_dates", lambda self, max_count: CalendarExpand(expanded)
        )
        return expand(_entry("DTSTART:20240101T090000Z\r\n"), **kwargs)

    @pytest.mark.parametrize("reverse", [False, True])
    def test_same_start(self, monkeypatch, reverse):
        expanded = self._expanded(
            "DTSTART:20240615T100000Z\r\nDURATION:PT1H\r\n",
            "DTSTART:20240615T100000Z\r\nDURATION:PT2H\r\n",
        )
        if reverse:
            expanded.reverse()
        occurrences = self._expand_in_order(monkeypatch, expanded)
        expected = [e.try_into_date_time().end for e in expanded]
        assert [o.end for o in occurrences] == expected

    @pytest.mark.parametrize("reverse", [False, True])
    def test_floating_and_zoned_at_the_same_instant(self, monkeypatch, reverse):
        ## 10:00 in Berlin is 08:00 UTC in june
        expanded = self._expanded(
            "DTSTART:20240615T080000Z\r\nDURATION:PT1H\r\n",
            "DTSTART:20240615T100000\r\nDURATION:PT2H\r\n",
        )
        if reverse:
            expanded.reverse()
        occurrences = self._expand_in_order(
            monkeypatch, expanded, default_timezone="Europe/Berlin"
        )
        expected = [e.try_into_date_time().end for e in expanded]
        assert [o.end for o in occurrences] == expected

    def test_same_start_from_the_expansion(self):
        entry = _entry(
            "DTSTART:20240615T100000Z\r\nDURATION:PT1H\r\n",
            "DTSTART:20240615T100000Z\r\nDURATION:PT2H\r\n",
        )
        emitted = [e.try_into_date_time().end for e in entry.expand_dates(25).events]
        assert [o.end for o in expand(entry)] == emitted
