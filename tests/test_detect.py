import pytest

from jmap_convert.detect import detect
from jmap_convert.detect import NOT_JSCAL_OR_JSCONTACT
from jmap_convert.detect import SourceFormat
from jmap_convert.entries import CalendarEntry
from jmap_convert.entries import ContactEntry
from jmap_convert.lib.error import ParseError
from jmap_convert.lib.error import UnrecognizedFormat

ical = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:test-uid@example.com
DTSTAMP:20240101T000000Z
DTSTART:20240615T100000Z
SUMMARY:Test
END:VEVENT
END:VCALENDAR
"""

vcard = """BEGIN:VCARD
VERSION:3.0
FN:Jane Doe
N:Doe;Jane;;;
END:VCARD
"""


class TestSourceFormat:
    def test_labels(self):
        assert [f.label for f in SourceFormat] == [
            "iCalendar",
            "JSCalendar",
            "vCard",
            "JSContact",
        ]

    def test_counterpart_is_an_involution(self):
        for f in SourceFormat:
            assert f.counterpart != f
            assert f.counterpart.counterpart == f

    def test_counterpart_stays_in_the_domain(self):
        for f in SourceFormat:
            assert f.counterpart.domain == f.domain
            assert f.counterpart.is_json != f.is_json

    def test_counterparts(self):
        assert SourceFormat.ICALENDAR.counterpart == SourceFormat.JSCALENDAR
        assert SourceFormat.VCARD.counterpart == SourceFormat.JSCONTACT


class TestDetect:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t \r\n"])
    def test_empty(self, text):
        assert detect(text) is None

    def test_icalendar(self):
        detected = detect(ical)
        assert detected.format == SourceFormat.ICALENDAR
        assert isinstance(detected.entry, CalendarEntry)

    def test_vcard(self):
        detected = detect(vcard)
        assert detected.format == SourceFormat.VCARD
        assert isinstance(detected.entry, ContactEntry)

    def test_leading_whitespace(self):
        assert detect("\n\n   " + vcard).format == SourceFormat.VCARD

    def test_jscalendar(self):
        detected = detect('{"@type": "Group", "entries": []}')
        assert detected.format == SourceFormat.JSCALENDAR
        assert detected.entry is None

    def test_jscontact(self):
        detected = detect('{"@type": "Card", "version": "1.0"}')
        assert detected.format == SourceFormat.JSCONTACT
        assert detected.entry is None

    def test_group_wins_over_card(self):
        assert detect('{"a": "Card", "b": "Group"}').format == SourceFormat.JSCALENDAR

    def test_malformed_json_with_group_is_not_rejected_here(self):
        assert detect('{"@type": "Group", ').format == SourceFormat.JSCALENDAR

    def test_json_without_discriminator(self):
        with pytest.raises(UnrecognizedFormat) as e:
            detect("{}")
        assert str(e.value) == NOT_JSCAL_OR_JSCONTACT

    def test_plain_text(self):
        with pytest.raises(UnrecognizedFormat) as e:
            detect("hello world")
        assert str(e.value) == (
            "Unrecognized format. Please provide a valid iCalendar, "
            "JSCalendar, vCard or JSContact file."
        )

    def test_json_array(self):
        with pytest.raises(UnrecognizedFormat):
            detect('[{"@type": "Group"}]')

    def test_broken_legacy_input(self):
        with pytest.raises(ParseError):
            detect("BEGIN:VCALENDAR\nVERSION:2.0\n")

    def test_max_components(self):
        with pytest.raises(ParseError):
            detect(ical, max_components=1)

    @pytest.mark.parametrize(
        "text", [ical, vcard, '{"@type": "Group"}', '{"@type": "Card"}']
    )
    def test_idempotent(self, text):
        assert detect(text).format == detect(text).format
