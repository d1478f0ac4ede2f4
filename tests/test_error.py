import pytest

from jmap_convert.lib import error
from jmap_convert.lib.error import conversion_error_for
from jmap_convert.lib.error import ConversionError
from jmap_convert.lib.error import ConvertError
from jmap_convert.lib.error import InvalidLine
from jmap_convert.lib.error import InvalidSyntax
from jmap_convert.lib.error import OversizedInput
from jmap_convert.lib.error import ParseError
from jmap_convert.lib.error import RoundTripFailure
from jmap_convert.lib.error import StructuralError
from jmap_convert.lib.error import TooManyComponents
from jmap_convert.lib.error import UnexpectedComponentEnd
from jmap_convert.lib.error import UnexpectedEnd
from jmap_convert.lib.error import UnexpectedEof
from jmap_convert.lib.error import UnrecognizedFormat
from jmap_convert.lib.error import UnterminatedComponent
from jmap_convert.lib.error import UnterminatedInput


class TestErrorHierarchy:
    def test_parse_errors_are_convert_errors(self):
        for cls in (TooManyComponents, UnexpectedEof):
            assert isinstance(cls(), ParseError)
            assert isinstance(cls(), ConvertError)

    def test_conversion_errors_are_convert_errors(self):
        assert isinstance(UnrecognizedFormat(), ConvertError)
        assert not isinstance(UnrecognizedFormat(), ParseError)

    def test_only_roundtrip_failure_is_not_the_users_fault(self):
        assert RoundTripFailure.is_user_error is False
        for cls in (UnrecognizedFormat, OversizedInput, UnexpectedEnd):
            assert cls.is_user_error is True

    def test_str_is_the_reason(self):
        assert str(OversizedInput()) == "Too many components"
        assert str(UnexpectedEnd()) == "Unexpected end of file"

    def test_unrecognized_format_messages(self):
        assert str(UnrecognizedFormat()) == (
            "Unrecognized format. Please provide a valid iCalendar, "
            "JSCalendar, vCard or JSContact file."
        )
        assert str(UnrecognizedFormat("something else")) == "something else"

    def test_invalid_syntax_messages(self):
        assert str(InvalidSyntax("FOO")) == "Invalid line found: FOO"
        assert (
            str(InvalidSyntax("Expecting value", domain="JSCalendar"))
            == "Failed to parse JSCalendar: Expecting value"
        )

    def test_roundtrip_failure_message(self):
        assert str(RoundTripFailure()) == (
            "Looks like you've found a bug in the conversion. Please report it."
        )

    def test_can_be_raised_and_caught_as_base(self):
        with pytest.raises(ConversionError):
            raise StructuralError("VCALENDAR", "VEVENT")


class TestConversionErrorFor:
    def test_invalid_line(self):
        err = conversion_error_for(InvalidLine("garbage"))
        assert isinstance(err, InvalidSyntax)
        assert str(err) == "Invalid line found: garbage"

    def test_unexpected_component_end(self):
        err = conversion_error_for(UnexpectedComponentEnd("VCALENDAR", "VEVENT"))
        assert isinstance(err, StructuralError)
        assert err.expected == "VCALENDAR"
        assert err.found == "VEVENT"
        assert str(err) == "Unexpected component end: expected VCALENDAR, found VEVENT"

    def test_unterminated_component(self):
        err = conversion_error_for(UnterminatedComponent("VEVENT"))
        assert isinstance(err, UnterminatedInput)
        assert str(err) == "Unterminated component: VEVENT"

    def test_too_many_components(self):
        assert isinstance(conversion_error_for(TooManyComponents()), OversizedInput)

    def test_unexpected_eof(self):
        assert isinstance(conversion_error_for(UnexpectedEof()), UnexpectedEnd)

    def test_unknown_parse_error(self):
        class SomethingElse(ParseError):
            pass

        assert isinstance(conversion_error_for(SomethingElse()), UnrecognizedFormat)


class TestAssert:
    def test_assert_passes(self):
        error.assert_(True)

    def test_assert_raises_outside_production(self, monkeypatch):
        monkeypatch.setattr(error, "debugmode", "DEVELOPMENT")
        with pytest.raises(AssertionError):
            error.assert_(False)

    def test_assert_logs_in_production(self, monkeypatch, caplog):
        monkeypatch.setattr(error, "debugmode", "PRODUCTION")
        error.assert_(False)
        assert "Deviation from expectations found" in caplog.text
