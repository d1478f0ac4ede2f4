"""
The conversion pipeline: detect the format of the input, parse it,
convert it to the counterpart format, convert it back to verify the
conversion, and (for calendars) expand the recurrences.

    >>> outcome = convert(text)
    >>> if outcome.ok:
    ...     print(outcome.result.conversion)
    ... elif outcome.error:
    ...     print(outcome.message)

Nothing here ever raises on bad input; errors are packaged in the
:class:`ConversionOutcome`.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from dataclasses import field
from typing import Optional
from typing import Union

from jmap_convert import samples
from jmap_convert.config import get_settings
from jmap_convert.config import Settings
from jmap_convert.detect import detect
from jmap_convert.detect import Detection
from jmap_convert.detect import SourceFormat
from jmap_convert.entries import CalendarEntry
from jmap_convert.entries import ContactEntry
from jmap_convert.entries import JSCalendar
from jmap_convert.entries import JSContact
from jmap_convert.expand import expand
from jmap_convert.expand import Occurrence
from jmap_convert.lib.error import conversion_error_for
from jmap_convert.lib.error import ConversionError
from jmap_convert.lib.error import InvalidSyntax
from jmap_convert.lib.error import ParseError
from jmap_convert.lib.error import RoundTripFailure

log = logging.getLogger("jmap_convert")

Converted = Union[CalendarEntry, ContactEntry, JSCalendar, JSContact]


@dataclass(frozen=True)
class ConversionResult:
    source_format: SourceFormat
    ## the input, in the counterpart format
    conversion: str
    ## the conversion, converted back to the source format.  None if that
    ## failed (see ConversionOutcome.error)
    roundtrip: Optional[str]
    occurrences: tuple[Occurrence, ...] = field(default_factory=tuple)

    @property
    def target_format(self) -> SourceFormat:
        return self.source_format.counterpart


@dataclass(frozen=True)
class ConversionOutcome:
    """What came out of one conversion attempt.

    Empty input gives an outcome with neither result nor error.  A
    RoundTripFailure comes with the result of the primary conversion when
    there is one; every other error comes alone.
    """

    result: Optional[ConversionResult] = None
    error: Optional[ConversionError] = None

    @property
    def is_empty(self) -> bool:
        return self.result is None and self.error is None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""


def _render(value: Converted) -> str:
    if isinstance(value, (JSCalendar, JSContact)):
        return value.to_string_pretty()
    return value.to_string()


def verify_roundtrip(converted: Converted) -> str:
    """Converts the converted value back to the format it came from.

    Conversion towards JSON can't fail, conversion from JSON can: when
    the JSON value has no legacy representation the bidirectional
    mapping has a gap.

    Raises:
        RoundTripFailure: if the value can't be converted back
    """
    if isinstance(converted, JSCalendar):
        back = converted.into_icalendar()
    elif isinstance(converted, JSContact):
        back = converted.into_vcard()
    elif isinstance(converted, CalendarEntry):
        try:
            back = converted.to_jscalendar()
        except ValueError as e:
            log.warning(f"iCalendar can't be converted back to JSCalendar: {e}")
            back = None
    else:
        back = converted.to_jscontact()
    if back is None:
        log.warning(
            f"round-trip conversion of {type(converted).__name__} failed.  "
            "This is a bug in the converter."
        )
        raise RoundTripFailure()
    return _render(back)


def _occurrences(
    entry: CalendarEntry, settings: Settings, domain: Optional[str] = None
) -> tuple[Occurrence, ...]:
    try:
        return tuple(
            expand(
                entry,
                default_timezone=settings.default_timezone,
                max_occurrences=settings.max_occurrences,
            )
        )
    except ValueError as e:
        ## recurrence rules dateutil refuses to iterate
        raise InvalidSyntax(str(e), domain=domain) from e


def _package(
    source_format: SourceFormat,
    converted: Converted,
    occurrences: tuple[Occurrence, ...],
) -> ConversionOutcome:
    conversion = _render(converted)
    try:
        roundtrip = verify_roundtrip(converted)
    except RoundTripFailure as e:
        ## the primary conversion is fine, keep it
        return ConversionOutcome(
            result=ConversionResult(source_format, conversion, None, occurrences),
            error=e,
        )
    return ConversionOutcome(
        result=ConversionResult(source_format, conversion, roundtrip, occurrences)
    )


def _convert_legacy(detected: Detection, settings: Settings) -> ConversionOutcome:
    entry = detected.entry
    if isinstance(entry, ContactEntry):
        return _package(detected.format, entry.to_jscontact(), ())

    try:
        converted = entry.to_jscalendar()
    except ValueError as e:
        raise InvalidSyntax(str(e)) from e
    ## expand the parsed calendar, not the round-tripped one
    return _package(detected.format, converted, _occurrences(entry, settings))


def _convert_json(
    source: str, detected: Detection, settings: Settings
) -> ConversionOutcome:
    value_class = JSCalendar if detected.format == SourceFormat.JSCALENDAR else JSContact
    try:
        value = value_class.parse(source.rstrip())
    except ValueError as e:
        raise InvalidSyntax(str(e), domain=value_class.label) from e

    ## here the primary conversion is the one that may fail, and without
    ## it there's nothing to show
    if isinstance(value, JSCalendar):
        entry = value.into_icalendar()
    else:
        entry = value.into_vcard()
    if entry is None:
        raise RoundTripFailure()

    occurrences: tuple[Occurrence, ...] = ()
    if isinstance(entry, CalendarEntry):
        occurrences = _occurrences(entry, settings, domain=value_class.label)
    return _package(detected.format, entry, occurrences)


def convert(text: str, settings: Optional[Settings] = None) -> ConversionOutcome:
    """Detects the format of text and converts it to the counterpart format.

    Pure function of its input; never raises on bad input.
    """
    settings = settings or Settings()
    source = text.lstrip()
    if not source:
        return ConversionOutcome()

    try:
        detected = detect(source, max_components=settings.max_components)
        log.debug(f"input detected as {detected.format.label}")
        if detected.format.is_json:
            return _convert_json(source, detected, settings)
        return _convert_legacy(detected, settings)
    except ParseError as e:
        log.debug(f"legacy parser rejected the input: {e!r}")
        return ConversionOutcome(error=conversion_error_for(e))
    except ConversionError as e:
        return ConversionOutcome(error=e)


class ConversionSession:
    """Holds the current input and the outcome of converting it.

    Every new input replaces the previous outcome completely.
    """

    def __init__(self, settings: Optional[Settings] = None, rng=None) -> None:
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self.source = ""
        self.outcome = ConversionOutcome()

    def submit(self, text: str) -> ConversionOutcome:
        self.source = text
        return self.refresh()

    def refresh(self) -> ConversionOutcome:
        """Converts the current source again"""
        self.outcome = convert(self.source, self.settings)
        return self.outcome

    def load_sample(self) -> ConversionOutcome:
        """Replaces the source with a randomly picked bundled sample"""
        return self.submit(samples.random_sample(self.rng))
