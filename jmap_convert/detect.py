"""
Guessing which of the four supported formats some pasted text is in.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional
from typing import Union

from jmap_convert.entries import CalendarEntry
from jmap_convert.entries import ContactEntry
from jmap_convert.lib.error import UnrecognizedFormat
from jmap_convert.parser import DEFAULT_MAX_COMPONENTS
from jmap_convert.parser import Parser

log = logging.getLogger("jmap_convert")

LEGACY_BLOCK_OPEN = "BEGIN:"
JSON_OBJECT_OPEN = "{"

## Substrings identifying the JSON flavour.  This is a heuristic, the
## JSON is not parsed until the next step.
JSCALENDAR_DISCRIMINATOR = '"Group"'
JSCONTACT_DISCRIMINATOR = '"Card"'

NOT_JSCAL_OR_JSCONTACT = "This does not look like a valid JSCalendar or JSContact."


class SourceFormat(enum.Enum):
    ICALENDAR = "iCalendar"
    JSCALENDAR = "JSCalendar"
    VCARD = "vCard"
    JSCONTACT = "JSContact"

    @property
    def label(self) -> str:
        return self.value

    @property
    def counterpart(self) -> "SourceFormat":
        return _COUNTERPARTS[self]

    @property
    def is_json(self) -> bool:
        return self in (SourceFormat.JSCALENDAR, SourceFormat.JSCONTACT)

    @property
    def domain(self) -> str:
        if self in (SourceFormat.ICALENDAR, SourceFormat.JSCALENDAR):
            return "calendar"
        return "contact"


_COUNTERPARTS = {
    SourceFormat.ICALENDAR: SourceFormat.JSCALENDAR,
    SourceFormat.JSCALENDAR: SourceFormat.ICALENDAR,
    SourceFormat.VCARD: SourceFormat.JSCONTACT,
    SourceFormat.JSCONTACT: SourceFormat.VCARD,
}


@dataclass(frozen=True)
class Detection:
    """The detected format.  For the legacy formats detection requires
    parsing, so the parsed entry comes along."""

    format: SourceFormat
    entry: Optional[Union[CalendarEntry, ContactEntry]] = None


def detect(
    text: str, max_components: int = DEFAULT_MAX_COMPONENTS
) -> Optional[Detection]:
    """Classifies the text.

    Returns None for empty (or whitespace only) text.

    Raises:
        UnrecognizedFormat: if the text is in none of the four formats
        ParseError: if the text starts like iCalendar/vCard but can't be parsed
    """
    text = text.lstrip()
    if not text:
        return None

    if text.startswith(LEGACY_BLOCK_OPEN):
        ## calendar or contact?  Only the parser can tell.
        entry = Parser(text, max_components=max_components).entry()
        if isinstance(entry, CalendarEntry):
            return Detection(SourceFormat.ICALENDAR, entry)
        return Detection(SourceFormat.VCARD, entry)

    if text.startswith(JSON_OBJECT_OPEN):
        if JSCALENDAR_DISCRIMINATOR in text:
            return Detection(SourceFormat.JSCALENDAR)
        if JSCONTACT_DISCRIMINATOR in text:
            return Detection(SourceFormat.JSCONTACT)
        log.debug("JSON object without a JSCalendar or JSContact @type")
        raise UnrecognizedFormat(NOT_JSCAL_OR_JSCONTACT)

    raise UnrecognizedFormat()
