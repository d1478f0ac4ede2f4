"""
Parser for the legacy ``BEGIN:``/``END:`` delimited text formats.

iCalendar and vCard share the same content line and component syntax, so
one parser reads both: it checks the component structure itself, decides
from the root component whether it's looking at a calendar or a contact,
and leaves the property grammar to ``icalendar`` respectively ``vobject``.

    >>> entry = Parser(text).entry()

``entry()`` returns a :class:`CalendarEntry` or a :class:`ContactEntry`,
or raises one of the :class:`ParseError` subclasses.
"""

import logging
import re
from typing import Union

import icalendar
import vobject
from vobject.base import VObjectError

from jmap_convert.entries import CalendarEntry
from jmap_convert.entries import ContactEntry
from jmap_convert.lib import vcal
from jmap_convert.lib.error import InvalidLine
from jmap_convert.lib.error import TooManyComponents
from jmap_convert.lib.error import UnexpectedComponentEnd
from jmap_convert.lib.error import UnexpectedEof
from jmap_convert.lib.error import UnterminatedComponent

log = logging.getLogger("jmap_convert")

DEFAULT_MAX_COMPONENTS = 10000

ROOT_COMPONENTS = ("VCALENDAR", "VCARD")

## name, optionally prefixed by a vCard group, then parameters (which may
## hold quoted colons), then the value
_CONTENT_LINE_RE = re.compile(
    r'^(?:[A-Za-z0-9-]+\.)?(?P<name>[A-Za-z0-9-]+)(?:;(?:[^:"]|"[^"]*")*)?:(?P<value>.*)$'
)


def _logical_lines(text: str):
    """The unfolded lines of text.  vCard 2.1 quoted-printable soft line
    breaks (a value ending with "=") are kept, together with the line they
    continue on, in one logical line."""
    pending = None
    for line in vcal.unfold(text).split("\n"):
        if pending is not None:
            line = pending + "\n" + line
            pending = None
        params = line.split(":", 1)[0].lower()
        if line.rstrip("\r").endswith("=") and "quoted-printable" in params:
            pending = line
            continue
        yield line
    if pending is not None:
        yield pending


class Parser:
    def __init__(self, text: str, max_components: int = DEFAULT_MAX_COMPONENTS) -> None:
        self.text = text
        self.max_components = max_components

    def entry(self) -> Union[CalendarEntry, ContactEntry]:
        """Reads the first entry of the text.  Anything after the end of
        the first root component is ignored."""
        lines = self._scan()
        root = _CONTENT_LINE_RE.match(lines[0]).group("value").strip().upper()
        text = "\n".join(lines) + "\n"
        log.debug(f"parsing {root} with {len(lines)} content lines")
        if root == "VCALENDAR":
            return CalendarEntry(self._parse_icalendar(text))
        return ContactEntry(self._parse_vcard(text))

    def _scan(self) -> list:
        """Checks the component structure and returns the content lines of
        the first root component"""
        stack = []
        components = 0
        collected = []

        for line in _logical_lines(self.text):
            if not line.strip():
                continue
            ## a quoted-printable value may span physical lines, the name
            ## and parameters are on the first one
            m = _CONTENT_LINE_RE.match(line.split("\n")[0])
            if not m:
                raise InvalidLine(line)
            name = m.group("name").upper()
            component = m.group("value").strip().upper()

            if name == "BEGIN":
                if not stack and component not in ROOT_COMPONENTS:
                    raise InvalidLine(line)
                components += 1
                if components > self.max_components:
                    raise TooManyComponents()
                stack.append(component)
            elif name == "END":
                if not stack:
                    raise UnexpectedComponentEnd("none", component)
                if component != stack[-1]:
                    raise UnexpectedComponentEnd(stack[-1], component)
                stack.pop()
            elif not stack:
                ## properties outside of any component
                raise InvalidLine(line)

            collected.append(line)
            if not stack:
                return collected

        if stack:
            raise UnterminatedComponent(stack[-1])
        raise UnexpectedEof()

    def _parse_icalendar(self, text: str) -> icalendar.Calendar:
        try:
            calendar = icalendar.Calendar.from_ical(vcal.fix(text))
        except ValueError as e:
            raise InvalidLine(str(e)) from e
        ## icalendar is lenient: broken property values are recorded on the
        ## component instead of raising
        for component in calendar.walk():
            for prop, message in getattr(component, "errors", []):
                raise InvalidLine(f"{prop}: {message}")
        return calendar

    def _parse_vcard(self, text: str):
        try:
            return vobject.readOne(text, allowQP=True)
        except (VObjectError, ValueError) as e:
            raise InvalidLine(str(e)) from e
