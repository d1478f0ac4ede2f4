"""
JSCalendar ↔ iCalendar and JSContact ↔ vCard conversion utilities.

Public API:
    ical_to_jscal(calendar) -> dict
    jscal_to_ical(group) -> icalendar.Calendar
    vcard_to_jscontact(vcard) -> dict
    jscontact_to_vcard(card) -> vobject component
"""

from jmap_convert.convert._utils import UnsupportedEntry
from jmap_convert.convert.ical_to_jscal import ical_to_jscal
from jmap_convert.convert.jscal_to_ical import jscal_to_ical
from jmap_convert.convert.jscontact_to_vcard import jscontact_to_vcard
from jmap_convert.convert.vcard_to_jscontact import vcard_to_jscontact

__all__ = [
    "UnsupportedEntry",
    "ical_to_jscal",
    "jscal_to_ical",
    "jscontact_to_vcard",
    "vcard_to_jscontact",
]
