#!/usr/bin/env python
import difflib
import logging
import re

from jmap_convert.lib.python_utilities import to_normal_str

## Global counter.  We don't want to be too verbose on the users
fixup_error_loggings = 0

## Fixups to the icalendar data to work around compatibility issues.


def unfold(text):
    """Joins folded content lines (RFC 5545 section 3.1, RFC 6350
    section 3.2): a line starting with a space or a tab is a
    continuation of the previous one.
    """
    return re.sub(r"\n[ \t]", "", to_normal_str(text))


def fix(event):
    """This function receives some ical as it was pasted by the user,
    checks for breakages with the standard, and attempts to fix up
    known issues before handing it over to the icalendar library:

    1) COMPLETED MUST be a datetime in UTC according to the RFC, but
    sometimes a date is given.

    2) CREATED timestamps at the end of year 0AD make no sense, some
    exporters write them anyway.  Move them to the epoch.

    3) iCloud apparently duplicates the DTSTAMP property sometimes -
    keep the first DTSTAMP encountered.

    4) Trailing white space is removed from all lines; it is ignored
    by icalendar but breaks vobject.

    5) Some exporters create events with both dtstart, dtend and
    duration set - which is forbidden according to the RFC.  We drop
    DURATION or DTEND (whatever comes last).
    """
    event = to_normal_str(event)
    if not event.endswith("\n"):
        event = event + "\n"

    ## 1) Add an arbitrary time if completed is given as date
    fixed = re.sub(
        r"COMPLETED(?:;VALUE=DATE)?:(\d+)\s", r"COMPLETED:\g<1>T120000Z\n", event
    )

    ## 2) CREATED timestamps prior to epoch does not make sense,
    ## change from year 0001 to epoch.
    fixed = re.sub("CREATED:00001231T000000Z", "CREATED:19700101T000000Z", fixed)

    ## 4) trailing whitespace probably never makes sense
    fixed = re.sub(" +$", "", fixed, flags=re.MULTILINE)

    ## 3) and 5)
    fixed2 = (
        "\n".join(filter(LineFilterDiscardingDuplicates(), fixed.strip().split("\n")))
        + "\n"
    )

    if fixed2 != event:
        ## The error logging is rate-limited: only every time the counter
        ## hits a power of two it's logged as a warning.
        global fixup_error_loggings
        fixup_error_loggings += 1
        is_power_of_two = lambda n: not (n & (n - 1))
        if is_power_of_two(fixup_error_loggings):
            log = logging.getLogger("jmap_convert").warning
        else:
            log = logging.getLogger("jmap_convert").debug

        log_message = [
            "Ical data was modified to avoid compatibility issues",
            "(The input breaks the icalendar standard)",
            f"(error count: {fixup_error_loggings} - this error is ratelimited)",
        ]
        diff = list(
            difflib.unified_diff(event.split("\n"), fixed2.split("\n"), lineterm="")
        )
        log("\n".join(log_message + diff))

    return fixed2


class LineFilterDiscardingDuplicates:
    """Needs to be a class because it keeps track of whether a certain
    group of date line was already encountered within a component.
    This must be called line by line in order on the complete text, at
    least comprising the complete component.
    """

    def __init__(self) -> None:
        self.stamped = 0
        self.ended = 0

    def __call__(self, line):
        if line.startswith("BEGIN:V"):
            self.stamped = 0
            self.ended = 0

        elif re.match("(DURATION|DTEND|DUE)[:;]", line):
            if self.ended:
                return False
            self.ended += 1

        elif re.match("DTSTAMP[:;]", line):
            if self.stamped:
                return False
            self.stamped += 1

        return True
