#!/usr/bin/env python
import logging
import os
from collections import defaultdict
from typing import Dict
from typing import Optional
from typing import Type

from jmap_convert import __version__

## Environmental variables prepended with "PYTHON_JMAP_CONVERT" are used for
## debug purposes, "JMAP_CONVERT_" ones are settings (see jmap_convert.config)
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_JMAP_CONVERT_DEBUGMODE")
if not debugmode:
    if "dev" in __version__ or __version__ == "(unknown)":
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("jmap_convert")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def assert_(condition: object) -> None:
    try:
        assert condition
    except AssertionError:
        if debugmode == "PRODUCTION":
            log.error(
                "Deviation from expectations found.  %s" % ERR_FRAGMENT, exc_info=True
            )
        elif debugmode == "DEBUG_PDB":
            log.error("Deviation from expectations found.  Dropping into debugger")
            import pdb

            pdb.set_trace()
        else:
            raise


ERR_FRAGMENT: str = "Please consider reporting this as a bug, include this error, the traceback (if any) and the input that triggered it"


class ConvertError(Exception):
    """Base class for everything that can go wrong while converting.

    ``str(error)`` is the message meant to be shown to the user.
    """

    reason: str = "no reason"

    def __init__(self, reason: Optional[str] = None) -> None:
        if reason:
            self.reason = reason
        super().__init__(self.reason)

    def __str__(self) -> str:
        return self.reason


## Errors raised by the legacy (BEGIN:/END:) entry parser


class ParseError(ConvertError):
    pass


class InvalidLine(ParseError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(text)


class UnexpectedComponentEnd(ParseError):
    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"expected {expected}, found {found}")


class UnterminatedComponent(ParseError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)


class TooManyComponents(ParseError):
    reason = "too many components"


class UnexpectedEof(ParseError):
    reason = "unexpected end of file"


## Errors reported by the conversion orchestrator


class ConversionError(ConvertError):
    """
    One of these accompanies every failed conversion attempt.  All of
    them are caused by the user input, except RoundTripFailure which
    means the converter itself is broken.
    """

    is_user_error: bool = True


class UnrecognizedFormat(ConversionError):
    reason = "Unrecognized format. Please provide a valid iCalendar, JSCalendar, vCard or JSContact file."


class InvalidSyntax(ConversionError):
    def __init__(self, detail: str, domain: Optional[str] = None) -> None:
        self.detail = detail
        self.domain = domain
        if domain:
            super().__init__(f"Failed to parse {domain}: {detail}")
        else:
            super().__init__(f"Invalid line found: {detail}")


class StructuralError(ConversionError):
    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Unexpected component end: expected {expected}, found {found}"
        )


class UnterminatedInput(ConversionError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Unterminated component: {detail}")


class OversizedInput(ConversionError):
    reason = "Too many components"


class UnexpectedEnd(ConversionError):
    reason = "Unexpected end of file"


class RoundTripFailure(ConversionError):
    """
    The converted value could not be converted back.  This is a gap in
    the bidirectional mapping, not something the user did wrong.
    """

    is_user_error = False
    reason = "Looks like you've found a bug in the conversion. Please report it."


_conversion_error_by_parse_error: Dict[Type[ParseError], Type[ConversionError]] = (
    defaultdict(lambda: UnrecognizedFormat)
)
_conversion_error_by_parse_error.update(
    {
        InvalidLine: InvalidSyntax,
        UnexpectedComponentEnd: StructuralError,
        UnterminatedComponent: UnterminatedInput,
        TooManyComponents: OversizedInput,
        UnexpectedEof: UnexpectedEnd,
    }
)


def conversion_error_for(err: ParseError) -> ConversionError:
    """Translates a legacy parser error into the matching ConversionError"""
    cls = _conversion_error_by_parse_error[type(err)]
    if isinstance(err, InvalidLine):
        return cls(err.text)
    if isinstance(err, UnexpectedComponentEnd):
        return cls(err.expected, err.found)
    if isinstance(err, UnterminatedComponent):
        return cls(err.name)
    return cls()
