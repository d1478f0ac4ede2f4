#!/usr/bin/env python
import logging

__version__ = "0.3.1"

from .conversion import convert
from .conversion import ConversionOutcome
from .conversion import ConversionResult
from .conversion import ConversionSession
from .detect import SourceFormat

## Silence notification of no default logging handler
log = logging.getLogger("jmap_convert")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "convert",
    "ConversionOutcome",
    "ConversionResult",
    "ConversionSession",
    "SourceFormat",
]
