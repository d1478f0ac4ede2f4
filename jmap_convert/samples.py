"""
Sample documents bundled with the package, one or more for each of the
four supported formats.
"""

import random
from importlib import resources

SAMPLES = (
    "ical_001.ics",
    "ical_002.ics",
    "ical_003.ics",
    "vcard_001.vcf",
    "vcard_002.vcf",
    "vcard_003.vcf",
    "jscal_001.json",
    "jscal_002.json",
    "jscal_003.json",
    "jscontact_001.json",
    "jscontact_002.json",
)


def load_sample(name: str) -> str:
    """
    Raises:
        KeyError: if there is no sample by that name
    """
    if name not in SAMPLES:
        raise KeyError(f"no such sample: {name}")
    path = resources.files("jmap_convert") / "samples" / name
    return path.read_text(encoding="utf-8")


def random_sample(rng=None) -> str:
    rng = rng or random
    return load_sample(rng.choice(SAMPLES))
