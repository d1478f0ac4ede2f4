"""
vCard → JSContact conversion (RFC 6350 → RFC 9553).

Public API:
    vcard_to_jscontact(vcard) -> dict

``vcard`` is a vobject VCARD component.  The output is a JSContact
``Card`` object.  The conversion is total: properties that have no
JSContact counterpart, or that cannot be understood, are skipped (and
logged at debug level).
"""

from __future__ import annotations

import logging
import re
import uuid

from jmap_convert.convert._utils import _IdSequence

log = logging.getLogger("jmap_convert")

JSCONTACT_VERSION = "1.0"

_CONTEXT_MAP = {
    "work": "work",
    "home": "private",
}

_PHONE_FEATURE_MAP = {
    "voice": "voice",
    "fax": "fax",
    "cell": "mobile",
    "pager": "pager",
    "text": "text",
    "video": "video",
    "textphone": "textphone",
}

_BDAY_RE = re.compile(
    r"^(?:(?P<year>\d{4})|--)-?(?P<month>\d{2})?-?(?P<day>\d{2})?(?:T.*)?$"
)


def _lines(vcard, name: str) -> list:
    return vcard.contents.get(name.lower(), [])


def _types(line) -> list[str]:
    """All TYPE values of a content line, lower case and comma-split.

    vCard 2.1 style bare parameters (``TEL;WORK;VOICE:``) are included.
    """
    types = []
    for key, values in line.params.items():
        if key.upper() == "TYPE":
            for value in values:
                types.extend(t.strip().lower() for t in value.split(",") if t.strip())
        elif not values:
            types.append(key.lower())
    return types


def _contexts_and_pref(line) -> dict:
    """The ``contexts`` and ``pref`` members shared by most JSContact objects"""
    out: dict = {}
    types = _types(line)
    contexts = {_CONTEXT_MAP[t]: True for t in types if t in _CONTEXT_MAP}
    if contexts:
        out["contexts"] = contexts
    pref = line.params.get("PREF")
    if pref and pref[0].isdigit():
        out["pref"] = int(pref[0])
    elif "pref" in types:
        out["pref"] = 1
    return out


def _multi_values(line) -> list[str]:
    """NICKNAME and CATEGORIES hold comma separated lists"""
    value = line.value
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def _name_components(n) -> list[dict]:
    components = []
    for attr, kind in (
        ("prefix", "title"),
        ("given", "given"),
        ("additional", "given2"),
        ("family", "surname"),
        ("suffix", "credential"),
    ):
        value = getattr(n, attr, "")
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            if v:
                components.append({"@type": "NameComponent", "kind": kind, "value": str(v)})
    return components


def _address_components(adr) -> list[dict]:
    components = []
    for attr, kind in (
        ("box", "postOfficeBox"),
        ("extended", "apartment"),
        ("street", "name"),
        ("city", "locality"),
        ("region", "region"),
        ("code", "postcode"),
        ("country", "country"),
    ):
        value = getattr(adr, attr, "")
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            if v:
                components.append({"@type": "AddressComponent", "kind": kind, "value": str(v)})
    return components


def _partial_date(value: str) -> dict | None:
    """BDAY/ANNIVERSARY values: 19850412, 1985-04-12, --0412, --04-12"""
    m = _BDAY_RE.match(value.strip())
    if not m or not (m.group("year") or m.group("month")):
        return None
    date: dict = {"@type": "PartialDate"}
    for field in ("year", "month", "day"):
        if m.group(field):
            date[field] = int(m.group(field))
    return date


def vcard_to_jscontact(vcard) -> dict:
    """Convert a vobject vCard component to a JSContact Card dict."""
    card: dict = {"@type": "Card", "version": JSCONTACT_VERSION}

    uid = _lines(vcard, "uid")
    if uid:
        card["uid"] = str(uid[0].value)
    else:
        ## JSContact requires an uid, derive a stable one from the content
        content = "\n".join(f"{line.name}:{line.value}" for line in vcard.getChildren())
        card["uid"] = "urn:uuid:" + str(uuid.uuid5(uuid.NAMESPACE_OID, content))

    kind = _lines(vcard, "kind")
    if kind:
        card["kind"] = str(kind[0].value).lower()

    name: dict = {}
    fn = _lines(vcard, "fn")
    if fn and fn[0].value:
        name["full"] = str(fn[0].value)
    n = _lines(vcard, "n")
    if n:
        components = _name_components(n[0].value)
        if components:
            name["components"] = components
    if name:
        card["name"] = {"@type": "Name", **name}

    new_id = _IdSequence()

    nicknames = {
        new_id(): {"@type": "Nickname", "name": nick}
        for line in _lines(vcard, "nickname")
        for nick in _multi_values(line)
    }
    if nicknames:
        card["nicknames"] = nicknames

    emails = {}
    for line in _lines(vcard, "email"):
        emails[new_id()] = {
            "@type": "EmailAddress",
            "address": str(line.value),
            **_contexts_and_pref(line),
        }
    if emails:
        card["emails"] = emails

    phones = {}
    for line in _lines(vcard, "tel"):
        phone: dict = {"@type": "Phone", "number": str(line.value)}
        features = {
            _PHONE_FEATURE_MAP[t]: True for t in _types(line) if t in _PHONE_FEATURE_MAP
        }
        if features:
            phone["features"] = features
        phone.update(_contexts_and_pref(line))
        phones[new_id()] = phone
    if phones:
        card["phones"] = phones

    addresses = {}
    for line in _lines(vcard, "adr"):
        address: dict = {"@type": "Address"}
        components = _address_components(line.value)
        if components:
            address["components"] = components
        address.update(_contexts_and_pref(line))
        addresses[new_id()] = address
    if addresses:
        card["addresses"] = addresses

    organizations = {}
    for line in _lines(vcard, "org"):
        parts = line.value if isinstance(line.value, (list, tuple)) else str(line.value).split(";")
        parts = [str(p) for p in parts]
        organization: dict = {"@type": "Organization"}
        if parts and parts[0]:
            organization["name"] = parts[0]
        units = [{"@type": "OrgUnit", "name": p} for p in parts[1:] if p]
        if units:
            organization["units"] = units
        organizations[new_id()] = organization
    if organizations:
        card["organizations"] = organizations

    titles = {}
    for prop, title_kind in (("title", "title"), ("role", "role")):
        for line in _lines(vcard, prop):
            titles[new_id()] = {"@type": "Title", "name": str(line.value), "kind": title_kind}
    if titles:
        card["titles"] = titles

    notes = {new_id(): {"@type": "Note", "note": str(line.value)} for line in _lines(vcard, "note")}
    if notes:
        card["notes"] = notes

    anniversaries = {}
    for prop, anniversary_kind in (("bday", "birth"), ("anniversary", "wedding")):
        for line in _lines(vcard, prop):
            date = _partial_date(str(line.value))
            if date is None:
                log.debug(f"skipping {prop.upper()} with unparseable value {line.value!r}")
                continue
            anniversaries[new_id()] = {
                "@type": "Anniversary",
                "kind": anniversary_kind,
                "date": date,
            }
    if anniversaries:
        card["anniversaries"] = anniversaries

    links = {new_id(): {"@type": "Link", "uri": str(line.value)} for line in _lines(vcard, "url")}
    if links:
        card["links"] = links

    keywords = {kw: True for line in _lines(vcard, "categories") for kw in _multi_values(line)}
    if keywords:
        card["keywords"] = keywords

    return card
