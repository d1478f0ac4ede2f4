"""
JSContact → vCard conversion (RFC 9553 → RFC 6350).

Public API:
    jscontact_to_vcard(card: dict) -> vobject VCARD component
"""

from __future__ import annotations

import vobject
from vobject.vcard import Address, Name

from jmap_convert.convert._utils import UnsupportedEntry
from jmap_convert.convert.vcard_to_jscontact import JSCONTACT_VERSION

_CONTEXT_TO_TYPE = {
    "work": "WORK",
    "private": "HOME",
}

_FEATURE_TO_TYPE = {
    "voice": "VOICE",
    "fax": "FAX",
    "mobile": "CELL",
    "pager": "PAGER",
    "text": "TEXT",
    "video": "VIDEO",
    "textphone": "TEXTPHONE",
}

_NAME_ATTRS = {
    "title": "prefix",
    "given": "given",
    "given2": "additional",
    "surname": "family",
    "credential": "suffix",
}

_ADDRESS_ATTRS = {
    "postOfficeBox": "box",
    "apartment": "extended",
    "name": "street",
    "locality": "city",
    "region": "region",
    "postcode": "code",
    "country": "country",
}


def _set_types(line, obj: dict, extra: list[str] | None = None) -> None:
    types = list(extra or [])
    types.extend(
        _CONTEXT_TO_TYPE[c] for c, on in (obj.get("contexts") or {}).items() if on and c in _CONTEXT_TO_TYPE
    )
    if types:
        line.params["TYPE"] = types
    pref = obj.get("pref")
    if pref is not None:
        line.params["PREF"] = [str(int(pref))]


def _joined(components: list[dict], attrs: dict) -> dict:
    """Group the components of a Name or Address by vobject attribute"""
    fields: dict = {}
    for component in components:
        attr = attrs.get(component.get("kind"))
        if attr is None:
            continue
        value = component.get("value", "")
        fields[attr] = f"{fields[attr]} {value}" if attr in fields else value
    return fields


def _full_name(name: dict) -> str:
    if name.get("full"):
        return name["full"]
    order = ("title", "given", "given2", "surname", "credential")
    components = sorted(
        (c for c in name.get("components") or [] if c.get("kind") in order),
        key=lambda c: order.index(c["kind"]),
    )
    return " ".join(c.get("value", "") for c in components).strip()


def _partial_date_to_str(date: dict) -> str:
    month = date.get("month")
    day = date.get("day")
    year = date.get("year")
    if month is None and year is None:
        raise ValueError(f"PartialDate without year or month: {date!r}")
    if year is None:
        return f"--{int(month):02d}{int(day):02d}" if day else f"--{int(month):02d}"
    if month is None:
        return f"{int(year):04d}"
    if day is None:
        return f"{int(year):04d}-{int(month):02d}"
    return f"{int(year):04d}-{int(month):02d}-{int(day):02d}"


def jscontact_to_vcard(card: dict):
    """Convert a JSContact Card dict to a vobject vCard component.

    Raises:
        UnsupportedEntry: If the object is not a Card of a known version.
        ValueError: If a member holds a value that can't be expressed.
    """
    if card.get("@type") != "Card":
        raise UnsupportedEntry(f"cannot convert JSContact {card.get('@type')!r} to vCard")
    if card.get("version", JSCONTACT_VERSION) != JSCONTACT_VERSION:
        raise UnsupportedEntry(f"unknown JSContact version {card.get('version')!r}")

    vcard = vobject.vCard()

    if card.get("uid"):
        vcard.add("uid").value = card["uid"]
    if card.get("kind"):
        vcard.add("kind").value = card["kind"]

    name = card.get("name") or {}
    vcard.add("fn").value = _full_name(name)
    vcard.add("n").value = Name(**_joined(name.get("components") or [], _NAME_ATTRS))

    for nickname in (card.get("nicknames") or {}).values():
        vcard.add("nickname").value = nickname.get("name", "")

    for email in (card.get("emails") or {}).values():
        line = vcard.add("email")
        line.value = email.get("address", "")
        _set_types(line, email, ["INTERNET"])

    for phone in (card.get("phones") or {}).values():
        line = vcard.add("tel")
        line.value = phone.get("number", "")
        features = [
            _FEATURE_TO_TYPE[f] for f, on in (phone.get("features") or {}).items() if on and f in _FEATURE_TO_TYPE
        ]
        _set_types(line, phone, features)

    for address in (card.get("addresses") or {}).values():
        line = vcard.add("adr")
        line.value = Address(**_joined(address.get("components") or [], _ADDRESS_ATTRS))
        _set_types(line, address)

    for organization in (card.get("organizations") or {}).values():
        units = [u.get("name", "") for u in organization.get("units") or []]
        vcard.add("org").value = [organization.get("name", "")] + units

    for title in (card.get("titles") or {}).values():
        prop = "role" if title.get("kind") == "role" else "title"
        vcard.add(prop).value = title.get("name", "")

    for note in (card.get("notes") or {}).values():
        vcard.add("note").value = note.get("note", "")

    for anniversary in (card.get("anniversaries") or {}).values():
        prop = "bday" if anniversary.get("kind") == "birth" else "anniversary"
        vcard.add(prop).value = _partial_date_to_str(anniversary.get("date") or {})

    for link in (card.get("links") or {}).values():
        vcard.add("url").value = link.get("uri", "")

    keywords = [k for k, on in (card.get("keywords") or {}).items() if on]
    if keywords:
        ## CATEGORIES is a comma separated list to vobject
        vcard.add("categories").value = keywords

    return vcard
