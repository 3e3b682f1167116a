"""Collection names and field layouts for every stored entity.

Records travel through the application as plain dicts. ``normalize`` shapes a
raw document into its entity's fields (missing ones read as ``None``) and
``writable`` picks the fields a create or update is allowed to persist.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

PEOPLE = "people"
TEAMS = "teams"
SEASONS = "seasons"
ATHLETES = "athletes"
CONTACTS = "contacts"
EVENTS = "events"
MEETS = "meets"
INDIVIDUAL_RESULTS = "individualResults"
RELAY_RESULTS = "relayResults"

META_FIELDS = ("id", "createdAt", "updatedAt")

# field -> default written on create when the caller leaves it out
ENTITY_FIELDS: Dict[str, Dict[str, Any]] = {
    PEOPLE: {
        "firstName": "",
        "preferredName": "",
        "lastName": "",
        "birthday": "",
        "gender": "",
        "phone": "",
        "email": "",
        "isArchived": False,
    },
    TEAMS: {
        "code": "",
        "type": "",
        "nameLong": "",
        "nameShort": "",
        "currentSeason": None,
    },
    SEASONS: {
        "team": None,
        "nameLong": "",
        "nameShort": "",
        "startDate": "",
        "endDate": "",
        "isComplete": False,
    },
    ATHLETES: {
        "person": None,
        "season": None,
        "team": None,
        "grade": 9,
        "group": "",
        "subgroup": "",
        "lane": 0,
        "hasDisability": False,
    },
    CONTACTS: {
        "contact": None,
        "relationship": "",
        "recipient": None,
        "isEmergency": False,
        "recievesEmail": False,
    },
    EVENTS: {
        "code": "",
        "nameLong": "",
        "nameShort": "",
        "course": "",
        "distance": 0,
        "stroke": "",
        "official": False,
    },
    MEETS: {
        "nameLong": "",
        "nameShort": "",
        "date": "",
        "season": None,
        "eventOrder": [],
        "isComplete": False,
    },
    INDIVIDUAL_RESULTS: {
        "meet": None,
        "event": None,
        "athlete": None,
        "team": None,
        "season": None,
        "age": None,
        "result": None,
        "dq": False,
    },
    RELAY_RESULTS: {
        "meet": None,
        "event": None,
        "athletes": [],
        "team": None,
        "season": None,
        "result": None,
        "dq": False,
    },
}

# Fields computed at write time; never taken from caller input.
DERIVED_FIELDS: Dict[str, tuple] = {
    INDIVIDUAL_RESULTS: ("team", "season", "age"),
    RELAY_RESULTS: ("team", "season"),
}

COLLECTIONS: List[str] = list(ENTITY_FIELDS)

# Screen path -> collection
SCREENS: Dict[str, str] = {
    "people": PEOPLE,
    "teams": TEAMS,
    "seasons": SEASONS,
    "athletes": ATHLETES,
    "contacts": CONTACTS,
    "events": EVENTS,
    "meets": MEETS,
    "ind-results": INDIVIDUAL_RESULTS,
    "relay-results": RELAY_RESULTS,
}

# Reference fields resolved to display names on listing screens
REFERENCES: Dict[str, Dict[str, str]] = {
    TEAMS: {"currentSeason": SEASONS},
    SEASONS: {"team": TEAMS},
    ATHLETES: {"person": PEOPLE, "season": SEASONS, "team": TEAMS},
    CONTACTS: {"contact": PEOPLE, "recipient": PEOPLE},
    MEETS: {"season": SEASONS},
    INDIVIDUAL_RESULTS: {"meet": MEETS, "event": EVENTS, "athlete": ATHLETES, "team": TEAMS, "season": SEASONS},
    RELAY_RESULTS: {"meet": MEETS, "event": EVENTS, "team": TEAMS, "season": SEASONS},
}


def field_names(collection: str) -> List[str]:
    return list(ENTITY_FIELDS[collection])


def normalize(collection: str, raw: Dict[str, Any]) -> Dict[str, Any]:
    """Shape a stored document into ``id`` + entity fields + timestamps."""
    out: Dict[str, Any] = {"id": raw.get("id")}
    for name in ENTITY_FIELDS[collection]:
        out[name] = raw.get(name)
    out["createdAt"] = raw.get("createdAt")
    out["updatedAt"] = raw.get("updatedAt")
    return out


def writable(collection: str, data: Dict[str, Any], fields: Optional[Iterable[str]] = None,
             with_defaults: bool = False) -> Dict[str, Any]:
    """Return the subset of ``data`` a write may persist.

    Derived fields are always excluded. With ``with_defaults`` the entity
    defaults fill in anything the caller left out (create semantics).
    """
    derived = DERIVED_FIELDS.get(collection, ())
    names = list(fields) if fields is not None else field_names(collection)
    out: Dict[str, Any] = {}
    for name in names:
        if name in derived:
            continue
        if name in data:
            out[name] = data[name]
        elif with_defaults:
            default = ENTITY_FIELDS[collection].get(name)
            out[name] = list(default) if isinstance(default, list) else default
    return out


def person_name(person: Optional[Dict[str, Any]]) -> str:
    if not person:
        return "Unknown"
    first = person.get("preferredName") or person.get("firstName") or ""
    return f"{first} {person.get('lastName') or ''}".strip() or "Unknown"


# List fields holding references, edited as multi-selects or fixed slots
LIST_REFERENCES: Dict[str, Dict[str, str]] = {
    MEETS: {"eventOrder": EVENTS},
    RELAY_RESULTS: {"athletes": ATHLETES},
}

# Form input types for text-like fields whose default does not tell
FIELD_INPUTS: Dict[str, str] = {
    "birthday": "date",
    "startDate": "date",
    "endDate": "date",
    "date": "date",
    "email": "email",
    "phone": "tel",
    "result": "number",
}


def input_type(collection: str, name: str) -> str:
    """HTML input type used by the edit form for a plain field."""
    if name in FIELD_INPUTS:
        return FIELD_INPUTS[name]
    default = ENTITY_FIELDS[collection].get(name)
    if isinstance(default, bool):
        return "checkbox"
    if isinstance(default, (int, float)):
        return "number"
    return "text"
