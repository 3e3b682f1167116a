"""Derived fields written onto result records.

Individual results take team and season from the athlete and an age computed
from the athlete's person and the meet date; these are computed once, at
creation. Relay results take team from the first listed athlete and season
from the meet, and are recomputed on every write.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import MissingReferenceError

MAX_RELAY_ATHLETES = 4

Index = Mapping[str, Dict[str, Any]]


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD.") from None


def compute_age(birthday: Any, meet_date: Any) -> int:
    """Age in whole years on ``meet_date``.

    A meet held on the birthday itself counts the new age.
    """
    born = _parse_date(birthday)
    on = _parse_date(meet_date)
    age = on.year - born.year
    if (on.month, on.day) < (born.month, born.day):
        age -= 1
    return age


def compact_athletes(ids: Optional[Iterable[Any]]) -> List[str]:
    """Drop empty relay slots, keep order, cap at four legs."""
    out = [str(a) for a in (ids or []) if a]
    return out[:MAX_RELAY_ATHLETES]


def derive_individual_result(data: Mapping[str, Any], athletes: Index, meets: Index,
                             people: Index) -> Dict[str, Any]:
    athlete = athletes.get(data.get("athlete") or "")
    meet = meets.get(data.get("meet") or "")
    person = people.get(athlete.get("person") or "") if athlete else None
    if not athlete or not meet or not person:
        raise MissingReferenceError(
            "Unable to calculate team, season, or age due to missing athlete, meet, or person."
        )
    return {
        "team": athlete.get("team"),
        "season": athlete.get("season"),
        "age": compute_age(person.get("birthday"), meet.get("date")),
    }


def derive_relay_result(data: Mapping[str, Any], athletes: Index, meets: Index) -> Dict[str, Any]:
    legs = compact_athletes(data.get("athletes"))
    raw = list(data.get("athletes") or [])
    # The first slot itself must be filled; a blank lead leg is not shifted up
    first = athletes.get(raw[0]) if raw and raw[0] else None
    meet = meets.get(data.get("meet") or "")
    if not legs or not first or not meet:
        raise MissingReferenceError("Athlete or Meet data is missing. Cannot save relay result.")
    return {
        "team": first.get("team"),
        "season": meet.get("season"),
    }
