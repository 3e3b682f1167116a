"""Spreadsheet uploads for people and athletes.

The first sheet's first row holds the field names; data rows are read by
header, not position. Athlete uploads are all-or-nothing: one unmatched row
blocks the whole batch. People uploads skip incomplete rows and import the
rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .models import PEOPLE
from .stores import PERSON_REQUIRED_FIELDS, AthleteStore, PeopleStore, is_valid_person

logger = logging.getLogger(__name__)

# Spreadsheet row of the first data record (row 1 is the header)
FIRST_DATA_ROW = 2

_TRUE_STRINGS = {"true", "yes", "y", "1"}


@dataclass
class UploadReport:
    created: int = 0
    errors: List[str] = field(default_factory=list)
    message: Optional[str] = None
    skipped: int = 0
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "errors": list(self.errors),
            "message": self.message,
            "skipped": self.skipped,
        }


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _clean(value: Any) -> Any:
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def read_rows(source: Any, filename: Optional[str] = None) -> List[Dict[str, Any]]:
    """Read the first sheet of an ``.xlsx`` (or a ``.csv``) into header-keyed dicts.

    Blank cells are left out of each row dict. Each dict also carries its
    spreadsheet row number under ``__row__``.
    """
    name = (filename or getattr(source, "filename", None) or getattr(source, "name", None) or "").lower()
    if name.endswith(".csv"):
        frame = pd.read_csv(source, dtype=object, na_filter=False)
    else:
        frame = pd.read_excel(source, sheet_name=0, dtype=object, na_filter=False)
    rows: List[Dict[str, Any]] = []
    for offset, rec in enumerate(frame.to_dict(orient="records")):
        row = {str(k).strip(): _clean(v) for k, v in rec.items() if not _is_blank(v)}
        row["__row__"] = offset + FIRST_DATA_ROW
        rows.append(row)
    logger.debug("read_rows file=%s rows=%d", name or "<stream>", len(rows))
    return rows


def _row_number(row: Dict[str, Any], offset: int) -> int:
    return int(row.get("__row__") or offset + FIRST_DATA_ROW)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_number(value: Any) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def match_athlete_rows(rows: Iterable[Dict[str, Any]],
                       people: Iterable[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Pair each row with a person by exact first and last name.

    Returns the athletes to create and one error line per rejected row:
    either no person matched, or a matched row carries a non-numeric grade
    or lane.
    """
    people = list(people)
    athletes: List[Dict[str, Any]] = []
    errors: List[str] = []
    for offset, row in enumerate(rows):
        first = row.get("firstName")
        last = row.get("lastName")
        row_number = _row_number(row, offset)
        person = next(
            (p for p in people if p.get("firstName") == first and p.get("lastName") == last),
            None,
        )
        if person is None:
            errors.append(
                f"No matching person found for {first if first is not None else ''} "
                f"{last if last is not None else ''} (row {row_number})"
            )
            continue
        numbers = {}
        for name, default in (("grade", 9), ("lane", 0)):
            numbers[name] = _as_number(row[name]) if name in row else default
            if numbers[name] is None:
                errors.append(f"Invalid {name} '{row[name]}' for {first} {last} (row {row_number})")
        if None in numbers.values():
            continue
        athletes.append({
            "person": person["id"],
            "season": row.get("seasonId") or "",
            "team": row.get("teamId") or "",
            "grade": numbers["grade"],
            "group": row.get("group") or "",
            "subgroup": row.get("subgroup") or "",
            "lane": numbers["lane"],
            "hasDisability": _as_bool(row.get("hasDisability", False)),
        })
    return athletes, errors


def import_athletes(store: AthleteStore, rows: List[Dict[str, Any]],
                    people: Optional[Iterable[Dict[str, Any]]] = None) -> UploadReport:
    if people is None:
        people = store.helpers.get(PEOPLE, {}).values()
    athletes, errors = match_athlete_rows(rows, people)
    if errors:
        logger.info("athlete upload rejected rows=%d errors=%d", len(rows), len(errors))
        return UploadReport(
            errors=errors,
            message="Some athletes could not be matched. See errors below.",
            failed=True,
        )
    if not athletes:
        return UploadReport(message="No athletes to add.", failed=True)
    ids = store.bulk_create(athletes)
    if ids is None:
        return UploadReport(message=store.error, failed=True)
    return UploadReport(created=len(ids), message=f"Added {len(ids)} athletes.")


def import_people(store: PeopleStore, rows: List[Dict[str, Any]]) -> UploadReport:
    errors: List[str] = []
    for offset, row in enumerate(rows):
        if not is_valid_person(row):
            missing = [name for name in PERSON_REQUIRED_FIELDS if not row.get(name)]
            errors.append(f"Skipped row {_row_number(row, offset)}: missing {', '.join(missing)}")
    ids = store.bulk_create(rows)
    if ids is None:
        return UploadReport(errors=errors, message=store.error, skipped=len(errors), failed=True)
    return UploadReport(
        created=len(ids),
        errors=errors,
        message=f"Added {len(ids)} people.",
        skipped=len(errors),
    )
