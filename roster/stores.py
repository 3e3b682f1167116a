"""Per-entity stores mirroring one document collection each.

A store holds the last fetched records of its collection together with
id-indexed copies of the helper collections it needs to resolve references.
Every mutation is followed by a full refetch of the store's own collection;
helper collections are only reloaded by ``fetch_helpers``/``refresh``.

Failures never propagate out of a store operation: the message lands on
``store.error`` and the operation returns a falsy value.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from . import datastore as ds
from .derivation import compact_athletes, compute_age, derive_individual_result, derive_relay_result
from .errors import UnknownCollection
from .models import (
    ATHLETES,
    CONTACTS,
    EVENTS,
    INDIVIDUAL_RESULTS,
    MEETS,
    PEOPLE,
    RELAY_RESULTS,
    SEASONS,
    TEAMS,
    normalize,
    person_name,
    writable,
)

logger = logging.getLogger(__name__)

PERSON_REQUIRED_FIELDS = ("firstName", "lastName", "gender")


def is_valid_person(row: Dict[str, Any]) -> bool:
    return all(row.get(name) for name in PERSON_REQUIRED_FIELDS)


class EntityStore:
    collection: str = ""
    label: str = ""
    helper_collections: tuple = ()

    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self.helpers: Dict[str, Dict[str, Dict[str, Any]]] = {c: {} for c in self.helper_collections}
        self.loading = True
        self.error: Optional[str] = None

    # --- reads -----------------------------------------------------------
    def fetch(self) -> bool:
        self.loading = True
        try:
            docs = ds.list_documents(self.collection)
            self.records = [normalize(self.collection, d) for d in docs]
            logger.debug("%s fetched count=%d", self.collection, len(self.records))
            return True
        except Exception as e:  # pylint: disable=broad-except
            self._fail(e, f"Error fetching {self.label}")
            return False
        finally:
            self.loading = False

    def fetch_helpers(self) -> bool:
        try:
            for name in self.helper_collections:
                self.helpers[name] = {
                    doc_id: normalize(name, doc)
                    for doc_id, doc in ds.index_documents(name).items()
                }
            return True
        except Exception as e:  # pylint: disable=broad-except
            self._fail(e, "Error fetching helper collections")
            return False

    def refresh(self) -> bool:
        ok = self.fetch()
        return self.fetch_helpers() and ok

    def get(self, doc_id: Optional[str]) -> Optional[Dict[str, Any]]:
        for rec in self.records:
            if rec.get("id") == doc_id:
                return rec
        return None

    def lookup(self, collection: str, doc_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        if collection == self.collection:
            return self.get(doc_id)
        return self.helpers.get(collection, {}).get(doc_id)

    def display_name(self, collection: str, doc_id: Optional[str]) -> str:
        rec = self.lookup(collection, doc_id)
        if rec is None:
            return "Unknown"
        if collection == PEOPLE:
            return person_name(rec)
        if collection == ATHLETES:
            return person_name(self.lookup(PEOPLE, rec.get("person")))
        return rec.get("nameShort") or rec.get("nameLong") or rec.get("code") or "Unknown"

    # --- writes ----------------------------------------------------------
    def _prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return writable(self.collection, data, with_defaults=True)

    def _prepare_update(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return writable(self.collection, data)

    def create(self, data: Dict[str, Any]) -> Optional[str]:
        self.error = None
        try:
            doc = self._prepare_create(data)
            doc_id = ds.add_document(self.collection, doc)
            logger.info("%s create id=%s", self.collection, doc_id)
        except Exception as e:  # pylint: disable=broad-except
            self._fail(e, f"Error creating {self._singular()}")
            return None
        self.fetch()
        return doc_id

    def update(self, doc_id: str, data: Dict[str, Any]) -> bool:
        self.error = None
        try:
            fields = self._prepare_update(doc_id, data)
            ds.update_document(self.collection, doc_id, fields)
            logger.info("%s update id=%s fields=%s", self.collection, doc_id, sorted(fields))
        except Exception as e:  # pylint: disable=broad-except
            self._fail(e, f"Error updating {self._singular()}")
            return False
        self.fetch()
        return True

    def delete(self, doc_id: str) -> bool:
        self.error = None
        try:
            ds.delete_document(self.collection, doc_id)
            logger.info("%s delete id=%s", self.collection, doc_id)
        except Exception as e:  # pylint: disable=broad-except
            self._fail(e, f"Error deleting {self._singular()}")
            return False
        self.fetch()
        return True

    def _batch_create(self, docs: List[Dict[str, Any]], fallback: str) -> Optional[List[str]]:
        self.loading = True
        try:
            ids = ds.batch_add(self.collection, docs)
            logger.info("%s batch create count=%d", self.collection, len(ids))
        except Exception as e:  # pylint: disable=broad-except
            self.loading = False
            self._fail(e, fallback)
            return None
        self.fetch()
        return ids

    def _singular(self) -> str:
        return self.label[:-1] if self.label.endswith("s") else self.label

    def _fail(self, exc: Exception, fallback: str) -> None:
        self.error = str(exc) or fallback
        logger.warning("%s: %s", fallback, self.error, exc_info=exc)


class PeopleStore(EntityStore):
    collection = PEOPLE
    label = "people"

    def _singular(self) -> str:
        return "person"

    @staticmethod
    def _check_birthday(data: Dict[str, Any]) -> None:
        birthday = data.get("birthday")
        if birthday:
            # Parses or raises ValueError
            compute_age(birthday, birthday)

    def _prepare_create(self, data):
        self._check_birthday(data)
        return super()._prepare_create(data)

    def _prepare_update(self, doc_id, data):
        self._check_birthday(data)
        return super()._prepare_update(doc_id, data)

    def bulk_create(self, rows: Iterable[Dict[str, Any]]) -> Optional[List[str]]:
        """Create every row carrying the mandatory fields; skip the rest."""
        self.error = None
        valid = [r for r in rows if is_valid_person(r)]
        if not valid:
            self.error = "No valid people data to add."
            return None
        docs = [
            {
                "firstName": p["firstName"],
                "preferredName": p.get("preferredName") or "",
                "lastName": p["lastName"],
                "birthday": p.get("birthday") or "",
                "gender": p["gender"],
                "phone": p.get("phone") or "",
                "email": p.get("email") or "",
                "isArchived": False,
            }
            for p in valid
        ]
        return self._batch_create(docs, "Error creating people in bulk")


class TeamStore(EntityStore):
    collection = TEAMS
    label = "teams"
    helper_collections = (SEASONS,)


class SeasonStore(EntityStore):
    collection = SEASONS
    label = "seasons"
    helper_collections = (TEAMS,)


class AthleteStore(EntityStore):
    collection = ATHLETES
    label = "athletes"
    helper_collections = (PEOPLE, SEASONS, TEAMS)

    def bulk_create(self, athletes: List[Dict[str, Any]]) -> Optional[List[str]]:
        self.error = None
        docs = [writable(ATHLETES, a, with_defaults=True) for a in athletes]
        return self._batch_create(docs, "Error creating athletes in bulk")


class ContactStore(EntityStore):
    collection = CONTACTS
    label = "contacts"
    helper_collections = (PEOPLE,)


class EventStore(EntityStore):
    collection = EVENTS
    label = "events"


class MeetStore(EntityStore):
    collection = MEETS
    label = "meets"
    helper_collections = (SEASONS, EVENTS)

    def _warn_unknown_events(self, data: Dict[str, Any]) -> None:
        known = self.helpers.get(EVENTS, {})
        missing = [e for e in (data.get("eventOrder") or []) if e not in known]
        if missing:
            logger.warning("meets eventOrder references unknown events: %s", ", ".join(map(str, missing)))

    def _prepare_create(self, data):
        self._warn_unknown_events(data)
        return super()._prepare_create(data)

    def _prepare_update(self, doc_id, data):
        self._warn_unknown_events(data)
        return super()._prepare_update(doc_id, data)


class IndividualResultStore(EntityStore):
    collection = INDIVIDUAL_RESULTS
    label = "individual results"
    helper_collections = (MEETS, EVENTS, ATHLETES, PEOPLE)

    # team, season and age stay as computed at creation
    UPDATABLE_FIELDS = ("meet", "event", "athlete", "result", "dq")

    def _singular(self) -> str:
        return "individual result"

    def _prepare_create(self, data):
        doc = super()._prepare_create(data)
        doc.update(derive_individual_result(
            data,
            athletes=self.helpers[ATHLETES],
            meets=self.helpers[MEETS],
            people=self.helpers[PEOPLE],
        ))
        return doc

    def _prepare_update(self, doc_id, data):
        return writable(self.collection, data, fields=self.UPDATABLE_FIELDS)


class RelayResultStore(EntityStore):
    collection = RELAY_RESULTS
    label = "relay results"
    helper_collections = (MEETS, EVENTS, ATHLETES, PEOPLE)

    def _singular(self) -> str:
        return "relay result"

    def _derive(self, data: Dict[str, Any]) -> Dict[str, Any]:
        derived = derive_relay_result(data, athletes=self.helpers[ATHLETES], meets=self.helpers[MEETS])
        derived["athletes"] = compact_athletes(data.get("athletes"))
        return derived

    def _prepare_create(self, data):
        doc = super()._prepare_create(data)
        doc.update(self._derive(data))
        return doc

    def _prepare_update(self, doc_id, data):
        fields = super()._prepare_update(doc_id, data)
        fields.update(self._derive(data))
        return fields

    def leg_names(self, record: Dict[str, Any]) -> List[str]:
        return [self.display_name(ATHLETES, a) for a in record.get("athletes") or []]


STORE_TYPES: Dict[str, Type[EntityStore]] = {
    cls.collection: cls
    for cls in (
        PeopleStore,
        TeamStore,
        SeasonStore,
        AthleteStore,
        ContactStore,
        EventStore,
        MeetStore,
        IndividualResultStore,
        RelayResultStore,
    )
}


class Stores:
    """Lazily built store per collection for one request or command."""

    def __init__(self):
        self._stores: Dict[str, EntityStore] = {}

    def get(self, collection: str) -> EntityStore:
        cls = STORE_TYPES.get(collection)
        if cls is None:
            raise UnknownCollection(f"Unknown collection '{collection}'")
        store = self._stores.get(collection)
        if store is None:
            store = cls()
            self._stores[collection] = store
        return store

    def mounted(self, collection: str) -> EntityStore:
        """Return the store after loading its records and helper collections."""
        store = self.get(collection)
        store.refresh()
        return store


def build_stores() -> Stores:
    return Stores()
