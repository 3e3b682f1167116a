from typing import Any, Dict, List, Optional

# Document store proxy. Every call delegates to datastore_pg so tests can
# swap the PostgreSQL functions for an in-memory implementation.

from . import datastore_pg as _pg


def ensure_schema() -> None:
    _pg.ensure_schema()


def list_documents(collection: str) -> List[Dict[str, Any]]:
    return _pg.list_documents(collection)


def get_document(collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
    return _pg.get_document(collection, doc_id)


def add_document(collection: str, data: Dict[str, Any]) -> str:
    return _pg.add_document(collection, data)


def update_document(collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
    _pg.update_document(collection, doc_id, fields)


def delete_document(collection: str, doc_id: str) -> None:
    _pg.delete_document(collection, doc_id)


def batch_add(collection: str, docs: List[Dict[str, Any]]) -> List[str]:
    return _pg.batch_add(collection, docs)


def index_documents(collection: str) -> Dict[str, Dict[str, Any]]:
    """Return ``{id: document}`` for a whole collection."""
    return {d["id"]: d for d in list_documents(collection) if d.get("id")}
