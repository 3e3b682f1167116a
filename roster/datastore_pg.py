import os
import uuid
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import Json, RealDictCursor, execute_values
from contextlib import contextmanager

from .errors import DocumentNotFound


_POOL: Optional[pg_pool.AbstractConnectionPool] = None

_KEEPALIVE_TUNABLES = (
    ("DB_KEEPALIVES_IDLE", "keepalives_idle"),
    ("DB_KEEPALIVES_INTERVAL", "keepalives_interval"),
    ("DB_KEEPALIVES_COUNT", "keepalives_count"),
)


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return default


def _connect_kwargs() -> Dict[str, Any]:
    """Connection kwargs: connect_timeout (default 10s) and TCP keepalives.

    Keepalives are on unless DB_KEEPALIVES is 0/false; the IDLE/INTERVAL/COUNT
    tunables are passed through only when set.
    """
    kwargs: Dict[str, Any] = {
        "connect_timeout": _env_int("DB_CONNECT_TIMEOUT", 10),
        "keepalives": 0 if os.environ.get("DB_KEEPALIVES", "1").lower() in ("0", "false") else 1,
    }
    for env_name, key in _KEEPALIVE_TUNABLES:
        value = _env_int(env_name)
        if value is not None:
            kwargs[key] = value
    return kwargs


def init_pool(minconn: int = 1, maxconn: int = 10) -> None:
    """Create the global connection pool from DATABASE_URL once."""
    global _POOL
    url = os.environ.get("DATABASE_URL")
    if _POOL is not None or not url:
        return
    _POOL = pg_pool.ThreadedConnectionPool(minconn, maxconn, dsn=url, **_connect_kwargs())


def _checkout():
    """Take a pooled connection that answers ``SELECT 1``, retrying once."""
    for _ in range(2):
        conn = _POOL.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
            if not getattr(conn, "autocommit", False):
                conn.rollback()
            return conn
        except (psycopg2.OperationalError, psycopg2.InterfaceError):
            _POOL.putconn(conn, close=True)
    raise psycopg2.OperationalError("Failed to acquire healthy DB connection after retry")


@contextmanager
def _get_conn():
    """Yield a database connection from the pool if available, else direct.

    Any exception inside the block rolls the connection back before it is
    returned to the pool or closed.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set; configure a PostgreSQL connection string")
    conn = _checkout() if _POOL is not None else psycopg2.connect(url, **_connect_kwargs())
    try:
        yield conn
    except Exception:
        if not getattr(conn, "closed", 0):
            conn.rollback()
        raise
    finally:
        if _POOL is not None:
            _POOL.putconn(conn)
        else:
            conn.close()


def _ts_to_str(val) -> Optional[str]:
    if val is None:
        return None
    try:
        return val.isoformat()
    except Exception:
        return str(val)


def _row_to_document(row: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(row.get("data") or {})
    doc["id"] = row.get("id")
    doc["createdAt"] = _ts_to_str(row.get("created_at"))
    doc["updatedAt"] = _ts_to_str(row.get("updated_at"))
    return doc


def _new_id() -> str:
    return uuid.uuid4().hex


def ensure_schema() -> None:
    """Create the documents table and its lookup index when missing."""
    with _get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection VARCHAR(64) NOT NULL,
                    id VARCHAR(64) NOT NULL,
                    data JSONB NOT NULL DEFAULT '{}'::jsonb,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                    PRIMARY KEY (collection, id)
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_collection_created ON documents(collection, created_at)"
            )
        conn.commit()


def list_documents(collection: str) -> List[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT id, data, created_at, updated_at
            FROM documents
            WHERE collection = %s
            ORDER BY created_at, id
            """,
            (collection,),
        )
        return [_row_to_document(r) for r in cur.fetchall()]


def get_document(collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            "SELECT id, data, created_at, updated_at FROM documents WHERE collection = %s AND id = %s",
            (collection, doc_id),
        )
        row = cur.fetchone()
    return _row_to_document(row) if row else None


def add_document(collection: str, data: Dict[str, Any]) -> str:
    doc_id = _new_id()
    with _get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO documents (collection, id, data, created_at, updated_at)
                VALUES (%s, %s, %s, now(), now())
                """,
                (collection, doc_id, Json(data)),
            )
        conn.commit()
    return doc_id


def update_document(collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
    """Merge ``fields`` into the stored document and refresh ``updated_at``."""
    with _get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE documents
                SET data = data || %s, updated_at = now()
                WHERE collection = %s AND id = %s
                """,
                (Json(fields), collection, doc_id),
            )
            matched = cur.rowcount
        if not matched:
            conn.rollback()
            raise DocumentNotFound(collection, doc_id)
        conn.commit()


def delete_document(collection: str, doc_id: str) -> None:
    with _get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM documents WHERE collection = %s AND id = %s",
                (collection, doc_id),
            )
            matched = cur.rowcount
        if not matched:
            conn.rollback()
            raise DocumentNotFound(collection, doc_id)
        conn.commit()


def batch_add(collection: str, docs: List[Dict[str, Any]]) -> List[str]:
    """Insert every document in one transaction; either all commit or none."""
    if not docs:
        return []
    ids = [_new_id() for _ in docs]
    rows = [(collection, doc_id, Json(doc)) for doc_id, doc in zip(ids, docs)]
    with _get_conn() as conn:
        with conn.cursor() as cur:
            execute_values(
                cur,
                """
                INSERT INTO documents (collection, id, data)
                VALUES %s
                """,
                rows,
            )
        conn.commit()
    return ids
