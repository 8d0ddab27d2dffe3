"""
Pharmacy Finder — Postgres access

A psycopg2 ThreadedConnectionPool shared by the adapters, analytics and
appointment routes. Settings come from PF_DATABASE_URL when set, else from
the individual PF_DB_* variables (defaults suit a local Postgres).

`init_pool()` returning False is the signal to serve everything from the
JSON snapshots in `pharmacy_finder.store` instead.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Sequence

import psycopg2
from psycopg2 import extras, pool

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("PF_DATABASE_URL")

DB_CONFIG = {
    "host": os.environ.get("PF_DB_HOST", "localhost"),
    "port": int(os.environ.get("PF_DB_PORT", "5432")),
    "dbname": os.environ.get("PF_DB_NAME", "pharmacy_finder"),
    "user": os.environ.get("PF_DB_USER", "pharmacy_finder"),
    "password": os.environ.get("PF_DB_PASSWORD", "pf_local_dev"),
}

_pool: pool.ThreadedConnectionPool | None = None


def _connect_kwargs() -> dict[str, Any]:
    if DATABASE_URL:
        return {"dsn": DATABASE_URL}
    return dict(DB_CONFIG)


def _describe() -> str:
    if DATABASE_URL:
        return "PF_DATABASE_URL"
    return "{user}@{host}:{port}/{dbname}".format(**DB_CONFIG)


# ---------------------------------------------------------------------------
# Pool lifecycle
# ---------------------------------------------------------------------------


def init_pool(minconn: int = 2, maxconn: int = 10) -> bool:
    """Open the pool and check the directory table. False means JSON mode."""
    global _pool
    try:
        _pool = pool.ThreadedConnectionPool(minconn, maxconn, **_connect_kwargs())
        count = scalar("SELECT count(*) FROM pharmacies")
    except psycopg2.Error as e:
        logger.warning("Database unavailable (%s), serving JSON snapshots: %s", _describe(), e)
        close_pool()
        return False

    logger.info("Database pool ready (%s), %d directory pharmacies", _describe(), count)
    return True


def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    _pool.closeall()
    _pool = None
    logger.info("Database pool closed.")


def is_available() -> bool:
    return _pool is not None


# ---------------------------------------------------------------------------
# Connections and queries
# ---------------------------------------------------------------------------


class get_conn:
    """
    Borrow a pooled connection for one unit of work.

    The transaction is committed when the block exits cleanly and rolled
    back when it raises; the connection goes back to the pool either way.
    """

    def __enter__(self):
        if _pool is None:
            raise RuntimeError("Database pool not initialized")
        self._pool = _pool
        self.conn = _pool.getconn()
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
        finally:
            self._pool.putconn(self.conn)
        return False


def fetch_all(sql: str, params: Sequence[Any] = ()) -> list[dict]:
    """Rows as plain dicts."""
    with get_conn() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            return [dict(r) for r in cur.fetchall()]


def fetch_one(sql: str, params: Sequence[Any] = ()) -> dict | None:
    """First row as a dict, or None. Also used for INSERT/UPDATE ... RETURNING."""
    with get_conn() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
    return dict(row) if row is not None else None


def scalar(sql: str, params: Sequence[Any] = ()) -> Any:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
    return row[0] if row is not None else None


def insert_row(table: str, row: dict[str, Any], returning: bool = False) -> dict | None:
    """
    INSERT one row. Dict values are wrapped as JSONB. With `returning`,
    the stored row (defaults filled in) is returned.
    """
    columns = ", ".join(row)
    placeholders = ", ".join(["%s"] * len(row))
    values = [extras.Json(v) if isinstance(v, dict) else v for v in row.values()]
    sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
    if returning:
        return fetch_one(sql + " RETURNING *", values)
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, values)
    return None
