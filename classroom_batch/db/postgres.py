from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import psycopg2
import psycopg2.errors
from psycopg2 import sql
from psycopg2.extras import Json

from ..models.config_models import DatabaseConfig
from .documents import COLLECTIONS, UNIQUE_FIELDS, DuplicateKeyError, new_id

"""PostgreSQL document store.

Each collection is a table (id text primary key, doc jsonb). Natural keys are
unique expression indexes named <table>_<field>_key so a UniqueViolation can be
mapped back to the offending field.

Every save() is a single statement on an autocommit connection, so one call is
one durable write.
"""

__all__ = [
    "PostgresCollection",
    "PostgresDatabase",
    "connect",
    "resolve_dsn",
]


def _where(flt: Mapping[str, Any]) -> tuple[sql.Composable, list[Any]]:
    if not flt:
        return sql.SQL("TRUE"), []
    parts: list[sql.Composable] = []
    params: list[Any] = []
    equal: dict[str, Any] = {}
    for key, cond in flt.items():
        if isinstance(cond, Mapping) and "$in" in cond:
            # jsonb equality keeps "1" and 1 apart
            parts.append(sql.SQL("(doc -> %s) = ANY(%s::jsonb[])"))
            params.extend([key, [Json(v) for v in cond["$in"]]])
        else:
            equal[key] = cond
    if equal:
        parts.insert(0, sql.SQL("doc @> %s"))
        params.insert(0, Json(equal))
    return sql.SQL(" AND ").join(parts), params


class PostgresCollection:
    def __init__(self, conn: Any, name: str) -> None:
        self._conn = conn
        self.name = name

    def find_one(self, flt: Mapping[str, Any]) -> dict[str, Any] | None:
        where, params = _where(flt)
        query = sql.SQL("SELECT doc FROM {} WHERE {} LIMIT 1").format(sql.Identifier(self.name), where)
        with self._conn.cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return None if row is None else row[0]

    def find(self, flt: Mapping[str, Any]) -> list[dict[str, Any]]:
        where, params = _where(flt)
        query = sql.SQL("SELECT doc FROM {} WHERE {}").format(sql.Identifier(self.name), where)
        with self._conn.cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [r[0] for r in rows]

    def save(self, document: dict[str, Any]) -> dict[str, Any]:
        doc_id = document.get("_id") or new_id()
        document["_id"] = doc_id
        query = sql.SQL(
            "INSERT INTO {} (id, doc) VALUES (%s, %s) ON CONFLICT (id) DO UPDATE SET doc = EXCLUDED.doc"
        ).format(sql.Identifier(self.name))
        try:
            with self._conn.cursor() as cur:
                cur.execute(query, (doc_id, Json(document)))
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateKeyError(self.name, *self._violated(e, document)) from e
        return dict(document)

    def _violated(self, err: Exception, document: Mapping[str, Any]) -> tuple[str | None, Any]:
        diag = getattr(err, "diag", None)
        constraint = getattr(diag, "constraint_name", None) or ""
        prefix = f"{self.name}_"
        if constraint.startswith(prefix) and constraint.endswith("_key"):
            key = constraint[len(prefix):-len("_key")]
            return key, document.get(key)
        return None, None


class PostgresDatabase:
    def __init__(self, conn: Any) -> None:
        self._conn = conn
        for name in COLLECTIONS:
            setattr(self, name, PostgresCollection(conn, name))

    def ensure_schema(self) -> None:
        with self._conn.cursor() as cur:
            for name in COLLECTIONS:
                cur.execute(
                    sql.SQL("CREATE TABLE IF NOT EXISTS {} (id text PRIMARY KEY, doc jsonb NOT NULL)").format(
                        sql.Identifier(name)
                    )
                )
                for key in UNIQUE_FIELDS.get(name, ()):
                    cur.execute(
                        sql.SQL("CREATE UNIQUE INDEX IF NOT EXISTS {} ON {} ((doc ->> {}))").format(
                            sql.Identifier(f"{name}_{key}_key"),
                            sql.Identifier(name),
                            sql.Literal(key),
                        )
                    )


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve the connection string.

    Priority: DATABASE_URL / PGDSN, then PGHOST / PGPORT / PGUSER / PGPASSWORD /
    PGDATABASE, then the config database section, then libpq defaults.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def connect(db_cfg: DatabaseConfig) -> Iterator[PostgresDatabase]:
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    try:
        conn.autocommit = True
        db = PostgresDatabase(conn)
        db.ensure_schema()
        yield db
    finally:
        conn.close()
