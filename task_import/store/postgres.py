from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ..models.commit_result import PersistedTask
from ..models.config_models import DatabaseConfig
from .base import Parent, StoreError

"""PostgreSQL task store (psycopg2).

Tables (created by ensure_schema):
    clients(id text pk, name text)
    tasks(id bigserial pk, sl_no, client_id, ... one column per document key)

Each create_task runs in its own transaction and is committed immediately:
a later failure in the same import leaves earlier rows in place, matching
the commit loop's no-rollback contract. commit_lock() takes a session level
advisory lock so two importers cannot interleave count-then-insert.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "PostgresTaskStore",
    "resolve_dsn",
    "connect",
    "TASK_COLUMNS",
]

# task document key -> column
TASK_COLUMNS: dict[str, str] = {
    "slNo": "sl_no",
    "clientId": "client_id",
    "clientName": "client_name",
    "projectName": "project_name",
    "pages": "pages",
    "rate": "rate",
    "total": "total",
    "amountPaid": "amount_paid",
    "workStatus": "work_status",
    "paymentStatus": "payment_status",
    "acceptedDate": "accepted_date",
    "submissionDate": "submission_date",
    "notes": "notes",
    "assigneeId": "assignee_id",
    "assigneeName": "assignee_name",
    "projectFileLink": "project_file_link",
    "outputFileLink": "output_file_link",
}

# pg_advisory_lock key for import commits ("TASK" as int)
COMMIT_LOCK_KEY = 0x5441534B

PG_ENV_KEYS = ("PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS clients (
    id text PRIMARY KEY,
    name text NOT NULL
);
CREATE TABLE IF NOT EXISTS tasks (
    id bigserial PRIMARY KEY,
    sl_no integer NOT NULL,
    client_id text NOT NULL REFERENCES clients(id),
    client_name text NOT NULL,
    project_name text NOT NULL,
    pages integer NOT NULL,
    rate numeric NOT NULL,
    total numeric NOT NULL,
    amount_paid numeric NOT NULL DEFAULT 0,
    work_status text NOT NULL,
    payment_status text NOT NULL,
    accepted_date timestamptz NOT NULL,
    submission_date timestamptz NOT NULL,
    notes text,
    assignee_id text,
    assignee_name text,
    project_file_link text,
    output_file_link text
);
"""


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string, environment first.

    1. DATABASE_URL / PGDSN
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the database section of config/import.yml
    """
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN")
    if dsn_env:
        return dsn_env
    # PG* が一つでもあれば config の dsn より優先
    if db_cfg.dsn and not any(os.getenv(k) for k in PG_ENV_KEYS):
        return db_cfg.dsn
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
def connect(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (needs a server)
    """Open a psycopg2 connection for the duration of the block."""
    try:
        import psycopg2
    except ImportError as e:
        raise StoreError(f"psycopg2 not available: {e}") from e
    try:
        conn = psycopg2.connect(resolve_dsn(db_cfg))
    except psycopg2.Error as e:
        raise StoreError(f"database connection failed: {e}") from e
    try:
        yield conn
    finally:
        conn.close()


class PostgresTaskStore:
    """TaskStore backed by a psycopg2 connection."""

    def __init__(self, conn: Any) -> None:
        self.conn = conn

    def ensure_schema(self) -> None:
        with self.conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        self.conn.commit()

    def _rollback(self) -> None:
        """Roll back the failed statement; a dead connection must not hide the original error."""
        try:
            self.conn.rollback()
        except Exception as e:
            logger.warning(f"rollback failed: {e}")

    def _fetch(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            self.conn.commit()
            return rows
        except Exception as e:
            self._rollback()
            raise StoreError(str(e)) from e

    def list_parents(self) -> list[Parent]:
        rows = self._fetch("SELECT id, name FROM clients ORDER BY name")
        return [Parent(id=r[0], name=r[1]) for r in rows]

    def get_parent(self, parent_id: str) -> Parent | None:
        rows = self._fetch("SELECT id, name FROM clients WHERE id = %s", (parent_id,))
        if not rows:
            return None
        return Parent(id=rows[0][0], name=rows[0][1])

    def count_existing_tasks(self) -> int:
        rows = self._fetch("SELECT count(*) FROM tasks")
        return int(rows[0][0])

    def create_task(self, document: dict[str, Any]) -> PersistedTask:
        keys = [k for k in TASK_COLUMNS if k in document]
        cols_sql = ",".join(f'"{TASK_COLUMNS[k]}"' for k in keys)
        placeholders = ",".join(["%s"] * len(keys))
        sql = f"INSERT INTO tasks ({cols_sql}) VALUES ({placeholders}) RETURNING id"
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, tuple(document[k] for k in keys))
                new_id = cur.fetchone()[0]
            self.conn.commit()
        except Exception as e:
            self._rollback()
            raise StoreError(str(e)) from e
        return PersistedTask(id=str(new_id), sl_no=document["slNo"], document=dict(document, id=str(new_id)))

    @contextmanager
    def commit_lock(self) -> Iterator[None]:
        self._fetch("SELECT pg_advisory_lock(%s)", (COMMIT_LOCK_KEY,))
        try:
            yield
        finally:
            try:
                self._fetch("SELECT pg_advisory_unlock(%s)", (COMMIT_LOCK_KEY,))
            except StoreError as e:
                logger.warning(f"failed to release import lock: {e}")
