"""SQLite persistence store for activities and jobs."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence, Union

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS activity (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time TEXT NOT NULL,
    end_time TEXT,
    activity_type TEXT NOT NULL,
    status TEXT NOT NULL,
    description TEXT
);

CREATE TABLE IF NOT EXISTS job (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL
);
"""

Params = Sequence[Any]


class StoreError(Exception):
    """Raised when the database cannot be opened or a statement fails."""


class Store:
    """Owns the single database connection and serializes access to it.

    Every statement runs while holding ``_lock``, so callers on different
    threads (the web dashboard's worker pool, for instance) never touch the
    connection at the same time.
    """

    def __init__(self, conn: sqlite3.Connection, path: Union[Path, str]) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self.path = path

    def execute(self, sql: str, params: Params = ()) -> int:
        """Run a write statement and return the number of affected rows."""
        with self._cursor() as cur:
            self._run(cur, sql, params)
            return cur.rowcount

    def insert(self, sql: str, params: Params = ()) -> int:
        """Run an INSERT and return the id assigned to the new row."""
        with self._cursor() as cur:
            self._run(cur, sql, params)
            return int(cur.lastrowid)

    def query(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        with self._cursor() as cur:
            self._run(cur, sql, params)
            try:
                return cur.fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to execute statement: {exc}") from exc

    def query_one(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug("Closed database %s", self.path)

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            try:
                cursor = self._conn.cursor()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to prepare statement: {exc}") from exc
            with closing(cursor):
                yield cursor

    @staticmethod
    def _run(cur: sqlite3.Cursor, sql: str, params: Params) -> None:
        try:
            cur.execute(sql, tuple(params))
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to execute statement: {exc}") from exc


def open_store(path: Union[Path, str]) -> Store:
    """Open (and initialize) the SQLite database.

    Pass ``":memory:"`` for a throwaway database.
    """
    try:
        conn = sqlite3.connect(
            path,
            isolation_level=None,
            check_same_thread=False,
        )
    except sqlite3.Error as exc:
        raise StoreError(f"Failed to open database: {exc}") from exc
    conn.row_factory = sqlite3.Row
    try:
        initialize_schema(conn)
    except sqlite3.Error as exc:
        conn.close()
        raise StoreError(f"Failed to create tables: {exc}") from exc
    logger.debug("Opened database %s", path)
    return Store(conn, path)


@contextmanager
def store_connection(path: Union[Path, str]) -> Iterator[Store]:
    store = open_store(path)
    try:
        yield store
    finally:
        store.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA)
