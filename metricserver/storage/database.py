"""Persistent metric storage backed by an SQLite database."""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Mapping

log = logging.getLogger(__name__)

_SCHEMA = """CREATE TABLE IF NOT EXISTS metrics (
    name TEXT PRIMARY KEY,
    value REAL NOT NULL
)"""

_UPSERT = """INSERT INTO metrics (name, value)
VALUES (?, ?)
ON CONFLICT (name) DO UPDATE SET value = excluded.value"""


class StorageError(Exception):
    """Raised when the database cannot be reached or updated."""


class DatabaseStorage:
    """Stores metrics in a ``metrics`` table, one row per name.

    ``dsn`` is a filesystem path, ``:memory:``, or a ``file:`` URI.
    """

    def __init__(self, dsn: str) -> None:
        if not isinstance(dsn, str) or not dsn:
            raise StorageError("failed to parse database config")

        try:
            self._conn = sqlite3.connect(
                dsn,
                isolation_level=None,
                check_same_thread=False,
                uri=dsn.startswith("file:"),
            )
        except sqlite3.Error as exc:
            raise StorageError("failed to create database connection") from exc

        try:
            self._conn.execute("SELECT 1").fetchone()
            self._conn.execute(_SCHEMA)
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageError("failed to ping database") from exc

        self._lock = threading.Lock()
        self._closed = False

    def save(self, data: Mapping[str, float]) -> None:
        """Upsert every metric in ``data`` inside a single transaction."""
        with self._lock:
            try:
                self._conn.execute("BEGIN")
            except sqlite3.Error as exc:
                raise StorageError("failed to init transaction") from exc

            try:
                self._conn.executemany(
                    _UPSERT, ((name, float(value)) for name, value in data.items())
                )
                self._conn.execute("COMMIT")
            except (sqlite3.Error, TypeError, ValueError) as exc:
                self._rollback()
                raise StorageError("exec tx error") from exc

    def load(self) -> dict[str, float]:
        """Return every stored metric."""
        with self._lock:
            try:
                rows = self._conn.execute("SELECT name, value FROM metrics").fetchall()
            except sqlite3.Error as exc:
                raise StorageError("failed to read metrics") from exc
        return dict(rows)

    def close(self) -> None:
        """Close the connection; later calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True
        log.info("close connection to database")

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            log.warning("rollback error")

    def __enter__(self) -> "DatabaseStorage":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()