"""
Database
========

The SQLite file behind every store.

WHAT IT DOES:
------------
1. Opens one shared connection for the process
2. Creates the tables on startup (CREATE TABLE IF NOT EXISTS)
3. Runs single statements, or groups of statements in a transaction
4. Turns every sqlite3 error into StorageFailure (and logs it)

TRANSACTIONS:
------------
transaction() takes a process-wide re-entrant lock and issues BEGIN IMMEDIATE,
so a scoring operation's read, compute and write happen as one unit. Nested
calls join the outer transaction.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from classpoint.errors import StorageFailure

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS school (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS classroom (
  id TEXT PRIMARY KEY,
  school_id TEXT NOT NULL,
  grade INTEGER NOT NULL,
  name TEXT NOT NULL,
  password_hash TEXT,
  UNIQUE(school_id, grade, name),
  FOREIGN KEY (school_id) REFERENCES school(id)
);
CREATE INDEX IF NOT EXISTS idx_classroom_school ON classroom (school_id);

CREATE TABLE IF NOT EXISTS class_token (
  token TEXT PRIMARY KEY,
  class_id TEXT NOT NULL,
  FOREIGN KEY (class_id) REFERENCES classroom(id)
);

CREATE TABLE IF NOT EXISTS student_token (
  token TEXT PRIMARY KEY,
  student_id TEXT NOT NULL,
  class_id TEXT NOT NULL,
  FOREIGN KEY (class_id) REFERENCES classroom(id)
);

CREATE TABLE IF NOT EXISTS day_status (
  class_id TEXT NOT NULL,
  date TEXT NOT NULL,           -- YYYY-MM-DD, service time zone
  point INTEGER NOT NULL DEFAULT 0,
  attend INTEGER,
  leftovers INTEGER,
  UNIQUE(class_id, date),
  FOREIGN KEY (class_id) REFERENCES classroom(id)
);
CREATE INDEX IF NOT EXISTS idx_day_status_date ON day_status (date);

CREATE TABLE IF NOT EXISTS latest_sensor_time (
  class_id TEXT PRIMARY KEY,
  time TEXT NOT NULL,           -- ISO-8601 with UTC offset
  FOREIGN KEY (class_id) REFERENCES classroom(id)
);
"""


class Database:
    """A single SQLite connection shared by all stores."""

    def __init__(self, path: str | Path):
        self.path = str(path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(
                self.path,
                isolation_level=None,      # we issue BEGIN/COMMIT ourselves
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            logger.exception(f"Failed to open database at {self.path}")
            raise StorageFailure() from e

    def init_schema(self):
        """Create tables that don't exist yet."""
        with self._lock:
            try:
                self._conn.executescript(SCHEMA_SQL)
            except sqlite3.Error as e:
                logger.exception("Failed to create database schema")
                raise StorageFailure() from e
        logger.info(f"Database ready at {self.path}")

    def close(self):
        with self._lock:
            self._conn.close()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Run the enclosed statements atomically.

        Any exception rolls everything back and propagates; sqlite3 errors
        come out as StorageFailure.
        """
        with self._lock:
            if self._conn.in_transaction:
                yield
                return

            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.exception("Failed to begin transaction")
                raise StorageFailure() from e

            try:
                yield
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                logger.exception("Transaction failed, rolled back")
                raise StorageFailure() from e
            except BaseException:
                self._rollback()
                raise

    def _rollback(self):
        if not self._conn.in_transaction:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("Rollback failed")

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement. Returns the number of affected rows."""
        with self._lock:
            try:
                return self._conn.execute(sql, params).rowcount
            except sqlite3.Error as e:
                logger.exception(f"Statement failed: {sql.split()[0]}")
                raise StorageFailure() from e

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                logger.exception(f"Query failed: {sql.split()[0]}")
                raise StorageFailure() from e

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.exception(f"Query failed: {sql.split()[0]}")
                raise StorageFailure() from e
