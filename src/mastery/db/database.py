"""SQLite connection and schema management.

The Database object is created once per process (web lifespan or CLI
invocation) and handed to repositories explicitly. Every call opens its
own short-lived connection, so instances are safe to share across threads
and server workers.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

from mastery.utils.validators import MasteryError

logger = structlog.get_logger(__name__)


class StoreUnavailableError(MasteryError):
    """The store could not be reached or is busy. Safe to retry."""

    pass


class Database:
    """Handle on the SQLite mastery store."""

    def __init__(self, db_path: Path | str, busy_timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        """Create the database file and schema if needed, then accept calls."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._open = True
        try:
            with self.connect() as conn:
                conn.execute("PRAGMA journal_mode = WAL")
                _create_schema(conn)
        except StoreUnavailableError:
            self._open = False
            raise

        logger.info("database.initialized", path=str(self.db_path))

    def close(self) -> None:
        """Stop accepting calls. Connections are per call, so nothing is held."""
        self._open = False
        logger.info("database.closed", path=str(self.db_path))

    def _connect(self, isolation_level: str | None = "DEFERRED") -> sqlite3.Connection:
        if not self._open:
            raise StoreUnavailableError("database is not open")
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.busy_timeout,
                isolation_level=isolation_level,
            )
        except sqlite3.OperationalError as e:
            logger.error("database.connect_failed", path=str(self.db_path), error=str(e))
            raise StoreUnavailableError("could not open database") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection as context manager.

        Commits on success and rolls back on error.

        Yields:
            SQLite connection with row factory set to sqlite3.Row

        Example:
            with database.connect() as conn:
                rows = conn.execute("SELECT * FROM concepts").fetchall()
        """
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            logger.error("database.operation_failed", error=str(e))
            raise StoreUnavailableError("database operation failed") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block as one write transaction.

        BEGIN IMMEDIATE takes the database write lock up front, so a
        read-modify-write inside the block cannot interleave with another
        writer. Concurrent callers wait up to busy_timeout for the lock.
        The block either commits as a whole or leaves no trace.
        """
        conn = self._connect(isolation_level=None)
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.OperationalError as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("database.transaction_failed", error=str(e))
            raise StoreUnavailableError("database operation failed") from e
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- concepts: name is the natural key used by task tags
        CREATE TABLE IF NOT EXISTS concepts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL,
            difficulty INTEGER NOT NULL DEFAULT 2 CHECK(difficulty BETWEEN 1 AND 5),
            prerequisites TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        -- mastery_progress: one row per (learner, concept)
        CREATE TABLE IF NOT EXISTS mastery_progress (
            learner_id TEXT NOT NULL,
            concept_id INTEGER NOT NULL REFERENCES concepts(id),
            mastery REAL NOT NULL,
            attempts INTEGER NOT NULL DEFAULT 0 CHECK(attempts >= 0),
            successes INTEGER NOT NULL DEFAULT 0
                CHECK(successes >= 0 AND successes <= attempts),
            last_attempt_at TEXT,
            PRIMARY KEY (learner_id, concept_id)
        );

        -- tasks: catalog read by the selector; seq keeps creation order
        CREATE TABLE IF NOT EXISTS tasks (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            prompt TEXT NOT NULL DEFAULT '',
            difficulty INTEGER NOT NULL CHECK(difficulty BETWEEN 1 AND 5),
            scaffold TEXT NOT NULL DEFAULT '{}',
            tests TEXT NOT NULL DEFAULT '[]',
            hints TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS task_concepts (
            task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            concept_id INTEGER NOT NULL REFERENCES concepts(id),
            position INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (task_id, concept_id)
        );

        -- task_results: whether a learner has passed a task
        CREATE TABLE IF NOT EXISTS task_results (
            learner_id TEXT NOT NULL,
            task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            attempts INTEGER NOT NULL DEFAULT 0 CHECK(attempts >= 0),
            passed INTEGER NOT NULL DEFAULT 0 CHECK(passed IN (0, 1)),
            first_passed_at TEXT,
            last_attempt_at TEXT,
            PRIMARY KEY (learner_id, task_id)
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_progress_learner ON mastery_progress(learner_id);
        CREATE INDEX IF NOT EXISTS idx_tasks_difficulty ON tasks(difficulty, seq);
        CREATE INDEX IF NOT EXISTS idx_task_concepts_concept ON task_concepts(concept_id);
        """
    )
