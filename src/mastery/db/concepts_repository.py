"""Repository functions for the concepts table.

Functions take an open connection so callers can run them inside a
larger transaction (see Database.transaction).
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ConceptRecord:
    """Concept record from database."""

    id: int
    name: str
    description: str
    difficulty: int
    prerequisites: list[str] = field(default_factory=list)
    created_at: str = ""


def insert_concept_if_absent(
    conn: sqlite3.Connection,
    name: str,
    description: str,
    difficulty: int,
    prerequisites: list[str] | None = None,
) -> bool:
    """Insert a concept unless one with the same name exists.

    Relies on the UNIQUE constraint on name, so concurrent callers
    inserting the same name end up with a single row.

    Returns:
        True if a new row was created
    """
    cursor = conn.execute(
        """
        INSERT INTO concepts (name, description, difficulty, prerequisites)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(name) DO NOTHING
        """,
        (name, description, difficulty, json.dumps(prerequisites or [])),
    )
    created = cursor.rowcount == 1
    if created:
        logger.debug("concepts.inserted", name=name)
    return created


def get_concept_by_name(conn: sqlite3.Connection, name: str) -> ConceptRecord | None:
    """Get concept by name.

    Returns:
        ConceptRecord if found, None otherwise
    """
    row = conn.execute("SELECT * FROM concepts WHERE name = ?", (name,)).fetchone()
    if row is None:
        return None
    return _row_to_record(row)


def list_concepts(conn: sqlite3.Connection) -> list[ConceptRecord]:
    """Get all concepts ordered by difficulty, then name."""
    rows = conn.execute(
        "SELECT * FROM concepts ORDER BY difficulty ASC, name ASC"
    ).fetchall()
    return [_row_to_record(row) for row in rows]


def _row_to_record(row: sqlite3.Row) -> ConceptRecord:
    """Convert database row to ConceptRecord."""
    return ConceptRecord(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        difficulty=row["difficulty"],
        prerequisites=json.loads(row["prerequisites"]) if row["prerequisites"] else [],
        created_at=row["created_at"],
    )
