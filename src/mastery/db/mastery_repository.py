"""Repository functions for the mastery_progress table.

Provides the per-(learner, concept) reads and the increment upsert used by
the mastery updater. Writes are meant to run inside Database.transaction so
the read and the upsert of one concept form a single atomic unit.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class MasteryRecord:
    """Mastery record from database, joined with its concept name."""

    learner_id: str
    concept_id: int
    concept_name: str
    mastery: float
    attempts: int
    successes: int
    last_attempt_at: str | None

    @property
    def success_rate(self) -> str:
        """Successes over attempts as a percentage with one decimal."""
        if self.attempts == 0:
            return "0.0"
        rate = Decimal(self.successes * 100) / Decimal(self.attempts)
        return str(rate.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def get_mastery(
    conn: sqlite3.Connection, learner_id: str, concept_id: int
) -> MasteryRecord | None:
    """Get the record for one learner and concept.

    Returns:
        MasteryRecord if found, None otherwise
    """
    row = conn.execute(
        """
        SELECT p.*, c.name AS concept_name
        FROM mastery_progress p
        JOIN concepts c ON c.id = p.concept_id
        WHERE p.learner_id = ? AND p.concept_id = ?
        """,
        (learner_id, concept_id),
    ).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def upsert_attempt(
    conn: sqlite3.Connection,
    learner_id: str,
    concept_id: int,
    new_mastery: float,
    success: bool,
    attempted_at: datetime | None = None,
) -> MasteryRecord:
    """Record one attempt: bump counters and store the new score.

    Counters are incremented in SQL rather than written back, so the
    statement never loses an attempt even if it ran outside a transaction.

    Returns:
        The record as stored after the upsert
    """
    timestamp = (attempted_at or datetime.now(timezone.utc)).isoformat()
    success_increment = 1 if success else 0

    conn.execute(
        """
        INSERT INTO mastery_progress (
            learner_id, concept_id, mastery, attempts, successes, last_attempt_at
        ) VALUES (?, ?, ?, 1, ?, ?)
        ON CONFLICT(learner_id, concept_id) DO UPDATE SET
            mastery = excluded.mastery,
            attempts = mastery_progress.attempts + 1,
            successes = mastery_progress.successes + excluded.successes,
            last_attempt_at = excluded.last_attempt_at
        """,
        (learner_id, concept_id, new_mastery, success_increment, timestamp),
    )

    record = get_mastery(conn, learner_id, concept_id)
    if record is None:
        raise RuntimeError(f"mastery record ({learner_id}, {concept_id}) missing after upsert")
    logger.debug(
        "mastery_progress.upserted",
        learner_id=learner_id,
        concept_id=concept_id,
        mastery=record.mastery,
        attempts=record.attempts,
    )
    return record


def list_progress(conn: sqlite3.Connection, learner_id: str) -> list[MasteryRecord]:
    """Get all records of a learner, highest mastery first."""
    rows = conn.execute(
        """
        SELECT p.*, c.name AS concept_name
        FROM mastery_progress p
        JOIN concepts c ON c.id = p.concept_id
        WHERE p.learner_id = ?
        ORDER BY p.mastery DESC, c.name ASC
        """,
        (learner_id,),
    ).fetchall()

    return [_row_to_record(row) for row in rows]


def get_scores_by_concept_name(
    conn: sqlite3.Connection, learner_id: str
) -> dict[str, float]:
    """Map concept name to mastery score for one learner."""
    rows = conn.execute(
        """
        SELECT c.name AS concept_name, p.mastery
        FROM mastery_progress p
        JOIN concepts c ON c.id = p.concept_id
        WHERE p.learner_id = ?
        """,
        (learner_id,),
    ).fetchall()

    return {row["concept_name"]: row["mastery"] for row in rows}


def _row_to_record(row: sqlite3.Row) -> MasteryRecord:
    """Convert database row to MasteryRecord."""
    return MasteryRecord(
        learner_id=row["learner_id"],
        concept_id=row["concept_id"],
        concept_name=row["concept_name"],
        mastery=row["mastery"],
        attempts=row["attempts"],
        successes=row["successes"],
        last_attempt_at=row["last_attempt_at"],
    )
