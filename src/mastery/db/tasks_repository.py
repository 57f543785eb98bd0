"""Repository functions for the task catalog and per-learner task results."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class TaskRecord:
    """Task record from database with its concept tags."""

    id: str
    title: str
    difficulty: int
    concepts: list[str] = field(default_factory=list)
    description: str = ""
    prompt: str = ""
    scaffold: dict[str, str] = field(default_factory=dict)
    tests: list[dict[str, Any]] = field(default_factory=list)
    hints: list[dict[str, Any]] = field(default_factory=list)
    seq: int = 0
    created_at: str = ""


def insert_task_if_absent(
    conn: sqlite3.Connection,
    task_id: str,
    title: str,
    difficulty: int,
    concept_ids: list[int],
    description: str = "",
    prompt: str = "",
    scaffold: dict[str, str] | None = None,
    tests: list[dict[str, Any]] | None = None,
    hints: list[dict[str, Any]] | None = None,
) -> bool:
    """Insert a task and its concept links unless the id already exists.

    Returns:
        True if the task was created
    """
    cursor = conn.execute(
        """
        INSERT INTO tasks (
            id, title, description, prompt, difficulty, scaffold, tests, hints
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO NOTHING
        """,
        (
            task_id,
            title,
            description,
            prompt,
            difficulty,
            json.dumps(scaffold or {}),
            json.dumps(tests or []),
            json.dumps(hints or []),
        ),
    )
    if cursor.rowcount != 1:
        return False

    conn.executemany(
        """
        INSERT INTO task_concepts (task_id, concept_id, position)
        VALUES (?, ?, ?)
        ON CONFLICT(task_id, concept_id) DO NOTHING
        """,
        [(task_id, concept_id, position) for position, concept_id in enumerate(concept_ids)],
    )
    logger.debug("tasks.inserted", task_id=task_id)
    return True


def get_task(conn: sqlite3.Connection, task_id: str) -> TaskRecord | None:
    """Get task by ID.

    Returns:
        TaskRecord if found, None otherwise
    """
    row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    if row is None:
        return None

    concepts = _concepts_by_task(conn, [task_id])
    return _row_to_record(row, concepts.get(task_id, []))


def task_exists(conn: sqlite3.Connection, task_id: str) -> bool:
    row = conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone()
    return row is not None


def list_tasks(
    conn: sqlite3.Connection,
    difficulty: int | None = None,
    concept: str | None = None,
) -> list[TaskRecord]:
    """List tasks ordered by difficulty, then creation order.

    Args:
        difficulty: Only tasks of this tier
        concept: Only tasks tagged with this concept name
    """
    clauses: list[str] = []
    params: list[Any] = []

    if difficulty is not None:
        clauses.append("t.difficulty = ?")
        params.append(difficulty)

    if concept is not None:
        clauses.append(
            """
            EXISTS (
                SELECT 1 FROM task_concepts tc
                JOIN concepts c ON c.id = tc.concept_id
                WHERE tc.task_id = t.id AND c.name = ?
            )
            """
        )
        params.append(concept)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT t.* FROM tasks t {where} ORDER BY t.difficulty ASC, t.seq ASC",
        tuple(params),
    ).fetchall()

    concepts = _concepts_by_task(conn, [row["id"] for row in rows])
    return [_row_to_record(row, concepts.get(row["id"], [])) for row in rows]


def get_passed_task_ids(conn: sqlite3.Connection, learner_id: str) -> set[str]:
    """Ids of the tasks a learner has passed at least once."""
    rows = conn.execute(
        "SELECT task_id FROM task_results WHERE learner_id = ? AND passed = 1",
        (learner_id,),
    ).fetchall()
    return {row["task_id"] for row in rows}


def record_task_result(
    conn: sqlite3.Connection,
    learner_id: str,
    task_id: str,
    passed: bool,
    attempted_at: datetime | None = None,
) -> None:
    """Count an attempt at a task. Once passed, a task stays passed."""
    timestamp = (attempted_at or datetime.now(timezone.utc)).isoformat()
    passed_flag = 1 if passed else 0

    conn.execute(
        """
        INSERT INTO task_results (
            learner_id, task_id, attempts, passed, first_passed_at, last_attempt_at
        ) VALUES (?, ?, 1, ?, CASE WHEN ? = 1 THEN ? END, ?)
        ON CONFLICT(learner_id, task_id) DO UPDATE SET
            attempts = task_results.attempts + 1,
            passed = MAX(task_results.passed, excluded.passed),
            first_passed_at = COALESCE(task_results.first_passed_at, excluded.first_passed_at),
            last_attempt_at = excluded.last_attempt_at
        """,
        (learner_id, task_id, passed_flag, passed_flag, timestamp, timestamp),
    )
    logger.debug("task_results.recorded", learner_id=learner_id, task_id=task_id, passed=passed)


def _concepts_by_task(conn: sqlite3.Connection, task_ids: list[str]) -> dict[str, list[str]]:
    """Concept names per task, in tagging order."""
    if not task_ids:
        return {}
    placeholders = ", ".join("?" for _ in task_ids)
    rows = conn.execute(
        f"""
        SELECT tc.task_id, c.name
        FROM task_concepts tc
        JOIN concepts c ON c.id = tc.concept_id
        WHERE tc.task_id IN ({placeholders})
        ORDER BY tc.task_id, tc.position
        """,
        tuple(task_ids),
    ).fetchall()

    result: dict[str, list[str]] = {}
    for row in rows:
        result.setdefault(row["task_id"], []).append(row["name"])
    return result


def _row_to_record(row: sqlite3.Row, concepts: list[str]) -> TaskRecord:
    """Convert database row to TaskRecord."""
    return TaskRecord(
        id=row["id"],
        title=row["title"],
        difficulty=row["difficulty"],
        concepts=concepts,
        description=row["description"],
        prompt=row["prompt"],
        scaffold=json.loads(row["scaffold"]) if row["scaffold"] else {},
        tests=json.loads(row["tests"]) if row["tests"] else [],
        hints=json.loads(row["hints"]) if row["hints"] else [],
        seq=row["seq"],
        created_at=row["created_at"],
    )
