"""Task catalog access and seeding.

The catalog is owned by the surrounding application; this module reads it
for the selector and the web API, and loads seed files (concepts + tasks)
in YAML for local setups and tests.

Seed file format:
    concepts:
      - name: html-basics
        description: Basic HTML structure and elements
        difficulty: 1
        prerequisites: []
    tasks:
      - id: html-basics-1
        title: Create Your First Webpage
        difficulty: 1
        concepts: [html-basics]
        scaffold: {index.html: "..."}
        tests: [{id: has-h1, code: "...", description: "..."}]
        hints: [{level: 1, text: "...", concept_tag: html-basics}]
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from mastery.core.concept_resolver import ConceptResolver
from mastery.core.rating import MAX_TIER, MIN_TIER
from mastery.db.database import Database
from mastery.db.tasks_repository import (
    TaskRecord,
    get_task,
    insert_task_if_absent,
    list_tasks,
)
from mastery.utils.validators import InvalidInputError, NotFoundError

logger = structlog.get_logger(__name__)


class SeedError(Exception):
    """Error reading or validating a seed file."""

    pass


@dataclass
class SeedResult:
    """Counts of rows created by a seed run."""

    concepts_created: int
    tasks_created: int
    tasks_skipped: int


class TaskCatalog:
    """Read access to tasks plus idempotent seeding."""

    def __init__(self, database: Database, resolver: ConceptResolver | None = None):
        self.database = database
        self.resolver = resolver or ConceptResolver(database)

    def find(self, difficulty: int | None = None, concept: str | None = None) -> list[TaskRecord]:
        """Tasks matching optional filters, easiest and oldest first.

        A difficulty outside 1-5 is ignored rather than rejected.
        """
        if difficulty is not None and not MIN_TIER <= difficulty <= MAX_TIER:
            difficulty = None
        with self.database.connect() as conn:
            return list_tasks(conn, difficulty=difficulty, concept=concept or None)

    def get(self, task_id: str) -> TaskRecord:
        """Get task by ID.

        Raises:
            NotFoundError: If the task does not exist
        """
        with self.database.connect() as conn:
            task = get_task(conn, task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def add_task(
        self,
        task_id: str,
        title: str,
        difficulty: int,
        concepts: list[str],
        description: str = "",
        prompt: str = "",
        scaffold: dict[str, str] | None = None,
        tests: list[dict[str, Any]] | None = None,
        hints: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Add a task, creating unseen concept tags. Existing ids are left untouched.

        Returns:
            True if the task was created
        """
        if not task_id:
            raise InvalidInputError("id", "is required")
        if not MIN_TIER <= difficulty <= MAX_TIER:
            raise InvalidInputError("difficulty", f"must be between {MIN_TIER} and {MAX_TIER}")

        with self.database.transaction() as conn:
            concept_ids = [self.resolver.resolve(name, conn=conn).id for name in concepts]
            created = insert_task_if_absent(
                conn,
                task_id=task_id,
                title=title,
                difficulty=difficulty,
                concept_ids=concept_ids,
                description=description,
                prompt=prompt,
                scaffold=scaffold,
                tests=tests,
                hints=hints,
            )

        if created:
            logger.info("catalog.task_added", task_id=task_id, difficulty=difficulty)
        return created

    def load_seed(self, path: Path) -> SeedResult:
        """Load concepts and tasks from a YAML seed file.

        Raises:
            SeedError: If the file is missing or malformed
        """
        if not path.exists():
            raise SeedError(f"Seed file not found: {path}")

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise SeedError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise SeedError(f"Seed file must contain a mapping: {path}")

        known = {c.name for c in self.resolver.all_concepts()}
        concepts_created = 0
        for entry in data.get("concepts") or []:
            try:
                name = entry["name"]
                difficulty = int(entry.get("difficulty", self.resolver.defaults.difficulty))
                prerequisites = list(entry.get("prerequisites") or [])
            except (KeyError, TypeError, ValueError) as e:
                raise SeedError(f"Invalid concept entry {entry!r}: {e}") from e
            if not MIN_TIER <= difficulty <= MAX_TIER:
                raise SeedError(f"Concept '{name}' difficulty must be between {MIN_TIER} and {MAX_TIER}")

            self.resolver.ensure(
                name=name,
                description=entry.get("description", self.resolver.defaults.describe(name)),
                difficulty=difficulty,
                prerequisites=prerequisites,
            )
            if name not in known:
                known.add(name)
                concepts_created += 1

        tasks_created = 0
        tasks_skipped = 0
        for entry in data.get("tasks") or []:
            try:
                created = self.add_task(
                    task_id=entry["id"],
                    title=entry["title"],
                    difficulty=int(entry["difficulty"]),
                    concepts=list(entry.get("concepts") or []),
                    description=entry.get("description", ""),
                    prompt=entry.get("prompt", ""),
                    scaffold=entry.get("scaffold"),
                    tests=entry.get("tests"),
                    hints=entry.get("hints"),
                )
            except (KeyError, TypeError, ValueError, InvalidInputError) as e:
                raise SeedError(f"Invalid task entry {entry.get('id', '?')!r}: {e}") from e
            if created:
                tasks_created += 1
            else:
                tasks_skipped += 1

        logger.info(
            "catalog.seeded",
            path=str(path),
            concepts_created=concepts_created,
            tasks_created=tasks_created,
            tasks_skipped=tasks_skipped,
        )
        return SeedResult(
            concepts_created=concepts_created,
            tasks_created=tasks_created,
            tasks_skipped=tasks_skipped,
        )
