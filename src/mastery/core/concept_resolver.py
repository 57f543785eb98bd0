"""Concept resolution.

Maps the concept tags carried by tasks and attempts onto durable concept
records, creating unseen concepts with default attributes.
"""

from __future__ import annotations

import sqlite3

import structlog

from mastery.config.app_config import ConceptDefaults
from mastery.db.concepts_repository import (
    ConceptRecord,
    get_concept_by_name,
    insert_concept_if_absent,
    list_concepts,
)
from mastery.db.database import Database
from mastery.utils.validators import InvalidInputError

logger = structlog.get_logger(__name__)


class ConceptResolver:
    """Find-or-create access to concepts by name."""

    def __init__(self, database: Database, defaults: ConceptDefaults | None = None):
        self.database = database
        self.defaults = defaults or ConceptDefaults()

    def resolve(self, tag: str, conn: sqlite3.Connection | None = None) -> ConceptRecord:
        """Return the concept named tag, creating it on first reference.

        Args:
            tag: Concept name
            conn: Connection of an enclosing transaction. When omitted the
                lookup runs in its own transaction.

        Raises:
            InvalidInputError: If tag is empty
            StoreUnavailableError: If the store cannot be reached
        """
        if not tag or not tag.strip():
            raise InvalidInputError("tag", "must be a non-empty string")

        if conn is None:
            with self.database.transaction() as own_conn:
                return self._resolve(own_conn, tag)
        return self._resolve(conn, tag)

    def _resolve(self, conn: sqlite3.Connection, tag: str) -> ConceptRecord:
        existing = get_concept_by_name(conn, tag)
        if existing is not None:
            return existing

        if insert_concept_if_absent(
            conn,
            name=tag,
            description=self.defaults.describe(tag),
            difficulty=self.defaults.difficulty,
        ):
            logger.info("concept.created", name=tag)

        concept = get_concept_by_name(conn, tag)
        if concept is None:
            # Row vanished between insert and select; concepts are never deleted
            raise RuntimeError(f"concept '{tag}' missing after insert")
        return concept

    def ensure(
        self,
        name: str,
        description: str,
        difficulty: int,
        prerequisites: list[str] | None = None,
    ) -> ConceptRecord:
        """Create a concept with explicit attributes, keeping an existing one as is."""
        with self.database.transaction() as conn:
            if insert_concept_if_absent(conn, name, description, difficulty, prerequisites):
                logger.info("concept.created", name=name, difficulty=difficulty)
            concept = get_concept_by_name(conn, name)
        if concept is None:
            raise RuntimeError(f"concept '{name}' missing after insert")
        return concept

    def all_concepts(self) -> list[ConceptRecord]:
        """All known concepts."""
        with self.database.connect() as conn:
            return list_concepts(conn)
