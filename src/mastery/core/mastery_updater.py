"""Mastery update orchestration.

Applies one attempt outcome to every concept a task exercises:
- Validates the request before touching the store
- Updates each concept in its own write transaction
- Reports committed and failed concepts separately

Concepts are independent facts, so a store failure on one concept does not
undo the concepts already committed in the same call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from mastery.config.app_config import RatingSettings
from mastery.core.concept_resolver import ConceptResolver
from mastery.core.rating import update_mastery_score
from mastery.db.database import Database, StoreUnavailableError
from mastery.db.mastery_repository import (
    MasteryRecord,
    get_mastery,
    list_progress,
    upsert_attempt,
)
from mastery.db.tasks_repository import record_task_result, task_exists
from mastery.utils.validators import (
    InvalidInputError,
    NotFoundError,
    normalize_tags,
    parse_result,
    require_learner_id,
)

logger = structlog.get_logger(__name__)

RETRY_MESSAGE = "temporarily unavailable, try again"


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ConceptUpdate:
    """Score movement of one concept."""

    concept: str
    old_mastery: float
    new_mastery: float
    change: float


@dataclass
class TagFailure:
    """A concept whose update did not commit."""

    concept: str
    reason: str = RETRY_MESSAGE


@dataclass
class UpdateReport:
    """Outcome of applying one attempt across its concepts."""

    learner_id: str
    updates: list[ConceptUpdate] = field(default_factory=list)
    failures: list[TagFailure] = field(default_factory=list)
    task_id: str | None = None
    task_recorded: bool | None = None

    @property
    def ok(self) -> bool:
        """True when every concept (and the task result, if any) committed."""
        return not self.failures and self.task_recorded is not False


# =============================================================================
# ORCHESTRATOR
# =============================================================================


class MasteryUpdater:
    """Reads and updates per-concept mastery for learners."""

    def __init__(
        self,
        database: Database,
        resolver: ConceptResolver | None = None,
        settings: RatingSettings | None = None,
    ):
        self.database = database
        self.resolver = resolver or ConceptResolver(database)
        self.settings = settings or RatingSettings()

    def apply(
        self,
        learner_id: Any,
        tags: Any,
        result: Any,
        task_id: str | None = None,
    ) -> UpdateReport:
        """Apply a pass/fail outcome to every tagged concept.

        Args:
            learner_id: Learner identifier
            tags: Concept names exercised by the task (non-empty)
            result: "pass" or "fail"
            task_id: Catalog task the attempt belongs to, if any

        Returns:
            UpdateReport with one update per distinct tag, in input order

        Raises:
            InvalidInputError: If a field is missing or malformed
            NotFoundError: If task_id is not in the catalog
        """
        learner_id = require_learner_id(learner_id)
        concept_tags = normalize_tags(tags)
        success = parse_result(result)

        if task_id is not None:
            self._require_task(task_id)

        report = UpdateReport(learner_id=learner_id, task_id=task_id)

        for tag in concept_tags:
            try:
                report.updates.append(self._apply_one(learner_id, tag, success))
            except StoreUnavailableError as e:
                logger.warning(
                    "mastery.update_failed",
                    learner_id=learner_id,
                    concept=tag,
                    error=str(e),
                )
                report.failures.append(TagFailure(concept=tag))

        if task_id is not None:
            report.task_recorded = self.record_task(learner_id, task_id, success)

        return report

    def _apply_one(self, learner_id: str, tag: str, success: bool) -> ConceptUpdate:
        """Read-modify-write of one (learner, concept) record as one transaction."""
        with self.database.transaction() as conn:
            concept = self.resolver.resolve(tag, conn=conn)
            existing = get_mastery(conn, learner_id, concept.id)
            old_mastery = existing.mastery if existing else self.settings.default_mastery
            new_mastery = update_mastery_score(old_mastery, success, self.settings)
            record = upsert_attempt(conn, learner_id, concept.id, new_mastery, success)

        logger.info(
            "mastery.updated",
            learner_id=learner_id,
            concept=tag,
            old_mastery=old_mastery,
            new_mastery=record.mastery,
            attempts=record.attempts,
        )
        return ConceptUpdate(
            concept=tag,
            old_mastery=old_mastery,
            new_mastery=record.mastery,
            change=record.mastery - old_mastery,
        )

    def _require_task(self, task_id: str) -> None:
        if not isinstance(task_id, str) or not task_id.strip():
            raise InvalidInputError("taskId", "must be a non-empty string")
        with self.database.connect() as conn:
            if not task_exists(conn, task_id):
                raise NotFoundError("Task", task_id)

    def record_task(self, learner_id: str, task_id: str, success: bool) -> bool:
        """Count an attempt at a catalog task. Returns False if the store failed."""
        try:
            with self.database.transaction() as conn:
                record_task_result(conn, learner_id, task_id, success)
        except StoreUnavailableError as e:
            logger.warning(
                "task_result.record_failed",
                learner_id=learner_id,
                task_id=task_id,
                error=str(e),
            )
            return False
        return True

    def progress(self, learner_id: Any) -> list[MasteryRecord]:
        """All mastery records of a learner, highest mastery first.

        A learner without records gets an empty list.

        Raises:
            InvalidInputError: If learner_id is missing
        """
        learner_id = require_learner_id(learner_id)
        with self.database.connect() as conn:
            return list_progress(conn, learner_id)
