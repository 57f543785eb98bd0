"""Task submission flow.

Evaluates a learner's files against a catalog task's tests, then feeds the
verdict into the mastery updater with the task's concept tags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from mastery.core.mastery_updater import MasteryUpdater, UpdateReport
from mastery.db.database import Database
from mastery.db.tasks_repository import TaskRecord, get_task
from mastery.evaluation.client import (
    EvaluationClient,
    EvaluationResult,
    validate_evaluation_request,
)
from mastery.utils.validators import (
    InvalidInputError,
    NotFoundError,
    require_learner_id,
)

logger = structlog.get_logger(__name__)


@dataclass
class SubmissionResult:
    """Evaluation verdict plus the mastery movement it caused."""

    task: TaskRecord
    evaluation: EvaluationResult
    report: UpdateReport | None


def submit_task(
    database: Database,
    updater: MasteryUpdater,
    evaluator: EvaluationClient,
    task_id: str,
    learner_id: Any,
    files: Any,
) -> SubmissionResult:
    """Evaluate a submission and update mastery.

    Tasks without concept tags are still evaluated and recorded, but move
    no mastery.

    Raises:
        InvalidInputError: If learner_id or files are malformed
        NotFoundError: If the task does not exist
        EvaluationError: If the evaluation service fails
    """
    learner_id = require_learner_id(learner_id)
    if not isinstance(files, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in files.items()
    ):
        raise InvalidInputError("files", "must map file names to contents")

    with database.connect() as conn:
        task = get_task(conn, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)

    tests = validate_evaluation_request(task.tests, files)
    evaluation = evaluator.evaluate(files, tests)

    logger.info(
        "submission.evaluated",
        learner_id=learner_id,
        task_id=task_id,
        passed=evaluation.passed,
    )

    report = None
    if task.concepts:
        report = updater.apply(learner_id, task.concepts, evaluation.result, task_id=task.id)
    else:
        updater.record_task(learner_id, task.id, evaluation.passed)

    return SubmissionResult(task=task, evaluation=evaluation, report=report)
