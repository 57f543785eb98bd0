"""Next-task selection.

Strategies:
- sequential: easiest task the learner has not passed yet
- just-right: task whose difficulty sits just above the learner's current
  ability on the task's concepts

Ability for a task is the mean mastery over its concepts, mapped onto the
1-5 difficulty scale. Concepts without a record count at the default score.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from statistics import mean
from typing import Any

import structlog

from mastery.config.app_config import RatingSettings, SelectorSettings
from mastery.core.rating import normalize_to_tier
from mastery.db.database import Database
from mastery.db.mastery_repository import get_scores_by_concept_name
from mastery.db.tasks_repository import TaskRecord, get_passed_task_ids, list_tasks
from mastery.utils.validators import InvalidInputError, require_learner_id

logger = structlog.get_logger(__name__)


class Strategy(str, Enum):
    """Selection strategies."""

    JUST_RIGHT = "just-right"
    SEQUENTIAL = "sequential"

    @classmethod
    def parse(cls, value: Any) -> "Strategy":
        """Parse a strategy literal.

        Raises:
            InvalidInputError: If value is not a known strategy
        """
        if value is None:
            raise InvalidInputError("strategy", "is required")
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(f'"{s.value}"' for s in cls)
            raise InvalidInputError("strategy", f"must be one of {allowed}") from None


@dataclass
class TaskFit:
    """How well a task matches a learner."""

    task: TaskRecord
    ability: float
    distance: float

    @property
    def stretches(self) -> bool:
        """Task is not below the learner's ability."""
        return self.task.difficulty >= self.ability

    def sort_key(self) -> tuple[float, int, int]:
        return (self.distance, self.task.difficulty, self.task.seq)


class TaskSelector:
    """Chooses the next task to present to a learner."""

    def __init__(
        self,
        database: Database,
        rating: RatingSettings | None = None,
        settings: SelectorSettings | None = None,
    ):
        self.database = database
        self.rating = rating or RatingSettings()
        self.settings = settings or SelectorSettings()

    def select(self, learner_id: Any, strategy: Any) -> TaskRecord | None:
        """Pick the next task for a learner.

        Returns:
            The chosen task, or None when no unpassed task remains

        Raises:
            InvalidInputError: If learner_id is missing or strategy is unknown
        """
        learner_id = require_learner_id(learner_id)
        chosen_strategy = Strategy.parse(strategy)

        with self.database.connect() as conn:
            passed = get_passed_task_ids(conn, learner_id)
            candidates = [t for t in list_tasks(conn) if t.id not in passed]
            scores = (
                get_scores_by_concept_name(conn, learner_id)
                if chosen_strategy is Strategy.JUST_RIGHT
                else {}
            )

        if not candidates:
            logger.info("task_selector.exhausted", learner_id=learner_id, passed=len(passed))
            return None

        if chosen_strategy is Strategy.SEQUENTIAL:
            task = candidates[0]
        else:
            task = self._just_right(candidates, scores).task

        logger.info(
            "task_selector.selected",
            learner_id=learner_id,
            strategy=chosen_strategy.value,
            task_id=task.id,
            difficulty=task.difficulty,
        )
        return task

    def ability_for(self, task: TaskRecord, scores: dict[str, float]) -> float:
        """Learner ability on the task's concepts, on the 1-5 scale."""
        default = self.rating.default_mastery
        if task.concepts:
            aggregate = mean(scores.get(name, default) for name in task.concepts)
        else:
            aggregate = default
        return normalize_to_tier(aggregate, self.rating)

    def fit(self, task: TaskRecord, scores: dict[str, float]) -> TaskFit:
        ability = self.ability_for(task, scores)
        target = ability + self.settings.stretch
        return TaskFit(task=task, ability=ability, distance=abs(task.difficulty - target))

    def _just_right(self, candidates: list[TaskRecord], scores: dict[str, float]) -> TaskFit:
        fits = [self.fit(task, scores) for task in candidates]
        # Only fall back to tasks below the learner when nothing stretches them
        stretching = [f for f in fits if f.stretches]
        return min(stretching or fits, key=TaskFit.sort_key)
