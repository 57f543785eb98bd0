"""Service wiring for the Web API.

One Services instance is built per application and stored on app.state;
route handlers receive it through the get_services dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fastapi import Request

from mastery.config.app_config import AppConfig
from mastery.core.catalog import TaskCatalog
from mastery.core.concept_resolver import ConceptResolver
from mastery.core.mastery_updater import MasteryUpdater
from mastery.core.task_selector import TaskSelector
from mastery.db.database import Database
from mastery.evaluation.client import EvaluationClient


@dataclass
class Services:
    """Long-lived collaborators shared by all requests."""

    database: Database
    updater: MasteryUpdater
    selector: TaskSelector
    catalog: TaskCatalog
    evaluator: EvaluationClient

    @classmethod
    def build(
        cls,
        config: AppConfig,
        database: Database | None = None,
        evaluator: EvaluationClient | None = None,
    ) -> Services:
        database = database or Database(
            Path(config.storage.db_path), busy_timeout=config.storage.busy_timeout
        )
        resolver = ConceptResolver(database, config.concepts)
        return cls(
            database=database,
            updater=MasteryUpdater(database, resolver, config.rating),
            selector=TaskSelector(database, config.rating, config.selector),
            catalog=TaskCatalog(database, resolver),
            evaluator=evaluator or EvaluationClient(config.evaluation),
        )

    def close(self) -> None:
        self.evaluator.close()
        self.database.close()


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the application's services."""
    return request.app.state.services
