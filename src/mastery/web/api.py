"""FastAPI application factory.

Main entry point for the Mastery Engine Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mastery.config.app_config import AppConfig, load_app_config
from mastery.db.database import Database
from mastery.evaluation.client import EvaluationClient
from mastery.web.errors import register_exception_handlers
from mastery.web.routes import (
    evaluation_router,
    health_router,
    mastery_router,
    tasks_router,
)
from mastery.web.schemas import API_VERSION
from mastery.web.services import Services

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store at startup and release collaborators at shutdown."""
    services: Services = app.state.services
    services.database.open()
    logger.info(
        "api_startup",
        db_path=str(services.database.db_path.absolute()),
        evaluation_url=services.evaluator.config.base_url,
    )
    yield
    services.close()
    logger.info("api_shutdown")


def create_app(
    config: AppConfig | None = None,
    database: Database | None = None,
    evaluator: EvaluationClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Application config (loaded from YAML if not provided)
        database: Store adapter to use instead of the configured one
        evaluator: Evaluation client to use instead of the configured one

    Returns:
        Configured FastAPI app instance
    """
    config = config or load_app_config()

    app = FastAPI(
        title="Mastery Engine API",
        description="Per-concept mastery scoring and next-task selection",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = Services.build(config, database=database, evaluator=evaluator)

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(mastery_router)
    app.include_router(tasks_router)
    app.include_router(evaluation_router)

    return app
