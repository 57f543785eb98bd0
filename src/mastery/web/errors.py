"""Mapping of core errors onto HTTP responses.

- InvalidInputError -> 400 with the offending field
- NotFoundError -> 404
- StoreUnavailableError -> 503, generic retry message
- PartialUpdateError -> 503 listing committed and failed concepts
- EvaluationConnectionError -> 503, EvaluationError -> 502
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from mastery.db.database import StoreUnavailableError
from mastery.evaluation.client import EvaluationConnectionError, EvaluationError
from mastery.utils.validators import InvalidInputError, NotFoundError

logger = structlog.get_logger(__name__)

RETRY_DETAIL = "Service temporarily unavailable, try again"


class PartialUpdateError(Exception):
    """Some concepts of a multi-concept update did not commit."""

    def __init__(self, body: BaseModel):
        self.body = body
        super().__init__("partial mastery update")


async def _invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "field": exc.field},
    )


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


async def _store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.warning("api.store_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": RETRY_DETAIL},
    )


async def _partial_update(request: Request, exc: PartialUpdateError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=exc.body.model_dump(by_alias=True),
    )


async def _evaluation_failed(request: Request, exc: EvaluationError) -> JSONResponse:
    if isinstance(exc, EvaluationConnectionError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_502_BAD_GATEWAY
    return JSONResponse(
        status_code=code,
        content={"detail": "Failed to communicate with evaluation service"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error mappings on an application."""
    app.add_exception_handler(InvalidInputError, _invalid_input)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(StoreUnavailableError, _store_unavailable)
    app.add_exception_handler(PartialUpdateError, _partial_update)
    app.add_exception_handler(EvaluationError, _evaluation_failed)
