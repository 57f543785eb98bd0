"""Evaluation service proxy endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from mastery.evaluation.client import validate_evaluation_request
from mastery.web.schemas import (
    EvaluationRequest,
    EvaluationResponse,
    EvaluationStatusResponse,
)
from mastery.web.services import Services, get_services

router = APIRouter(prefix="/api/eval", tags=["evaluation"])


@router.post("", response_model=EvaluationResponse)
def evaluate(
    request: EvaluationRequest,
    services: Services = Depends(get_services),
) -> EvaluationResponse:
    """Run files against test definitions on the evaluation service."""
    tests = validate_evaluation_request(
        request.task.tests if request.task else None,
        request.files,
    )
    result = services.evaluator.evaluate(request.files, tests)
    return EvaluationResponse(
        passed=result.passed,
        passed_ids=result.passed_ids,
        failed_ids=result.failed_ids,
        messages=result.messages,
    )


@router.get("", response_model=EvaluationStatusResponse)
def evaluation_status(services: Services = Depends(get_services)) -> EvaluationStatusResponse:
    """Report whether the evaluation service is reachable."""
    if not services.evaluator.is_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Evaluation service unavailable",
        )
    return EvaluationStatusResponse(status="ok", available=True)
