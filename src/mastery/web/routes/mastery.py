"""Mastery endpoints."""

from fastapi import APIRouter, Depends, Query

from mastery.core.mastery_updater import UpdateReport
from mastery.web.errors import PartialUpdateError
from mastery.web.schemas import (
    ConceptUpdateResponse,
    MasteryProgressResponse,
    MasteryUpdateRequest,
    MasteryUpdateResponse,
    ProgressEntryResponse,
    TagFailureResponse,
)
from mastery.web.services import Services, get_services

router = APIRouter(prefix="/api/mastery", tags=["mastery"])


def report_to_response(report: UpdateReport) -> MasteryUpdateResponse:
    """Convert an update report into the response body."""
    return MasteryUpdateResponse(
        ok=report.ok,
        updates=[
            ConceptUpdateResponse(
                concept=u.concept,
                old_mastery=u.old_mastery,
                new_mastery=u.new_mastery,
                change=u.change,
            )
            for u in report.updates
        ],
        failed=[TagFailureResponse(concept=f.concept, error=f.reason) for f in report.failures],
    )


@router.get("", response_model=MasteryProgressResponse)
def read_mastery(
    learner_id: str | None = Query(default=None, alias="learnerId"),
    services: Services = Depends(get_services),
) -> MasteryProgressResponse:
    """List a learner's mastery per concept, highest first."""
    records = services.updater.progress(learner_id)
    return MasteryProgressResponse(
        learner_id=learner_id,
        progress=[
            ProgressEntryResponse(
                concept=r.concept_name,
                mastery=r.mastery,
                attempts=r.attempts,
                successes=r.successes,
                success_rate=r.success_rate,
            )
            for r in records
        ],
    )


@router.post("", response_model=MasteryUpdateResponse)
def update_mastery(
    request: MasteryUpdateRequest,
    services: Services = Depends(get_services),
) -> MasteryUpdateResponse:
    """Apply a pass/fail outcome to every tagged concept."""
    report = services.updater.apply(
        request.learner_id,
        request.tags,
        request.result,
        task_id=request.task_id,
    )
    if not report.ok:
        raise PartialUpdateError(report_to_response(report))
    return report_to_response(report)
