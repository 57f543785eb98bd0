"""Task catalog, next-task selection and submission endpoints."""

from fastapi import APIRouter, Depends, Query

from mastery.core.submissions import submit_task
from mastery.db.tasks_repository import TaskRecord
from mastery.web.errors import PartialUpdateError
from mastery.web.routes.mastery import report_to_response
from mastery.web.schemas import (
    NextTaskRequest,
    SubmissionRequest,
    SubmissionResponse,
    TaskDetailResponse,
    TaskEnvelope,
    TaskListResponse,
    TaskSummaryResponse,
)
from mastery.web.services import Services, get_services

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def task_to_detail(task: TaskRecord) -> TaskDetailResponse:
    """Convert a task record into its full response shape."""
    return TaskDetailResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        prompt=task.prompt,
        difficulty=task.difficulty,
        concepts=task.concepts,
        scaffold=task.scaffold,
        tests=task.tests,
        hints=task.hints,
        created_at=task.created_at,
    )


@router.get("", response_model=TaskListResponse)
def list_tasks(
    difficulty: int | None = Query(default=None),
    concept: str | None = Query(default=None),
    services: Services = Depends(get_services),
) -> TaskListResponse:
    """List tasks, easiest first, optionally filtered."""
    tasks = services.catalog.find(difficulty=difficulty, concept=concept)
    return TaskListResponse(
        tasks=[
            TaskSummaryResponse(
                id=t.id,
                title=t.title,
                difficulty=t.difficulty,
                concepts=t.concepts,
            )
            for t in tasks
        ]
    )


@router.post("/next", response_model=TaskEnvelope)
def next_task(
    request: NextTaskRequest,
    services: Services = Depends(get_services),
) -> TaskEnvelope:
    """Pick the next task for a learner. task is null when none is eligible."""
    task = services.selector.select(request.learner_id, request.strategy)
    return TaskEnvelope(task=task_to_detail(task) if task else None)


@router.get("/{task_id}", response_model=TaskEnvelope)
def get_task(task_id: str, services: Services = Depends(get_services)) -> TaskEnvelope:
    """Get a specific task by ID."""
    return TaskEnvelope(task=task_to_detail(services.catalog.get(task_id)))


@router.post("/{task_id}/submit", response_model=SubmissionResponse)
def submit(
    task_id: str,
    request: SubmissionRequest,
    services: Services = Depends(get_services),
) -> SubmissionResponse:
    """Evaluate submitted files and update the learner's mastery."""
    result = submit_task(
        services.database,
        services.updater,
        services.evaluator,
        task_id=task_id,
        learner_id=request.learner_id,
        files=request.files,
    )

    body = report_to_response(result.report) if result.report else None
    response = SubmissionResponse(
        task_id=result.task.id,
        passed=result.evaluation.passed,
        passed_ids=result.evaluation.passed_ids,
        failed_ids=result.evaluation.failed_ids,
        messages=result.evaluation.messages,
        updates=body.updates if body else [],
        failed=body.failed if body else [],
    )
    if result.report is not None and not result.report.ok:
        raise PartialUpdateError(response)
    return response
