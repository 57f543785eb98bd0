"""Pydantic schemas for Web API.

JSON bodies use camelCase; Python attributes stay snake_case.
Request fields are loosely typed on purpose: presence and literal checks
happen in the core so every rejection carries a field-specific message.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

API_VERSION = "0.1.0"


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# =============================================================================
# MASTERY SCHEMAS
# =============================================================================


class MasteryUpdateRequest(ApiModel):
    """Request body for recording an attempt outcome."""

    learner_id: str | None = None
    tags: Any = None
    result: str | None = None
    task_id: str | None = None


class ConceptUpdateResponse(ApiModel):
    """Score movement of one concept."""

    concept: str
    old_mastery: float
    new_mastery: float
    change: float


class TagFailureResponse(ApiModel):
    """A concept whose update did not commit."""

    concept: str
    error: str


class MasteryUpdateResponse(ApiModel):
    """Response for a mastery update."""

    ok: bool = True
    updates: list[ConceptUpdateResponse]
    failed: list[TagFailureResponse] = Field(default_factory=list)


class ProgressEntryResponse(ApiModel):
    """Mastery of one concept for a learner."""

    concept: str
    mastery: float
    attempts: int
    successes: int
    success_rate: str


class MasteryProgressResponse(ApiModel):
    """Response for reading a learner's mastery."""

    learner_id: str
    progress: list[ProgressEntryResponse]


# =============================================================================
# TASK SCHEMAS
# =============================================================================


class TaskTest(ApiModel):
    id: str
    code: str
    description: str = ""


class TaskHint(BaseModel):
    level: int
    text: str
    concept_tag: str | None = None


class TaskSummaryResponse(ApiModel):
    """Catalog entry."""

    id: str
    title: str
    difficulty: int
    concepts: list[str]


class TaskListResponse(ApiModel):
    tasks: list[TaskSummaryResponse]


class TaskDetailResponse(ApiModel):
    """Full task record."""

    id: str
    title: str
    description: str
    prompt: str
    difficulty: int
    concepts: list[str]
    scaffold: dict[str, str]
    tests: list[TaskTest]
    hints: list[TaskHint]
    created_at: str


class TaskEnvelope(ApiModel):
    """Single task wrapper. task is null when no task is eligible."""

    task: TaskDetailResponse | None


class NextTaskRequest(ApiModel):
    """Request body for next-task selection."""

    learner_id: str | None = None
    strategy: str | None = None


class SubmissionRequest(ApiModel):
    """Learner files submitted for a catalog task."""

    learner_id: str | None = None
    files: Any = None


class SubmissionResponse(ApiModel):
    """Evaluation verdict plus mastery movement."""

    task_id: str
    passed: bool
    passed_ids: list[str]
    failed_ids: list[str]
    messages: dict[str, str]
    updates: list[ConceptUpdateResponse]
    failed: list[TagFailureResponse] = Field(default_factory=list)


# =============================================================================
# EVALUATION SCHEMAS
# =============================================================================


class EvaluationTask(ApiModel):
    tests: Any = None


class EvaluationRequest(ApiModel):
    """Proxy request for the evaluation service."""

    task: EvaluationTask | None = None
    files: Any = None


class EvaluationResponse(ApiModel):
    passed: bool
    passed_ids: list[str]
    failed_ids: list[str]
    messages: dict[str, str]


class EvaluationStatusResponse(ApiModel):
    status: str
    service: str = "Code Evaluation Service"
    available: bool


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(ApiModel):
    """Health check response."""

    status: str = "ok"
    version: str = API_VERSION
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
