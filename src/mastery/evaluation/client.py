"""Client for the remote code-evaluation service.

The service runs a learner's files against a task's tests and reports
pass/fail per test id. Its sandboxing is opaque to this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from mastery.config.app_config import EvaluationConfig
from mastery.utils.validators import InvalidInputError, MasteryError

logger = structlog.get_logger(__name__)


class EvaluationError(MasteryError):
    """The evaluation service returned an error or an unreadable response."""

    pass


class EvaluationConnectionError(EvaluationError):
    """The evaluation service could not be reached."""

    pass


@dataclass
class EvaluationTest:
    """One test definition sent to the service."""

    id: str
    code: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvaluationTest:
        return cls(
            id=data.get("id", ""),
            code=data.get("code", ""),
            description=data.get("description", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        result = {"id": self.id, "code": self.code}
        if self.description:
            result["description"] = self.description
        return result


@dataclass
class EvaluationResult:
    """Verdict of one evaluation run."""

    passed: bool
    passed_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    messages: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> EvaluationResult:
        """Parse result from API response.

        `passed` is only inferred from the id lists when the service sent them.

        Raises:
            EvaluationError: If the body carries no verdict
        """
        if not isinstance(data, dict):
            raise EvaluationError("evaluation service returned a non-object body")

        has_ids = "passedIds" in data or "failedIds" in data
        if "passed" not in data and not has_ids:
            raise EvaluationError("evaluation service response has no verdict")
        for key in ("passedIds", "failedIds"):
            if not isinstance(data.get(key, []), list):
                raise EvaluationError(f"evaluation service returned a malformed {key}")

        failed_ids = list(data.get("failedIds", []))
        return cls(
            passed=bool(data.get("passed", not failed_ids)),
            passed_ids=list(data.get("passedIds", [])),
            failed_ids=failed_ids,
            messages=dict(data.get("messages", {})),
        )

    @property
    def result(self) -> str:
        """The attempt result literal fed into the mastery update."""
        return "pass" if self.passed else "fail"


def validate_evaluation_request(tests: Any, files: Any) -> list[EvaluationTest]:
    """Check test definitions and files before calling the service.

    Raises:
        InvalidInputError: If tests or files are malformed
    """
    if not isinstance(tests, list):
        raise InvalidInputError("task.tests", "must be an array")
    if not isinstance(files, dict):
        raise InvalidInputError("files", "must be an object")

    parsed = []
    for index, test in enumerate(tests):
        if not isinstance(test, dict) or not test.get("id") or not test.get("code"):
            raise InvalidInputError(f"task.tests[{index}]", "must have an id and code property")
        parsed.append(EvaluationTest.from_dict(test))
    return parsed


class EvaluationClient:
    """HTTP client for the evaluation service."""

    def __init__(self, config: EvaluationConfig | None = None, transport: httpx.BaseTransport | None = None):
        """Initialize evaluation client.

        Args:
            config: Service location and timeout
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.config = config or EvaluationConfig()
        self._client = httpx.Client(
            base_url=self.config.base_url.rstrip("/"),
            timeout=httpx.Timeout(self.config.timeout),
            headers={"X-LMS-Service-Token": self.config.get_token()},
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def evaluate(self, files: dict[str, str], tests: list[EvaluationTest]) -> EvaluationResult:
        """Run files against tests on the evaluation service.

        Raises:
            EvaluationConnectionError: If the service cannot be reached
            EvaluationError: If the service answers with an error
        """
        payload = {
            "task": {"tests": [t.to_dict() for t in tests]},
            "files": files,
        }

        try:
            response = self._client.post("/api/eval", json=payload)
        except httpx.TransportError as e:
            logger.error("evaluation.connection_failed", base_url=self.config.base_url, error=str(e))
            raise EvaluationConnectionError(f"could not reach evaluation service: {e}") from e

        if response.is_error:
            logger.error(
                "evaluation.request_failed",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise EvaluationError(f"evaluation service error ({response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise EvaluationError("evaluation service returned invalid JSON") from e

        try:
            result = EvaluationResult.from_dict(data)
        except EvaluationError:
            logger.error("evaluation.unreadable_response", body=response.text[:500])
            raise

        logger.debug(
            "evaluation.completed",
            passed=result.passed,
            passed_count=len(result.passed_ids),
            failed_count=len(result.failed_ids),
        )
        return result

    def is_available(self) -> bool:
        """Check if the evaluation service answers its health endpoint."""
        try:
            response = self._client.get("/api/health")
        except httpx.TransportError:
            return False
        return response.is_success
