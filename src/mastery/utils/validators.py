"""Input validation helpers and the error taxonomy shared by core and web.

Functions:
- require_learner_id(value) -> str: Reject missing or blank learner ids
- normalize_tags(value) -> list[str]: Validate and de-duplicate concept tags
- parse_result(value) -> bool: Map "pass"/"fail" to success flag
"""

from __future__ import annotations

from typing import Any

VALID_RESULTS = ("pass", "fail")


class MasteryError(Exception):
    """Base error for the mastery engine."""

    pass


class InvalidInputError(MasteryError):
    """Raised when a request field is missing or malformed."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(MasteryError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")


def require_learner_id(value: Any, field: str = "learnerId") -> str:
    """Return the learner id, rejecting missing or blank values.

    Raises:
        InvalidInputError: If value is not a non-empty string
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(field, "is required")
    return value


def normalize_tags(value: Any, field: str = "tags") -> list[str]:
    """Validate concept tags and collapse duplicates.

    Order of first occurrence is preserved.

    Raises:
        InvalidInputError: If tags are missing, empty, or contain blank entries
    """
    if value is None:
        raise InvalidInputError(field, "is required")
    if not isinstance(value, (list, tuple)):
        raise InvalidInputError(field, "must be a list of concept names")
    if len(value) == 0:
        raise InvalidInputError(field, "must contain at least one concept")

    tags: list[str] = []
    for index, tag in enumerate(value):
        if not isinstance(tag, str) or not tag.strip():
            raise InvalidInputError(f"{field}[{index}]", "must be a non-empty string")
        if tag not in tags:
            tags.append(tag)
    return tags


def parse_result(value: Any, field: str = "result") -> bool:
    """Convert an attempt result literal into a success flag.

    Raises:
        InvalidInputError: If value is not exactly "pass" or "fail"
    """
    if value is None:
        raise InvalidInputError(field, "is required")
    if value not in VALID_RESULTS:
        raise InvalidInputError(field, 'must be "pass" or "fail"')
    return value == "pass"
