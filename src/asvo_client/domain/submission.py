"""Interpretation of job submission responses.

The service answers job submissions with one of several JSON shapes and no
discriminator field. Shapes are matched in the order of
``SUBMISSION_RESPONSE_SHAPES``, most field-specific first, and the first
match decides the outcome.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from asvo_client.domain.errors import ProtocolDecodeError
from asvo_client.domain.identifiers import JobId

DUPLICATE_JOB_ERROR_CODE = 2
RECOVERABLE_ERROR_CODE = 0

RECOVERABLE_REJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"has no files", re.IGNORECASE),
    re.compile(r"does not exist", re.IGNORECASE),
)


@dataclass(slots=True, frozen=True)
class NewJob:
    """A job was freshly queued."""

    job_id: JobId


@dataclass(slots=True, frozen=True)
class DuplicateJob:
    """An equivalent job already existed; nothing new was queued."""

    job_id: JobId


@dataclass(slots=True, frozen=True)
class RecoverableRejection:
    """No job was created, but the rest of a batch may continue."""

    message: str


@dataclass(slots=True, frozen=True)
class FatalRejection:
    """The submission failed in a way that must abort the batch."""

    code: int | None
    message: str


SubmissionOutcome = NewJob | DuplicateJob | RecoverableRejection | FatalRejection


class _ShapeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=False)


class JobIdWithErrorShape(_ShapeModel):
    error: str
    error_code: int
    job_id: JobId


class JobIdShape(_ShapeModel):
    job_id: JobId
    new: bool | None = None


class ErrorWithCodeShape(_ShapeModel):
    error_code: int
    error: str


class GenericErrorShape(_ShapeModel):
    error: str


def _from_job_id_with_error(shape: JobIdWithErrorShape) -> SubmissionOutcome:
    if shape.error_code == DUPLICATE_JOB_ERROR_CODE:
        return DuplicateJob(job_id=shape.job_id)
    return FatalRejection(code=shape.error_code, message=shape.error)


def _from_job_id(shape: JobIdShape) -> SubmissionOutcome:
    return NewJob(job_id=shape.job_id)


def _from_error_with_code(shape: ErrorWithCodeShape) -> SubmissionOutcome:
    if shape.error_code == RECOVERABLE_ERROR_CODE and is_recoverable_message(shape.error):
        return RecoverableRejection(message=shape.error)
    return FatalRejection(code=shape.error_code, message=shape.error)


def _from_generic_error(shape: GenericErrorShape) -> SubmissionOutcome:
    return FatalRejection(code=None, message=shape.error)


@dataclass(slots=True, frozen=True)
class ResponseShape:
    """A named shape matcher and the outcome it maps to."""

    name: str
    model: type[_ShapeModel]
    to_outcome: Callable[[Any], SubmissionOutcome]

    def match(self, payload: dict[str, Any]) -> SubmissionOutcome | None:
        try:
            shape = self.model.model_validate(payload)
        except ValidationError:
            return None
        return self.to_outcome(shape)


SUBMISSION_RESPONSE_SHAPES: tuple[ResponseShape, ...] = (
    ResponseShape("job_id_with_error", JobIdWithErrorShape, _from_job_id_with_error),
    ResponseShape("job_id", JobIdShape, _from_job_id),
    ResponseShape("error_with_code", ErrorWithCodeShape, _from_error_with_code),
    ResponseShape("generic_error", GenericErrorShape, _from_generic_error),
)


def is_recoverable_message(message: str) -> bool:
    return any(pattern.search(message) for pattern in RECOVERABLE_REJECTION_PATTERNS)


def interpret_submission_response(raw: str | bytes | dict[str, Any]) -> SubmissionOutcome:
    """Map a submission response body to its outcome."""

    payload: Any = raw
    if isinstance(raw, str | bytes):
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise ProtocolDecodeError(
                f"Couldn't decode the JSON from the ASVO response: {exc}"
            ) from exc

    if not isinstance(payload, dict):
        raise ProtocolDecodeError(
            f"Expected a JSON object from job submission, got {type(payload).__name__}."
        )

    for shape in SUBMISSION_RESPONSE_SHAPES:
        outcome = shape.match(payload)
        if outcome is not None:
            return outcome

    raise ProtocolDecodeError(f"Unrecognised job submission response: {payload!r}")


__all__ = [
    "DUPLICATE_JOB_ERROR_CODE",
    "DuplicateJob",
    "FatalRejection",
    "NewJob",
    "RECOVERABLE_REJECTION_PATTERNS",
    "RecoverableRejection",
    "ResponseShape",
    "SUBMISSION_RESPONSE_SHAPES",
    "SubmissionOutcome",
    "interpret_submission_response",
    "is_recoverable_message",
]
