"""Domain exceptions for ASVO job and transfer operations.

Every error carries a retry classification assigned where it is raised, so the
retry controller never has to inspect wrapped causes.
"""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar


class RetryClass(StrEnum):
    """Whether repeating the failed operation can help."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class AsvoError(Exception):
    """Base class for ASVO client errors."""

    retry_class: ClassVar[RetryClass] = RetryClass.PERMANENT

    @property
    def is_transient(self) -> bool:
        return self.retry_class is RetryClass.TRANSIENT


class AuthenticationError(AsvoError):
    """Raised when the API key is missing or the login is refused."""


class AsvoApiError(AsvoError):
    """Raised when a service call returns a non-success status or fails in transit."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolDecodeError(AsvoError):
    """Raised when a response does not match any known shape."""


class JobNotFoundError(AsvoError):
    """Raised when a job id or obsid is absent from the job listing."""


class AmbiguousObsidError(AsvoError):
    """Raised when an obsid maps to more than one job."""

    def __init__(self, obsid: int, job_ids: list[int]) -> None:
        super().__init__(
            f"Obsid {obsid} is associated with multiple jobs ({', '.join(map(str, job_ids))}); "
            "cannot continue due to ambiguity."
        )
        self.obsid = obsid
        self.job_ids = job_ids


class JobNotReadyError(AsvoError):
    """Raised when a job is asked to download before it is ready."""

    def __init__(self, job_id: int, obsid: int, state: str) -> None:
        super().__init__(
            f"ASVO job ID {job_id} (obsid: {obsid}) isn't ready; current status: {state}"
        )
        self.job_id = job_id
        self.obsid = obsid
        self.state = state


class JobTerminalFailure(AsvoError):
    """Raised for jobs that ended in error, expired or were cancelled."""

    def __init__(self, job_id: int, obsid: int, state: str, error_text: str | None = None) -> None:
        detail = f"has {state}" if error_text is None else f"has an error: {error_text}"
        super().__init__(f"ASVO job ID {job_id} (obsid: {obsid}) {detail}")
        self.job_id = job_id
        self.obsid = obsid
        self.state = state
        self.error_text = error_text


class ManifestIntegrityError(AsvoError):
    """Raised when a job's file manifest is malformed."""


class JobHasNoFilesError(ManifestIntegrityError):
    """Raised when a ready job has an empty file manifest."""

    def __init__(self, job_id: int) -> None:
        super().__init__(f"ASVO job ID {job_id} doesn't have any files associated with it.")
        self.job_id = job_id


class TransientTransferError(AsvoError):
    """Raised for network failures while transferring a file."""

    retry_class = RetryClass.TRANSIENT


class PermanentIOError(AsvoError):
    """Raised for local disk or filesystem failures."""


class HashMismatchError(AsvoError):
    """Raised when a transferred file's SHA-1 differs from the manifest."""

    def __init__(self, job_id: int, file: str, expected_hash: str, calculated_hash: str) -> None:
        super().__init__(
            f"Hash mismatch for ASVO job ID {job_id} file {file}:\n"
            f" expected   {expected_hash}\n"
            f" calculated {calculated_hash}"
        )
        self.job_id = job_id
        self.file = file
        self.expected_hash = expected_hash
        self.calculated_hash = calculated_hash


class SubmissionRejectedError(AsvoError):
    """Raised when the service rejects a job submission outright."""

    def __init__(self, obsid: int, code: int | None, message: str) -> None:
        shown_code = "unspecified" if code is None else str(code)
        super().__init__(
            f"Submission for obsid {obsid} was rejected (error code {shown_code}): {message}"
        )
        self.obsid = obsid
        self.code = code
        self.message = message


class UnsupportedJobTypeError(AsvoError):
    """Raised when submitting a job type the service cannot accept."""


__all__ = [
    "AmbiguousObsidError",
    "AsvoApiError",
    "AsvoError",
    "AuthenticationError",
    "HashMismatchError",
    "JobHasNoFilesError",
    "JobNotFoundError",
    "JobNotReadyError",
    "JobTerminalFailure",
    "ManifestIntegrityError",
    "PermanentIOError",
    "ProtocolDecodeError",
    "RetryClass",
    "SubmissionRejectedError",
    "TransientTransferError",
    "UnsupportedJobTypeError",
]
