"""Job, job state and file manifest models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from urllib.parse import unquote, urlparse

from asvo_client.domain.errors import JobTerminalFailure
from asvo_client.domain.identifiers import JobId, Obsid


class JobType(StrEnum):
    """All of the available types of ASVO jobs."""

    CONVERSION = "conversion"
    DOWNLOAD_VISIBILITIES = "download_visibilities"
    DOWNLOAD_METADATA = "download_metadata"
    DOWNLOAD_VOLTAGE = "download_voltage"
    CANCEL_JOB = "cancel_job"


class JobState(StrEnum):
    """States an ASVO job may be in, ordered by typical progression."""

    QUEUED = "queued"
    WAITCAL = "waitcal"
    STAGING = "staging"
    STAGED = "staged"
    RETRIEVING = "retrieving"
    PREPROCESSING = "preprocessing"
    IMAGING = "imaging"
    DELIVERING = "delivering"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


TERMINAL_FAILURE_STATES = frozenset({JobState.ERROR, JobState.EXPIRED, JobState.CANCELLED})

# Integer codes come from the legacy listing protocol, strings from the current one.
JOB_TYPE_CODES: dict[int | str, JobType] = {
    0: JobType.CONVERSION,
    1: JobType.DOWNLOAD_VISIBILITIES,
    2: JobType.DOWNLOAD_METADATA,
    3: JobType.DOWNLOAD_VOLTAGE,
    4: JobType.CANCEL_JOB,
    "conversion": JobType.CONVERSION,
    "download_visibilities": JobType.DOWNLOAD_VISIBILITIES,
    "download_metadata": JobType.DOWNLOAD_METADATA,
    "download_voltage": JobType.DOWNLOAD_VOLTAGE,
    "cancel_job": JobType.CANCEL_JOB,
}

JOB_STATE_CODES: dict[int | str, JobState] = {
    0: JobState.QUEUED,
    1: JobState.PROCESSING,
    2: JobState.READY,
    3: JobState.ERROR,
    4: JobState.EXPIRED,
    5: JobState.CANCELLED,
    "queued": JobState.QUEUED,
    "waitcal": JobState.WAITCAL,
    "staging": JobState.STAGING,
    "staged": JobState.STAGED,
    "retrieving": JobState.RETRIEVING,
    "preprocessing": JobState.PREPROCESSING,
    "imaging": JobState.IMAGING,
    "delivering": JobState.DELIVERING,
    "processing": JobState.PROCESSING,
    "completed": JobState.READY,
    "ready": JobState.READY,
    "error": JobState.ERROR,
    "expired": JobState.EXPIRED,
    "cancelled": JobState.CANCELLED,
}


class DeliveryKind(StrEnum):
    """How a job's output files are retrieved."""

    CLOUD = "cloud"
    FILESYSTEM = "filesystem"


FILE_DELIVERY_TYPES: dict[str, DeliveryKind] = {
    "acacia": DeliveryKind.CLOUD,
    "scratch": DeliveryKind.FILESYSTEM,
    "astro": DeliveryKind.FILESYSTEM,
}


class Delivery(StrEnum):
    """Delivery targets accepted at submission time."""

    ACACIA = "acacia"
    SCRATCH = "scratch"
    ASTRO = "astro"


class DeliveryFormat(StrEnum):
    """Delivery formats accepted at submission time."""

    TAR = "tar"


@dataclass(slots=True, frozen=True)
class JobStatus:
    """A job state plus the upstream message attached to errors."""

    state: JobState
    error_text: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is JobState.READY

    @property
    def is_terminal_failure(self) -> bool:
        return self.state in TERMINAL_FAILURE_STATES

    def __str__(self) -> str:
        if self.state is JobState.ERROR:
            return f"Error: {self.error_text or 'no message'}"
        return self.state.value.capitalize()


@dataclass(slots=True, frozen=True)
class FileEntry:
    """A single file provided by a ready job."""

    kind: DeliveryKind
    size: int
    sha1: str | None = None
    url: str | None = None
    path: str | None = None
    name: str | None = None

    @property
    def file_name(self) -> str | None:
        """Local file name: explicit name, else the last URL or path segment."""

        if self.name:
            return self.name
        if self.url:
            name = unquote(urlparse(self.url).path.rsplit("/", 1)[-1])
            return name or None
        if self.path:
            return self.path.rstrip("/").rsplit("/", 1)[-1] or None
        return None

    @property
    def locator(self) -> str | None:
        return self.url if self.kind is DeliveryKind.CLOUD else self.path

    def __repr__(self) -> str:
        # Signed URLs carry credentials.
        return (
            f"FileEntry(kind={self.kind.value!r}, name={self.file_name!r}, "
            f"size={self.size}, sha1={self.sha1!r})"
        )


@dataclass(slots=True, frozen=True)
class Job:
    """Read-only snapshot of one job in the caller's queue."""

    job_id: JobId
    obsid: Obsid
    job_type: JobType
    status: JobStatus
    files: tuple[FileEntry, ...] | None = field(default=None)

    @property
    def state(self) -> JobState:
        return self.status.state

    @property
    def total_bytes(self) -> int:
        return sum(entry.size for entry in self.files or ())

    def __str__(self) -> str:
        return (
            f"Job ID: {self.job_id}, obsid: {self.obsid}, type: {self.job_type.value}, "
            f"state: {self.status}"
        )


def terminal_failure(job: Job) -> JobTerminalFailure:
    """Error describing a job that ended in error, expired or was cancelled."""

    error_text = None
    if job.state is JobState.ERROR:
        error_text = job.status.error_text or "no message"
    return JobTerminalFailure(job.job_id, int(job.obsid), job.state.value, error_text)


__all__ = [
    "Delivery",
    "DeliveryFormat",
    "DeliveryKind",
    "FILE_DELIVERY_TYPES",
    "FileEntry",
    "JOB_STATE_CODES",
    "JOB_TYPE_CODES",
    "Job",
    "JobState",
    "JobStatus",
    "JobType",
    "TERMINAL_FAILURE_STATES",
    "terminal_failure",
]
