"""Pydantic models for the job listing wire format.

The listing is a JSON array. Each element is an object (or, in the legacy
protocol, a JSON string holding the object) whose ``row`` carries the job.
Job type and state codes are integers in the legacy protocol and strings in
the current one; both normalize through the tables in ``domain.jobs``.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlencode

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from asvo_client.domain.errors import ProtocolDecodeError
from asvo_client.domain.identifiers import InvalidObsidError, Obsid
from asvo_client.domain.jobs import (
    FILE_DELIVERY_TYPES,
    JOB_STATE_CODES,
    JOB_TYPE_CODES,
    DeliveryKind,
    FileEntry,
    Job,
    JobState,
    JobStatus,
    JobType,
)

PRODUCT_FILES_KEY = "files"
LEGACY_DOWNLOAD_PATH = "/api/download"

logger = logging.getLogger(__name__)


class WireModel(BaseModel):
    """Base model for service payloads; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class FileProductModel(WireModel):
    """One entry of a job's ``product.files`` array."""

    type_: str = Field(default="legacy", alias="type")
    url: str | None = None
    path: str | None = None
    size: int = Field(ge=0, validation_alias=AliasChoices("size", "file_size"))
    sha1: str | None = None
    file_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_triple(cls, value: object) -> object:
        """Legacy listings send ``[file_name, size, sha1]`` triples."""

        if isinstance(value, list | tuple):
            if len(value) != 3:
                raise ValueError(f"expected [file_name, size, sha1], got {value!r}")
            file_name, size, sha1 = value
            return {"type": "legacy", "file_name": file_name, "size": size, "sha1": sha1}
        return value


class ProductModel(WireModel):
    """The product section of a job row, keyed by a fixed sub-key."""

    files: list[FileProductModel] | None = Field(default=None, alias=PRODUCT_FILES_KEY)


class JobParamsModel(WireModel):
    """Submission parameters echoed back in the listing."""

    obs_id: str | int
    delivery: str | None = None


class JobRowModel(WireModel):
    """One job row."""

    id: int = Field(gt=0)
    job_type: int | str
    job_state: int | str
    job_params: JobParamsModel
    error_text: str | None = None
    product: ProductModel | None = None


class JobListingEntryModel(WireModel):
    """Listing element; current servers wrap the row, some send it bare."""

    row: JobRowModel

    @model_validator(mode="before")
    @classmethod
    def wrap_bare_row(cls, value: object) -> object:
        if isinstance(value, dict) and "row" not in value and "id" in value:
            return {"row": value}
        return value


def _normalize_code(code: int | str) -> int | str:
    if isinstance(code, str):
        normalized = code.strip().lower()
        return int(normalized) if normalized.isdigit() else normalized
    return code


def _job_type_from_code(code: int | str, job_id: int) -> JobType:
    job_type = JOB_TYPE_CODES.get(_normalize_code(code))
    if job_type is None:
        raise ProtocolDecodeError(f"Unrecognised job_type {code!r} for job {job_id}.")
    return job_type


def _job_state_from_code(code: int | str, job_id: int) -> JobState:
    normalized = _normalize_code(code)
    state = JOB_STATE_CODES.get(normalized)
    if state is not None:
        return state
    if isinstance(normalized, int):
        raise ProtocolDecodeError(f"Unrecognised job_state {code!r} for job {job_id}.")
    logger.warning("Job %s reports unrecognised state '%s'; treating as not ready.", job_id, code)
    return JobState.UNKNOWN


def _file_entry(product: FileProductModel, job_id: int) -> FileEntry:
    if product.type_ == "legacy" and product.url is None and product.path is None:
        url = None
        if product.file_name:
            query = urlencode({"job_id": job_id, "file_name": product.file_name})
            url = f"{LEGACY_DOWNLOAD_PATH}?{query}"
        return FileEntry(
            kind=DeliveryKind.CLOUD,
            size=product.size,
            sha1=product.sha1,
            url=url,
            name=product.file_name,
        )

    kind = FILE_DELIVERY_TYPES.get(product.type_.strip().lower())
    if kind is None:
        # Anything with a URL is fetched over HTTP, anything else is a path.
        kind = DeliveryKind.CLOUD if product.url else DeliveryKind.FILESYSTEM
    return FileEntry(
        kind=kind,
        size=product.size,
        sha1=product.sha1,
        url=product.url,
        path=product.path,
        name=product.file_name,
    )


def job_from_row(row: JobRowModel) -> Job:
    """Convert a decoded row into a domain job."""

    try:
        obsid = Obsid.parse(str(row.job_params.obs_id))
    except InvalidObsidError as exc:
        raise ProtocolDecodeError(f"Job {row.id} has an invalid obsid: {exc}") from exc

    state = _job_state_from_code(row.job_state, row.id)
    files: tuple[FileEntry, ...] | None = None
    if row.product is not None and row.product.files is not None:
        files = tuple(_file_entry(product, row.id) for product in row.product.files)

    return Job(
        job_id=row.id,
        obsid=obsid,
        job_type=_job_type_from_code(row.job_type, row.id),
        status=JobStatus(
            state=state,
            error_text=row.error_text if state is JobState.ERROR else None,
        ),
        files=files,
    )


def decode_job_listing(payload: Any) -> list[Job]:
    """Decode a parsed ``get_jobs`` response into jobs."""

    if not isinstance(payload, list):
        raise ProtocolDecodeError(
            f"Expected a JSON array of jobs, got {type(payload).__name__}."
        )

    jobs: list[Job] = []
    for index, element in enumerate(payload):
        try:
            if isinstance(element, str):
                element = json.loads(element)
            entry = JobListingEntryModel.model_validate(element)
        except (ValueError, ValidationError) as exc:
            raise ProtocolDecodeError(
                f"Couldn't decode job listing element {index}: {exc}"
            ) from exc
        jobs.append(job_from_row(entry.row))
    return jobs


__all__ = [
    "FileProductModel",
    "JobListingEntryModel",
    "JobParamsModel",
    "JobRowModel",
    "ProductModel",
    "LEGACY_DOWNLOAD_PATH",
    "PRODUCT_FILES_KEY",
    "decode_job_listing",
    "job_from_row",
]
