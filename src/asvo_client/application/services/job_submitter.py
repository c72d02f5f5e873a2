"""Job submission and cancellation use-cases."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from asvo_client.domain.errors import (
    AsvoApiError,
    SubmissionRejectedError,
    UnsupportedJobTypeError,
)
from asvo_client.domain.identifiers import JobId, Obsid
from asvo_client.domain.jobs import Delivery, DeliveryFormat, JobType
from asvo_client.domain.ports import Session
from asvo_client.domain.submission import (
    DuplicateJob,
    FatalRejection,
    NewJob,
    RecoverableRejection,
    SubmissionOutcome,
    interpret_submission_response,
)

CANCEL_JOB_PATH = "/api/cancel_job"

# Measurement set with 4 s time and 40 kHz frequency resolution, 160 kHz
# flagged at coarse band edges, missing gpubox files allowed, centre channels
# flagged.
DEFAULT_CONVERSION_PARAMETERS: Mapping[str, str] = MappingProxyType(
    {
        "download_type": "conversion",
        "conversion": "ms",
        "timeres": "4",
        "freqres": "40",
        "edgewidth": "160",
        "allowmissing": "true",
        "flagdcchannels": "true",
    }
)

SUBMISSION_PATHS: Mapping[JobType, str] = MappingProxyType(
    {
        JobType.CONVERSION: "/api/conversion_job",
        JobType.DOWNLOAD_VISIBILITIES: "/api/download_vis_job",
        JobType.DOWNLOAD_METADATA: "/api/download_vis_job",
        JobType.DOWNLOAD_VOLTAGE: "/api/voltage_job",
    }
)

_CANCEL_NOT_APPLICABLE_STATUSES = frozenset({400, 404})

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class JobRequest:
    """Everything needed to submit one job for one observation."""

    obsid: Obsid
    job_type: JobType
    delivery: Delivery | None = None
    delivery_format: DeliveryFormat | None = None
    parameters: Mapping[str, str] = field(default_factory=dict)
    allow_resubmit: bool = False

    @classmethod
    def visibilities(
        cls,
        obsid: Obsid,
        delivery: Delivery | None = None,
        delivery_format: DeliveryFormat | None = None,
        allow_resubmit: bool = False,
    ) -> "JobRequest":
        return cls(
            obsid=obsid,
            job_type=JobType.DOWNLOAD_VISIBILITIES,
            delivery=delivery,
            delivery_format=delivery_format,
            parameters={"download_type": "vis"},
            allow_resubmit=allow_resubmit,
        )

    @classmethod
    def metadata(
        cls,
        obsid: Obsid,
        delivery: Delivery | None = None,
        delivery_format: DeliveryFormat | None = None,
        allow_resubmit: bool = False,
    ) -> "JobRequest":
        return cls(
            obsid=obsid,
            job_type=JobType.DOWNLOAD_METADATA,
            delivery=delivery,
            delivery_format=delivery_format,
            parameters={"download_type": "vis_meta"},
            allow_resubmit=allow_resubmit,
        )

    @classmethod
    def conversion(
        cls,
        obsid: Obsid,
        parameters: Mapping[str, str] | None = None,
        delivery: Delivery | None = None,
        delivery_format: DeliveryFormat | None = None,
        allow_resubmit: bool = False,
    ) -> "JobRequest":
        """Build a conversion request; user parameters override the defaults."""

        merged = dict(DEFAULT_CONVERSION_PARAMETERS)
        for key, value in (parameters or {}).items():
            if key == "delivery":
                logger.warning(
                    "Ignoring 'delivery' in conversion parameters; use the delivery option."
                )
                continue
            merged[key] = value
        return cls(
            obsid=obsid,
            job_type=JobType.CONVERSION,
            delivery=delivery,
            delivery_format=delivery_format,
            parameters=merged,
            allow_resubmit=allow_resubmit,
        )

    @classmethod
    def voltage(
        cls,
        obsid: Obsid,
        offset: int,
        duration: int,
        delivery: Delivery = Delivery.SCRATCH,
        allow_resubmit: bool = False,
    ) -> "JobRequest":
        return cls(
            obsid=obsid,
            job_type=JobType.DOWNLOAD_VOLTAGE,
            delivery=delivery,
            parameters={"offset": str(offset), "duration": str(duration)},
            allow_resubmit=allow_resubmit,
        )

    def form(self, default_delivery: Delivery = Delivery.ACACIA) -> dict[str, str]:
        """Form fields posted to the submission endpoint."""

        delivery = self.delivery or default_delivery
        fields = {"obs_id": str(int(self.obsid)), "delivery": delivery.value}
        if self.delivery_format is not None:
            fields["delivery_format"] = self.delivery_format.value
        if self.allow_resubmit:
            fields["allow_resubmit"] = "true"
        fields.update(self.parameters)
        return fields


class JobSubmitter:
    """Submit and cancel ASVO jobs through one authenticated session."""

    def __init__(self, session: Session, default_delivery: Delivery = Delivery.ACACIA) -> None:
        self._session = session
        self._default_delivery = default_delivery

    def submit(self, request: JobRequest) -> SubmissionOutcome:
        path = SUBMISSION_PATHS.get(request.job_type)
        if path is None:
            raise UnsupportedJobTypeError(
                f"Jobs of type {request.job_type.value} cannot be submitted."
            )

        response = self._session.post_form(path, request.form(self._default_delivery))
        if response.status_code >= 500:
            raise AsvoApiError(
                f"Submission for obsid {request.obsid} failed with status code "
                f"{response.status_code}: {response.text.strip()}",
                status_code=response.status_code,
            )
        # Rejections arrive with 4xx statuses and a JSON body worth reading.
        outcome = interpret_submission_response(response.content)
        logger.debug(
            "Submission of obsid %s (%s) returned %s: %s",
            request.obsid,
            request.job_type.value,
            response.status_code,
            outcome,
        )
        return outcome

    def submit_many(self, requests: Iterable[JobRequest]) -> list[JobId]:
        """Submit a batch, stopping at the first fatal rejection."""

        job_ids: list[JobId] = []
        submitted = 0
        for request in requests:
            submitted += 1
            outcome = self.submit(request)
            match outcome:
                case NewJob(job_id=job_id):
                    logger.info("Submitted %s as ASVO job ID %s", request.obsid, job_id)
                    job_ids.append(job_id)
                case DuplicateJob(job_id=job_id):
                    logger.warning(
                        "Obsid %s already has an equivalent job, ASVO job ID %s",
                        request.obsid,
                        job_id,
                    )
                    job_ids.append(job_id)
                case RecoverableRejection(message=message):
                    logger.warning("Skipping obsid %s: %s", request.obsid, message)
                case FatalRejection(code=code, message=message):
                    raise SubmissionRejectedError(request.obsid, code, message)
        logger.info("Submitted %s obsids, %s jobs queued.", submitted, len(job_ids))
        return job_ids

    def cancel(self, job_id: JobId) -> JobId | None:
        """Cancel a job; returns ``None`` when there is nothing to cancel."""

        response = self._session.get(CANCEL_JOB_PATH, params={"job_id": job_id})
        if response.status_code == 200:
            logger.info("Cancelled ASVO job ID %s", job_id)
            return job_id
        if response.status_code in _CANCEL_NOT_APPLICABLE_STATUSES:
            logger.warning(
                "Unable to cancel ASVO job ID %s: %s",
                job_id,
                response.text.strip() or response.status_code,
            )
            return None
        raise AsvoApiError(
            f"Cancelling ASVO job ID {job_id} failed with status code {response.status_code}: "
            f"{response.text.strip()}",
            status_code=response.status_code,
        )


__all__ = [
    "CANCEL_JOB_PATH",
    "DEFAULT_CONVERSION_PARAMETERS",
    "JobRequest",
    "JobSubmitter",
    "SUBMISSION_PATHS",
]
