"""Read-only view over the caller's ASVO job queue."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from asvo_client.domain.errors import ProtocolDecodeError
from asvo_client.domain.identifiers import JobId
from asvo_client.domain.jobs import Job
from asvo_client.domain.ports import Session
from asvo_client.domain.wire_models import decode_job_listing

GET_JOBS_PATH = "/api/get_jobs"

logger = logging.getLogger(__name__)


class JobSnapshot:
    """Jobs from one listing call, indexed by job id and by obsid."""

    def __init__(self, jobs: Sequence[Job]) -> None:
        self._jobs = tuple(jobs)
        self._by_id: dict[JobId, Job] = {}
        self._by_obsid: dict[int, list[Job]] = {}
        for job in self._jobs:
            if job.job_id in self._by_id:
                raise ProtocolDecodeError(
                    f"Job listing contains ASVO job ID {job.job_id} more than once."
                )
            self._by_id[job.job_id] = job
            self._by_obsid.setdefault(int(job.obsid), []).append(job)

    @property
    def jobs(self) -> tuple[Job, ...]:
        return self._jobs

    def lookup_by_id(self, job_id: JobId) -> Job | None:
        return self._by_id.get(job_id)

    def lookup_by_obsid(self, obsid: int) -> list[Job]:
        return list(self._by_obsid.get(int(obsid), ()))

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._by_id


class JobCatalog:
    """Fetch fresh job snapshots; nothing is cached between calls."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def fetch(self) -> JobSnapshot:
        payload = self._session.get_json(GET_JOBS_PATH)
        jobs = decode_job_listing(payload)
        logger.debug("Fetched %s jobs from the ASVO", len(jobs))
        return JobSnapshot(jobs)


__all__ = ["GET_JOBS_PATH", "JobCatalog", "JobSnapshot"]
