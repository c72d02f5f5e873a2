"""Block until a set of jobs is ready."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from asvo_client.application.services.job_catalog import JobCatalog
from asvo_client.domain.errors import JobNotFoundError
from asvo_client.domain.identifiers import JobId
from asvo_client.domain.jobs import Job, JobState, terminal_failure

_DEFAULT_GRACE_SECONDS = 5.0
_DEFAULT_POLL_SECONDS = 60.0

logger = logging.getLogger(__name__)


class JobWaiter:
    """Poll the job listing until every requested job is ready.

    A job in a terminal failure state, or one missing from the listing, ends
    the whole wait immediately. Each job's state is logged only when it
    differs from the previous poll.
    """

    def __init__(
        self,
        catalog: JobCatalog,
        grace_seconds: float = _DEFAULT_GRACE_SECONDS,
        poll_seconds: float = _DEFAULT_POLL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._catalog = catalog
        self._grace_seconds = max(0.0, grace_seconds)
        self._poll_seconds = max(0.0, poll_seconds)
        self._sleep = sleep

    def wait_for(self, job_ids: Iterable[JobId]) -> list[Job]:
        wanted = list(dict.fromkeys(job_ids))
        if not wanted:
            return []

        logger.info("Waiting for %s jobs to be ready...", len(wanted))
        last_seen: dict[JobId, JobState] = {}
        self._sleep(self._grace_seconds)
        while True:
            snapshot = self._catalog.fetch()
            ready: list[Job] = []
            for job_id in wanted:
                job = snapshot.lookup_by_id(job_id)
                if job is None:
                    raise JobNotFoundError(f"ASVO job ID {job_id} was not found in your queue.")
                self._log_change(job, last_seen)
                if job.status.is_ready:
                    ready.append(job)
                elif job.status.is_terminal_failure:
                    raise terminal_failure(job)

            if len(ready) == len(wanted):
                logger.info("All %s jobs are ready.", len(wanted))
                return ready

            logger.debug(
                "%s of %s jobs ready; checking again in %s s",
                len(ready),
                len(wanted),
                self._poll_seconds,
            )
            self._sleep(self._poll_seconds)

    def _log_change(self, job: Job, last_seen: dict[JobId, JobState]) -> None:
        if last_seen.get(job.job_id) is job.state:
            return
        last_seen[job.job_id] = job.state
        logger.info("ASVO job ID %s (obsid: %s) is %s", job.job_id, job.obsid, job.status)


__all__ = ["JobWaiter"]
