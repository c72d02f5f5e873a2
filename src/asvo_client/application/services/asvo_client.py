"""Collaborator-facing entry point tying the services together."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from asvo_client.application.services.download_orchestrator import (
    DownloadOrchestrator,
    DownloadReport,
    DownloadTarget,
    JobDownloadOutcome,
)
from asvo_client.application.services.job_catalog import JobCatalog
from asvo_client.application.services.job_submitter import JobRequest, JobSubmitter
from asvo_client.application.services.job_waiter import JobWaiter
from asvo_client.domain.identifiers import JobId
from asvo_client.domain.jobs import Job
from asvo_client.domain.ports import Session
from asvo_client.domain.submission import SubmissionOutcome
from asvo_client.domain.transfer_models import TransferOptions

logger = logging.getLogger(__name__)


class AsvoClient:
    """Submit, inspect, wait for, download and cancel ASVO jobs."""

    def __init__(
        self,
        session: Session,
        catalog: JobCatalog,
        submitter: JobSubmitter,
        waiter: JobWaiter,
        orchestrator: DownloadOrchestrator,
        download_dir: Path = Path("."),
    ) -> None:
        self._session = session
        self._catalog = catalog
        self._submitter = submitter
        self._waiter = waiter
        self._orchestrator = orchestrator
        self._download_dir = download_dir

    def submit(self, request: JobRequest) -> SubmissionOutcome:
        return self._submitter.submit(request)

    def submit_many(self, requests: Iterable[JobRequest]) -> list[JobId]:
        return self._submitter.submit_many(requests)

    def fetch_jobs(self) -> list[Job]:
        return list(self._catalog.fetch())

    def wait_for(self, job_ids: Iterable[JobId]) -> list[Job]:
        return self._waiter.wait_for(job_ids)

    def download(
        self,
        target: DownloadTarget,
        options: TransferOptions | None = None,
        destination: Path | None = None,
    ) -> JobDownloadOutcome:
        """Download one job or obsid, raising its error if it failed."""

        report = self.download_many([target], options, destination, concurrency=1)
        outcome = report.outcomes[0]
        if outcome.error is not None:
            raise outcome.error
        return outcome

    def download_many(
        self,
        targets: Iterable[DownloadTarget],
        options: TransferOptions | None = None,
        destination: Path | None = None,
        concurrency: int | None = None,
    ) -> DownloadReport:
        return self._orchestrator.download_all(
            targets,
            destination or self._download_dir,
            options,
            concurrency,
        )

    def cancel(self, job_id: JobId) -> JobId | None:
        return self._submitter.cancel(job_id)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "AsvoClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


__all__ = ["AsvoClient"]
