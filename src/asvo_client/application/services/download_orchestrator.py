"""Concurrent download of many jobs with per-job failure containment."""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
import os
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from asvo_client.application.services.job_catalog import JobCatalog, JobSnapshot
from asvo_client.domain.errors import (
    AmbiguousObsidError,
    AsvoError,
    JobHasNoFilesError,
    JobNotFoundError,
    JobNotReadyError,
)
from asvo_client.domain.identifiers import JobId, Obsid
from asvo_client.domain.jobs import Job, terminal_failure
from asvo_client.domain.ports import ProgressDisplay, Session, SessionFactory
from asvo_client.domain.transfer_models import FileTransferResult, TransferOptions
from asvo_client.infrastructure.transfers.file_transfer_engine import FileTransferEngine
from asvo_client.infrastructure.transfers.progress import NullProgressDisplay
from asvo_client.infrastructure.transfers.retry import RetryPolicy
from asvo_client.infrastructure.transfers.runtime import (
    QueueExecutionControl,
    SlotBasedExecutionQueue,
)

_DEFAULT_CONCURRENCY = 4

# An Obsid instance selects by observation, any other int is a job id.
DownloadTarget = JobId | Obsid
EngineFactory = Callable[[Session], FileTransferEngine]

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class JobDownloadOutcome:
    """What happened to one requested job or obsid."""

    target: DownloadTarget
    job: Job | None = None
    files: tuple[FileTransferResult, ...] = ()
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def job_id(self) -> JobId | None:
        return None if self.job is None else self.job.job_id


@dataclass(slots=True, frozen=True)
class DownloadReport:
    """Outcomes of one batch, in request order."""

    outcomes: tuple[JobDownloadOutcome, ...]

    @property
    def succeeded(self) -> list[JobDownloadOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> list[JobDownloadOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def ok(self) -> bool:
        return not self.failed


def resolve_target(snapshot: JobSnapshot, target: DownloadTarget) -> Job:
    """Pick the single downloadable job a target refers to."""

    if isinstance(target, Obsid):
        candidates = snapshot.lookup_by_obsid(target)
        if not candidates:
            raise JobNotFoundError(f"No ASVO jobs were found for obsid {target}.")
        if len(candidates) > 1:
            raise AmbiguousObsidError(int(target), [job.job_id for job in candidates])
        job = candidates[0]
    else:
        found = snapshot.lookup_by_id(target)
        if found is None:
            raise JobNotFoundError(f"ASVO job ID {target} was not found in your queue.")
        job = found

    if job.status.is_terminal_failure:
        raise terminal_failure(job)
    if not job.status.is_ready:
        raise JobNotReadyError(job.job_id, int(job.obsid), str(job.status))
    if not job.files:
        raise JobHasNoFilesError(job.job_id)
    return job


class DownloadOrchestrator:
    """Run up to N job downloads at once.

    Each job gets its own worker thread, its own logged-in session and one
    numbered slot, which also selects its progress line. Files within a job
    are transferred in manifest order, each under the retry policy. A failed
    job is recorded in the report and never stops its siblings. A job named by
    more than one target is downloaded once and reported under each target.
    """

    def __init__(
        self,
        catalog: JobCatalog,
        session_factory: SessionFactory,
        retry_policy: RetryPolicy | None = None,
        progress_display: ProgressDisplay | None = None,
        buffer_size: int = 100 * 1024 * 1024,
        default_concurrency: int = _DEFAULT_CONCURRENCY,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        self._catalog = catalog
        self._session_factory = session_factory
        self._retry_policy = retry_policy or RetryPolicy()
        self._progress_display = progress_display or NullProgressDisplay()
        self._default_concurrency = default_concurrency
        self._engine_factory = engine_factory or functools.partial(
            FileTransferEngine, buffer_size=buffer_size
        )

    def download_all(
        self,
        targets: Iterable[DownloadTarget],
        destination: Path,
        options: TransferOptions | None = None,
        concurrency: int | None = None,
    ) -> DownloadReport:
        """Download every target; errors in shared setup propagate."""

        return asyncio.run(
            self.download_all_async(targets, destination, options, concurrency)
        )

    async def download_all_async(
        self,
        targets: Iterable[DownloadTarget],
        destination: Path,
        options: TransferOptions | None = None,
        concurrency: int | None = None,
    ) -> DownloadReport:
        requested = list(targets)
        if not requested:
            return DownloadReport(outcomes=())

        options = options or TransferOptions()
        loop = asyncio.get_running_loop()
        snapshot = await loop.run_in_executor(None, self._catalog.fetch)

        outcomes: dict[int, JobDownloadOutcome] = {}
        unique_jobs: dict[JobId, Job] = {}
        job_for_target: dict[int, JobId] = {}
        for index, target in enumerate(requested):
            try:
                job = resolve_target(snapshot, target)
            except AsvoError as exc:
                logger.error("%s", exc)
                outcomes[index] = JobDownloadOutcome(target=target, error=exc)
                continue
            if job.job_id in unique_jobs:
                logger.warning(
                    "ASVO job ID %s was requested more than once; downloading it once.",
                    job.job_id,
                )
            unique_jobs.setdefault(job.job_id, job)
            job_for_target[index] = job.job_id

        if unique_jobs:
            by_job = await self._run_jobs(
                list(unique_jobs.values()), destination, options, concurrency
            )
            for index, job_id in job_for_target.items():
                outcomes[index] = dataclasses.replace(by_job[job_id], target=requested[index])

        report = DownloadReport(
            outcomes=tuple(outcomes[index] for index in range(len(requested)))
        )
        logger.info(
            "Finished downloads: %s succeeded, %s failed",
            len(report.succeeded),
            len(report.failed),
        )
        return report

    async def _run_jobs(
        self,
        jobs: list[Job],
        destination: Path,
        options: TransferOptions,
        concurrency: int | None,
    ) -> dict[JobId, JobDownloadOutcome]:
        workers = self._resolve_concurrency(concurrency, len(jobs))
        queue = SlotBasedExecutionQueue(workers)

        logger.info("Downloading %s jobs with %s workers", len(jobs), workers)
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="asvo-download"
        ) as pool:
            outcomes = await asyncio.gather(
                *(self._run_job(queue, pool, job, destination, options) for job in jobs)
            )
        return {job.job_id: outcome for job, outcome in zip(jobs, outcomes)}

    async def _run_job(
        self,
        queue: SlotBasedExecutionQueue,
        pool: ThreadPoolExecutor,
        job: Job,
        destination: Path,
        options: TransferOptions,
    ) -> JobDownloadOutcome:
        control = QueueExecutionControl()

        async def on_queue_state_change() -> None:
            if control.waiting_for_slot:
                logger.debug("ASVO job ID %s is waiting for a free slot", job.job_id)

        loop = asyncio.get_running_loop()
        try:
            async with queue.occupy(control, on_queue_state_change) as slot:
                files = await loop.run_in_executor(
                    pool,
                    self._download_job,
                    job,
                    destination,
                    options,
                    slot,
                )
        except AsvoError as exc:
            logger.error("%s", exc)
            return JobDownloadOutcome(target=job.job_id, job=job, error=exc)
        except Exception as exc:
            logger.exception("Unexpected failure downloading ASVO job ID %s", job.job_id)
            return JobDownloadOutcome(target=job.job_id, job=job, error=exc)
        return JobDownloadOutcome(target=job.job_id, job=job, files=files)

    def _download_job(
        self,
        job: Job,
        destination: Path,
        options: TransferOptions,
        slot: int,
    ) -> tuple[FileTransferResult, ...]:
        logger.info(
            "Downloading ASVO job ID %s (obsid: %s, type: %s, %s bytes)",
            job.job_id,
            job.obsid,
            job.job_type.value,
            job.total_bytes,
        )
        started = time.monotonic()
        progress = functools.partial(self._progress_display.open_bar, slot)
        session = self._session_factory()
        try:
            engine = self._engine_factory(session)
            results: list[FileTransferResult] = []
            for entry in job.files or ():
                transfer = functools.partial(
                    engine.transfer, job, entry, destination, options, progress
                )
                results.append(self._retry_policy.call(transfer))
        finally:
            session.close()

        elapsed = max(time.monotonic() - started, 1e-6)
        transferred = sum(result.bytes_transferred for result in results)
        logger.info(
            "Completed ASVO job ID %s in %.1f s (%.0f bytes/s)",
            job.job_id,
            elapsed,
            transferred / elapsed,
        )
        return tuple(results)

    def _resolve_concurrency(self, concurrency: int | None, jobs: int) -> int:
        requested = self._default_concurrency if concurrency is None else concurrency
        if requested <= 0:
            requested = os.cpu_count() or 1
        return max(1, min(requested, jobs))


__all__ = [
    "DownloadOrchestrator",
    "DownloadReport",
    "DownloadTarget",
    "JobDownloadOutcome",
    "resolve_target",
]
