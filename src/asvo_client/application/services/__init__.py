"""Application services public API."""

from asvo_client.application.services.asvo_client import AsvoClient
from asvo_client.application.services.download_orchestrator import (
    DownloadOrchestrator,
    DownloadReport,
    DownloadTarget,
    JobDownloadOutcome,
)
from asvo_client.application.services.job_catalog import JobCatalog, JobSnapshot
from asvo_client.application.services.job_submitter import (
    DEFAULT_CONVERSION_PARAMETERS,
    JobRequest,
    JobSubmitter,
)
from asvo_client.application.services.job_waiter import JobWaiter

__all__ = [
    "AsvoClient",
    "DEFAULT_CONVERSION_PARAMETERS",
    "DownloadOrchestrator",
    "DownloadReport",
    "DownloadTarget",
    "JobCatalog",
    "JobDownloadOutcome",
    "JobRequest",
    "JobSnapshot",
    "JobSubmitter",
    "JobWaiter",
]
