"""Application bootstrap/wiring."""

import logging

import httpx

from asvo_client.application.services import (
    AsvoClient,
    DownloadOrchestrator,
    JobCatalog,
    JobSubmitter,
    JobWaiter,
)
from asvo_client.config import Settings
from asvo_client.domain.ports import ProgressDisplay
from asvo_client.infrastructure.session import AsvoSession, build_session_factory
from asvo_client.infrastructure.transfers import (
    NullProgressDisplay,
    RetryPolicy,
    TqdmProgressDisplay,
)

logger = logging.getLogger(__name__)


def _build_progress_display(settings: Settings) -> ProgressDisplay:
    if settings.show_progress:
        return TqdmProgressDisplay()
    return NullProgressDisplay()


def build_asvo_client(
    settings: Settings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> AsvoClient:
    """Log in and compose the service graph.

    Authentication happens here, so a missing or rejected API key fails
    before any job work starts.
    """

    settings = settings or Settings()
    session = AsvoSession.login(settings, transport=transport)
    catalog = JobCatalog(session)
    orchestrator = DownloadOrchestrator(
        catalog=catalog,
        session_factory=build_session_factory(settings, transport=transport),
        retry_policy=RetryPolicy.from_settings(settings),
        progress_display=_build_progress_display(settings),
        buffer_size=settings.buffer_size_bytes,
        default_concurrency=settings.download_concurrency,
    )
    logger.debug("ASVO client ready for %s", settings.base_url)
    return AsvoClient(
        session=session,
        catalog=catalog,
        submitter=JobSubmitter(session, default_delivery=settings.default_delivery),
        waiter=JobWaiter(
            catalog,
            grace_seconds=settings.wait_grace_seconds,
            poll_seconds=settings.wait_poll_seconds,
        ),
        orchestrator=orchestrator,
        download_dir=settings.download_dir,
    )


__all__ = ["build_asvo_client"]
