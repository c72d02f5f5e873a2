from __future__ import annotations

import logging
from typing import Any

import pytest

from asvo_client.application.services import JobSnapshot, JobWaiter
from asvo_client.domain.errors import JobNotFoundError, JobTerminalFailure
from asvo_client.domain.wire_models import decode_job_listing
from conftest import job_row


class ScriptedCatalog:
    """Return one prepared listing per fetch, repeating the last one."""

    def __init__(self, listings: list[list[dict[str, Any]]]) -> None:
        self._listings = listings
        self.fetches = 0

    def fetch(self) -> JobSnapshot:
        listing = self._listings[min(self.fetches, len(self._listings) - 1)]
        self.fetches += 1
        return JobSnapshot(decode_job_listing(listing))


def test_wait_returns_once_every_job_is_ready() -> None:
    catalog = ScriptedCatalog(
        [
            [job_row(1, 1065880128, job_state="queued"), job_row(2, 1065880129, job_state=1)],
            [job_row(1, 1065880128, job_state="ready"), job_row(2, 1065880129, job_state=1)],
            [job_row(1, 1065880128, job_state="ready"), job_row(2, 1065880129, job_state=2)],
        ]
    )
    sleeps: list[float] = []

    jobs = JobWaiter(catalog, grace_seconds=5, poll_seconds=60, sleep=sleeps.append).wait_for(
        [1, 2]
    )

    assert [job.job_id for job in jobs] == [1, 2]
    assert catalog.fetches == 3
    assert sleeps == [5, 60, 60]


def test_error_state_aborts_wait_with_upstream_message() -> None:
    catalog = ScriptedCatalog(
        [
            [
                job_row(1, 1065880128, job_state="queued"),
                job_row(2, 1065880129, job_state="queued"),
            ],
            [
                job_row(1, 1065880128, job_state="ready"),
                job_row(2, 1065880129, job_state="error", error_text="Observation has no files"),
            ],
        ]
    )
    sleeps: list[float] = []

    with pytest.raises(JobTerminalFailure) as exc_info:
        JobWaiter(catalog, grace_seconds=5, poll_seconds=60, sleep=sleeps.append).wait_for(
            [1, 2]
        )

    assert catalog.fetches == 2
    assert sleeps == [5, 60]
    error = exc_info.value
    assert error.job_id == 2
    assert error.obsid == 1065880129
    assert "Observation has no files" in str(error)
    assert "1065880129" in str(error)


@pytest.mark.parametrize("state", ["expired", "cancelled", 4, 5])
def test_expired_and_cancelled_jobs_are_terminal(state: object) -> None:
    catalog = ScriptedCatalog([[job_row(3, 1065880128, job_state=state)]])

    with pytest.raises(JobTerminalFailure, match="ASVO job ID 3"):
        JobWaiter(catalog, sleep=lambda _: None).wait_for([3])


def test_unknown_job_fails_immediately() -> None:
    catalog = ScriptedCatalog([[job_row(1, 1065880128, job_state="processing")]])

    with pytest.raises(JobNotFoundError, match="ASVO job ID 7"):
        JobWaiter(catalog, sleep=lambda _: None).wait_for([1, 7])

    assert catalog.fetches == 1


def test_unrecognised_state_keeps_waiting() -> None:
    catalog = ScriptedCatalog(
        [
            [job_row(1, 1065880128, job_state="calibrating")],
            [job_row(1, 1065880128, job_state="ready")],
        ]
    )

    jobs = JobWaiter(catalog, sleep=lambda _: None).wait_for([1])

    assert [job.job_id for job in jobs] == [1]
    assert catalog.fetches == 2


def test_state_is_logged_only_when_it_changes(caplog: pytest.LogCaptureFixture) -> None:
    catalog = ScriptedCatalog(
        [
            [job_row(1, 1065880128, job_state="queued")],
            [job_row(1, 1065880128, job_state="queued")],
            [job_row(1, 1065880128, job_state="queued")],
            [job_row(1, 1065880128, job_state="ready")],
        ]
    )

    with caplog.at_level(logging.INFO, logger="asvo_client.application.services.job_waiter"):
        JobWaiter(catalog, sleep=lambda _: None).wait_for([1])

    state_lines = [
        record.getMessage()
        for record in caplog.records
        if record.getMessage().startswith("ASVO job ID")
    ]
    assert state_lines == [
        "ASVO job ID 1 (obsid: 1065880128) is Queued",
        "ASVO job ID 1 (obsid: 1065880128) is Ready",
    ]


def test_empty_request_returns_without_polling() -> None:
    catalog = ScriptedCatalog([[]])

    assert JobWaiter(catalog, sleep=lambda _: None).wait_for([]) == []
    assert catalog.fetches == 0
