from __future__ import annotations

import json

import httpx
import pytest

from asvo_client.application.services import JobCatalog
from asvo_client.domain.errors import AsvoApiError, ProtocolDecodeError
from asvo_client.domain.jobs import DeliveryKind, JobState, JobType
from asvo_client.domain.wire_models import decode_job_listing
from conftest import job_row, json_response


def _legacy_listing() -> list[str]:
    # Older servers send each job as a JSON string with integer codes.
    return [
        json.dumps(
            {
                "row": {
                    "job_type": 1,
                    "id": 575929,
                    "job_state": 2,
                    "job_params": {"download_type": "vis", "obs_id": "1339896408"},
                    "error_text": None,
                    "product": {
                        "files": [
                            {
                                "file_name": "1339896408_vis.tar",
                                "file_size": 931112960,
                                "sha1": "6f3d33a1e7bf5a3c6d0a5b1f6fb2a87f0e1b8ef4",
                            }
                        ]
                    },
                }
            }
        ),
        json.dumps(
            {
                "row": {
                    "job_type": 0,
                    "id": 575930,
                    "job_state": 3,
                    "job_params": {"obs_id": "1339896409"},
                    "error_text": "Observation has no files",
                    "product": None,
                }
            }
        ),
    ]


def test_fetch_decodes_current_listing(session_for) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return json_response(
            [
                job_row(
                    575929,
                    1339896408,
                    job_state="completed",
                    files=[
                        {
                            "type": "acacia",
                            "url": "https://acacia.example.org/mwa/1339896408_vis.tar?sig=abc",
                            "size": 931112960,
                            "sha1": "6F3D33A1E7BF5A3C6D0A5B1F6FB2A87F0E1B8EF4",
                        }
                    ],
                ),
                job_row(575931, 1339896410, job_type="conversion", job_state="staging"),
            ]
        )

    snapshot = JobCatalog(session_for(handler)).fetch()

    assert len(requests) == 1
    assert requests[0].url.path == "/api/get_jobs"
    assert len(snapshot) == 2

    job = snapshot.lookup_by_id(575929)
    assert job is not None
    assert job.obsid == 1339896408
    assert job.job_type is JobType.DOWNLOAD_VISIBILITIES
    assert job.state is JobState.READY
    assert job.total_bytes == 931112960
    assert job.files is not None
    entry = job.files[0]
    assert entry.kind is DeliveryKind.CLOUD
    assert entry.file_name == "1339896408_vis.tar"
    assert "sig=abc" not in repr(entry)

    staging = snapshot.lookup_by_id(575931)
    assert staging is not None
    assert staging.state is JobState.STAGING
    assert staging.files is None


def test_integer_and_string_states_normalize_to_the_same_enum() -> None:
    jobs = decode_job_listing(
        [
            job_row(1, 1339896408, job_type=1, job_state=2),
            job_row(2, 1339896409, job_type="download_visibilities", job_state="ready"),
            job_row(3, 1339896410, job_type="1", job_state="completed"),
        ]
    )

    assert {job.state for job in jobs} == {JobState.READY}
    assert {job.job_type for job in jobs} == {JobType.DOWNLOAD_VISIBILITIES}


def test_legacy_double_encoded_listing_is_decoded() -> None:
    jobs = decode_job_listing(_legacy_listing())

    ready, errored = jobs
    assert ready.job_id == 575929
    assert ready.state is JobState.READY
    assert ready.files is not None
    entry = ready.files[0]
    assert entry.size == 931112960
    assert entry.file_name == "1339896408_vis.tar"
    assert entry.url == "/api/download?job_id=575929&file_name=1339896408_vis.tar"

    assert errored.state is JobState.ERROR
    assert errored.status.error_text == "Observation has no files"
    assert str(errored.status) == "Error: Observation has no files"


def test_filesystem_entries_keep_their_path() -> None:
    jobs = decode_job_listing(
        [
            job_row(
                7,
                1339896408,
                files=[
                    {
                        "type": "scratch",
                        "path": "/scratch/mwaops/asvo/7",
                        "size": 0,
                    }
                ],
            )
        ]
    )

    entry = jobs[0].files[0]
    assert entry.kind is DeliveryKind.FILESYSTEM
    assert entry.locator == "/scratch/mwaops/asvo/7"
    assert entry.file_name == "7"


def test_unknown_string_state_is_not_ready() -> None:
    jobs = decode_job_listing([job_row(9, 1339896408, job_state="calibrating")])

    assert jobs[0].state is JobState.UNKNOWN
    assert jobs[0].status.is_ready is False
    assert jobs[0].status.is_terminal_failure is False


@pytest.mark.parametrize(
    "payload",
    [
        {"jobs": []},
        [job_row(1, 1339896408, job_state=17)],
        [job_row(1, 1339896408, job_type="make_coffee")],
        [job_row(1, 1234)],
        ["{not json"],
        [{"row": {"id": 1}}],
    ],
)
def test_malformed_listings_raise_decode_error(payload: object) -> None:
    with pytest.raises(ProtocolDecodeError):
        decode_job_listing(payload)


def test_duplicate_job_ids_are_rejected(session_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response([job_row(1, 1339896408), job_row(1, 1339896409)])

    with pytest.raises(ProtocolDecodeError, match="more than once"):
        JobCatalog(session_for(handler)).fetch()


def test_lookup_by_obsid_returns_every_job_for_the_observation(session_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response(
            [
                job_row(1, 1339896408),
                job_row(2, 1339896408, job_type="download_metadata"),
                job_row(3, 1339896409),
            ]
        )

    snapshot = JobCatalog(session_for(handler)).fetch()

    assert [job.job_id for job in snapshot.lookup_by_obsid(1339896408)] == [1, 2]
    assert snapshot.lookup_by_obsid(1111111111) == []
    assert snapshot.lookup_by_id(4) is None


def test_each_fetch_issues_a_new_request(session_for) -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        state = "processing" if len(calls) == 1 else "ready"
        return json_response([job_row(1, 1339896408, job_state=state)])

    catalog = JobCatalog(session_for(handler))

    assert catalog.fetch().lookup_by_id(1).state is JobState.PROCESSING
    assert catalog.fetch().lookup_by_id(1).state is JobState.READY
    assert len(calls) == 2


def test_error_status_from_listing_raises_api_error(session_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response({"error": "Session expired"}, status_code=403)

    with pytest.raises(AsvoApiError, match="Session expired") as exc_info:
        JobCatalog(session_for(handler)).fetch()

    assert exc_info.value.status_code == 403
