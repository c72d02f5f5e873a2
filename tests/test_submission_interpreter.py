from __future__ import annotations

import pytest

from asvo_client.domain.errors import ProtocolDecodeError
from asvo_client.domain.submission import (
    SUBMISSION_RESPONSE_SHAPES,
    DuplicateJob,
    FatalRejection,
    NewJob,
    RecoverableRejection,
    interpret_submission_response,
)


def test_job_id_response_is_a_new_job() -> None:
    assert interpret_submission_response('{"job_id": 575929}') == NewJob(job_id=575929)
    assert interpret_submission_response(b'{"job_id": 575929, "new": true}') == NewJob(
        job_id=575929
    )


def test_job_id_with_duplicate_code_is_a_duplicate() -> None:
    outcome = interpret_submission_response(
        {"error": "Job already queued", "error_code": 2, "job_id": 575929}
    )

    assert outcome == DuplicateJob(job_id=575929)


def test_job_id_with_other_code_is_fatal() -> None:
    outcome = interpret_submission_response(
        {"error": "Quota exceeded", "error_code": 7, "job_id": 575929}
    )

    assert outcome == FatalRejection(code=7, message="Quota exceeded")


@pytest.mark.parametrize(
    "message",
    [
        "Observation 1065880128 has no files",
        "Observation 1065880128 does not exist",
        "Observation 1065880128 DOES NOT EXIST",
    ],
)
def test_error_code_zero_with_known_message_is_recoverable(message: str) -> None:
    outcome = interpret_submission_response({"error_code": 0, "error": message})

    assert outcome == RecoverableRejection(message=message)


def test_error_code_zero_with_other_message_is_fatal() -> None:
    outcome = interpret_submission_response({"error_code": 0, "error": "Server on fire"})

    assert outcome == FatalRejection(code=0, message="Server on fire")


def test_error_code_with_recoverable_text_but_nonzero_code_is_fatal() -> None:
    outcome = interpret_submission_response({"error_code": 3, "error": "obs has no files"})

    assert outcome == FatalRejection(code=3, message="obs has no files")


def test_bare_error_is_fatal_without_code() -> None:
    outcome = interpret_submission_response({"error": "Bad request"})

    assert outcome == FatalRejection(code=None, message="Bad request")


def test_most_specific_shape_wins_when_several_match() -> None:
    # Satisfies job_id_with_error, job_id, error_with_code and generic_error.
    payload = {"error": "Job already queued", "error_code": 2, "job_id": 42}

    matching = [shape.name for shape in SUBMISSION_RESPONSE_SHAPES if shape.match(payload)]

    assert matching == ["job_id_with_error", "job_id", "error_with_code", "generic_error"]
    assert interpret_submission_response(payload) == DuplicateJob(job_id=42)


def test_job_id_shape_shadows_error_only_shapes() -> None:
    outcome = interpret_submission_response({"job_id": 42, "error": "ignored"})

    assert outcome == NewJob(job_id=42)


@pytest.mark.parametrize(
    "raw",
    ['{"status": "ok"}', "[1, 2]", "<html>oops</html>", '{"error_code": 1}'],
)
def test_unrecognised_bodies_raise_decode_error(raw: str) -> None:
    with pytest.raises(ProtocolDecodeError):
        interpret_submission_response(raw)
