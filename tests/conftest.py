from __future__ import annotations

import hashlib
import io
import json
import tarfile
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from asvo_client.infrastructure.session import AsvoSession

BASE_URL = "https://asvo.example.org"

Handler = Callable[[httpx.Request], httpx.Response]


def job_row(
    job_id: int,
    obsid: int,
    *,
    job_type: int | str = "download_visibilities",
    job_state: int | str = "ready",
    error_text: str | None = None,
    files: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """One element of a ``get_jobs`` listing in the current wire format."""

    row: dict[str, Any] = {
        "id": job_id,
        "job_type": job_type,
        "job_state": job_state,
        "job_params": {"obs_id": str(obsid), "delivery": "acacia"},
        "error_text": error_text,
    }
    if files is not None:
        row["product"] = {"files": files}
    return {"row": row}


def cloud_file(name: str, payload: bytes, *, sha1: str | None = None) -> dict[str, Any]:
    return {
        "type": "acacia",
        "url": f"{BASE_URL}/objects/{name}?signature=secret",
        "size": len(payload),
        "sha1": sha1 if sha1 is not None else hashlib.sha1(payload).hexdigest(),
    }


def make_tar(members: dict[str, bytes], *, with_root: bool = True) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        if with_root:
            root = tarfile.TarInfo(".")
            root.type = tarfile.DIRTYPE
            root.mode = 0o755
            archive.addfile(root)
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, content=json.dumps(payload).encode())


@pytest.fixture
def session_for() -> Iterator[Callable[[Handler], AsvoSession]]:
    sessions: list[AsvoSession] = []

    def build(handler: Handler) -> AsvoSession:
        session = AsvoSession(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        sessions.append(session)
        return session

    yield build

    for session in sessions:
        session.close()
