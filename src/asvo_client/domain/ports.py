"""Ports for the service session and progress reporting."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from contextlib import AbstractContextManager
from typing import Any, Protocol

import httpx


class Session(Protocol):
    """Authenticated request/response capability against the ASVO."""

    def get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET a service endpoint and return the decoded JSON body."""

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        """GET a service endpoint and return the raw response, whatever its status."""

    def post_form(self, path: str, data: Mapping[str, str]) -> httpx.Response:
        """POST form-encoded parameters and return the raw response."""

    def stream(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> AbstractContextManager[httpx.Response]:
        """Open a streaming GET against an absolute or service-relative URL."""

    def close(self) -> None:
        """Release network resources."""


SessionFactory = Callable[[], Session]


class ProgressBar(Protocol):
    """Progress for one file in one worker slot."""

    def advance(self, num_bytes: int) -> None:
        """Record transferred bytes."""

    def close(self) -> None:
        """Finish the bar."""


class ProgressDisplay(Protocol):
    """Multi-slot progress output shared by concurrent workers."""

    def open_bar(
        self,
        slot: int,
        description: str,
        total: int | None,
        initial: int = 0,
    ) -> ProgressBar:
        """Start a bar for one transfer in the given slot."""


# (description, total, initial) with the slot already bound.
ProgressBarFactory = Callable[[str, int | None, int], ProgressBar]


__all__ = [
    "ProgressBar",
    "ProgressBarFactory",
    "ProgressDisplay",
    "Session",
    "SessionFactory",
]
