"""Authenticated HTTP session against the MWA ASVO."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import httpx

from asvo_client.config import Settings
from asvo_client.domain.errors import AsvoApiError, AuthenticationError, ProtocolDecodeError
from asvo_client.domain.ports import SessionFactory

LOGIN_PATH = "/api/login"

logger = logging.getLogger(__name__)


class AsvoSession:
    """Wrapper around one cookie-carrying ``httpx.Client``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = self._normalize_base_url(base_url)
        self._http = httpx.Client(
            base_url=self._base_url,
            timeout=timeout_seconds,
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def login(
        cls,
        settings: Settings,
        transport: httpx.BaseTransport | None = None,
    ) -> "AsvoSession":
        """Open a session and authenticate with the configured API key."""

        if not settings.api_key:
            raise AuthenticationError("MWA_ASVO_API_KEY is not defined.")

        session = cls(
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
            transport=transport,
        )
        logger.debug("Connecting to ASVO at %s...", session._base_url)
        try:
            response = session._http.post(
                LOGIN_PATH,
                auth=(settings.client_version, settings.api_key),
            )
        except httpx.HTTPError as exc:
            session.close()
            raise AsvoApiError(f"POST {LOGIN_PATH} failed: {exc}") from exc

        if not response.is_success:
            session.close()
            raise AuthenticationError(
                f"ASVO login failed: {response.status_code} "
                f"{session._detail_from_response(response)}"
            )
        return session

    def get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET ``path`` and decode the JSON body of a successful response."""

        response = self.get(path, params)
        self._ensure_success(response)
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolDecodeError(
                f"{response.request.method} {response.request.url.path} returned invalid JSON."
            ) from exc

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        try:
            return self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            raise AsvoApiError(f"GET {path} failed: {exc}") from exc

    def post_form(self, path: str, data: Mapping[str, str]) -> httpx.Response:
        try:
            return self._http.post(path, data=dict(data))
        except httpx.HTTPError as exc:
            raise AsvoApiError(f"POST {path} failed: {exc}") from exc

    @contextmanager
    def stream(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Iterator[httpx.Response]:
        """Stream a GET; transport errors propagate as ``httpx`` exceptions."""

        with self._http.stream("GET", url, headers=dict(headers or {})) as response:
            yield response

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "AsvoSession":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _ensure_success(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        message = self._detail_from_response(response)
        raise AsvoApiError(
            f"The server responded with status code {response.status_code}, "
            f"message:\n{message}",
            status_code=response.status_code,
        )

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            detail = payload.get("error")
            if isinstance(detail, str):
                return detail
        return str(payload)

    def _normalize_base_url(self, base_url: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise AsvoApiError("ASVO base URL cannot be empty.")
        return normalized


def build_session_factory(
    settings: Settings,
    transport: httpx.BaseTransport | None = None,
) -> SessionFactory:
    """Return a factory that logs in a fresh session on every call."""

    def factory() -> AsvoSession:
        return AsvoSession.login(settings, transport=transport)

    return factory


__all__ = ["AsvoSession", "LOGIN_PATH", "build_session_factory"]
