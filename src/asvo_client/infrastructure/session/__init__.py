"""ASVO HTTP session."""

from asvo_client.infrastructure.session.client import (
    LOGIN_PATH,
    AsvoSession,
    build_session_factory,
)

__all__ = ["AsvoSession", "LOGIN_PATH", "build_session_factory"]
