"""Infrastructure layer public API."""

from asvo_client.infrastructure.session import AsvoSession, build_session_factory
from asvo_client.infrastructure.transfers import (
    FileTransferEngine,
    NullProgressDisplay,
    RetryPolicy,
    TqdmProgressDisplay,
)

__all__ = [
    "AsvoSession",
    "FileTransferEngine",
    "NullProgressDisplay",
    "RetryPolicy",
    "TqdmProgressDisplay",
    "build_session_factory",
]
