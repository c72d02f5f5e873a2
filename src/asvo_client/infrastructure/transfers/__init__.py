"""File transfer adapters."""

from asvo_client.infrastructure.transfers.file_transfer_engine import FileTransferEngine
from asvo_client.infrastructure.transfers.hashing import HashingStream
from asvo_client.infrastructure.transfers.progress import NullProgressDisplay, TqdmProgressDisplay
from asvo_client.infrastructure.transfers.retry import RetryPolicy

__all__ = [
    "FileTransferEngine",
    "HashingStream",
    "NullProgressDisplay",
    "RetryPolicy",
    "TqdmProgressDisplay",
]
