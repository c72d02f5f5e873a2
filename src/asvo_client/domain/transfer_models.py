"""File transfer options and per-file results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class FileTransferStatus(StrEnum):
    """How one manifest entry was resolved."""

    DOWNLOADED = "downloaded"
    EXTRACTED = "extracted"
    ALREADY_COMPLETE = "already_complete"
    MOVED = "moved"
    SKIPPED_UNREACHABLE = "skipped_unreachable"
    SKIPPED_HASH_MISMATCH = "skipped_hash_mismatch"


SKIPPED_TRANSFER_STATUSES = frozenset(
    {
        FileTransferStatus.SKIPPED_UNREACHABLE,
        FileTransferStatus.SKIPPED_HASH_MISMATCH,
    }
)


@dataclass(slots=True, frozen=True)
class TransferOptions:
    """Caller choices for one download run."""

    keep_archive: bool = False
    verify_hash: bool = True
    allow_resume: bool = True


@dataclass(slots=True, frozen=True)
class FileTransferResult:
    """Outcome of transferring one manifest entry."""

    job_id: int
    file_name: str
    status: FileTransferStatus
    destination: Path
    bytes_transferred: int = 0
    sha1: str | None = None

    @property
    def skipped(self) -> bool:
        return self.status in SKIPPED_TRANSFER_STATUSES


__all__ = [
    "FileTransferResult",
    "FileTransferStatus",
    "SKIPPED_TRANSFER_STATUSES",
    "TransferOptions",
]
