"""Resumable, hash-verified transfer of one job file."""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import Any

import httpx

from asvo_client.domain.errors import (
    HashMismatchError,
    ManifestIntegrityError,
    PermanentIOError,
    TransientTransferError,
)
from asvo_client.domain.jobs import DeliveryKind, FileEntry, Job
from asvo_client.domain.ports import ProgressBar, ProgressBarFactory, Session
from asvo_client.domain.transfer_models import (
    FileTransferResult,
    FileTransferStatus,
    TransferOptions,
)
from asvo_client.infrastructure.transfers.hashing import HashingStream, hash_file
from asvo_client.infrastructure.transfers.progress import NullProgressBar

_DEFAULT_CHUNK_BYTES = 1024 * 1024
_PARTIAL_CONTENT = 206
_ARCHIVE_ROOT_NAMES = frozenset({".", "./"})
_UNSAFE_FILE_NAMES = frozenset({"", ".", ".."})

logger = logging.getLogger(__name__)


class FileTransferEngine:
    """Transfer manifest entries of ready jobs into a local directory.

    - Filesystem deliveries are moved into the destination when visible.
    - Cloud deliveries are either kept as the archive (resumable with a Range
      request) or stream-extracted member by member.
    - Errors are tagged at the point they are produced: network failures and
      truncated archives are transient, local disk failures are permanent.
    """

    def __init__(
        self,
        session: Session,
        buffer_size: int,
        chunk_size: int = _DEFAULT_CHUNK_BYTES,
    ) -> None:
        self._session = session
        self._buffer_size = max(1, buffer_size)
        self._chunk_size = max(1, min(chunk_size, self._buffer_size))

    def transfer(
        self,
        job: Job,
        entry: FileEntry,
        destination: Path,
        options: TransferOptions | None = None,
        progress: ProgressBarFactory | None = None,
    ) -> FileTransferResult:
        """Transfer one manifest entry of ``job`` into ``destination``."""

        options = options or TransferOptions()
        self._check_manifest(job, entry, options)
        self._ensure_directory(destination)

        if entry.kind is DeliveryKind.FILESYSTEM:
            return self._relocate(job, entry, destination)
        if options.keep_archive:
            return self._download_archive(job, entry, destination, options, progress)
        return self._extract_archive(job, entry, destination, options, progress)

    def _check_manifest(self, job: Job, entry: FileEntry, options: TransferOptions) -> None:
        if entry.locator is None:
            missing = "URL" if entry.kind is DeliveryKind.CLOUD else "path"
            raise ManifestIntegrityError(
                f"ASVO job ID {job.job_id} (obsid: {job.obsid}) lists a {entry.kind.value} "
                f"file without a {missing}."
            )
        if entry.kind is not DeliveryKind.CLOUD:
            self._check_file_name(job, Path(entry.path or "").name)
            return
        if entry.file_name is None:
            raise ManifestIntegrityError(
                f"ASVO job ID {job.job_id} (obsid: {job.obsid}) lists a file whose name "
                "cannot be derived from its URL."
            )
        self._check_file_name(job, entry.file_name)
        if options.verify_hash and not entry.sha1:
            raise ManifestIntegrityError(
                f"ASVO job ID {job.job_id} (obsid: {job.obsid}) file {entry.file_name} "
                "has no hash to verify against."
            )

    def _check_file_name(self, job: Job, name: str) -> None:
        """Reject names that would place the file outside the destination."""

        if "\\" in name or name in _UNSAFE_FILE_NAMES or PurePosixPath(name).name != name:
            raise ManifestIntegrityError(
                f"ASVO job ID {job.job_id} (obsid: {job.obsid}) lists an unsafe file name: "
                f"{name!r}"
            )

    def _relocate(self, job: Job, entry: FileEntry, destination: Path) -> FileTransferResult:
        source = Path(entry.path or "")
        target = destination / source.name
        if not source.exists():
            logger.warning(
                "ASVO job ID %s: %s is not reachable from this host.", job.job_id, source
            )
            return FileTransferResult(
                job_id=job.job_id,
                file_name=source.name,
                status=FileTransferStatus.SKIPPED_UNREACHABLE,
                destination=target,
            )
        if target.exists():
            raise PermanentIOError(
                f"Cannot move ASVO job ID {job.job_id} output {source}: {target} already exists."
            )

        try:
            shutil.move(str(source), str(target))
        except OSError as exc:
            raise PermanentIOError(
                f"Failed to move ASVO job ID {job.job_id} output {source} to {target}: {exc}"
            ) from exc

        logger.info("Moved ASVO job ID %s output %s to %s", job.job_id, source, target)
        return FileTransferResult(
            job_id=job.job_id,
            file_name=source.name,
            status=FileTransferStatus.MOVED,
            destination=target,
        )

    def _download_archive(
        self,
        job: Job,
        entry: FileEntry,
        destination: Path,
        options: TransferOptions,
        progress: ProgressBarFactory | None,
    ) -> FileTransferResult:
        file_name = entry.file_name or ""
        target = destination / file_name
        existing = self._existing_length(target)
        hasher: Any = hashlib.sha1()
        offset = 0

        if existing is not None and existing == entry.size:
            if not options.verify_hash or not entry.sha1:
                logger.info("%s already exists with the expected size, skipping.", target)
                return self._result(job, file_name, FileTransferStatus.ALREADY_COMPLETE, target)
            digest = self._hash_existing(target).hexdigest()
            if digest.lower() == entry.sha1.lower():
                logger.info("%s already exists with a matching hash, skipping.", target)
                return self._result(
                    job, file_name, FileTransferStatus.ALREADY_COMPLETE, target, sha1=digest
                )
            if not options.allow_resume:
                logger.warning(
                    "%s exists, size matches, hash mismatch, not retried.", target
                )
                return self._result(
                    job, file_name, FileTransferStatus.SKIPPED_HASH_MISMATCH, target, sha1=digest
                )
            logger.warning("%s has the expected size but the wrong hash; restarting.", target)
        elif existing is not None and existing > entry.size:
            logger.warning(
                "%s is larger than expected (%s > %s bytes); restarting.",
                target,
                existing,
                entry.size,
            )
        elif existing and options.allow_resume:
            offset = existing
            self._hash_existing(target, hasher)
            logger.info("Resuming %s from byte %s of %s", target, offset, entry.size)

        headers = {}
        if offset:
            headers["Range"] = f"bytes={offset}-{entry.size - 1}"

        try:
            with self._session.stream(entry.url or "", headers=headers) as response:
                response.raise_for_status()
                if offset and response.status_code != _PARTIAL_CONTENT:
                    logger.warning(
                        "Range request for %s answered with %s; restarting from zero.",
                        target,
                        response.status_code,
                    )
                    offset = 0
                    hasher = hashlib.sha1()

                bar = self._open_bar(progress, file_name, entry.size, offset)
                stream = HashingStream(
                    response.iter_bytes(self._chunk_size), hasher, on_bytes=bar.advance
                )
                try:
                    self._write_stream(stream, target, append=bool(offset))
                finally:
                    bar.close()
                stream.drain()
        except httpx.HTTPError as exc:
            raise TransientTransferError(
                f"Transfer of {file_name} for ASVO job ID {job.job_id} failed: {exc}"
            ) from exc

        written = self._existing_length(target) or 0
        if written != entry.size:
            raise TransientTransferError(
                f"Transfer of {file_name} for ASVO job ID {job.job_id} ended early: "
                f"{written} of {entry.size} bytes on disk."
            )

        digest = stream.hexdigest()
        self._verify(job, file_name, entry, digest, options)
        logger.info("Completed download of %s for ASVO job ID %s", file_name, job.job_id)
        return self._result(
            job,
            file_name,
            FileTransferStatus.DOWNLOADED,
            target,
            bytes_transferred=stream.bytes_read,
            sha1=digest,
        )

    def _extract_archive(
        self,
        job: Job,
        entry: FileEntry,
        destination: Path,
        options: TransferOptions,
        progress: ProgressBarFactory | None,
    ) -> FileTransferResult:
        file_name = entry.file_name or ""
        try:
            with self._session.stream(entry.url or "") as response:
                response.raise_for_status()
                bar = self._open_bar(progress, file_name, entry.size, 0)
                stream = HashingStream(
                    response.iter_bytes(self._chunk_size), on_bytes=bar.advance
                )
                try:
                    members = self._extract_members(stream, destination)
                finally:
                    bar.close()
                trailing = stream.drain()
        except httpx.HTTPError as exc:
            raise TransientTransferError(
                f"Transfer of {file_name} for ASVO job ID {job.job_id} failed: {exc}"
            ) from exc
        except tarfile.FilterError as exc:
            raise ManifestIntegrityError(
                f"Archive {file_name} for ASVO job ID {job.job_id} has an unsafe member: {exc}"
            ) from exc
        except tarfile.TarError as exc:
            raise TransientTransferError(
                f"Archive {file_name} for ASVO job ID {job.job_id} was truncated: {exc}"
            ) from exc

        logger.debug("Drained %s trailing bytes of %s", trailing, file_name)
        # tarfile treats a stream cut at a header boundary as a clean end.
        if stream.bytes_read < entry.size:
            raise TransientTransferError(
                f"Archive {file_name} for ASVO job ID {job.job_id} ended early: "
                f"{stream.bytes_read} of {entry.size} bytes received."
            )
        digest = stream.hexdigest()
        self._verify(job, file_name, entry, digest, options)
        logger.info(
            "Extracted %s members of %s for ASVO job ID %s", members, file_name, job.job_id
        )
        return self._result(
            job,
            file_name,
            FileTransferStatus.EXTRACTED,
            destination,
            bytes_transferred=stream.bytes_read,
            sha1=digest,
        )

    def _extract_members(self, stream: HashingStream, destination: Path) -> int:
        count = 0
        with tarfile.open(fileobj=stream, mode="r|") as archive:
            for member in archive:
                if member.name in _ARCHIVE_ROOT_NAMES:
                    continue
                try:
                    archive.extract(member, path=destination, filter="data")
                except OSError as exc:
                    raise PermanentIOError(
                        f"Failed to extract {member.name} into {destination}: {exc}"
                    ) from exc
                count += 1
        return count

    def _write_stream(self, stream: HashingStream, target: Path, *, append: bool) -> None:
        try:
            with target.open("ab" if append else "wb", buffering=self._buffer_size) as handle:
                while chunk := stream.read(self._chunk_size):
                    handle.write(chunk)
        except OSError as exc:
            raise PermanentIOError(f"Failed to write {target}: {exc}") from exc

    def _verify(
        self,
        job: Job,
        file_name: str,
        entry: FileEntry,
        digest: str,
        options: TransferOptions,
    ) -> None:
        if not options.verify_hash or not entry.sha1:
            return
        logger.debug("Upstream hash: %s", entry.sha1)
        logger.debug("Our hash: %s", digest)
        if digest.lower() != entry.sha1.lower():
            raise HashMismatchError(
                job_id=job.job_id,
                file=file_name,
                expected_hash=entry.sha1,
                calculated_hash=digest,
            )

    def _existing_length(self, target: Path) -> int | None:
        try:
            return target.stat().st_size
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PermanentIOError(f"Cannot inspect {target}: {exc}") from exc

    def _hash_existing(self, target: Path, hasher: Any | None = None) -> Any:
        try:
            return hash_file(target, hasher, chunk_size=self._chunk_size)
        except OSError as exc:
            raise PermanentIOError(f"Cannot read {target}: {exc}") from exc

    def _ensure_directory(self, destination: Path) -> None:
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PermanentIOError(f"Cannot create {destination}: {exc}") from exc

    def _open_bar(
        self,
        progress: ProgressBarFactory | None,
        description: str,
        total: int,
        initial: int,
    ) -> ProgressBar:
        if progress is None:
            return NullProgressBar()
        return progress(description, total, initial)

    def _result(
        self,
        job: Job,
        file_name: str,
        status: FileTransferStatus,
        destination: Path,
        *,
        bytes_transferred: int = 0,
        sha1: str | None = None,
    ) -> FileTransferResult:
        return FileTransferResult(
            job_id=job.job_id,
            file_name=file_name,
            status=status,
            destination=destination,
            bytes_transferred=bytes_transferred,
            sha1=sha1,
        )


__all__ = ["FileTransferEngine"]
