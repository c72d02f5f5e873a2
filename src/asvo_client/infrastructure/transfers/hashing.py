"""SHA-1 accumulating pass-through over a streamed response body."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Any

_DEFAULT_READ_CHUNK_BYTES = 1024 * 1024

ByteCallback = Callable[[int], None]


class HashingStream:
    """File-like reader that hashes every byte pulled from ``chunks``.

    Bytes are hashed as they arrive from the network, not as the consumer
    reads them, so ``drain`` can account for trailing data a decoder never
    asked for.
    """

    def __init__(
        self,
        chunks: Iterable[bytes],
        hasher: Any | None = None,
        on_bytes: ByteCallback | None = None,
    ) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._hasher = hasher if hasher is not None else hashlib.sha1()
        self._on_bytes = on_bytes
        self._buffer = bytearray()
        self._exhausted = False
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            while self._pull():
                pass
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        while len(self._buffer) < size and self._pull():
            pass
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def readable(self) -> bool:
        return True

    def drain(self) -> int:
        """Consume and hash whatever the reader left behind."""

        leftover = len(self._buffer)
        self._buffer.clear()
        while self._pull():
            leftover += len(self._buffer)
            self._buffer.clear()
        return leftover

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()

    def _pull(self) -> bool:
        if self._exhausted:
            return False
        for chunk in self._chunks:
            if not chunk:
                continue
            self._hasher.update(chunk)
            self.bytes_read += len(chunk)
            if self._on_bytes is not None:
                self._on_bytes(len(chunk))
            self._buffer.extend(chunk)
            return True
        self._exhausted = True
        return False


def hash_file(
    path: Path,
    hasher: Any | None = None,
    chunk_size: int = _DEFAULT_READ_CHUNK_BYTES,
) -> Any:
    """Feed the contents of ``path`` into ``hasher`` and return it."""

    hasher = hasher if hasher is not None else hashlib.sha1()
    with path.open("rb") as handle:
        while chunk := handle.read(chunk_size):
            hasher.update(chunk)
    return hasher


__all__ = ["ByteCallback", "HashingStream", "hash_file"]
