from __future__ import annotations

import hashlib
from pathlib import Path

from asvo_client.infrastructure.transfers.hashing import HashingStream, hash_file
from asvo_client.infrastructure.transfers.progress import TqdmProgressDisplay


def test_stream_hashes_bytes_as_they_arrive() -> None:
    chunks = [b"abc", b"", b"defgh", b"ij"]
    seen: list[int] = []
    stream = HashingStream(chunks, on_bytes=seen.append)

    assert stream.read(4) == b"abcd"
    assert stream.bytes_read == 8
    assert stream.read() == b"efghij"
    assert stream.read(1) == b""
    assert seen == [3, 5, 2]
    assert stream.hexdigest() == hashlib.sha1(b"abcdefghij").hexdigest()


def test_drain_counts_bytes_the_reader_left_behind() -> None:
    stream = HashingStream([b"header", b"padding", b"more"])

    assert stream.read(3) == b"hea"
    assert stream.drain() == len(b"der" + b"padding" + b"more")
    assert stream.hexdigest() == hashlib.sha1(b"headerpaddingmore").hexdigest()


def test_hash_file_continues_an_existing_digest(tmp_path: Path) -> None:
    path = tmp_path / "part"
    path.write_bytes(b"first half")
    hasher = hashlib.sha1(b"prefix ")

    assert hash_file(path, hasher, chunk_size=3) is hasher
    assert hasher.hexdigest() == hashlib.sha1(b"prefix first half").hexdigest()


def test_tqdm_bars_track_their_own_slot() -> None:
    display = TqdmProgressDisplay()
    first = display.open_bar(0, "575929: a.tar", total=100, initial=40)
    second = display.open_bar(1, "575930: b.tar", total=None)

    first.advance(10)
    second.advance(5)

    assert first._bar.n == 50
    assert first._bar.pos == 0
    assert second._bar.n == 5
    first.close()
    second.close()
