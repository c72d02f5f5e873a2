"""Per-slot progress bars for concurrent downloads."""

from __future__ import annotations

import threading

from tqdm import tqdm

from asvo_client.domain.ports import ProgressBar


class NullProgressBar:
    """Progress bar that records nothing."""

    def advance(self, num_bytes: int) -> None:
        return None

    def close(self) -> None:
        return None


class NullProgressDisplay:
    """Display used when progress output is disabled."""

    def open_bar(
        self,
        slot: int,
        description: str,
        total: int | None,
        initial: int = 0,
    ) -> ProgressBar:
        return NullProgressBar()


class TqdmProgressBar:
    """One ``tqdm`` bar whose updates are serialised with its siblings."""

    def __init__(self, bar: tqdm, lock: threading.Lock) -> None:
        self._bar = bar
        self._lock = lock

    def advance(self, num_bytes: int) -> None:
        with self._lock:
            self._bar.update(num_bytes)

    def close(self) -> None:
        with self._lock:
            self._bar.close()


class TqdmProgressDisplay:
    """Keep one terminal line per worker slot.

    Every slot writes at a fixed ``position`` and all updates share a single
    lock, so concurrent workers never interleave partial lines.
    """

    def __init__(self, leave: bool = False) -> None:
        self._leave = leave
        self._lock = threading.Lock()

    def open_bar(
        self,
        slot: int,
        description: str,
        total: int | None,
        initial: int = 0,
    ) -> ProgressBar:
        with self._lock:
            bar = tqdm(
                total=total,
                initial=initial,
                desc=description,
                position=slot,
                leave=self._leave,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                dynamic_ncols=True,
            )
        return TqdmProgressBar(bar, self._lock)


__all__ = [
    "NullProgressBar",
    "NullProgressDisplay",
    "TqdmProgressBar",
    "TqdmProgressDisplay",
]
