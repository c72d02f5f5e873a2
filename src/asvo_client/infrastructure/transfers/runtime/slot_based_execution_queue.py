"""Bounded execution queue that hands out numbered worker slots."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

_DEFAULT_SLOT_ACQUIRE_TIMEOUT_SECONDS = 0.1

QueueStateCallback = Callable[[], Awaitable[None]]


@dataclass(slots=True)
class QueueExecutionControl:
    """Queue bookkeeping for one pending or running execution."""

    slot: int | None = None
    waiting_for_slot: bool = False

    @property
    def slot_acquired(self) -> bool:
        return self.slot is not None


class SlotBasedExecutionQueue:
    """Manage bounded concurrent execution with wait/queue semantics.

    Slots are numbered ``0 .. max_active_executions - 1`` so a caller can pin
    per-slot resources, such as a progress line, to the slot it holds.
    """

    def __init__(
        self,
        max_active_executions: int,
        slot_acquire_timeout_seconds: float = _DEFAULT_SLOT_ACQUIRE_TIMEOUT_SECONDS,
    ) -> None:
        self._max_active_executions = max(1, max_active_executions)
        self._slot_acquire_timeout_seconds = max(0.01, slot_acquire_timeout_seconds)
        self._free_slots: asyncio.Queue[int] = asyncio.Queue()
        for slot in range(self._max_active_executions):
            self._free_slots.put_nowait(slot)

    @property
    def max_active_executions(self) -> int:
        """Return queue capacity for concurrently active executions."""

        return self._max_active_executions

    @property
    def free_slots(self) -> int:
        return self._free_slots.qsize()

    async def wait_until_active(
        self,
        control: QueueExecutionControl,
        on_queue_state_change: QueueStateCallback | None = None,
    ) -> int:
        """Block until ``control`` holds a slot and return its number."""

        while True:
            if control.slot is not None:
                await self._set_waiting_for_slot(
                    control,
                    waiting_for_slot=False,
                    on_queue_state_change=on_queue_state_change,
                )
                return control.slot

            await self._set_waiting_for_slot(
                control,
                waiting_for_slot=True,
                on_queue_state_change=on_queue_state_change,
            )
            try:
                control.slot = await asyncio.wait_for(
                    self._free_slots.get(),
                    timeout=self._slot_acquire_timeout_seconds,
                )
            except TimeoutError:
                continue

    def release(self, control: QueueExecutionControl) -> None:
        """Return a previously acquired slot to the pool."""

        if control.slot is None:
            return
        slot = control.slot
        control.slot = None
        self._free_slots.put_nowait(slot)

    @asynccontextmanager
    async def occupy(
        self,
        control: QueueExecutionControl | None = None,
        on_queue_state_change: QueueStateCallback | None = None,
    ) -> AsyncIterator[int]:
        """Hold one slot for the duration of the ``async with`` block."""

        control = control or QueueExecutionControl()
        slot = await self.wait_until_active(control, on_queue_state_change)
        try:
            yield slot
        finally:
            self.release(control)

    async def _set_waiting_for_slot(
        self,
        control: QueueExecutionControl,
        *,
        waiting_for_slot: bool,
        on_queue_state_change: QueueStateCallback | None,
    ) -> None:
        """Update queued state and notify when the state actually changed."""

        if control.waiting_for_slot == waiting_for_slot:
            return
        control.waiting_for_slot = waiting_for_slot
        if on_queue_state_change is not None:
            await on_queue_state_change()


__all__ = ["QueueExecutionControl", "QueueStateCallback", "SlotBasedExecutionQueue"]
