"""Runtime helpers for concurrent transfers."""

from asvo_client.infrastructure.transfers.runtime.slot_based_execution_queue import (
    QueueExecutionControl,
    SlotBasedExecutionQueue,
)

__all__ = ["QueueExecutionControl", "SlotBasedExecutionQueue"]
