"""Exponential backoff around single-file transfers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from asvo_client.config import Settings
from asvo_client.domain.errors import AsvoError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def is_transient_error(exc: BaseException) -> bool:
    """Only errors tagged transient where they were raised are retried."""

    return isinstance(exc, AsvoError) and exc.is_transient


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Backoff parameters for one transfer attempt chain.

    The n-th wait is ``initial_seconds * multiplier ** (n - 1)`` capped at
    ``max_interval_seconds``; retrying stops once ``max_elapsed_seconds`` have
    passed since the first attempt and the last error is re-raised.
    """

    initial_seconds: float = 0.5
    multiplier: float = 1.5
    max_interval_seconds: float = 60.0
    max_elapsed_seconds: float = 900.0
    max_attempts: int | None = None
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            initial_seconds=settings.retry_initial_seconds,
            multiplier=settings.retry_multiplier,
            max_interval_seconds=settings.retry_max_interval_seconds,
            max_elapsed_seconds=settings.retry_max_elapsed_seconds,
        )

    def retrying(self) -> Retrying:
        stop = stop_after_delay(self.max_elapsed_seconds)
        if self.max_attempts is not None:
            stop = stop | stop_after_attempt(self.max_attempts)
        return Retrying(
            stop=stop,
            wait=wait_exponential(
                multiplier=self.initial_seconds,
                exp_base=self.multiplier,
                max=self.max_interval_seconds,
            ),
            retry=retry_if_exception(is_transient_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )

    def call(self, operation: Callable[[], T]) -> T:
        """Run ``operation`` until it succeeds, fails permanently or runs out of time."""

        return self.retrying()(operation)


__all__ = ["RetryPolicy", "is_transient_error"]
