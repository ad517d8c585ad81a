"""
Per-part retry policy.

``classify_failure`` decides from the error signal alone whether another
attempt can help. ``RetryPolicy.run`` drives the attempts with exponential
backoff and escalates exhausted transient failures to permanent ones.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from threading import Event
from typing import Callable, TypeVar

from oss_multipart.errors import (
    PartPermanentFailure,
    PartTransientFailure,
    UploadCancelled,
    UploadError,
)
from oss_multipart.store import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_HTTP_TOO_MANY_REQUESTS = 429


class FailureKind(Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


def classify_failure(error: BaseException) -> FailureKind:
    if isinstance(error, PartTransientFailure):
        return FailureKind.TRANSIENT
    if isinstance(error, UploadError):
        return FailureKind.PERMANENT
    if isinstance(error, StoreError):
        status = error.status_code
        if error.network or status is None:
            return FailureKind.TRANSIENT
        if status == _HTTP_TOO_MANY_REQUESTS or status >= 500:
            return FailureKind.TRANSIENT
        return FailureKind.PERMANENT
    if isinstance(error, (ConnectionError, TimeoutError)):
        return FailureKind.TRANSIENT
    return FailureKind.PERMANENT


# (attempt number, duration in seconds, error or None on success)
AttemptCallback = Callable[[int, float, Exception | None], None]


@dataclass
class RetryPolicy:
    max_retries: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 30.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.backoff_base < 0 or self.backoff_max < 0:
            raise ValueError("backoff values must be >= 0")

    def delay(self, retry: int) -> float:
        return min(self.backoff_base * (2**retry), self.backoff_max)

    def run(
        self,
        fn: Callable[[], T],
        part_number: int | None = None,
        stop: Event | None = None,
        on_attempt: AttemptCallback | None = None,
        deadline: float | None = None,
    ) -> tuple[T, int]:
        """Call fn until it succeeds, returns (result, attempts).

        A set stop event or a passed deadline (time.monotonic based) cuts the
        backoff sleep short and raises UploadCancelled.
        """
        attempts = self.max_retries + 1  # Add one for the initial attempt
        for retry in range(attempts):
            attempt = retry + 1
            start = time.monotonic()
            try:
                out = fn()
            except Exception as e:
                duration = time.monotonic() - start
                if isinstance(e, UploadError) and not isinstance(
                    e, PartTransientFailure
                ):
                    if e.part_number is None:
                        e.part_number = part_number
                    if on_attempt is not None:
                        on_attempt(attempt, duration, e)
                    raise
                if classify_failure(e) is FailureKind.PERMANENT:
                    if on_attempt is not None:
                        on_attempt(attempt, duration, e)
                    raise PartPermanentFailure(
                        "permanent failure", part_number=part_number, cause=e
                    ) from e
                transient = e
                if not isinstance(transient, PartTransientFailure):
                    transient = PartTransientFailure(
                        "transient failure", part_number=part_number, cause=e
                    )
                if on_attempt is not None:
                    on_attempt(attempt, duration, transient)
                if attempt == attempts:
                    raise PartPermanentFailure(
                        f"giving up after {attempts} attempts",
                        part_number=part_number,
                        cause=e,
                    ) from transient
                sleep_time = self.delay(retry)
                logger.warning(
                    f"Transient error on part {part_number} (attempt {attempt}/{attempts}): {e}, retrying in {sleep_time:.2f}s"
                )
                self._backoff(sleep_time, part_number, stop, deadline, transient)
                continue
            if on_attempt is not None:
                on_attempt(attempt, time.monotonic() - start, None)
            return out, attempt
        raise AssertionError("Should not reach here")

    def _backoff(
        self,
        sleep_time: float,
        part_number: int | None,
        stop: Event | None,
        deadline: float | None,
        cause: Exception,
    ) -> None:
        timed_out = False
        if deadline is not None:
            remaining = max(deadline - time.monotonic(), 0.0)
            if remaining <= sleep_time:
                sleep_time = remaining
                timed_out = True
        if stop is None:
            time.sleep(sleep_time)
        elif stop.wait(sleep_time):
            raise UploadCancelled(
                "stopped while waiting to retry", part_number=part_number, cause=cause
            ) from cause
        if timed_out:
            raise UploadCancelled(
                "upload timed out while waiting to retry",
                part_number=part_number,
                cause=cause,
            ) from cause
