import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class Outcome(Enum):
    SUCCESS = "success"
    RETRY = "retry"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass
class UploadEvent:
    operation: str  # upload, initiate, upload_part, complete, abort, put_single
    bucket: str
    key: str
    outcome: Outcome
    duration: float
    part_number: int | None = None
    attempt: int | None = None
    error: str | None = None

    def to_json(self) -> dict:
        return {
            "operation": self.operation,
            "bucket": self.bucket,
            "key": self.key,
            "outcome": self.outcome.value,
            "duration": round(self.duration, 6),
            "part_number": self.part_number,
            "attempt": self.attempt,
            "error": self.error,
        }


EventSink = Callable[[UploadEvent], None]


def log_event(event: UploadEvent) -> None:
    """Default sink, writes events to the oss_multipart.events logger."""
    level = logging.DEBUG
    if event.outcome is Outcome.RETRY:
        level = logging.INFO
    elif event.outcome in (Outcome.FAILURE, Outcome.CANCELLED):
        level = logging.WARNING
    elif event.part_number is None:
        level = logging.INFO
    logger.log(level, f"upload event: {event.to_json()}")
