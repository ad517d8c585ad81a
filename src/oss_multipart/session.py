from dataclasses import dataclass, field
from threading import Event, Lock


@dataclass(frozen=True)
class FinishedPart:
    part_number: int
    etag: str

    def __post_init__(self):
        assert isinstance(self.part_number, int)
        assert isinstance(self.etag, str)

    def to_json(self) -> dict:
        # amazon s3 style dict
        return {"PartNumber": self.part_number, "ETag": self.etag}

    @staticmethod
    def to_json_array(parts: list["FinishedPart"]) -> list[dict]:
        ordered = sorted(parts, key=lambda x: x.part_number)
        return [p.to_json() for p in ordered]

    @staticmethod
    def from_json(json: dict) -> "FinishedPart":
        part_number = json.get("PartNumber") or json.get("part_number")
        etag = json.get("ETag") or json.get("etag")
        assert isinstance(part_number, int)
        assert isinstance(etag, str)
        return FinishedPart(part_number=part_number, etag=etag)


@dataclass
class PartResult:
    part_number: int
    etag: str | None = None
    success: bool = False
    error: Exception | None = None
    attempts: int = 0

    @staticmethod
    def ok(part_number: int, etag: str, attempts: int = 1) -> "PartResult":
        return PartResult(
            part_number=part_number, etag=etag, success=True, attempts=attempts
        )

    @staticmethod
    def failed(part_number: int, error: Exception, attempts: int = 1) -> "PartResult":
        return PartResult(
            part_number=part_number, success=False, error=error, attempts=attempts
        )

    def finished(self) -> FinishedPart:
        assert self.success and self.etag is not None
        return FinishedPart(part_number=self.part_number, etag=self.etag)


@dataclass
class UploadSession:
    """State of one multipart upload, owned by the coordinator call that created it."""

    session_id: str
    bucket: str
    key: str
    total_size: int
    part_size: int
    parts: list[PartResult] = field(default_factory=list)
    stop: Event = field(default_factory=Event)
    _lock: Lock = field(default_factory=Lock, repr=False)
    _first_failure: PartResult | None = field(default=None, repr=False)
    _stop_error: Exception | None = field(default=None, repr=False)

    def add_result(self, result: PartResult) -> bool:
        """Record a part result. Returns True if this is the first failure.

        Results arriving after the session was stopped are discarded.
        """
        with self._lock:
            if self.stop.is_set():
                return False
            if result.success:
                self.parts.append(result)
                return False
            self._first_failure = result
            self.stop.set()
            return True

    def cancel(self, error: Exception) -> bool:
        """Stop the session for a reason other than a part failure."""
        with self._lock:
            if self.stop.is_set():
                return False
            self._stop_error = error
            self.stop.set()
            return True

    @property
    def first_failure(self) -> PartResult | None:
        with self._lock:
            return self._first_failure

    @property
    def stop_error(self) -> Exception | None:
        with self._lock:
            return self._stop_error

    def finished_parts(self) -> list[FinishedPart]:
        with self._lock:
            ordered = sorted(self.parts, key=lambda x: x.part_number)
            return [p.finished() for p in ordered]

    def finished(self) -> int:
        with self._lock:
            return len(self.parts)
