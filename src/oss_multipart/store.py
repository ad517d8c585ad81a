from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from oss_multipart.session import FinishedPart


class StoreError(Exception):
    """Error signal raised by an ObjectStoreClient.

    ``status_code`` is the HTTP status of the store's response, ``None`` when
    no response was received. ``network`` marks connection level failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        network: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.network = network

    def __str__(self) -> str:
        details: list[str] = []
        if self.status_code is not None:
            details.append(f"status={self.status_code}")
        if self.code:
            details.append(f"code={self.code}")
        if self.network:
            details.append("network")
        if not details:
            return self.message
        return f"{self.message} [{', '.join(details)}]"


@dataclass
class PendingUpload:
    key: str
    session_id: str
    initiated: datetime | None = None


class ObjectStoreClient(ABC):
    """The object-storage operations the upload coordinator depends on."""

    @abstractmethod
    def initiate(self, bucket: str, key: str) -> str:
        """Start a multipart session and return its id."""

    @abstractmethod
    def upload_part(self, session_id: str, part_number: int, data: bytes) -> str:
        """Upload one part and return its etag."""

    @abstractmethod
    def complete(self, session_id: str, parts: list[FinishedPart]) -> None:
        pass

    @abstractmethod
    def abort(self, session_id: str) -> None:
        pass

    @abstractmethod
    def put_single(self, bucket: str, key: str, data: bytes) -> None:
        pass

    def list_multipart_uploads(
        self, bucket: str, prefix: str = ""
    ) -> list[PendingUpload]:
        raise NotImplementedError(
            f"{type(self).__name__} cannot list multipart uploads"
        )

    def list_parts(self, session_id: str) -> list[FinishedPart]:
        raise NotImplementedError(f"{type(self).__name__} cannot list parts")

    def abort_pending(self, bucket: str, upload: PendingUpload) -> None:
        """Abort a session found by list_multipart_uploads."""
        self.abort(upload.session_id)
