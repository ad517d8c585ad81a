import logging
from threading import Lock
from typing import Any, Callable, TypeVar

from botocore.client import BaseClient
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from oss_multipart.session import FinishedPart
from oss_multipart.store import ObjectStoreClient, PendingUpload, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NETWORK_ERRORS = (BotoConnectionError, ConnectTimeoutError, ReadTimeoutError)


def _to_store_error(operation: str, e: Exception) -> StoreError:
    if isinstance(e, ClientError):
        response: dict = e.response or {}
        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        code = response.get("Error", {}).get("Code")
        return StoreError(f"{operation} failed: {e}", status_code=status, code=code)
    if isinstance(e, _NETWORK_ERRORS):
        return StoreError(f"{operation} failed: {e}", network=True)
    # remaining botocore errors are raised before a request is sent
    return StoreError(f"{operation} failed: {e}", status_code=400, code=type(e).__name__)


class S3ObjectStore(ObjectStoreClient):
    """ObjectStoreClient backed by a boto3 S3 client.

    Multipart session ids are the store's UploadId. The bucket and key of each
    session are remembered so that later calls only need the id.
    """

    def __init__(self, s3_client: BaseClient) -> None:
        self.client = s3_client
        self._sessions: dict[str, tuple[str, str]] = {}
        self._lock = Lock()

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except (ClientError, BotoCoreError) as e:
            raise _to_store_error(operation, e) from e

    def _lookup(self, session_id: str) -> tuple[str, str]:
        with self._lock:
            location = self._sessions.get(session_id)
        if location is None:
            raise StoreError(
                f"unknown multipart session {session_id}",
                status_code=404,
                code="NoSuchUpload",
            )
        return location

    def _remember(self, session_id: str, bucket: str, key: str) -> None:
        with self._lock:
            self._sessions[session_id] = (bucket, key)

    def _forget(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def initiate(self, bucket: str, key: str) -> str:
        mpu: dict = self._call(
            "create_multipart_upload",
            lambda: self.client.create_multipart_upload(Bucket=bucket, Key=key),
        )
        upload_id = mpu.get("UploadId")
        if not upload_id:
            raise StoreError(
                "UploadId not found in response", status_code=200, code="MissingUploadId"
            )
        self._remember(upload_id, bucket, key)
        logger.debug(f"Created multipart upload {upload_id} for {bucket}/{key}")
        return upload_id

    def upload_part(self, session_id: str, part_number: int, data: bytes) -> str:
        bucket, key = self._lookup(session_id)
        part: dict = self._call(
            "upload_part",
            lambda: self.client.upload_part(
                Bucket=bucket,
                Key=key,
                PartNumber=part_number,
                UploadId=session_id,
                Body=data,
            ),
        )
        etag = part.get("ETag")
        if not etag:
            raise StoreError(
                f"ETag not found in response for part {part_number}",
                status_code=200,
                code="MissingETag",
            )
        return etag

    def complete(self, session_id: str, parts: list[FinishedPart]) -> None:
        bucket, key = self._lookup(session_id)
        multipart_upload: dict[str, Any] = {"Parts": FinishedPart.to_json_array(parts)}
        self._call(
            "complete_multipart_upload",
            lambda: self.client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=session_id,
                MultipartUpload=multipart_upload,
            ),
        )
        self._forget(session_id)

    def abort(self, session_id: str) -> None:
        bucket, key = self._lookup(session_id)
        try:
            self._abort(bucket, key, session_id)
        finally:
            # abort is attempted once, the session is not reused either way
            self._forget(session_id)

    def abort_pending(self, bucket: str, upload: PendingUpload) -> None:
        self._abort(bucket, upload.key, upload.session_id)

    def _abort(self, bucket: str, key: str, session_id: str) -> None:
        self._call(
            "abort_multipart_upload",
            lambda: self.client.abort_multipart_upload(
                Bucket=bucket, Key=key, UploadId=session_id
            ),
        )

    def put_single(self, bucket: str, key: str, data: bytes) -> None:
        self._call(
            "put_object",
            lambda: self.client.put_object(Bucket=bucket, Key=key, Body=data),
        )

    def list_multipart_uploads(
        self, bucket: str, prefix: str = ""
    ) -> list[PendingUpload]:
        out: list[PendingUpload] = []
        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        while True:
            response: dict = self._call(
                "list_multipart_uploads",
                lambda: self.client.list_multipart_uploads(**params),
            )
            for upload in response.get("Uploads", []):
                pending = PendingUpload(
                    key=upload["Key"],
                    session_id=upload["UploadId"],
                    initiated=upload.get("Initiated"),
                )
                out.append(pending)
            if not response.get("IsTruncated"):
                break
            params["KeyMarker"] = response.get("NextKeyMarker")
            params["UploadIdMarker"] = response.get("NextUploadIdMarker")
        return out

    def list_parts(self, session_id: str) -> list[FinishedPart]:
        bucket, key = self._lookup(session_id)
        out: list[FinishedPart] = []
        params: dict[str, Any] = {"Bucket": bucket, "Key": key, "UploadId": session_id}
        while True:
            response: dict = self._call(
                "list_parts", lambda: self.client.list_parts(**params)
            )
            for part in response.get("Parts", []):
                out.append(FinishedPart.from_json(part))
            if not response.get("IsTruncated"):
                break
            params["PartNumberMarker"] = response.get("NextPartNumberMarker")
        out.sort(key=lambda x: x.part_number)
        return out
