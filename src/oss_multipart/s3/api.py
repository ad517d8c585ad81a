import json
import warnings
from threading import Event

from botocore.client import BaseClient

from oss_multipart.config import UploadConfig
from oss_multipart.coordinator import MultipartUploadCoordinator
from oss_multipart.events import EventSink
from oss_multipart.s3.create import S3Config, create_s3_client
from oss_multipart.s3.store import S3ObjectStore
from oss_multipart.s3.types import S3Credentials, S3UploadTarget
from oss_multipart.types import UploadResult


class S3Client:
    def __init__(
        self,
        credentials: S3Credentials,
        upload_config: UploadConfig | None = None,
        s3_config: S3Config | None = None,
        event_sink: EventSink | None = None,
        client: BaseClient | None = None,
    ) -> None:
        self.credentials: S3Credentials = credentials
        self.client: BaseClient = client or create_s3_client(credentials, s3_config)
        self.store = S3ObjectStore(self.client)
        self.coordinator = MultipartUploadCoordinator(
            self.store, config=upload_config, event_sink=event_sink
        )

    def upload_file(
        self,
        target: S3UploadTarget,
        cancel_event: Event | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        try:
            return self.coordinator.upload(
                bucket=target.bucket_name,
                key=target.s3_key,
                source=target.src_file,
                total_size=target.src_file_size,
                cancel_event=cancel_event,
                timeout=timeout,
            )
        except Exception as e:
            info_json = {"bucket": target.bucket_name, "key": target.s3_key}
            info_json.update(self.credentials.redacted())
            info_json_str = json.dumps(info_json, indent=2)
            warnings.warn(f"Error uploading file: {e}\nInfo:\n\n{info_json_str}")
            raise
