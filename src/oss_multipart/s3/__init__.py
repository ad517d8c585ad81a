from .api import S3Client
from .create import S3Config, create_s3_client
from .store import S3ObjectStore
from .types import S3Credentials, S3Provider, S3UploadTarget

__all__ = [
    "S3Client",
    "S3Config",
    "S3Credentials",
    "S3ObjectStore",
    "S3Provider",
    "S3UploadTarget",
    "create_s3_client",
]
