import logging
import warnings
from dataclasses import dataclass

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from oss_multipart.s3.types import S3Credentials, S3Provider

logger = logging.getLogger(__name__)

_DEFAULT_BACKBLAZE_ENDPOINT = "https://s3.us-west-002.backblazeb2.com"
_MAX_CONNECTIONS = 10
_TIMEOUT_READ = 120
_TIMEOUT_CONNECT = 60


@dataclass
class S3Config:
    max_pool_connections: int | None = None
    timeout_connection: int | None = None
    timeout_read: int | None = None
    verbose: bool | None = None

    def resolve_defaults(self) -> None:
        self.max_pool_connections = self.max_pool_connections or _MAX_CONNECTIONS
        self.timeout_connection = self.timeout_connection or _TIMEOUT_CONNECT
        self.timeout_read = self.timeout_read or _TIMEOUT_READ
        self.verbose = self.verbose or False


def _endpoint_url(s3_creds: S3Credentials, s3_config: S3Config) -> str | None:
    endpoint_url = s3_creds.endpoint_url
    if s3_creds.provider == S3Provider.BACKBLAZE:
        endpoint_url = endpoint_url or _DEFAULT_BACKBLAZE_ENDPOINT
    if (endpoint_url is not None) and not (endpoint_url.startswith("http")):
        if s3_config.verbose:
            warnings.warn(
                f"Endpoint URL is schema naive: {endpoint_url}, assuming HTTPS"
            )
        endpoint_url = f"https://{endpoint_url}"
    return endpoint_url


def create_s3_client(
    s3_creds: S3Credentials, s3_config: S3Config | None = None
) -> BaseClient:
    """Create and return an S3 client."""
    s3_config = s3_config or S3Config()
    s3_config.resolve_defaults()
    provider = s3_creds.provider
    s3_options: dict = {}
    if provider == S3Provider.BACKBLAZE:
        # BackBlaze rejects the newer checksum header
        s3_options["payload_signing_enabled"] = False
    elif provider == S3Provider.ALIBABA:
        # OSS only serves virtual hosted style requests
        s3_options["addressing_style"] = "virtual"
    elif provider == S3Provider.MINIO:
        s3_options["addressing_style"] = "path"
    logger.debug(f"Creating {provider.value} S3 client")
    session = boto3.session.Session()  # type: ignore
    return session.client(
        service_name="s3",
        aws_access_key_id=s3_creds.access_key_id,
        aws_secret_access_key=s3_creds.secret_access_key,
        aws_session_token=s3_creds.session_token,
        endpoint_url=_endpoint_url(s3_creds, s3_config),
        config=Config(
            signature_version="s3v4",
            region_name=s3_creds.region_name,
            max_pool_connections=s3_config.max_pool_connections,
            read_timeout=s3_config.timeout_read,
            connect_timeout=s3_config.timeout_connection,
            # retries are driven per part by the upload coordinator
            retries={"max_attempts": 1, "mode": "standard"},
            s3=s3_options or None,
        ),
    )
