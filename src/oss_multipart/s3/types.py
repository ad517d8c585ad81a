import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from oss_multipart.errors import InvalidArgument


class S3Provider(Enum):
    S3 = "s3"  # generic S3
    BACKBLAZE = "b2"
    DIGITAL_OCEAN = "DigitalOcean"
    ALIBABA = "Alibaba"
    MINIO = "Minio"

    @staticmethod
    def from_str(value: str) -> "S3Provider":
        """Convert string to S3Provider."""
        for provider in S3Provider:
            if value.lower() == provider.value.lower():
                return provider
        if value.lower() in ("aws", "amazon"):
            return S3Provider.S3
        if value.lower() in ("oss", "aliyun"):
            return S3Provider.ALIBABA
        raise ValueError(f"Unknown S3Provider: {value}")


_ACCESS_KEY_ID_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass
class S3Credentials:
    """Credentials for accessing S3."""

    provider: S3Provider
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    region_name: str | None = None
    endpoint_url: str | None = None

    def validate(self) -> "S3Credentials":
        if not self.access_key_id:
            raise InvalidArgument("access_key_id cannot be empty")
        if not _ACCESS_KEY_ID_PATTERN.match(self.access_key_id):
            raise InvalidArgument(
                "access_key_id may only contain letters, digits and underscores"
            )
        if not self.secret_access_key:
            raise InvalidArgument("secret_access_key cannot be empty")
        if self.endpoint_url is not None:
            host = self.endpoint_url.split("://", 1)[-1]
            if not host or ("." not in host and not host.startswith("localhost")):
                raise InvalidArgument(f"endpoint is not a valid host: {self.endpoint_url}")
        return self

    def redacted(self) -> dict:
        return {
            "provider": self.provider.value,
            "access_key_id": self.access_key_id[:4] + "...",
            "secret": self.secret_access_key[:4] + "...",
            "endpoint_url": self.endpoint_url,
            "region": self.region_name,
        }

    @staticmethod
    def from_env(prefix: str = "OSS_", dotenv: bool = True) -> "S3Credentials":
        if dotenv:
            load_dotenv()
        access_key_id = os.getenv(prefix + "ACCESS_KEY_ID")
        secret_access_key = os.getenv(prefix + "SECRET_ACCESS_KEY")
        if not access_key_id or not secret_access_key:
            raise InvalidArgument(
                f"{prefix}ACCESS_KEY_ID and {prefix}SECRET_ACCESS_KEY must be set"
            )
        provider = S3Provider.from_str(os.getenv(prefix + "PROVIDER") or "s3")
        out = S3Credentials(
            provider=provider,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=os.getenv(prefix + "SESSION_TOKEN") or None,
            region_name=os.getenv(prefix + "REGION") or None,
            endpoint_url=os.getenv(prefix + "ENDPOINT") or None,
        )
        return out.validate()


@dataclass
class S3UploadTarget:
    """Target information for S3 upload."""

    src_file: Path
    src_file_size: int | None
    bucket_name: str
    s3_key: str
