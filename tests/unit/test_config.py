"""
Unit test file.
"""

import os
import unittest
from unittest import mock

from oss_multipart import InvalidArgument, UploadConfig
from oss_multipart.s3.types import S3Credentials, S3Provider


class UploadConfigTester(unittest.TestCase):
    """Test configuration defaults, parsing and validation."""

    def test_defaults(self) -> None:
        config = UploadConfig().validate()
        self.assertEqual(config.part_size, 16 * 1024 * 1024)
        self.assertEqual(config.max_concurrency, 8)
        self.assertEqual(config.max_part_retries, 3)
        self.assertEqual(config.min_part_size, 5 * 1024 * 1024)
        policy = config.retry_policy()
        self.assertEqual(policy.max_retries, 3)

    def test_size_suffix(self) -> None:
        config = UploadConfig(part_size="64MB").validate()
        self.assertEqual(config.part_size, 64 * 1024 * 1024)

    def test_invalid(self) -> None:
        with self.assertRaises(InvalidArgument):
            UploadConfig(part_size=0).validate()
        with self.assertRaises(InvalidArgument):
            UploadConfig(part_size="lots").validate()
        with self.assertRaises(InvalidArgument):
            UploadConfig(max_concurrency=0).validate()
        with self.assertRaises(InvalidArgument):
            UploadConfig(max_part_retries=-1).validate()
        with self.assertRaises(InvalidArgument):
            UploadConfig(backoff_base=2.0, backoff_max=1.0).validate()

    def test_part_size_below_floor(self) -> None:
        with self.assertRaises(InvalidArgument):
            UploadConfig(part_size="1MB").validate()
        config = UploadConfig(part_size="1MB", min_part_size="1MB").validate()
        self.assertEqual(config.part_size, 1024 * 1024)

    def test_from_env(self) -> None:
        env = {
            "OSS_PART_SIZE": "32MB",
            "OSS_MAX_CONCURRENCY": "4",
            "OSS_MAX_PART_RETRIES": "7",
            "OSS_BACKOFF_BASE": "0.25",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = UploadConfig.from_env(dotenv=False)
        self.assertEqual(config.part_size, 32 * 1024 * 1024)
        self.assertEqual(config.max_concurrency, 4)
        self.assertEqual(config.max_part_retries, 7)
        self.assertEqual(config.backoff_base, 0.25)
        self.assertEqual(config.backoff_max, 30.0)

    def test_from_env_invalid(self) -> None:
        with mock.patch.dict(os.environ, {"OSS_MAX_CONCURRENCY": "many"}, clear=True):
            with self.assertRaises(InvalidArgument):
                UploadConfig.from_env(dotenv=False)


class S3CredentialsTester(unittest.TestCase):
    """Test credential loading and checks."""

    def test_from_env(self) -> None:
        env = {
            "OSS_PROVIDER": "b2",
            "OSS_ACCESS_KEY_ID": "test_access_key_id_123",
            "OSS_SECRET_ACCESS_KEY": "secret",
            "OSS_ENDPOINT": "s3.us-west-002.backblazeb2.com",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            creds = S3Credentials.from_env(dotenv=False)
        self.assertEqual(creds.provider, S3Provider.BACKBLAZE)
        self.assertEqual(creds.access_key_id, "test_access_key_id_123")
        self.assertIsNone(creds.region_name)
        self.assertEqual(creds.redacted()["access_key_id"], "test...")

    def test_missing(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(InvalidArgument):
                S3Credentials.from_env(dotenv=False)

    def test_validate(self) -> None:
        with self.assertRaises(InvalidArgument):
            S3Credentials(S3Provider.S3, "bad key!", "secret").validate()
        with self.assertRaises(InvalidArgument):
            S3Credentials(S3Provider.S3, "AKIA123", "").validate()
        with self.assertRaises(InvalidArgument):
            S3Credentials(S3Provider.S3, "AKIA123", "s", endpoint_url="https://").validate()
        S3Credentials(
            S3Provider.MINIO, "minioadmin", "minioadmin", endpoint_url="http://localhost:9000"
        ).validate()

    def test_provider_from_str(self) -> None:
        self.assertEqual(S3Provider.from_str("DigitalOcean"), S3Provider.DIGITAL_OCEAN)
        self.assertEqual(S3Provider.from_str("aliyun"), S3Provider.ALIBABA)
        self.assertEqual(S3Provider.from_str("s3"), S3Provider.S3)
        with self.assertRaises(ValueError):
            S3Provider.from_str("ftp")


if __name__ == "__main__":
    unittest.main()
