import argparse
import logging
from dataclasses import dataclass
from pathlib import Path

from oss_multipart.config import UploadConfig
from oss_multipart.errors import UploadError
from oss_multipart.log import configure_logging
from oss_multipart.s3.api import S3Client
from oss_multipart.s3.types import S3Credentials, S3UploadTarget
from oss_multipart.types import SizeSuffix


@dataclass
class Args:
    src: Path
    bucket: str
    key: str
    part_size: SizeSuffix | None
    concurrency: int | None
    retries: int | None
    timeout: float | None
    verbose: bool


def _parse_args(argv: list[str] | None = None) -> Args:
    parser = argparse.ArgumentParser(
        description="Upload a local file to an S3 compatible bucket using multipart upload."
    )
    parser.add_argument("src", help="File to upload", type=Path)
    parser.add_argument("bucket", help="Destination bucket")
    parser.add_argument("key", help="Destination object key")
    parser.add_argument("-v", "--verbose", help="Verbose output", action="store_true")
    parser.add_argument(
        "--part-size",
        help="Part size in SizeSuffix form (e.g. 16MB), defaults to OSS_PART_SIZE or 16MB",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--concurrency",
        help="Max number of parts to upload in parallel",
        type=int,
        default=None,
    )
    parser.add_argument(
        "--retries", help="Retries per part for transient errors", type=int, default=None
    )
    parser.add_argument(
        "--timeout",
        help="Abort the upload after this many seconds",
        type=float,
        default=None,
    )
    args = parser.parse_args(argv)
    return Args(
        src=args.src,
        bucket=args.bucket,
        key=args.key,
        part_size=SizeSuffix(args.part_size) if args.part_size else None,
        concurrency=args.concurrency,
        retries=args.retries,
        timeout=args.timeout,
        verbose=args.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = _parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        config = UploadConfig.from_env()
        if args.part_size is not None:
            config.part_size = args.part_size.as_int()
        if args.concurrency is not None:
            config.max_concurrency = args.concurrency
        if args.retries is not None:
            config.max_part_retries = args.retries
        config.validate()
        credentials = S3Credentials.from_env()
        client = S3Client(credentials, upload_config=config)
        target = S3UploadTarget(
            src_file=args.src,
            src_file_size=None,
            bucket_name=args.bucket,
            s3_key=args.key,
        )
        rslt = client.upload_file(target, timeout=args.timeout)
    except UploadError as e:
        print(f"Error: {e}")
        return 1
    print(f"Uploaded {args.src} to {args.bucket}/{args.key} ({rslt.name})")
    return 0


if __name__ == "__main__":
    import sys

    sys.exit(main())
