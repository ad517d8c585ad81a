import argparse
import logging
from dataclasses import dataclass
from datetime import timedelta

from oss_multipart.cleanup import abort_dangling_uploads
from oss_multipart.errors import UploadError
from oss_multipart.log import configure_logging
from oss_multipart.s3.create import create_s3_client
from oss_multipart.s3.store import S3ObjectStore
from oss_multipart.s3.types import S3Credentials
from oss_multipart.store import StoreError


@dataclass
class Args:
    bucket: str
    prefix: str
    older_than_hours: float | None
    dry_run: bool
    verbose: bool


def _parse_args(argv: list[str] | None = None) -> Args:
    parser = argparse.ArgumentParser(
        description="Abort multipart uploads that were started but never completed."
    )
    parser.add_argument("bucket", help="Bucket to clean")
    parser.add_argument("--prefix", help="Only keys under this prefix", default="")
    parser.add_argument(
        "--older-than-hours",
        help="Only sessions initiated at least this many hours ago",
        type=float,
        default=None,
    )
    parser.add_argument(
        "--dry-run", help="List sessions without aborting them", action="store_true"
    )
    parser.add_argument("-v", "--verbose", help="Verbose output", action="store_true")
    args = parser.parse_args(argv)
    return Args(
        bucket=args.bucket,
        prefix=args.prefix,
        older_than_hours=args.older_than_hours,
        dry_run=args.dry_run,
        verbose=args.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = _parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    older_than = None
    if args.older_than_hours is not None:
        older_than = timedelta(hours=args.older_than_hours)
    try:
        credentials = S3Credentials.from_env()
        store = S3ObjectStore(create_s3_client(credentials))
        aborted = abort_dangling_uploads(
            store,
            args.bucket,
            prefix=args.prefix,
            older_than=older_than,
            dry_run=args.dry_run,
        )
    except (UploadError, StoreError) as e:
        print(f"Error: {e}")
        return 1
    verb = "Would abort" if args.dry_run else "Aborted"
    for upload in aborted:
        print(f"{verb} {upload.session_id} {args.bucket}/{upload.key}")
    print(f"{verb} {len(aborted)} multipart upload(s)")
    return 0


if __name__ == "__main__":
    import sys

    sys.exit(main())
