"""
Unit test file.
"""

import unittest
from datetime import datetime, timedelta, timezone

from fake_store import FakeObjectStore, http_error

from oss_multipart.cleanup import abort_dangling_uploads


class AbortDanglingTester(unittest.TestCase):
    """Test aborting in-progress multipart sessions."""

    def setUp(self) -> None:
        self.store = FakeObjectStore()
        self.old = self.store.initiate("bucket", "backups/old.bin")
        self.new = self.store.initiate("bucket", "backups/new.bin")
        self.other = self.store.initiate("bucket", "media/clip.mp4")
        self.store.initiated[self.old] = datetime.now(timezone.utc) - timedelta(days=2)

    def test_abort_prefix(self) -> None:
        aborted = abort_dangling_uploads(self.store, "bucket", prefix="backups/")
        self.assertEqual(
            sorted(u.session_id for u in aborted), sorted([self.old, self.new])
        )
        self.assertEqual(self.store.count("abort"), 2)
        self.assertEqual(list(self.store.sessions), [self.other])

    def test_older_than(self) -> None:
        aborted = abort_dangling_uploads(
            self.store, "bucket", older_than=timedelta(hours=1)
        )
        self.assertEqual([u.session_id for u in aborted], [self.old])

    def test_dry_run(self) -> None:
        aborted = abort_dangling_uploads(self.store, "bucket", dry_run=True)
        self.assertEqual(len(aborted), 3)
        self.assertEqual(self.store.count("abort"), 0)

    def test_abort_failure_skipped(self) -> None:
        self.store.abort_error = http_error(403, "AccessDenied")
        aborted = abort_dangling_uploads(self.store, "bucket")
        self.assertEqual(aborted, [])
        self.assertEqual(self.store.count("abort"), 3)


if __name__ == "__main__":
    unittest.main()
