"""
Unit test file.
"""

import threading
import time
import unittest

from fake_store import http_error, network_error

from oss_multipart import (
    FailureKind,
    PartPermanentFailure,
    RetryPolicy,
    SourceReadError,
    UploadCancelled,
    classify_failure,
)
from oss_multipart.errors import PartTransientFailure


class _Flaky:
    def __init__(self, errors: list[Exception]) -> None:
        self.errors = list(errors)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "etag"


class ClassifyFailureTester(unittest.TestCase):
    """Test transient/permanent classification."""

    def test_transient(self) -> None:
        for status in [500, 502, 503, 504, 429]:
            self.assertIs(classify_failure(http_error(status)), FailureKind.TRANSIENT)
        self.assertIs(classify_failure(network_error()), FailureKind.TRANSIENT)
        self.assertIs(classify_failure(ConnectionResetError()), FailureKind.TRANSIENT)
        self.assertIs(classify_failure(TimeoutError()), FailureKind.TRANSIENT)
        self.assertIs(
            classify_failure(PartTransientFailure("x")), FailureKind.TRANSIENT
        )

    def test_permanent(self) -> None:
        for status in [400, 401, 403, 404, 409]:
            self.assertIs(classify_failure(http_error(status)), FailureKind.PERMANENT)
        self.assertIs(classify_failure(SourceReadError("short")), FailureKind.PERMANENT)
        self.assertIs(classify_failure(ValueError("bad")), FailureKind.PERMANENT)


class RetryPolicyTester(unittest.TestCase):
    """Test the per-part retry loop."""

    def test_backoff_delays(self) -> None:
        policy = RetryPolicy(max_retries=5, backoff_base=0.5, backoff_max=3.0)
        self.assertEqual(
            [policy.delay(i) for i in range(5)], [0.5, 1.0, 2.0, 3.0, 3.0]
        )

    def test_retries_then_succeeds(self) -> None:
        fn = _Flaky([http_error(503), network_error()])
        policy = RetryPolicy(max_retries=2, backoff_base=0.0, backoff_max=0.0)
        out, attempts = policy.run(fn, part_number=4)
        self.assertEqual(out, "etag")
        self.assertEqual(attempts, 3)

    def test_escalates_after_max_retries(self) -> None:
        fn = _Flaky([http_error(503)] * 5)
        policy = RetryPolicy(max_retries=2, backoff_base=0.0, backoff_max=0.0)
        with self.assertRaises(PartPermanentFailure) as ctx:
            policy.run(fn, part_number=4)
        self.assertEqual(fn.calls, 3)
        self.assertEqual(ctx.exception.part_number, 4)

    def test_permanent_not_retried(self) -> None:
        fn = _Flaky([http_error(403)])
        policy = RetryPolicy(max_retries=5, backoff_base=0.0, backoff_max=0.0)
        with self.assertRaises(PartPermanentFailure):
            policy.run(fn, part_number=1)
        self.assertEqual(fn.calls, 1)

    def test_upload_errors_pass_through(self) -> None:
        fn = _Flaky([SourceReadError("short read")])
        policy = RetryPolicy(max_retries=5, backoff_base=0.0, backoff_max=0.0)
        with self.assertRaises(SourceReadError) as ctx:
            policy.run(fn, part_number=7)
        self.assertEqual(ctx.exception.part_number, 7)
        self.assertEqual(fn.calls, 1)

    def test_stop_interrupts_backoff(self) -> None:
        stop = threading.Event()
        stop.set()
        fn = _Flaky([http_error(503)])
        policy = RetryPolicy(max_retries=3, backoff_base=60.0, backoff_max=60.0)
        with self.assertRaises(UploadCancelled):
            policy.run(fn, part_number=1, stop=stop)
        self.assertEqual(fn.calls, 1)

    def test_attempt_callback(self) -> None:
        seen: list[tuple[int, bool]] = []
        fn = _Flaky([http_error(500)])
        policy = RetryPolicy(max_retries=1, backoff_base=0.0, backoff_max=0.0)
        policy.run(
            fn, on_attempt=lambda attempt, _, err: seen.append((attempt, err is None))
        )
        self.assertEqual(seen, [(1, False), (2, True)])

    def test_transient_attempts_reported_wrapped(self) -> None:
        errors: list[Exception | None] = []
        fn = _Flaky([http_error(503)])
        policy = RetryPolicy(max_retries=1, backoff_base=0.0, backoff_max=0.0)
        policy.run(fn, part_number=3, on_attempt=lambda _, __, err: errors.append(err))
        self.assertIsInstance(errors[0], PartTransientFailure)
        assert isinstance(errors[0], PartTransientFailure)
        self.assertEqual(errors[0].part_number, 3)
        self.assertEqual(errors[0].cause.status_code, 503)
        self.assertIsNone(errors[1])

    def test_escalation_chains_transient_failure(self) -> None:
        fn = _Flaky([http_error(500)] * 2)
        policy = RetryPolicy(max_retries=1, backoff_base=0.0, backoff_max=0.0)
        with self.assertRaises(PartPermanentFailure) as ctx:
            policy.run(fn, part_number=2)
        self.assertIsInstance(ctx.exception.__cause__, PartTransientFailure)

    def test_deadline_cuts_backoff(self) -> None:
        fn = _Flaky([http_error(503)] * 2)
        policy = RetryPolicy(max_retries=3, backoff_base=5.0, backoff_max=5.0)
        start = time.monotonic()
        with self.assertRaises(UploadCancelled) as ctx:
            policy.run(fn, part_number=1, deadline=start + 0.1)
        self.assertLess(time.monotonic() - start, 1.0)
        self.assertEqual(ctx.exception.part_number, 1)
        self.assertEqual(fn.calls, 1)

    def test_rejects_negative_retries(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_retries=-1)


if __name__ == "__main__":
    unittest.main()
