"""
Multipart upload coordinator.

Splits a payload into parts, uploads them through a bounded thread pool and
either completes or aborts the multipart session. The first part failure
stops dispatch; parts already in flight are awaited and their results
discarded before the session is aborted.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Event, Semaphore
from typing import Any, Callable, TypeVar

from oss_multipart.config import UploadConfig, parse_size
from oss_multipart.errors import (
    AbortFailed,
    CompletionFailed,
    InitiateFailed,
    InvalidArgument,
    PartPermanentFailure,
    SourceReadError,
    UploadCancelled,
    UploadError,
)
from oss_multipart.events import EventSink, Outcome, UploadEvent, log_event
from oss_multipart.part import (
    PartDescriptor,
    split_parts,
    validate_multipart_params,
    validate_parts_list,
)
from oss_multipart.retry import AttemptCallback, FailureKind, classify_failure
from oss_multipart.session import PartResult, UploadSession
from oss_multipart.source import PartSource, open_source, read_part
from oss_multipart.store import ObjectStoreClient
from oss_multipart.types import SizeSuffix, UploadResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

_POLL_INTERVAL = 0.05


class MultipartUploadCoordinator:
    def __init__(
        self,
        store: ObjectStoreClient,
        config: UploadConfig | None = None,
        event_sink: EventSink | None = None,
    ) -> None:
        self.store = store
        self.config: UploadConfig = (config or UploadConfig()).validate()
        self.policy = self.config.retry_policy()
        self.event_sink: EventSink = event_sink or log_event

    def upload(
        self,
        bucket: str,
        key: str,
        source: Any,
        total_size: int | None = None,
        part_size: int | str | SizeSuffix | None = None,
        max_concurrency: int | None = None,
        cancel_event: Event | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        """Upload source to bucket/key, raises UploadError on failure.

        source may be a path, a bytes-like object, a seekable binary stream or
        a PartSource. total_size defaults to the size of the source.
        cancel_event and timeout (seconds) stop the upload and roll it back.
        """
        start = time.monotonic()
        try:
            out = self._upload(
                bucket=bucket,
                key=key,
                source=source,
                total_size=total_size,
                part_size=part_size,
                max_concurrency=max_concurrency,
                cancel_event=cancel_event,
                timeout=timeout,
            )
        except UploadError as e:
            outcome = (
                Outcome.CANCELLED if isinstance(e, UploadCancelled) else Outcome.FAILURE
            )
            self._emit(
                "upload",
                bucket,
                key,
                outcome,
                time.monotonic() - start,
                part_number=e.part_number,
                error=str(e),
            )
            raise
        self._emit("upload", bucket, key, Outcome.SUCCESS, time.monotonic() - start)
        return out

    def _upload(
        self,
        bucket: str,
        key: str,
        source: Any,
        total_size: int | None,
        part_size: int | str | SizeSuffix | None,
        max_concurrency: int | None,
        cancel_event: Event | None,
        timeout: float | None,
    ) -> UploadResult:
        part_source = open_source(source)
        if total_size is None:
            try:
                total_size = part_source.size()
            except Exception as e:
                raise SourceReadError(
                    f"cannot determine size of {part_source!r}", cause=e
                ) from e
        if part_size is None:
            part_size = self.config.part_size
        assert part_size is not None
        part_size_int = parse_size("part_size", part_size)
        if max_concurrency is None:
            max_concurrency = self.config.max_concurrency
        assert max_concurrency is not None
        if max_concurrency < 1:
            raise InvalidArgument(f"max_concurrency must be >= 1, got {max_concurrency}")
        if timeout is not None and timeout <= 0:
            raise InvalidArgument(f"timeout must be positive, got {timeout}")
        assert isinstance(self.config.min_part_size, int)
        part_count = validate_multipart_params(
            total_size, part_size_int, min_part_size=self.config.min_part_size
        )
        deadline = None if timeout is None else time.monotonic() + timeout

        if part_count == 1:
            logger.info(
                f"{bucket}/{key} fits in a single part ({SizeSuffix(total_size)}), skipping multipart"
            )
            self._put_single(bucket, key, part_source, total_size, cancel_event, deadline)
            return UploadResult.UPLOADED_SINGLE

        _check_cancel(cancel_event, deadline)
        session = self._initiate(bucket, key, total_size, part_size_int)
        parts = split_parts(total_size, part_size_int)
        logger.info(
            f"Uploading {bucket}/{key}: {len(parts)} parts of {SizeSuffix(part_size_int)}, {max_concurrency} workers, session {session.session_id}"
        )

        error = self._upload_parts(
            session, part_source, parts, max_concurrency, cancel_event, deadline
        )
        if error is not None:
            self._rollback(session, error)
            raise error

        self._complete(session)
        logger.info(f"Multipart upload completed: {bucket}/{key}")
        return UploadResult.UPLOADED_MULTIPART

    def _put_single(
        self,
        bucket: str,
        key: str,
        source: PartSource,
        total_size: int,
        cancel_event: Event | None,
        deadline: float | None,
    ) -> None:
        part = PartDescriptor(part_number=1, byte_offset=0, byte_length=total_size)
        data = read_part(source, part)

        def task() -> None:
            _check_cancel(cancel_event, deadline)
            self.store.put_single(bucket, key, data)

        self.policy.run(
            task,
            part_number=1,
            stop=cancel_event,
            deadline=deadline,
            on_attempt=self._attempt_reporter("put_single", bucket, key, 1),
        )

    def _initiate(
        self, bucket: str, key: str, total_size: int, part_size: int
    ) -> UploadSession:
        try:
            session_id = self._timed(
                "initiate", bucket, key, lambda: self.store.initiate(bucket, key)
            )
        except Exception as e:
            raise InitiateFailed(
                f"cannot initiate multipart upload for {bucket}/{key}", cause=e
            ) from e
        return UploadSession(
            session_id=session_id,
            bucket=bucket,
            key=key,
            total_size=total_size,
            part_size=part_size,
        )

    def _upload_parts(
        self,
        session: UploadSession,
        source: PartSource,
        parts: list[PartDescriptor],
        max_concurrency: int,
        cancel_event: Event | None,
        deadline: float | None,
    ) -> UploadError | None:
        semaphore = Semaphore(max_concurrency)
        futures: list[Future[PartResult]] = []
        with ThreadPoolExecutor(
            max_workers=max_concurrency, thread_name_prefix="oss-part"
        ) as executor:
            for part in parts:
                if not _acquire_slot(semaphore, session, cancel_event, deadline):
                    logger.info(
                        f"Stopped dispatching at part {part.part_number} of {len(parts)}"
                    )
                    break
                fut = executor.submit(
                    self._upload_part_task, session, source, part, deadline
                )
                fut.add_done_callback(lambda _: semaphore.release())
                futures.append(fut)
            # every dispatched part must reach a terminal state before complete/abort
            pending = set(futures)
            while pending:
                _, pending = wait(pending, timeout=_POLL_INTERVAL)
                _should_stop(session, cancel_event, deadline)

        failure = session.first_failure
        if failure is not None:
            assert failure.error is not None
            if isinstance(failure.error, UploadError):
                return failure.error
            return PartPermanentFailure(
                "part upload failed",
                part_number=failure.part_number,
                cause=failure.error,
            )
        stop_error = session.stop_error
        if stop_error is not None:
            if isinstance(stop_error, UploadError):
                return stop_error
            return UploadCancelled("upload stopped", cause=stop_error)
        if session.finished() != len(parts):
            return UploadError(
                f"only {session.finished()} of {len(parts)} parts finished"
            )
        return None

    def _upload_part_task(
        self,
        session: UploadSession,
        source: PartSource,
        part: PartDescriptor,
        deadline: float | None = None,
    ) -> PartResult:
        part_number = part.part_number
        if session.stop.is_set():
            return PartResult.failed(
                part_number, UploadCancelled("upload stopped", part_number=part_number)
            )

        def task(data: bytes) -> str:
            if session.stop.is_set():
                raise UploadCancelled("upload stopped", part_number=part_number)
            return self.store.upload_part(session.session_id, part_number, data)

        result: PartResult
        try:
            data = read_part(source, part)
            etag, attempts = self.policy.run(
                lambda: task(data),
                part_number=part_number,
                stop=session.stop,
                deadline=deadline,
                on_attempt=self._attempt_reporter(
                    "upload_part", session.bucket, session.key, part_number
                ),
            )
            result = PartResult.ok(part_number, etag, attempts=attempts)
        except UploadError as e:
            result = PartResult.failed(part_number, e)
        except Exception as e:
            logger.error(f"Unexpected error uploading part {part_number}: {e}", exc_info=True)
            result = PartResult.failed(
                part_number,
                PartPermanentFailure(
                    "unexpected error", part_number=part_number, cause=e
                ),
            )
        if session.add_result(result):
            logger.warning(
                f"Part {part_number} of {session.bucket}/{session.key} failed, stopping upload: {result.error}"
            )
        return result

    def _complete(self, session: UploadSession) -> None:
        try:
            parts = session.finished_parts()
            validate_parts_list([p.part_number for p in parts])
            self._timed(
                "complete",
                session.bucket,
                session.key,
                lambda: self.store.complete(session.session_id, parts),
            )
        except Exception as e:
            error = CompletionFailed(
                f"cannot complete multipart upload for {session.bucket}/{session.key}",
                cause=e,
            )
            error.__cause__ = e
            self._rollback(session, error)
            raise error

    def _rollback(self, session: UploadSession, error: UploadError) -> None:
        """Abort the session once. Abort failures are reported, never raised."""
        logger.warning(
            f"Aborting multipart upload {session.session_id} for {session.bucket}/{session.key}: {error}"
        )
        try:
            self._timed(
                "abort",
                session.bucket,
                session.key,
                lambda: self.store.abort(session.session_id),
            )
        except Exception as e:
            abort_error = AbortFailed(
                f"cannot abort multipart upload {session.session_id}", cause=e
            )
            logger.error(f"{abort_error}, the original error stands: {error}")
            error.abort_error = abort_error

    def _timed(
        self,
        operation: str,
        bucket: str,
        key: str,
        fn: Callable[[], T],
    ) -> T:
        start = time.monotonic()
        try:
            out = fn()
        except Exception as e:
            self._emit(
                operation, bucket, key, Outcome.FAILURE, time.monotonic() - start, error=str(e)
            )
            raise
        self._emit(operation, bucket, key, Outcome.SUCCESS, time.monotonic() - start)
        return out

    def _attempt_reporter(
        self, operation: str, bucket: str, key: str, part_number: int
    ) -> AttemptCallback:
        max_attempts = self.policy.max_retries + 1

        def on_attempt(attempt: int, duration: float, error: Exception | None) -> None:
            if error is None:
                outcome = Outcome.SUCCESS
            elif isinstance(error, UploadCancelled):
                outcome = Outcome.CANCELLED
            elif (
                classify_failure(error) is FailureKind.TRANSIENT
                and attempt < max_attempts
            ):
                outcome = Outcome.RETRY
            else:
                outcome = Outcome.FAILURE
            self._emit(
                operation,
                bucket,
                key,
                outcome,
                duration,
                part_number=part_number,
                attempt=attempt,
                error=None if error is None else str(error),
            )

        return on_attempt

    def _emit(
        self,
        operation: str,
        bucket: str,
        key: str,
        outcome: Outcome,
        duration: float,
        part_number: int | None = None,
        attempt: int | None = None,
        error: str | None = None,
    ) -> None:
        event = UploadEvent(
            operation=operation,
            bucket=bucket,
            key=key,
            outcome=outcome,
            duration=duration,
            part_number=part_number,
            attempt=attempt,
            error=error,
        )
        try:
            self.event_sink(event)
        except Exception as e:
            logger.warning(f"Event sink failed for {operation}: {e}")


def _check_cancel(cancel_event: Event | None, deadline: float | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise UploadCancelled("upload cancelled by caller")
    if deadline is not None and time.monotonic() >= deadline:
        raise UploadCancelled("upload timed out")


def _should_stop(
    session: UploadSession, cancel_event: Event | None, deadline: float | None
) -> bool:
    if session.stop.is_set():
        return True
    try:
        _check_cancel(cancel_event, deadline)
    except UploadCancelled as e:
        session.cancel(e)
        return True
    return False


def _acquire_slot(
    semaphore: Semaphore,
    session: UploadSession,
    cancel_event: Event | None,
    deadline: float | None,
) -> bool:
    while not _should_stop(session, cancel_event, deadline):
        if semaphore.acquire(timeout=_POLL_INTERVAL):
            # a slot freed by the part that triggered the stop
            if _should_stop(session, cancel_event, deadline):
                semaphore.release()
                return False
            return True
    return False


def upload(
    store: ObjectStoreClient,
    bucket: str,
    key: str,
    source: Any,
    config: UploadConfig | None = None,
    event_sink: EventSink | None = None,
    **kwargs: Any,
) -> UploadResult:
    """One-shot helper around MultipartUploadCoordinator.upload."""
    coordinator = MultipartUploadCoordinator(store, config=config, event_sink=event_sink)
    return coordinator.upload(bucket, key, source, **kwargs)
