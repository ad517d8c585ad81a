from .config import UploadConfig
from .coordinator import MultipartUploadCoordinator, upload
from .errors import (
    AbortFailed,
    CompletionFailed,
    InitiateFailed,
    InvalidArgument,
    PartPermanentFailure,
    PartTransientFailure,
    SourceReadError,
    UploadCancelled,
    UploadError,
)
from .events import EventSink, Outcome, UploadEvent
from .log import configure_logging
from .part import PartDescriptor, split_parts
from .retry import FailureKind, RetryPolicy, classify_failure
from .session import FinishedPart, PartResult, UploadSession
from .source import BytesSource, FileSource, PartSource, StreamSource
from .store import ObjectStoreClient, PendingUpload, StoreError
from .types import SizeSuffix, UploadResult

__all__ = [
    "MultipartUploadCoordinator",
    "upload",
    "UploadConfig",
    "UploadResult",
    "UploadError",
    "InvalidArgument",
    "InitiateFailed",
    "PartTransientFailure",
    "PartPermanentFailure",
    "SourceReadError",
    "CompletionFailed",
    "AbortFailed",
    "UploadCancelled",
    "UploadEvent",
    "EventSink",
    "Outcome",
    "configure_logging",
    "PartDescriptor",
    "split_parts",
    "FailureKind",
    "RetryPolicy",
    "classify_failure",
    "FinishedPart",
    "PartResult",
    "UploadSession",
    "PartSource",
    "FileSource",
    "BytesSource",
    "StreamSource",
    "ObjectStoreClient",
    "PendingUpload",
    "StoreError",
    "SizeSuffix",
]
