"""
Error taxonomy for multipart uploads.

Every failure that reaches the caller is a single ``UploadError`` carrying the
originating part number (when there is one) and the underlying cause.
"""


class UploadError(Exception):
    def __init__(
        self,
        message: str,
        part_number: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.part_number = part_number
        self.cause = cause
        # set when the rollback that followed this error could not abort the session
        self.abort_error: "AbortFailed | None" = None

    def __str__(self) -> str:
        out = self.message
        if self.part_number is not None:
            out = f"{out} (part {self.part_number})"
        if self.cause is not None:
            out = f"{out}: {self.cause}"
        return out


class InvalidArgument(UploadError, ValueError):
    pass


class InitiateFailed(UploadError):
    pass


class PartTransientFailure(UploadError):
    """A part failure that is worth retrying.

    Handed to attempt callbacks while the part is retried, and chained under the
    PartPermanentFailure raised once retries run out. Never raised to the caller.
    """


class PartPermanentFailure(UploadError):
    pass


class SourceReadError(UploadError):
    pass


class CompletionFailed(UploadError):
    pass


class AbortFailed(UploadError):
    """Reported through logging and events only, it never replaces the triggering error."""


class UploadCancelled(UploadError):
    pass
