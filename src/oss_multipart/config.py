import os
from dataclasses import dataclass

from dotenv import load_dotenv

from oss_multipart.errors import InvalidArgument
from oss_multipart.part import MAX_PART_SIZE, MIN_PART_SIZE
from oss_multipart.retry import RetryPolicy
from oss_multipart.types import SizeSuffix

ENV_PREFIX = "OSS_"

_DEFAULT_PART_SIZE = 16 * 1024 * 1024
_DEFAULT_MAX_CONCURRENCY = 8
_DEFAULT_MAX_PART_RETRIES = 3
_DEFAULT_BACKOFF_BASE = 0.5
_DEFAULT_BACKOFF_MAX = 30.0


@dataclass
class UploadConfig:
    """Tunables for the upload coordinator, validated once before use."""

    part_size: int | str | SizeSuffix | None = None
    max_concurrency: int | None = None
    max_part_retries: int | None = None
    backoff_base: float | None = None
    backoff_max: float | None = None
    min_part_size: int | str | SizeSuffix | None = None

    def resolve_defaults(self) -> None:
        if self.part_size is None:
            self.part_size = _DEFAULT_PART_SIZE
        if self.max_concurrency is None:
            self.max_concurrency = _DEFAULT_MAX_CONCURRENCY
        if self.max_part_retries is None:
            self.max_part_retries = _DEFAULT_MAX_PART_RETRIES
        if self.backoff_base is None:
            self.backoff_base = _DEFAULT_BACKOFF_BASE
        if self.backoff_max is None:
            self.backoff_max = _DEFAULT_BACKOFF_MAX
        if self.min_part_size is None:
            self.min_part_size = MIN_PART_SIZE
        # normalise "16MB" style values to byte counts
        self.part_size = parse_size("part_size", self.part_size)
        self.min_part_size = parse_size("min_part_size", self.min_part_size)

    def validate(self) -> "UploadConfig":
        self.resolve_defaults()
        assert isinstance(self.part_size, int)
        assert isinstance(self.min_part_size, int)
        if self.part_size <= 0:
            raise InvalidArgument(f"part_size must be positive, got {self.part_size}")
        if self.part_size > MAX_PART_SIZE:
            raise InvalidArgument(
                f"part_size {SizeSuffix(self.part_size)} exceeds the maximum of {SizeSuffix(MAX_PART_SIZE)}"
            )
        if self.min_part_size <= 0:
            raise InvalidArgument(
                f"min_part_size must be positive, got {self.min_part_size}"
            )
        if self.part_size < self.min_part_size:
            raise InvalidArgument(
                f"part_size {SizeSuffix(self.part_size)} is below min_part_size {SizeSuffix(self.min_part_size)}"
            )
        if self.max_concurrency is None or self.max_concurrency < 1:
            raise InvalidArgument(
                f"max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        if self.max_part_retries is None or self.max_part_retries < 0:
            raise InvalidArgument(
                f"max_part_retries must be >= 0, got {self.max_part_retries}"
            )
        if self.backoff_base is None or self.backoff_base < 0:
            raise InvalidArgument(f"backoff_base must be >= 0, got {self.backoff_base}")
        if self.backoff_max is None or self.backoff_max < self.backoff_base:
            raise InvalidArgument(
                f"backoff_max must be >= backoff_base, got {self.backoff_max}"
            )
        return self

    def retry_policy(self) -> RetryPolicy:
        self.resolve_defaults()
        assert self.max_part_retries is not None
        assert self.backoff_base is not None
        assert self.backoff_max is not None
        return RetryPolicy(
            max_retries=self.max_part_retries,
            backoff_base=self.backoff_base,
            backoff_max=self.backoff_max,
        )

    @staticmethod
    def from_env(prefix: str = ENV_PREFIX, dotenv: bool = True) -> "UploadConfig":
        """Build a validated config from OSS_* variables, loading .env first."""
        if dotenv:
            load_dotenv()

        def get(name: str) -> str | None:
            value = os.getenv(prefix + name)
            if value is None or value.strip() == "":
                return None
            return value.strip()

        out = UploadConfig(
            part_size=get("PART_SIZE"),
            max_concurrency=_parse(get("MAX_CONCURRENCY"), int, prefix + "MAX_CONCURRENCY"),
            max_part_retries=_parse(get("MAX_PART_RETRIES"), int, prefix + "MAX_PART_RETRIES"),
            backoff_base=_parse(get("BACKOFF_BASE"), float, prefix + "BACKOFF_BASE"),
            backoff_max=_parse(get("BACKOFF_MAX"), float, prefix + "BACKOFF_MAX"),
            min_part_size=get("MIN_PART_SIZE"),
        )
        return out.validate()


def _parse(value: str | None, kind: type, name: str):
    if value is None:
        return None
    try:
        return kind(value)
    except ValueError as e:
        raise InvalidArgument(f"{name} is not a valid {kind.__name__}: {value!r}") from e


def parse_size(name: str, value: int | str | SizeSuffix) -> int:
    """Byte count from an int or a size suffix string such as "16MB"."""
    try:
        return SizeSuffix(value).as_int()
    except ValueError as e:
        raise InvalidArgument(f"{name} is not a valid size: {value!r}") from e
