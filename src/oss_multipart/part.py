import warnings
from dataclasses import dataclass

from oss_multipart.errors import InvalidArgument
from oss_multipart.types import SizeSuffix

MIN_PART_SIZE = 5 * 1024 * 1024  # 5MB, every part but the last
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024  # 5GB
MAX_PARTS = 10000


def calculate_part_count(total_size: int, part_size: int) -> int:
    out = total_size // part_size
    if total_size % part_size:
        return out + 1
    return out


def recommended_part_size(
    total_size: int | SizeSuffix, target_part_size: int | SizeSuffix = MIN_PART_SIZE
) -> int:
    """Smallest part size >= target that keeps the part count within MAX_PARTS."""
    size = SizeSuffix(total_size).as_int()
    target = max(SizeSuffix(target_part_size).as_int(), MIN_PART_SIZE)
    min_required = calculate_part_count(size, MAX_PARTS)
    if min_required > target:
        warnings.warn(
            f"Part size {SizeSuffix(target)} would need more than {MAX_PARTS} parts for {SizeSuffix(size)}, using {SizeSuffix(min_required)}"
        )
        return min_required
    return target


def validate_multipart_params(
    total_size: int,
    part_size: int,
    min_part_size: int = MIN_PART_SIZE,
) -> int:
    """Check sizes against the store limits, returns the part count."""
    if total_size <= 0:
        raise InvalidArgument(f"total_size must be positive, got {total_size}")
    if part_size <= 0:
        raise InvalidArgument(f"part_size must be positive, got {part_size}")
    if part_size > MAX_PART_SIZE:
        raise InvalidArgument(
            f"part_size {SizeSuffix(part_size)} exceeds the maximum of {SizeSuffix(MAX_PART_SIZE)}"
        )
    part_count = calculate_part_count(total_size, part_size)
    # only the final part may be smaller than the floor
    if part_count > 1 and part_size < min_part_size:
        raise InvalidArgument(
            f"part_size {SizeSuffix(part_size)} is below the minimum of {SizeSuffix(min_part_size)}"
        )
    if part_count > MAX_PARTS:
        raise InvalidArgument(
            f"upload would require {part_count} parts, maximum is {MAX_PARTS}"
        )
    return part_count


@dataclass(frozen=True)
class PartDescriptor:
    part_number: int
    byte_offset: int
    byte_length: int

    def __post_init__(self):
        assert self.part_number >= 1
        assert self.byte_offset >= 0
        assert self.byte_length > 0

    @property
    def end(self) -> int:
        # exclusive
        return self.byte_offset + self.byte_length

    @property
    def name(self) -> str:
        return f"part.{self.part_number:05d}_{self.byte_offset}-{self.end}"

    @staticmethod
    def split_parts(total_size: int, part_size: int) -> list["PartDescriptor"]:
        return split_parts(total_size, part_size)


def split_parts(total_size: int, part_size: int) -> list[PartDescriptor]:
    """Break total_size bytes into contiguous 1-based parts of part_size bytes."""
    if total_size <= 0:
        raise InvalidArgument(f"total_size must be positive, got {total_size}")
    if part_size <= 0:
        raise InvalidArgument(f"part_size must be positive, got {part_size}")
    part_count = calculate_part_count(total_size, part_size)
    out: list[PartDescriptor] = []
    for i in range(part_count):
        offset = i * part_size
        length = min(part_size, total_size - offset)
        out.append(
            PartDescriptor(part_number=i + 1, byte_offset=offset, byte_length=length)
        )
    return out


def validate_parts_list(part_numbers: list[int]) -> None:
    """Part numbers sent to completion must be 1..n, consecutive and unique."""
    if not part_numbers:
        raise InvalidArgument("parts list cannot be empty")
    if len(part_numbers) > MAX_PARTS:
        raise InvalidArgument(f"cannot have more than {MAX_PARTS} parts")
    if sorted(part_numbers) != list(range(1, len(part_numbers) + 1)):
        raise InvalidArgument(
            "part numbers must be consecutive and unique starting from 1"
        )
