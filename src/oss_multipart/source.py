import io
import os
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Any, BinaryIO

from oss_multipart.errors import InvalidArgument, SourceReadError
from oss_multipart.part import PartDescriptor


class PartSource(ABC):
    """Random access byte source. ``read`` must be safe to call from several threads."""

    @abstractmethod
    def size(self) -> int:
        pass

    @abstractmethod
    def read(self, offset: int, length: int) -> bytes:
        pass


class FileSource(PartSource):
    """Opens the file for every read so each worker has its own handle."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def size(self) -> int:
        return os.path.getsize(self.path)

    def read(self, offset: int, length: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(offset)
            return f.read(length)

    def __repr__(self) -> str:
        return f"FileSource({self.path})"


class BytesSource(PartSource):
    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)

    def size(self) -> int:
        return len(self._data)

    def read(self, offset: int, length: int) -> bytes:
        return self._data[offset : offset + length]

    def __repr__(self) -> str:
        return f"BytesSource({len(self._data)} bytes)"


class StreamSource(PartSource):
    """Seekable file object shared between workers, seek+read happen under a lock."""

    def __init__(self, stream: BinaryIO) -> None:
        if not _is_seekable(stream):
            raise InvalidArgument(
                "source stream is sequential only, multipart upload needs range access"
            )
        self._stream = stream
        self._lock = Lock()

    def size(self) -> int:
        with self._lock:
            pos = self._stream.tell()
            end = self._stream.seek(0, io.SEEK_END)
            self._stream.seek(pos)
            return end

    def read(self, offset: int, length: int) -> bytes:
        with self._lock:
            self._stream.seek(offset)
            return self._stream.read(length)


def _is_seekable(stream: Any) -> bool:
    seekable = getattr(stream, "seekable", None)
    if seekable is None:
        return False
    try:
        return bool(seekable())
    except (OSError, ValueError):
        return False


def open_source(source: Any) -> PartSource:
    """Wrap a path, buffer or seekable stream in a PartSource."""
    if isinstance(source, PartSource):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesSource(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_file():
            raise InvalidArgument(f"source file does not exist: {path}")
        return FileSource(path)
    if hasattr(source, "read"):
        return StreamSource(source)
    raise InvalidArgument(f"unsupported source type: {type(source).__name__}")


def read_part(source: PartSource, part: PartDescriptor) -> bytes:
    """Read one part. Any failure of the source, or a short read, is a SourceReadError."""
    try:
        data = source.read(part.byte_offset, part.byte_length)
    except Exception as e:
        raise SourceReadError(
            f"cannot read {part.name} from {source!r}",
            part_number=part.part_number,
            cause=e,
        ) from e
    if len(data) != part.byte_length:
        raise SourceReadError(
            f"short read for {part.name}: expected {part.byte_length} bytes, got {len(data)}",
            part_number=part.part_number,
        )
    return data
