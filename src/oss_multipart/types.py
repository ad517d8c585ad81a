import re
from enum import Enum


class UploadResult(Enum):
    UPLOADED_SINGLE = 1
    UPLOADED_MULTIPART = 2


_UNITS = ["B", "K", "M", "G", "T", "P"]


def _to_size_suffix(size: int) -> str:
    def _convert(size: int) -> tuple[float, str]:
        val: float = size
        for unit in _UNITS:
            if val < 1024 or unit == _UNITS[-1]:
                return val, unit
            val = val / 1024
        raise ValueError(f"Invalid size: {size}")

    def _fmt(_val: float | int, _unit: str) -> str:
        # If the float is an integer, drop the decimal, otherwise format with one decimal.
        val_str: str = str(_val)
        if val_str.endswith(".0") or isinstance(_val, int):
            return str(int(_val)) + _unit
        return f"{_val:.1f}" + _unit

    if size < 0:
        return "-" + _to_size_suffix(-size)
    val, unit = _convert(size)
    out = _fmt(val, unit)
    # Round trip the value to fix floating point issues via rounding.
    int_val = _from_size_suffix(out)
    val, unit = _convert(int_val)
    return _fmt(val, unit)


# Allows decimals (e.g., 16.5MB)
_PATTERN_SIZE_SUFFIX = re.compile(r"^(\d+(?:\.\d+)?)([A-Za-z]*)$")


def _from_size_suffix(size: str) -> int:
    size = size.strip()
    match = _PATTERN_SIZE_SUFFIX.match(size)
    if match is None:
        raise ValueError(f"Invalid size suffix: {size}")
    num_str, suffix = match.group(1), match.group(2)
    n = float(num_str)
    if not suffix:
        return int(n)
    # Determine the unit from the first letter (e.g., "M" from "MB")
    unit = suffix[0].upper()
    if unit not in _UNITS:
        raise ValueError(f"Invalid size suffix: {suffix}")
    return int(n * 1024 ** _UNITS.index(unit))


class SizeSuffix:
    """Byte count that parses and prints size suffixes ("16MB", "1.5G")."""

    def __init__(self, size: "int | float | str | SizeSuffix"):
        self._size: int
        if isinstance(size, SizeSuffix):
            self._size = size._size
        elif isinstance(size, bool):
            raise ValueError(f"Invalid type for size: {type(size)}")
        elif isinstance(size, int):
            self._size = size
        elif isinstance(size, str):
            self._size = _from_size_suffix(size)
        elif isinstance(size, float):
            self._size = int(size)
        else:
            raise ValueError(f"Invalid type for size: {type(size)}")

    def as_int(self) -> int:
        return self._size

    def as_str(self) -> str:
        return _to_size_suffix(self._size)

    def __repr__(self) -> str:
        return self.as_str()

    def __str__(self) -> str:
        return self.as_str()

    def __add__(self, other: "int | SizeSuffix") -> "SizeSuffix":
        return SizeSuffix(self._size + SizeSuffix(other)._size)

    def __radd__(self, other: "int | SizeSuffix") -> "SizeSuffix":
        return self.__add__(other)

    def __sub__(self, other: "int | SizeSuffix") -> "SizeSuffix":
        return SizeSuffix(self._size - SizeSuffix(other)._size)

    def __mul__(self, other: "int | SizeSuffix") -> "SizeSuffix":
        return SizeSuffix(self._size * SizeSuffix(other)._size)

    # multiply when int is on the left
    def __rmul__(self, other: "int | SizeSuffix") -> "SizeSuffix":
        return self.__mul__(other)

    def __floordiv__(self, other: "int | SizeSuffix") -> "SizeSuffix":
        other_int = SizeSuffix(other)
        if other_int._size == 0:
            raise ZeroDivisionError("Division by zero is undefined")
        return SizeSuffix(self._size // other_int._size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (SizeSuffix, int)):
            return False
        return self._size == SizeSuffix(other)._size

    def __lt__(self, other: "int | SizeSuffix") -> bool:
        return self._size < SizeSuffix(other)._size

    def __le__(self, other: "int | SizeSuffix") -> bool:
        return self._size <= SizeSuffix(other)._size

    def __gt__(self, other: "int | SizeSuffix") -> bool:
        return self._size > SizeSuffix(other)._size

    def __ge__(self, other: "int | SizeSuffix") -> bool:
        return self._size >= SizeSuffix(other)._size

    def __hash__(self) -> int:
        return hash(self._size)

    def __int__(self) -> int:
        return self._size
