"""Value types returned and consumed by the blob store."""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import InvalidRangeError


@dataclass(frozen=True)
class ByteRange:
    """Half-open byte interval ``[start, end)``.

    ``ByteRange(s, e)`` selects ``content[s:e]``, so ``ByteRange(0, len(content))``
    selects the whole blob.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0:
            raise InvalidRangeError(f"Range start must not be negative: {self.start}")
        if self.end < self.start:
            raise InvalidRangeError(f"Range end {self.end} is before start {self.start}")

    @property
    def length(self) -> int:
        return self.end - self.start

    @classmethod
    def from_http_header(cls, header: str, size: int) -> Optional["ByteRange"]:
        """
        Parse a single ``Range: bytes=a-b`` header against a blob of ``size`` bytes.

        HTTP ranges are inclusive; the result is half-open. Suffix ranges
        (``bytes=-n``) and open ranges (``bytes=a-``) are supported. Returns
        None when the header is not a byte range this store understands.

        Raises:
            InvalidRangeError: If the range cannot be satisfied for ``size``
        """
        unit, _, ranges = header.partition("=")
        if unit.strip().lower() != "bytes" or "," in ranges:
            return None

        first, sep, last = ranges.strip().partition("-")
        if not sep:
            return None
        try:
            if first == "":
                suffix = int(last)
            else:
                start = int(first)
                end = int(last) + 1 if last else size
        except ValueError:
            return None

        if first == "":
            if suffix <= 0 or size == 0:
                raise InvalidRangeError(f"Unsatisfiable range: {header}")
            return cls(max(size - suffix, 0), size)

        if start >= size or end <= start:
            raise InvalidRangeError(f"Unsatisfiable range: {header}")
        return cls(start, min(end, size))


@dataclass(frozen=True)
class PutResult:
    identifier: str
    byte_count: int


@dataclass(frozen=True)
class BlobStat:
    """Filesystem metadata of a stored blob."""
    identifier: str
    size: int
    modified_at: datetime
    accessed_at: datetime
    changed_at: datetime
    path: Path

    @classmethod
    def from_stat_result(cls, identifier: str, path: Path, st) -> "BlobStat":
        return cls(
            identifier=identifier,
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            accessed_at=datetime.fromtimestamp(st.st_atime, tz=timezone.utc),
            changed_at=datetime.fromtimestamp(st.st_ctime, tz=timezone.utc),
            path=path,
        )
