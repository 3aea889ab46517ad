import logging
import os
import uuid
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Tuple, Union

from domain.digest import ContentDigest
from domain.errors import StagingConflictError
from domain.hash_constants import HASH_ALGORITHM, BLOCK_SIZE

logger = logging.getLogger(__name__)


class StagingWriter:
    """
    Writes a stream of unknown identity to a uniquely named temporary file,
    hashing every chunk on the way through.

    A failed or abandoned write leaves the partial staging file behind; it
    never reaches the shard tree.
    """

    def __init__(self, tmp_dir: Path, algorithm: str = HASH_ALGORITHM, chunk_size: int = BLOCK_SIZE):
        self.tmp_dir = Path(tmp_dir)
        self.chunk_size = chunk_size
        self.path = self.tmp_dir / uuid.uuid4().hex
        self.identifier: Optional[str] = None
        self._digest = ContentDigest(algorithm)
        self._file: Optional[BinaryIO] = None

    @property
    def byte_count(self) -> int:
        return self._digest.byte_count

    def open(self) -> "StagingWriter":
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        try:
            self._file = open(self.path, "xb")
        except FileExistsError as e:
            raise StagingConflictError(self.path) from e
        logger.debug(f"Opened staging file {self.path}")
        return self

    def write(self, chunk: bytes) -> None:
        if self._file is None:
            raise RuntimeError(f"Staging file {self.path} is not open")
        self._file.write(chunk)
        self._digest.update(chunk)

    def consume(self, source: Union[BinaryIO, Iterable[bytes]]) -> None:
        """Drain a binary file-like object or an iterable of byte chunks."""
        if hasattr(source, "read"):
            while chunk := source.read(self.chunk_size):
                self.write(chunk)
        else:
            for chunk in source:
                if chunk:
                    self.write(chunk)

    def finish(self) -> Tuple[str, int]:
        """Flush and close the staging file; return (identifier, byte count)."""
        if self._file is None:
            raise RuntimeError(f"Staging file {self.path} is not open")
        self._file.flush()
        os.fsync(self._file.fileno())
        self.close()
        self.identifier = self._digest.hexdigest()
        logger.debug(f"Staged {self.byte_count} bytes as {self.identifier} in {self.path}")
        return self.identifier, self.byte_count

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def discard(self) -> None:
        # Already gone after a rename into the shard tree
        self.path.unlink(missing_ok=True)

    def __enter__(self) -> "StagingWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
