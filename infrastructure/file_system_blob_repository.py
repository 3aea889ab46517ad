import errno
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterable, Iterator, Optional, Union

from domain.blob import BlobStat, ByteRange, PutResult
from domain.blob_repository import BlobRepository, Content
from domain.config import BlobStoreConfig
from domain.digest import digest_bytes
from domain.errors import BlobNotFoundError
from domain.hash_constants import PART_FILE_PREFIX, PART_FILE_SUFFIX
from domain.shard_path import ShardPathResolver
from infrastructure.staging_writer import StagingWriter

logger = logging.getLogger(__name__)


class FileSystemBlobRepository(BlobRepository):
    """
    Content-addressed blob store on a local filesystem.

    Blobs live at ``<dir>/<h0h1>/<h2h3>/.../<identifier>`` as raw bytes.
    The presence of that file is the only record of a blob; there is no
    index. Every blob file is published with a rename, so readers see either
    the complete content or nothing.
    """

    def __init__(self, config: Optional[BlobStoreConfig] = None):
        self.config = config or BlobStoreConfig()
        self.resolver = ShardPathResolver(
            self.config.dir, self.config.depth, self.config.identifier_length
        )
        logger.info(
            f"Initialized blob store at {self.config.dir} "
            f"(tmp={self.config.tmp}, depth={self.config.depth}, algorithm={self.config.algorithm})"
        )

    @property
    def dir(self) -> Path:
        return self.config.dir

    @property
    def tmp(self) -> Path:
        return self.config.tmp

    @property
    def depth(self) -> int:
        return self.config.depth

    @property
    def algorithm(self) -> str:
        return self.config.algorithm

    def put(self, content: Content) -> PutResult:
        """Store a buffer or a stream of bytes."""
        if isinstance(content, (bytes, bytearray, memoryview)):
            return self._put_buffer(content)
        return self.put_stream(content)

    def _put_buffer(self, content: bytes) -> PutResult:
        identifier, byte_count = digest_bytes(content, self.algorithm)
        filepath = self.get_filepath(identifier)

        if filepath.exists():
            # Existing content is trusted to match its identifier
            logger.debug(f"Blob {identifier} already stored")
            return PutResult(identifier, byte_count)

        filepath.parent.mkdir(parents=True, exist_ok=True)
        self._publish(filepath, lambda f: f.write(content))
        logger.debug(f"Stored {byte_count} bytes as {identifier}")
        return PutResult(identifier, byte_count)

    def put_stream(self, source: Union[BinaryIO, Iterable[bytes]]) -> PutResult:
        """Stage a stream while hashing it, then move it into the shard tree."""
        with self.new_staging() as staging:
            staging.consume(source)
            staging.finish()
        return self.commit(staging)

    def new_staging(self) -> StagingWriter:
        """
        A staging writer bound to this store's tmp dir and algorithm.

        Used as a context manager, fed with ``write``, closed with ``finish``
        and handed to ``commit``.
        """
        return StagingWriter(self.tmp, self.algorithm, self.config.chunk_size)

    def commit(self, staging: StagingWriter) -> PutResult:
        """Reconcile a finished staging file with the shard tree."""
        if staging.identifier is None:
            raise RuntimeError(f"Staging file {staging.path} has not been finished")

        identifier = staging.identifier
        filepath = self.get_filepath(identifier)

        if filepath.exists():
            logger.debug(f"Blob {identifier} already stored, discarding {staging.path}")
            staging.discard()
            return PutResult(identifier, staging.byte_count)

        filepath.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(staging.path, filepath)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            # tmp is on another filesystem: copy next to the target, then rename
            with open(staging.path, "rb") as src:
                self._publish(
                    filepath,
                    lambda dst: shutil.copyfileobj(src, dst, self.config.chunk_size),
                )
        staging.discard()

        logger.debug(f"Stored {staging.byte_count} bytes as {identifier} from {staging.path}")
        return PutResult(identifier, staging.byte_count)

    def _publish(self, filepath: Path, fill: Callable[[BinaryIO], Any]) -> None:
        """Write a part file in the shard directory and rename it into place."""
        part_path = filepath.parent / f"{PART_FILE_PREFIX}{filepath.name}.{uuid.uuid4().hex}{PART_FILE_SUFFIX}"
        try:
            with open(part_path, "xb") as f:
                fill(f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(part_path, filepath)
        except Exception:
            part_path.unlink(missing_ok=True)
            raise

    def get(self, identifier: str, byte_range: Optional[ByteRange] = None) -> bytes:
        filepath = self._existing_filepath(identifier)

        if byte_range is None:
            return filepath.read_bytes()

        with open(filepath, "rb") as f:
            f.seek(byte_range.start)
            # Shorter than requested if the range runs past the end of the blob
            return f.read(byte_range.length)

    def get_stream(
        self,
        identifier: str,
        byte_range: Optional[ByteRange] = None,
        chunk_size: Optional[int] = None,
    ) -> Iterator[bytes]:
        filepath = self._existing_filepath(identifier)
        return self._iter_file(filepath, byte_range, chunk_size or self.config.chunk_size)

    @staticmethod
    def _iter_file(filepath: Path, byte_range: Optional[ByteRange], chunk_size: int) -> Iterator[bytes]:
        with open(filepath, "rb") as f:
            remaining = None
            if byte_range is not None:
                f.seek(byte_range.start)
                remaining = byte_range.length

            while remaining is None or remaining > 0:
                size = chunk_size if remaining is None else min(chunk_size, remaining)
                chunk = f.read(size)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk

    def has(self, identifier: str) -> bool:
        return self.get_filepath(identifier).is_file()

    def delete(self, identifier: str) -> None:
        try:
            self.get_filepath(identifier).unlink()
        except FileNotFoundError as e:
            raise BlobNotFoundError(identifier) from e
        logger.debug(f"Deleted blob {identifier}")

    def stat(self, identifier: str) -> BlobStat:
        filepath = self.get_filepath(identifier)
        try:
            st = filepath.stat()
        except FileNotFoundError as e:
            raise BlobNotFoundError(identifier) from e
        return BlobStat.from_stat_result(identifier, filepath, st)

    def get_dirpath(self, identifier: str) -> Path:
        return self.resolver.dir_path(identifier)

    def get_filepath(self, identifier: str) -> Path:
        return self.resolver.file_path(identifier)

    def iter_identifiers(self) -> Iterator[str]:
        """Yield the identifier of every blob in the shard tree."""
        pattern = "/".join(["[0-9a-f][0-9a-f]"] * self.depth + ["*"])
        for path in self.dir.glob(pattern):
            name = path.name
            if name.startswith(PART_FILE_PREFIX) or not path.is_file():
                continue
            try:
                expected = self.get_filepath(name)
            except ValueError:
                continue
            if expected == path:
                yield name

    def get_store_stats(self) -> Dict[str, int]:
        total_blobs = 0
        total_bytes = 0

        for identifier in self.iter_identifiers():
            total_blobs += 1
            total_bytes += self.get_filepath(identifier).stat().st_size

        return {
            "total_blobs": total_blobs,
            "total_bytes": total_bytes,
        }

    def _existing_filepath(self, identifier: str) -> Path:
        filepath = self.get_filepath(identifier)
        if not filepath.is_file():
            raise BlobNotFoundError(identifier)
        return filepath
