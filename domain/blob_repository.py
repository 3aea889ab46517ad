from abc import ABC, abstractmethod
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from .blob import BlobStat, ByteRange, PutResult

Content = Union[bytes, bytearray, memoryview, BinaryIO, Iterable[bytes]]


class BlobRepository(ABC):
    """
    Abstract repository interface for content-addressed blobs.

    Blobs are identified by the digest of their bytes. Callers never choose
    an identifier; the repository computes it on put.
    """

    @abstractmethod
    def put(self, content: Content) -> PutResult:
        """
        Store binary content.

        A bytes-like buffer is hashed before anything is written. A file-like
        object or an iterable of byte chunks is staged first and reconciled
        with the shard tree once its identifier is known.

        Args:
            content: Buffer, binary file-like object or iterable of chunks

        Returns:
            Identifier and byte count of the content

        Raises:
            StagingConflictError: If the staging path is already in use
            OSError: If storage operations fail
        """
        pass

    @abstractmethod
    def get(self, identifier: str, byte_range: Optional[ByteRange] = None) -> bytes:
        """
        Read a blob, or the requested span of it, into memory.

        Args:
            identifier: Blob identifier
            byte_range: Half-open span to read; the whole blob if omitted

        Raises:
            BlobNotFoundError: If no blob has this identifier
        """
        pass

    @abstractmethod
    def get_stream(
        self,
        identifier: str,
        byte_range: Optional[ByteRange] = None,
        chunk_size: Optional[int] = None,
    ) -> Iterator[bytes]:
        """
        Lazily read a blob, or a span of it, in chunks.

        Existence is checked when this is called, bytes are read as the
        iterator is consumed.

        Raises:
            BlobNotFoundError: If no blob has this identifier
        """
        pass

    @abstractmethod
    def has(self, identifier: str) -> bool:
        """Check if a blob exists. Does not validate its content."""
        pass

    @abstractmethod
    def delete(self, identifier: str) -> None:
        """
        Remove a blob. Shard directories are left in place.

        Raises:
            BlobNotFoundError: If no blob has this identifier
        """
        pass

    @abstractmethod
    def stat(self, identifier: str) -> BlobStat:
        """
        Filesystem metadata of a blob.

        Raises:
            BlobNotFoundError: If no blob has this identifier
        """
        pass
