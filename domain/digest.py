"""Incremental content digests used as blob identifiers."""

import hashlib
from typing import Iterable, Tuple

from .hash_constants import HASH_ALGORITHM, BLOCK_SIZE


class ContentDigest:
    """Accumulates a hex digest and a byte count over fed chunks."""

    def __init__(self, algorithm: str = HASH_ALGORITHM):
        self.algorithm = algorithm
        self._hasher = hashlib.new(algorithm)
        self.byte_count = 0

    def update(self, chunk: bytes) -> None:
        self._hasher.update(chunk)
        self.byte_count += len(chunk)

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()


def digest_bytes(content: bytes, algorithm: str = HASH_ALGORITHM) -> Tuple[str, int]:
    """
    Calculate the identifier of an in-memory buffer.

    Returns:
        Tuple of (hex digest, byte count)
    """
    digest = ContentDigest(algorithm)
    view = memoryview(content).cast("B")
    # Process in blocks for memory efficiency
    for i in range(0, len(view), BLOCK_SIZE):
        digest.update(view[i:i + BLOCK_SIZE])
    return digest.hexdigest(), digest.byte_count


def digest_chunks(chunks: Iterable[bytes], algorithm: str = HASH_ALGORITHM) -> Tuple[str, int]:
    """Calculate the identifier of a sequence of byte chunks."""
    digest = ContentDigest(algorithm)
    for chunk in chunks:
        digest.update(chunk)
    return digest.hexdigest(), digest.byte_count


def digest_length(algorithm: str = HASH_ALGORITHM) -> int:
    """Number of hex characters produced by ``algorithm``."""
    return hashlib.new(algorithm).digest_size * 2
