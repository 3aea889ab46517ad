"""Configuration for the filesystem blob store."""

import hashlib
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from .digest import digest_length
from .hash_constants import HASH_ALGORITHM, BLOCK_SIZE, DEFAULT_DEPTH, HASH_PREFIX_LENGTH


class BlobStoreConfig(BaseModel):
    """Store-wide settings, passed explicitly to the repository."""
    dir: Path = Field(default_factory=Path.cwd, description="Root of the shard tree")
    tmp: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Root for staging files of streamed puts",
    )
    depth: int = Field(default=DEFAULT_DEPTH, ge=0, description="Number of two-character shard segments")
    algorithm: str = Field(default=HASH_ALGORITHM, description="hashlib algorithm name")
    chunk_size: int = Field(default=BLOCK_SIZE, gt=0, description="Read size for streams and copies")

    @field_validator("algorithm")
    @classmethod
    def check_algorithm(cls, value: str) -> str:
        value = value.lower()
        if value not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported digest algorithm: {value}")
        if digest_length(value) == 0:
            raise ValueError(f"Digest algorithm {value} has no fixed length")
        return value

    @model_validator(mode="after")
    def check_depth(self) -> "BlobStoreConfig":
        max_depth = self.identifier_length // HASH_PREFIX_LENGTH
        if self.depth > max_depth:
            raise ValueError(
                f"depth {self.depth} exceeds {max_depth} for {self.algorithm} identifiers"
            )
        return self

    @property
    def identifier_length(self) -> int:
        return digest_length(self.algorithm)
