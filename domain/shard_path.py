"""Maps identifiers to their place in the sharded directory tree."""

import re
from pathlib import Path

from .errors import InvalidIdentifierError
from .hash_constants import HASH_PREFIX_LENGTH

_HEX_RE = re.compile(r"^[0-9a-f]+$")


class ShardPathResolver:
    """
    Physical path of a blob: <root>/<h0h1>/<h2h3>/.../<identifier>

    ``depth`` two-character segments are taken from the identifier's prefix, so
    no directory holds more than 256 entries per level.
    """

    def __init__(self, root: Path, depth: int, identifier_length: int):
        if depth < 0 or depth * HASH_PREFIX_LENGTH > identifier_length:
            raise ValueError(
                f"depth must be between 0 and {identifier_length // HASH_PREFIX_LENGTH}, got {depth}"
            )
        self.root = Path(root)
        self.depth = depth
        self.identifier_length = identifier_length

    def validate(self, identifier: str) -> str:
        if (
            not isinstance(identifier, str)
            or len(identifier) != self.identifier_length
            or not _HEX_RE.match(identifier)
        ):
            raise InvalidIdentifierError(
                f"Invalid identifier {identifier!r}: expected {self.identifier_length} lowercase hex characters"
            )
        return identifier

    def segments(self, identifier: str) -> list:
        return [
            identifier[i * HASH_PREFIX_LENGTH:(i + 1) * HASH_PREFIX_LENGTH]
            for i in range(self.depth)
        ]

    def dir_path(self, identifier: str) -> Path:
        self.validate(identifier)
        return self.root.joinpath(*self.segments(identifier))

    def file_path(self, identifier: str) -> Path:
        return self.dir_path(identifier) / identifier
