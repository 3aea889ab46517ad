"""Hash and layout constants for the blob store."""

HASH_ALGORITHM = "sha256"
BLOCK_SIZE = 64 * 1024  # 64KB chunks for streamed reads and copies
HASH_PREFIX_LENGTH = 2  # Characters per shard segment (e.g., aa/bb/cc/aabbcc1234...)
DEFAULT_DEPTH = 3
PART_FILE_PREFIX = "."
PART_FILE_SUFFIX = ".part"
