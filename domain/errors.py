"""Error taxonomy for the blob store.

Filesystem failures are not wrapped: they surface as the ``OSError`` raised by
the underlying call.
"""


class BlobStoreError(Exception):
    """Base class for blob store errors."""


class BlobNotFoundError(BlobStoreError):
    """No blob file exists for the identifier."""

    def __init__(self, identifier: str):
        super().__init__(f'Item "{identifier}" not found')
        self.identifier = identifier


class StagingConflictError(BlobStoreError):
    """The staging path allocated for a streamed put is already in use."""

    def __init__(self, path):
        super().__init__(f"Staging file already exists: {path}")
        self.path = path


class InvalidIdentifierError(BlobStoreError, ValueError):
    """Identifier is not a lowercase hex digest of the configured length."""


class InvalidRangeError(BlobStoreError, ValueError):
    """Byte range is malformed (negative start or end before start)."""
