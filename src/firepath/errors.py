from __future__ import annotations


class FirepathError(Exception):
    """Base firepath error."""


class MalformedPathError(FirepathError, ValueError):
    """Raised when a path string cannot be parsed into a reference chain."""


class DocumentNotFoundError(FirepathError, LookupError):
    """Raised when an existence check fails with error_if_missing set."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found at path {path}")
        self.path = path


class InvalidBatchSizeError(FirepathError, ValueError):
    """Raised when a requested batch size is outside 1..backend limit."""

    def __init__(self, requested: int, limit: int) -> None:
        super().__init__(f"batch size must be between 1 and {limit}: {requested}")
        self.requested = requested
        self.limit = limit


class QueryCompileError(FirepathError, ValueError):
    """Raised when query options cannot be compiled or the store rejects them."""


class BatchCommitError(FirepathError, RuntimeError):
    """Raised when the store rejects a batch commit.

    For chunked writes, chunks before ``chunk_index`` are already applied and
    chunks after it were never attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        chunk_index: int = 0,
        total_chunks: int = 1,
        committed_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks
        self.committed_count = committed_count

    @property
    def committed_chunks(self) -> int:
        return self.chunk_index

    @property
    def partial(self) -> bool:
        return self.chunk_index > 0
