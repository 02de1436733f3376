from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Mapping, Sequence

from firepath.errors import BatchCommitError, InvalidBatchSizeError
from firepath.settings import DEFAULT_BATCH_LIMIT
from firepath.storage.firestore_paths import parse_path
from firepath.storage.firestore_store import DocumentClient
from firepath.storage.firestore_query import QueryOptions, compile_chain_query, execute_query


LOGGER = logging.getLogger(__name__)


class WriteKind(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class WriteOperation:
    kind: WriteKind
    reference: Any
    data: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class BatchResult:
    matched: int
    chunk_sizes: tuple[int, ...]
    references: tuple[Any, ...] = ()

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_sizes)


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    if size <= 0:
        raise ValueError(f"chunk size must be > 0: {size}")
    return [items[start : start + size] for start in range(0, len(items), size)]


class FirestoreBatchWriter:
    """Commit write operations as atomic batches bounded by the store's per-batch limit.

    Operations beyond one batch are split into sequential chunks. Each chunk is
    atomic on its own; a failed chunk leaves earlier chunks applied and later
    chunks unattempted, which ``BatchCommitError`` reports.
    """

    def __init__(
        self,
        client: DocumentClient,
        *,
        batch_size: int | None = None,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ) -> None:
        if batch_limit <= 0:
            raise ValueError(f"batch_limit must be > 0: {batch_limit}")
        self._client = client
        self._batch_limit = batch_limit
        self._batch_size = self._validate_batch_size(batch_size if batch_size is not None else batch_limit)

    @property
    def batch_limit(self) -> int:
        return self._batch_limit

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def resolve_batch_size(self, batch_size: int | None = None) -> int:
        if batch_size is None:
            return self._batch_size
        return self._validate_batch_size(batch_size)

    async def commit_atomic(self, operations: Sequence[WriteOperation]) -> None:
        if len(operations) > self._batch_limit:
            raise InvalidBatchSizeError(len(operations), self._batch_limit)
        if not operations:
            return
        await self._commit_chunk(operations, chunk_index=0, total_chunks=1, committed_count=0)

    async def commit_chunked(
        self,
        operations: Sequence[WriteOperation],
        *,
        batch_size: int | None = None,
    ) -> tuple[int, ...]:
        size = self.resolve_batch_size(batch_size)
        chunks = chunked(operations, size)
        committed_count = 0
        for index, chunk in enumerate(chunks):
            await self._commit_chunk(
                chunk,
                chunk_index=index,
                total_chunks=len(chunks),
                committed_count=committed_count,
            )
            committed_count += len(chunk)
            LOGGER.debug("batch chunk committed: chunk=%s/%s size=%s", index + 1, len(chunks), len(chunk))
        return tuple(len(chunk) for chunk in chunks)

    async def update_many(
        self,
        path: str,
        options: QueryOptions | dict[str, Any] | None,
        data: Mapping[str, Any],
        *,
        batch_size: int | None = None,
    ) -> BatchResult:
        if not data:
            raise ValueError("update data must not be empty")
        return await self._mutate_matches(path, options, WriteKind.UPDATE, dict(data), batch_size=batch_size)

    async def delete_many(
        self,
        path: str,
        options: QueryOptions | dict[str, Any] | None = None,
        *,
        batch_size: int | None = None,
    ) -> BatchResult:
        return await self._mutate_matches(path, options, WriteKind.DELETE, None, batch_size=batch_size)

    async def _mutate_matches(
        self,
        path: str,
        options: QueryOptions | dict[str, Any] | None,
        kind: WriteKind,
        data: dict[str, Any] | None,
        *,
        batch_size: int | None,
    ) -> BatchResult:
        size = self.resolve_batch_size(batch_size)
        chain = parse_path(path)
        query = compile_chain_query(self._client, chain, options)
        snapshots = await execute_query(query)
        references = tuple(snapshot.reference for snapshot in snapshots)
        operations = [WriteOperation(kind, reference, data) for reference in references]

        chunk_sizes = await self.commit_chunked(operations, batch_size=size)
        LOGGER.info(
            "batch %s applied: path=%s matched=%s chunks=%s",
            kind.value,
            chain.path,
            len(references),
            len(chunk_sizes),
        )
        return BatchResult(matched=len(references), chunk_sizes=chunk_sizes, references=references)

    async def _commit_chunk(
        self,
        operations: Sequence[WriteOperation],
        *,
        chunk_index: int,
        total_chunks: int,
        committed_count: int,
    ) -> None:
        try:
            batch = self._client.batch()
            for operation in operations:
                _stage(batch, operation)
            await batch.commit()
        except Exception as exc:
            LOGGER.exception(
                "batch commit failed: chunk=%s/%s size=%s committed=%s",
                chunk_index + 1,
                total_chunks,
                len(operations),
                committed_count,
            )
            raise BatchCommitError(
                f"Batch commit failed at chunk {chunk_index + 1}/{total_chunks}: {exc}",
                chunk_index=chunk_index,
                total_chunks=total_chunks,
                committed_count=committed_count,
            ) from exc

    def _validate_batch_size(self, batch_size: int) -> int:
        if not isinstance(batch_size, int) or batch_size < 1 or batch_size > self._batch_limit:
            raise InvalidBatchSizeError(batch_size, self._batch_limit)
        return batch_size


def _stage(batch: Any, operation: WriteOperation) -> None:
    if operation.kind is WriteKind.SET:
        batch.set(operation.reference, dict(operation.data or {}))
    elif operation.kind is WriteKind.UPDATE:
        batch.update(operation.reference, dict(operation.data or {}))
    elif operation.kind is WriteKind.DELETE:
        batch.delete(operation.reference)
    else:
        raise ValueError(f"Unknown write operation: {operation.kind}")
