from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Union

from firepath.errors import DocumentNotFoundError
from firepath.settings import DEFAULT_BATCH_LIMIT
from firepath.storage.firestore_batch import BatchResult, FirestoreBatchWriter, WriteKind, WriteOperation
from firepath.storage.firestore_paths import (
    ReferenceChain,
    build_reference,
    parse_path,
    resolve_document_references,
)
from firepath.storage.firestore_query import QueryOptions, coerce_options, compile_chain_query, execute_query
from firepath.storage.firestore_results import NOT_FOUND, Found, LookupResult, NotFound
from firepath.storage.firestore_store import DocumentClient


LOGGER = logging.getLogger(__name__)

OptionsInput = Union[QueryOptions, Mapping[str, Any], None]


class FirestoreDocumentRepository:
    def __init__(
        self,
        client: DocumentClient,
        *,
        batch_writer: FirestoreBatchWriter | None = None,
        batch_size: int | None = None,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ) -> None:
        self._client = client
        self._batch_writer = batch_writer or FirestoreBatchWriter(
            client,
            batch_size=batch_size,
            batch_limit=batch_limit,
        )

    @property
    def batch_writer(self) -> FirestoreBatchWriter:
        return self._batch_writer

    async def get_one(
        self,
        path: str,
        options: OptionsInput = None,
        *,
        error_if_missing: bool = False,
    ) -> LookupResult:
        options, error_if_missing = _split_existence(options, error_if_missing)
        chain = parse_path(path)
        snapshot = await self._find_first(chain, options)
        if snapshot is None:
            return _missing(chain, error_if_missing)
        return Found.from_snapshot(snapshot)

    async def get_all(self, path: str, options: OptionsInput = None) -> list[dict[str, Any]]:
        return [found.data for found in await self.list_found(path, options)]

    async def list_found(self, path: str, options: OptionsInput = None) -> list[Found]:
        chain = parse_path(path)
        options = coerce_options(_without_existence(options))
        if chain.is_document and options.is_empty:
            snapshot = await build_reference(self._client, chain).get()
            snapshots = [snapshot] if snapshot.exists else []
        else:
            snapshots = await execute_query(compile_chain_query(self._client, chain, options))
        return [Found.from_snapshot(snapshot) for snapshot in snapshots]

    async def create(self, paths: str | Iterable[str], data: Mapping[str, Any]) -> list[Any]:
        """Write ``data`` to every path in one atomic batch.

        A collection path gets a new document with a generated id. Returns the
        written document references in input order.
        """

        if not isinstance(data, Mapping):
            raise TypeError(f"data must be a mapping: {type(data).__name__}")
        references = resolve_document_references(self._client, paths)
        operations = [WriteOperation(WriteKind.SET, reference, dict(data)) for reference in references]
        await self._batch_writer.commit_atomic(operations)
        LOGGER.info("documents created: count=%s", len(references))
        return references

    async def update_one(
        self,
        path: str,
        options: OptionsInput,
        data: Mapping[str, Any],
    ) -> Any:
        """Update the first match. Without order_by the store's default order decides ties."""

        if not data:
            raise ValueError("update data must not be empty")
        chain = parse_path(path)
        snapshot = await self._find_first(chain, coerce_options(_without_existence(options)))
        if snapshot is None:
            raise DocumentNotFoundError(chain.path)
        await snapshot.reference.update(dict(data))
        return snapshot.reference

    async def delete_one(
        self,
        path: str,
        options: OptionsInput = None,
        *,
        error_if_missing: bool = False,
    ) -> LookupResult:
        options, error_if_missing = _split_existence(options, error_if_missing)
        chain = parse_path(path)
        snapshot = await self._find_first(chain, options)
        if snapshot is None:
            return _missing(chain, error_if_missing)
        await snapshot.reference.delete()
        return Found.from_snapshot(snapshot)

    async def update_many(
        self,
        path: str,
        options: OptionsInput,
        data: Mapping[str, Any],
        *,
        batch_size: int | None = None,
    ) -> BatchResult:
        return await self._batch_writer.update_many(path, _without_existence(options), data, batch_size=batch_size)

    async def delete_many(
        self,
        path: str,
        options: OptionsInput = None,
        *,
        batch_size: int | None = None,
    ) -> BatchResult:
        return await self._batch_writer.delete_many(path, _without_existence(options), batch_size=batch_size)

    async def _find_first(self, chain: ReferenceChain, options: QueryOptions) -> Any | None:
        if chain.is_document and options.is_empty:
            snapshot = await build_reference(self._client, chain).get()
            return snapshot if snapshot.exists else None
        snapshots = await execute_query(compile_chain_query(self._client, chain, options.with_limit(1)))
        return snapshots[0] if snapshots else None


def _missing(chain: ReferenceChain, error_if_missing: bool) -> NotFound:
    if error_if_missing:
        raise DocumentNotFoundError(chain.path)
    LOGGER.debug("document not found: path=%s", chain.path)
    return NOT_FOUND


def _without_existence(options: OptionsInput) -> QueryOptions | dict[str, Any] | None:
    if isinstance(options, Mapping):
        return {key: value for key, value in options.items() if key != "error_if_missing"}
    return options


def _split_existence(options: OptionsInput, error_if_missing: bool) -> tuple[QueryOptions, bool]:
    # error_if_missing may also ride along in a dict of query options.
    if isinstance(options, Mapping) and "error_if_missing" in options:
        error_if_missing = bool(options["error_if_missing"]) or error_if_missing
    return coerce_options(_without_existence(options)), error_if_missing
