from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, AsyncIterator
import uuid

from firepath.settings import DEFAULT_BATCH_LIMIT


_COMPARISON_OPERATORS = {
    "<",
    "<=",
    "==",
    "!=",
    ">=",
    ">",
    "in",
    "not-in",
    "array_contains",
    "array_contains_any",
}
_DIRECTIONS = {"ASCENDING", "DESCENDING"}
_DOCUMENT_ID_FIELD = "__name__"


class MemoryStoreError(Exception):
    """Base in-memory store error."""


class NotFound(MemoryStoreError):
    """Raised when updating a document that does not exist."""


class InvalidArgument(MemoryStoreError):
    """Raised when a batch exceeds the operation limit."""


@dataclass
class InMemoryDocumentStore:
    """Dict-backed document store with Firestore's async client surface.

    Keys of ``docs`` are full document paths such as ``users/42/posts/1``.
    """

    docs: dict[str, dict[str, Any]] = field(default_factory=dict)
    max_batch_operations: int = DEFAULT_BATCH_LIMIT
    commits: list[int] = field(default_factory=list)

    def collection(self, collection_id: str) -> "MemoryCollectionReference":
        return MemoryCollectionReference(store=self, path=collection_id)

    def batch(self) -> "MemoryWriteBatch":
        return MemoryWriteBatch(store=self)


@dataclass(frozen=True)
class MemorySnapshot:
    reference: "MemoryDocumentReference"
    exists: bool
    data: dict[str, Any] | None = None

    @property
    def id(self) -> str:
        return self.reference.id

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self.data) if self.data is not None else None

    def get(self, field_path: str) -> Any:
        return _lookup(self.data or {}, field_path)[1]


@dataclass(frozen=True)
class MemoryDocumentReference:
    store: InMemoryDocumentStore = field(compare=False, repr=False)
    path: str

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def collection(self, collection_id: str) -> "MemoryCollectionReference":
        return MemoryCollectionReference(store=self.store, path=f"{self.path}/{collection_id}")

    async def get(self) -> MemorySnapshot:
        data = self.store.docs.get(self.path)
        return MemorySnapshot(reference=self, exists=data is not None, data=copy.deepcopy(data))

    async def set(self, document_data: dict[str, Any]) -> None:
        self.store.docs[self.path] = copy.deepcopy(dict(document_data))

    async def update(self, field_updates: dict[str, Any]) -> None:
        self.store.docs[self.path] = _apply_update(self.store.docs, self.path, field_updates)

    async def delete(self) -> None:
        self.store.docs.pop(self.path, None)


@dataclass(frozen=True)
class MemoryQuery:
    store: InMemoryDocumentStore = field(compare=False, repr=False)
    path: str
    filters: tuple[tuple[str, str, Any], ...] = ()
    orderings: tuple[tuple[str, str], ...] = ()
    limit_count: int | None = None
    offset_count: int = 0
    cursors: tuple[tuple[str, Any], ...] = ()

    def where(self, field_path: str, op_string: str, value: Any) -> "MemoryQuery":
        if op_string not in _COMPARISON_OPERATORS:
            raise ValueError(f"Operator string {op_string!r} is invalid.")
        return self._copy(filters=self.filters + ((field_path, op_string, value),))

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "MemoryQuery":
        if direction not in _DIRECTIONS:
            raise ValueError(f"Invalid direction {direction!r}.")
        return self._copy(orderings=self.orderings + ((field_path, direction),))

    def limit(self, count: int) -> "MemoryQuery":
        return self._copy(limit_count=count)

    def offset(self, num_to_skip: int) -> "MemoryQuery":
        return self._copy(offset_count=num_to_skip)

    def start_at(self, cursor: Any) -> "MemoryQuery":
        return self._with_cursor("start_at", cursor)

    def start_after(self, cursor: Any) -> "MemoryQuery":
        return self._with_cursor("start_after", cursor)

    def end_at(self, cursor: Any) -> "MemoryQuery":
        return self._with_cursor("end_at", cursor)

    def end_before(self, cursor: Any) -> "MemoryQuery":
        return self._with_cursor("end_before", cursor)

    async def stream(self) -> AsyncIterator[MemorySnapshot]:
        rows = [
            (path, data)
            for path, data in sorted(self.store.docs.items())
            if path.rsplit("/", 1)[0] == self.path and "/" in path
        ]
        rows = [row for row in rows if all(_matches(row, item) for item in self.filters)]
        rows = [row for row in rows if all(_lookup(row[1], name)[0] for name, _ in self.orderings)]
        for field_path, direction in reversed(self.orderings):
            rows.sort(
                key=lambda row, name=field_path: _sort_key(_lookup(row[1], name)[1]),
                reverse=direction == "DESCENDING",
            )
        for name, cursor in self.cursors:
            rows = [row for row in rows if _passes_cursor(row, name, cursor, self.orderings)]
        rows = rows[self.offset_count :]
        if self.limit_count is not None:
            rows = rows[: self.limit_count]
        for path, data in rows:
            yield MemorySnapshot(
                reference=MemoryDocumentReference(store=self.store, path=path),
                exists=True,
                data=copy.deepcopy(data),
            )

    def _with_cursor(self, name: str, cursor: Any) -> "MemoryQuery":
        if not isinstance(cursor, (MemorySnapshot, dict, list, tuple)):
            raise ValueError(f"Cursor must be a snapshot, dict, list or tuple: {type(cursor).__name__}")
        kept = tuple(item for item in self.cursors if item[0] != name)
        return self._copy(cursors=kept + ((name, cursor),))

    def _copy(self, **changes: Any) -> "MemoryQuery":
        return replace(self, **changes)


@dataclass(frozen=True)
class MemoryCollectionReference(MemoryQuery):
    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def document(self, document_id: str | None = None) -> MemoryDocumentReference:
        doc_id = document_id if document_id is not None else uuid.uuid4().hex[:20]
        return MemoryDocumentReference(store=self.store, path=f"{self.path}/{doc_id}")

    def _copy(self, **changes: Any) -> MemoryQuery:
        base = MemoryQuery(store=self.store, path=self.path)
        return replace(base, **changes)


@dataclass
class MemoryWriteBatch:
    store: InMemoryDocumentStore = field(repr=False)
    operations: list[tuple[str, MemoryDocumentReference, dict[str, Any] | None]] = field(default_factory=list)
    committed: bool = False

    def set(self, reference: MemoryDocumentReference, document_data: dict[str, Any]) -> "MemoryWriteBatch":
        self.operations.append(("set", reference, copy.deepcopy(dict(document_data))))
        return self

    def update(self, reference: MemoryDocumentReference, field_updates: dict[str, Any]) -> "MemoryWriteBatch":
        self.operations.append(("update", reference, copy.deepcopy(dict(field_updates))))
        return self

    def delete(self, reference: MemoryDocumentReference) -> "MemoryWriteBatch":
        self.operations.append(("delete", reference, None))
        return self

    async def commit(self) -> list[Any]:
        if self.committed:
            raise ValueError("Batch already committed.")
        if len(self.operations) > self.store.max_batch_operations:
            raise InvalidArgument(
                f"maximum {self.store.max_batch_operations} writes allowed per request: {len(self.operations)}"
            )
        # Apply onto a copy and swap so a failing operation leaves the store untouched.
        staged = dict(self.store.docs)
        for kind, reference, data in self.operations:
            self._apply(staged, kind, reference, data)
        self.store.docs.clear()
        self.store.docs.update(staged)
        self.store.commits.append(len(self.operations))
        self.committed = True
        return [reference for _, reference, _ in self.operations]

    def _apply(
        self,
        staged: dict[str, dict[str, Any]],
        kind: str,
        reference: MemoryDocumentReference,
        data: dict[str, Any] | None,
    ) -> None:
        if kind == "set":
            staged[reference.path] = dict(data or {})
        elif kind == "update":
            staged[reference.path] = _apply_update(staged, reference.path, data or {})
        elif kind == "delete":
            staged.pop(reference.path, None)
        else:
            raise ValueError(f"Unknown batch operation: {kind}")


def _apply_update(docs: dict[str, dict[str, Any]], path: str, field_updates: dict[str, Any]) -> dict[str, Any]:
    if path not in docs:
        raise NotFound(f"No document to update: {path}")
    updated = copy.deepcopy(docs[path])
    for key, value in field_updates.items():
        target = updated
        parts = key.split(".")
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = copy.deepcopy(value)
    return updated


def _lookup(data: dict[str, Any], field_path: str) -> tuple[bool, Any]:
    value: Any = data
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return False, None
        value = value[part]
    return True, value


def _type_rank(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, datetime):
        return 3
    if isinstance(value, str):
        return 4
    if isinstance(value, bytes):
        return 5
    if isinstance(value, MemoryDocumentReference):
        return 6
    if isinstance(value, (list, tuple)):
        return 8
    if isinstance(value, dict):
        return 9
    return 10


def _sort_key(value: Any) -> tuple[int, Any]:
    rank = _type_rank(value)
    if rank == 0:
        return (rank, 0)
    if rank == 6:
        return (rank, value.path)
    if rank in {8, 9, 10}:
        return (rank, repr(value))
    return (rank, value)


def _compare(left: Any, right: Any) -> int:
    left_key = _sort_key(left)
    right_key = _sort_key(right)
    if left_key < right_key:
        return -1
    if left_key > right_key:
        return 1
    return 0


def _matches(row: tuple[str, dict[str, Any]], item: tuple[str, str, Any]) -> bool:
    path, data = row
    field_path, op, target = item
    if field_path == _DOCUMENT_ID_FIELD:
        found, value = True, path
        target = target.path if isinstance(target, MemoryDocumentReference) else target
    else:
        found, value = _lookup(data, field_path)
    if not found:
        return False

    if op == "==":
        return value == target
    if op == "!=":
        return value is not None and value != target
    if op == "in":
        return value in target
    if op == "not-in":
        return value is not None and value not in target
    if op == "array_contains":
        return isinstance(value, list) and target in value
    if op == "array_contains_any":
        return isinstance(value, list) and any(candidate in value for candidate in target)
    if _type_rank(value) != _type_rank(target):
        return False
    result = _compare(value, target)
    return {
        "<": result < 0,
        "<=": result <= 0,
        ">": result > 0,
        ">=": result >= 0,
    }[op]


def _cursor_values(cursor: Any, orderings: tuple[tuple[str, str], ...]) -> list[Any]:
    if isinstance(cursor, MemorySnapshot):
        values = [cursor.get(name) for name, _ in orderings]
        values.append(cursor.reference.path)
        return values
    if isinstance(cursor, dict):
        return [_lookup(cursor, name)[1] for name, _ in orderings]
    return list(cursor)


def _passes_cursor(
    row: tuple[str, dict[str, Any]],
    name: str,
    cursor: Any,
    orderings: tuple[tuple[str, str], ...],
) -> bool:
    path, data = row
    values = _cursor_values(cursor, orderings)
    directions = [direction for _, direction in orderings] + ["ASCENDING"]
    row_values = [_lookup(data, field_path)[1] for field_path, _ in orderings] + [path]

    result = 0
    for index, cursor_value in enumerate(values):
        step = _compare(row_values[index], cursor_value)
        if directions[index] == "DESCENDING":
            step = -step
        if step != 0:
            result = step
            break

    return {
        "start_at": result >= 0,
        "start_after": result > 0,
        "end_at": result <= 0,
        "end_before": result < 0,
    }[name]
