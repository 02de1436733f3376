from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Any, Iterable, Mapping, Sequence

from firepath.errors import QueryCompileError
from firepath.storage.firestore_paths import ReferenceChain, build_collection_reference, build_reference
from firepath.storage.firestore_results import Found
from firepath.storage.firestore_store import DocumentClient


LOGGER = logging.getLogger(__name__)

ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"
DOCUMENT_ID_FIELD = "__name__"

_OPERATOR_ALIASES = {
    "<": "<",
    "<=": "<=",
    "==": "==",
    "!=": "!=",
    ">=": ">=",
    ">": ">",
    "in": "in",
    "not-in": "not-in",
    "not_in": "not-in",
    "array-contains": "array_contains",
    "array_contains": "array_contains",
    "array-contains-any": "array_contains_any",
    "array_contains_any": "array_contains_any",
}
LIST_OPERATORS = frozenset({"in", "not-in", "array_contains_any"})

_DIRECTION_ALIASES = {
    "asc": ASCENDING,
    "ascending": ASCENDING,
    "desc": DESCENDING,
    "descending": DESCENDING,
}

# Store exceptions that mean the query itself was rejected (bad argument or
# missing composite index), matched by class name so google-api-core stays optional.
_QUERY_REJECTION_ERRORS = {"InvalidArgument", "FailedPrecondition"}


@dataclass(frozen=True)
class FieldFilter:
    field_path: str
    op: str
    value: Any


@dataclass(frozen=True)
class Ordering:
    field_path: str
    direction: str = ASCENDING


@dataclass(frozen=True)
class QueryOptions:
    where: tuple[FieldFilter, ...] = ()
    order_by: tuple[Ordering, ...] = ()
    limit: int | None = None
    offset: int | None = None
    start_at: Any = None
    start_after: Any = None
    end_at: Any = None
    end_before: Any = None

    @classmethod
    def build(
        cls,
        *,
        where: Any = None,
        order_by: Any = None,
        limit: int | None = None,
        offset: int | None = None,
        start_at: Any = None,
        start_after: Any = None,
        end_at: Any = None,
        end_before: Any = None,
    ) -> "QueryOptions":
        """Build options from loose caller input.

        ``where`` accepts one ``(field, op, value)`` triple or a list of them.
        ``order_by`` accepts a field name, a ``(field, direction)`` pair, or a
        list mixing both.
        """

        return cls(
            where=tuple(_normalize_filters(where)),
            order_by=tuple(_normalize_orderings(order_by)),
            limit=limit,
            offset=offset,
            start_at=start_at,
            start_after=start_after,
            end_at=end_at,
            end_before=end_before,
        )

    @property
    def cursors(self) -> dict[str, Any]:
        values = {
            "start_at": self.start_at,
            "start_after": self.start_after,
            "end_at": self.end_at,
            "end_before": self.end_before,
        }
        return {name: value for name, value in values.items() if value is not None}

    @property
    def is_empty(self) -> bool:
        return (
            not self.where
            and not self.order_by
            and self.limit is None
            and self.offset is None
            and not self.cursors
        )

    def with_filter(self, field_path: str, op: str, value: Any) -> "QueryOptions":
        return replace(self, where=self.where + (FieldFilter(field_path, _normalize_operator(op), value),))

    def with_limit(self, limit: int) -> "QueryOptions":
        if self.limit is not None and self.limit <= limit:
            return self
        return replace(self, limit=limit)


def coerce_options(options: QueryOptions | dict[str, Any] | None) -> QueryOptions:
    if options is None:
        return QueryOptions()
    if isinstance(options, QueryOptions):
        return options
    if isinstance(options, dict):
        try:
            return QueryOptions.build(**options)
        except TypeError as exc:
            raise QueryCompileError(f"Unknown query option: {exc}") from exc
    raise QueryCompileError(f"Unsupported query options type: {type(options).__name__}")


def compile_query(collection_ref: Any, options: QueryOptions | dict[str, Any] | None = None) -> Any:
    """Attach filters, ordering, cursors, offset and limit to a collection reference.

    Pure transformation: the store's query builder is called but nothing is executed.
    """

    options = coerce_options(options)
    _validate(options)

    cursors = {name: _store_cursor(cursor, options.order_by) for name, cursor in options.cursors.items()}
    query = collection_ref
    try:
        for item in options.where:
            query = query.where(item.field_path, _normalize_operator(item.op), item.value)
        for ordering in options.order_by:
            query = query.order_by(ordering.field_path, direction=_normalize_direction(ordering.direction))
        for name, cursor in cursors.items():
            query = getattr(query, name)(cursor)
        if options.offset:
            query = query.offset(options.offset)
        if options.limit is not None:
            query = query.limit(options.limit)
    except (TypeError, ValueError) as exc:
        raise QueryCompileError(f"Query rejected by store: {exc}") from exc
    return query


def compile_chain_query(
    client: DocumentClient,
    chain: ReferenceChain,
    options: QueryOptions | dict[str, Any] | None = None,
) -> Any:
    """Compile a query for either a collection path or a document path.

    Filters on a document path act as a precondition: the parent collection is
    queried with an extra document-id equality on the target.
    """

    options = coerce_options(options)
    if chain.is_document:
        options = options.with_filter(DOCUMENT_ID_FIELD, "==", build_reference(client, chain))
    return compile_query(build_collection_reference(client, chain), options)


async def execute_query(query: Any) -> list[Any]:
    try:
        return [snapshot async for snapshot in query.stream()]
    except Exception as exc:
        if exc.__class__.__name__ in _QUERY_REJECTION_ERRORS:
            LOGGER.warning("query rejected by store: error=%s", exc)
            raise QueryCompileError(str(exc)) from exc
        raise


def _store_cursor(cursor: Any, order_by: tuple[Ordering, ...]) -> Any:
    """Translate a repository result into a cursor the store accepts."""
    if not isinstance(cursor, Found):
        return cursor
    if cursor.snapshot is not None:
        return cursor.snapshot
    if not order_by:
        raise QueryCompileError("A cursor built from document data requires order_by.")
    values: list[Any] = []
    for ordering in order_by:
        value: Any = cursor.data
        for part in ordering.field_path.split("."):
            if not isinstance(value, Mapping) or part not in value:
                raise QueryCompileError(f"Cursor document has no value for order field: {ordering.field_path}")
            value = value[part]
        values.append(value)
    return values


def _validate(options: QueryOptions) -> None:
    for item in options.where:
        if _normalize_operator(item.op) in LIST_OPERATORS and not isinstance(item.value, (list, tuple)):
            raise QueryCompileError(f"Operator {item.op!r} requires a list value: field={item.field_path}")
    if options.limit is not None and (not isinstance(options.limit, int) or options.limit <= 0):
        raise QueryCompileError(f"limit must be > 0: {options.limit}")
    if options.offset is not None and (not isinstance(options.offset, int) or options.offset < 0):
        raise QueryCompileError(f"offset must be >= 0: {options.offset}")
    for name, cursor in options.cursors.items():
        if isinstance(cursor, (list, tuple)) and len(cursor) > len(options.order_by):
            raise QueryCompileError(f"{name} has more values than order_by clauses: {len(cursor)}")


def _normalize_operator(op: Any) -> str:
    normalized = _OPERATOR_ALIASES.get(str(op).strip().lower())
    if normalized is None:
        raise QueryCompileError(f"Unsupported filter operator: {op!r}")
    return normalized


def _normalize_direction(direction: Any) -> str:
    raw = str(direction).strip()
    if raw.upper() in {ASCENDING, DESCENDING}:
        return raw.upper()
    normalized = _DIRECTION_ALIASES.get(raw.lower())
    if normalized is None:
        raise QueryCompileError(f"Unsupported order direction: {direction!r}")
    return normalized


def _is_filter_triple(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 3
        and isinstance(value[0], str)
        and isinstance(value[1], str)
    )


def _normalize_filters(where: Any) -> Iterable[FieldFilter]:
    if where is None:
        return []
    if isinstance(where, FieldFilter):
        return [where]
    items: Sequence[Any] = [where] if _is_filter_triple(where) else where
    filters: list[FieldFilter] = []
    for item in items:
        if isinstance(item, FieldFilter):
            filters.append(replace(item, op=_normalize_operator(item.op)))
            continue
        if not _is_filter_triple(item):
            raise QueryCompileError(f"Filter must be (field, op, value): {item!r}")
        field_path, op, value = item
        filters.append(FieldFilter(field_path.strip(), _normalize_operator(op), value))
    return filters


def _normalize_orderings(order_by: Any) -> Iterable[Ordering]:
    if order_by is None:
        return []
    if isinstance(order_by, (str, Ordering)):
        items: Sequence[Any] = [order_by]
    elif (
        isinstance(order_by, (list, tuple))
        and len(order_by) == 2
        and all(isinstance(value, str) for value in order_by)
        and _DIRECTION_ALIASES.get(order_by[1].strip().lower(), order_by[1].strip().upper())
        in {ASCENDING, DESCENDING}
    ):
        items = [tuple(order_by)]
    else:
        items = order_by

    orderings: list[Ordering] = []
    for item in items:
        if isinstance(item, Ordering):
            orderings.append(Ordering(item.field_path, _normalize_direction(item.direction)))
        elif isinstance(item, str):
            orderings.append(Ordering(item.strip()))
        elif isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[0], str):
            orderings.append(Ordering(item[0].strip(), _normalize_direction(item[1])))
        else:
            raise QueryCompileError(f"order_by must be a field or (field, direction): {item!r}")
    return orderings
