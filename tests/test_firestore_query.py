from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import unittest

from firepath.errors import QueryCompileError
from firepath.storage.firestore_paths import parse_path
from firepath.storage.firestore_query import (
    DESCENDING,
    FieldFilter,
    Ordering,
    QueryOptions,
    compile_chain_query,
    compile_query,
    execute_query,
)
from firepath.storage.memory_store import InMemoryDocumentStore


@dataclass(frozen=True)
class RecordingQuery:
    calls: tuple[tuple[Any, ...], ...] = ()

    def where(self, field_path: str, op_string: str, value: Any) -> "RecordingQuery":
        return self._record("where", field_path, op_string, value)

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "RecordingQuery":
        return self._record("order_by", field_path, direction)

    def limit(self, count: int) -> "RecordingQuery":
        return self._record("limit", count)

    def offset(self, num_to_skip: int) -> "RecordingQuery":
        return self._record("offset", num_to_skip)

    def start_at(self, cursor: Any) -> "RecordingQuery":
        return self._record("start_at", cursor)

    def start_after(self, cursor: Any) -> "RecordingQuery":
        return self._record("start_after", cursor)

    def end_at(self, cursor: Any) -> "RecordingQuery":
        return self._record("end_at", cursor)

    def end_before(self, cursor: Any) -> "RecordingQuery":
        return self._record("end_before", cursor)

    def _record(self, *call: Any) -> "RecordingQuery":
        return RecordingQuery(calls=self.calls + (call,))


class RejectingWhereQuery(RecordingQuery):
    def where(self, field_path: str, op_string: str, value: Any) -> "RecordingQuery":
        raise ValueError("Operator string is invalid.")


class FailedPrecondition(Exception):
    pass


@dataclass
class RaisingStreamQuery:
    error: Exception
    started: list[bool] = field(default_factory=list)

    async def stream(self) -> Any:
        self.started.append(True)
        raise self.error
        yield  # pragma: no cover


class QueryOptionsBuildTest(unittest.TestCase):
    def test_single_filter_triple(self) -> None:
        options = QueryOptions.build(where=("age", ">=", 30))

        self.assertEqual(options.where, (FieldFilter("age", ">=", 30),))

    def test_filter_list_keeps_declaration_order(self) -> None:
        options = QueryOptions.build(where=[["age", "<=", 40], ("age", ">=", 30), ("name", "==", "Bob")])

        self.assertEqual(
            [(item.field_path, item.op) for item in options.where],
            [("age", "<="), ("age", ">="), ("name", "==")],
        )

    def test_operator_aliases(self) -> None:
        options = QueryOptions.build(
            where=[
                ("tags", "array-contains", "a"),
                ("tags", "array-contains-any", ["a"]),
                ("kind", "not_in", ["x"]),
            ]
        )

        self.assertEqual([item.op for item in options.where], ["array_contains", "array_contains_any", "not-in"])

    def test_unknown_operator_raises(self) -> None:
        with self.assertRaises(QueryCompileError):
            QueryOptions.build(where=("name", "like", "B%"))

    def test_order_by_forms(self) -> None:
        self.assertEqual(QueryOptions.build(order_by="name").order_by, (Ordering("name"),))
        self.assertEqual(QueryOptions.build(order_by=("name", "desc")).order_by, (Ordering("name", DESCENDING),))
        self.assertEqual(
            QueryOptions.build(order_by=["name", "age"]).order_by,
            (Ordering("name"), Ordering("age")),
        )
        self.assertEqual(
            QueryOptions.build(order_by=[("age", "DESCENDING"), "name"]).order_by,
            (Ordering("age", DESCENDING), Ordering("name")),
        )

    def test_unknown_direction_raises(self) -> None:
        with self.assertRaises(QueryCompileError):
            QueryOptions.build(order_by=[("name", "sideways")])

    def test_malformed_filter_raises(self) -> None:
        with self.assertRaises(QueryCompileError):
            QueryOptions.build(where=[("age", ">=")])

    def test_is_empty(self) -> None:
        self.assertTrue(QueryOptions().is_empty)
        self.assertFalse(QueryOptions(limit=1).is_empty)
        self.assertFalse(QueryOptions(start_at=["a"]).is_empty)


class CompileQueryTest(unittest.TestCase):
    def test_applies_clauses_in_order(self) -> None:
        base = RecordingQuery()
        options = QueryOptions.build(
            where=[("age", ">=", 30), ("age", "<=", 40)],
            order_by=["name", ("age", "desc")],
            start_at=["A"],
            offset=5,
            limit=10,
        )

        query = compile_query(base, options)

        self.assertEqual(
            query.calls,
            (
                ("where", "age", ">=", 30),
                ("where", "age", "<=", 40),
                ("order_by", "name", "ASCENDING"),
                ("order_by", "age", "DESCENDING"),
                ("start_at", ["A"]),
                ("offset", 5),
                ("limit", 10),
            ),
        )

    def test_compile_is_pure(self) -> None:
        base = RecordingQuery()
        compile_query(base, QueryOptions.build(where=("age", ">=", 30)))

        self.assertEqual(base.calls, ())

    def test_no_options_returns_collection(self) -> None:
        base = RecordingQuery()

        self.assertIs(compile_query(base, None), base)

    def test_dict_options(self) -> None:
        query = compile_query(RecordingQuery(), {"where": ["age", ">=", 30], "limit": 2})

        self.assertEqual(query.calls, (("where", "age", ">=", 30), ("limit", 2)))

    def test_unknown_dict_option_raises(self) -> None:
        with self.assertRaises(QueryCompileError):
            compile_query(RecordingQuery(), {"filter": ["age", ">=", 30]})

    def test_non_positive_limit_raises(self) -> None:
        for limit in (0, -1):
            with self.assertRaises(QueryCompileError):
                compile_query(RecordingQuery(), QueryOptions(limit=limit))

    def test_negative_offset_raises(self) -> None:
        with self.assertRaises(QueryCompileError):
            compile_query(RecordingQuery(), QueryOptions(offset=-1))

    def test_list_operator_requires_list(self) -> None:
        with self.assertRaises(QueryCompileError):
            compile_query(RecordingQuery(), QueryOptions.build(where=("status", "in", "active")))

    def test_cursor_longer_than_ordering_raises(self) -> None:
        with self.assertRaises(QueryCompileError):
            compile_query(RecordingQuery(), QueryOptions.build(order_by="name", start_at=["A", 30]))

    def test_store_rejection_is_compile_error(self) -> None:
        with self.assertRaises(QueryCompileError):
            compile_query(RejectingWhereQuery(), QueryOptions.build(where=("age", ">=", 30)))

    def test_document_path_filters_parent_collection_by_id(self) -> None:
        store = InMemoryDocumentStore()
        query = compile_chain_query(store, parse_path("users/42"), {"where": ("age", ">=", 30)})

        self.assertEqual(query.path, "users")
        self.assertEqual(query.filters[0], ("age", ">=", 30))
        field_path, op, value = query.filters[1]
        self.assertEqual((field_path, op, value.path), ("__name__", "==", "users/42"))


class ExecuteQueryTest(unittest.IsolatedAsyncioTestCase):
    async def test_rejected_query_is_compile_error(self) -> None:
        query = RaisingStreamQuery(FailedPrecondition("The query requires an index."))

        with self.assertRaises(QueryCompileError):
            await execute_query(query)

    async def test_other_store_errors_propagate(self) -> None:
        query = RaisingStreamQuery(ConnectionError("unavailable"))

        with self.assertRaises(ConnectionError):
            await execute_query(query)

    async def test_returns_snapshots_in_order(self) -> None:
        store = InMemoryDocumentStore(docs={"users/b": {"n": 2}, "users/a": {"n": 1}})

        snapshots = await execute_query(store.collection("users"))

        self.assertEqual([snapshot.id for snapshot in snapshots], ["a", "b"])


if __name__ == "__main__":
    unittest.main()
