from __future__ import annotations

import unittest
from unittest.mock import patch

import scripts.delete_documents as target
from firepath.errors import BatchCommitError
from firepath.settings import AppSettings
from firepath.storage.firestore_query import FieldFilter, Ordering
from firepath.storage.memory_store import InMemoryDocumentStore


def _settings(**overrides: object) -> AppSettings:
    values: dict[str, object] = {
        "app_env": "test",
        "firestore_project_id": "",
        "firestore_database": "",
        "batch_limit": 500,
        "batch_size": 500,
        "log_level": "INFO",
    }
    values.update(overrides)
    return AppSettings(**values)  # type: ignore[arg-type]


class ParseValueTest(unittest.TestCase):
    def test_json_values(self) -> None:
        self.assertEqual(target.parse_value("30"), 30)
        self.assertEqual(target.parse_value("true"), True)
        self.assertEqual(target.parse_value('["a", "b"]'), ["a", "b"])

    def test_plain_text_falls_back_to_string(self) -> None:
        self.assertEqual(target.parse_value("draft"), "draft")


class BuildOptionsTest(unittest.TestCase):
    def test_collects_repeated_filters(self) -> None:
        args = target.parse_args(
            [
                "users/42/posts",
                "--where",
                "published",
                "==",
                "false",
                "--where",
                "status",
                "in",
                '["draft", "hidden"]',
                "--order-by",
                "createdAt",
                "--limit",
                "10",
                "--batch-size",
                "100",
            ]
        )

        options = target.build_options(args)

        self.assertEqual(args.path, "users/42/posts")
        self.assertEqual(args.batch_size, 100)
        self.assertEqual(
            options.where,
            (
                FieldFilter("published", "==", False),
                FieldFilter("status", "in", ["draft", "hidden"]),
            ),
        )
        self.assertEqual(options.order_by, (Ordering("createdAt"),))
        self.assertEqual(options.limit, 10)

    def test_no_filters(self) -> None:
        options = target.build_options(target.parse_args(["users"]))

        self.assertTrue(options.is_empty)


class RunTest(unittest.IsolatedAsyncioTestCase):
    async def test_deletes_matches(self) -> None:
        store = InMemoryDocumentStore(
            docs={
                "users/a": {"age": 20},
                "users/b": {"age": 40},
            }
        )
        args = target.parse_args(["users", "--where", "age", "<", "30"])

        with patch.object(target, "create_firestore_client", return_value=store):
            exit_code = await target.run(args, _settings())

        self.assertEqual(exit_code, 0)
        self.assertEqual(list(store.docs), ["users/b"])

    async def test_invalid_batch_size_exit_code(self) -> None:
        store = InMemoryDocumentStore(docs={"users/a": {"age": 20}})
        args = target.parse_args(["users", "--batch-size", "501"])

        with patch.object(target, "create_firestore_client", return_value=store):
            exit_code = await target.run(args, _settings())

        self.assertEqual(exit_code, 2)
        self.assertIn("users/a", store.docs)

    async def test_commit_failure_exit_code(self) -> None:
        args = target.parse_args(["users"])

        error = BatchCommitError("boom", chunk_index=1, total_chunks=2, committed_count=500)

        with patch.object(target, "create_firestore_client", return_value=InMemoryDocumentStore()):
            with patch.object(target.FirestoreDocumentRepository, "delete_many", side_effect=error):
                exit_code = await target.run(args, _settings())

        self.assertEqual(exit_code, 1)

    async def test_project_id_override(self) -> None:
        args = target.parse_args(["users", "--project-id", "demo-project"])

        with patch.object(target, "create_firestore_client", return_value=InMemoryDocumentStore()) as factory:
            await target.run(args, _settings(firestore_project_id="original"))

        self.assertEqual(factory.call_args.args[0].firestore_project_id, "demo-project")


if __name__ == "__main__":
    unittest.main()
