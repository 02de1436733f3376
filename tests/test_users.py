from __future__ import annotations

import unittest

from firepath.errors import DocumentNotFoundError
from firepath.storage.firestore_documents import FirestoreDocumentRepository
from firepath.storage.firestore_results import NOT_FOUND, Found
from firepath.storage.memory_store import InMemoryDocumentStore
from firepath.users import UserDirectory


def _directory() -> tuple[UserDirectory, InMemoryDocumentStore]:
    store = InMemoryDocumentStore(
        docs={
            "users/u1": {"name": "Mia", "age": 33},
            "users/u2": {"name": "Ann", "age": 40},
            "users/u3": {"name": "Ken", "age": 24},
            "users/u4": {"name": "Bea", "age": 30},
            "users/u5": {"name": "Zed", "age": 52},
            "users/u6": {"name": "Ida", "age": 25},
        }
    )
    return UserDirectory(FirestoreDocumentRepository(store)), store


class UserDirectoryTest(unittest.IsolatedAsyncioTestCase):
    async def test_age_range_is_inclusive_and_sorted_by_name(self) -> None:
        directory, _ = _directory()

        rows = await directory.get_users_by_age_range(30, 40)

        self.assertEqual([row["name"] for row in rows], ["Ann", "Bea", "Mia"])
        self.assertTrue(all(30 <= row["age"] <= 40 for row in rows))

    async def test_age_range_rejects_inverted_bounds(self) -> None:
        directory, _ = _directory()

        with self.assertRaises(ValueError):
            await directory.get_users_by_age_range(40, 30)

    async def test_get_user_tri_state(self) -> None:
        directory, _ = _directory()

        found = await directory.get_user("u1")
        missing = await directory.get_user("nobody")

        self.assertIsInstance(found, Found)
        self.assertEqual(found.data["name"], "Mia")
        self.assertIs(missing, NOT_FOUND)
        with self.assertRaises(DocumentNotFoundError):
            await directory.get_user("nobody", error_if_missing=True)

    async def test_list_users_orders_by_name(self) -> None:
        directory, _ = _directory()

        rows = await directory.list_users()

        self.assertEqual([row["name"] for row in rows], ["Ann", "Bea", "Ida", "Ken", "Mia", "Zed"])

    async def test_create_user_with_detail_is_atomic_pair(self) -> None:
        directory, store = _directory()

        references = await directory.create_user({"name": "Neo", "age": 28}, detail_id="neo")

        self.assertEqual(len(references), 2)
        self.assertTrue(references[0].path.startswith("users/"))
        self.assertEqual(references[1].path, "userDetails/neo")
        self.assertEqual(store.docs[references[0].path], {"name": "Neo", "age": 28})
        self.assertEqual(store.docs["userDetails/neo"], {"name": "Neo", "age": 28})
        self.assertEqual(store.commits, [2])

    async def test_update_user_only_when_adult(self) -> None:
        directory, store = _directory()

        await directory.update_user("u1", {"tier": "gold"})

        self.assertEqual(store.docs["users/u1"]["tier"], "gold")
        with self.assertRaises(DocumentNotFoundError):
            await directory.update_user("u3", {"tier": "gold"})
        self.assertNotIn("tier", store.docs["users/u3"])

    async def test_update_adults(self) -> None:
        directory, store = _directory()

        result = await directory.update_adults({"adult": True})

        self.assertEqual(result.matched, 4)
        adults = sorted(path for path, data in store.docs.items() if data.get("adult"))
        self.assertEqual(adults, ["users/u1", "users/u2", "users/u4", "users/u5"])

    async def test_delete_young_users(self) -> None:
        directory, store = _directory()

        result = await directory.delete_young_users()

        self.assertEqual(result.matched, 2)
        self.assertEqual(result.chunk_sizes, (2,))
        self.assertNotIn("users/u3", store.docs)
        self.assertNotIn("users/u6", store.docs)
        self.assertEqual(len(store.docs), 4)

    async def test_delete_user_requires_existing_document(self) -> None:
        directory, store = _directory()

        deleted = await directory.delete_user("u1")

        self.assertEqual(deleted.data["name"], "Mia")
        self.assertNotIn("users/u1", store.docs)
        with self.assertRaises(DocumentNotFoundError):
            await directory.delete_user("u1")


if __name__ == "__main__":
    unittest.main()
