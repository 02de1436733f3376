from __future__ import annotations

from typing import Any

from firepath.storage.firestore_batch import BatchResult
from firepath.storage.firestore_documents import FirestoreDocumentRepository
from firepath.storage.firestore_results import LookupResult


COLLECTION_USERS = "users"
COLLECTION_USER_DETAILS = "userDetails"
ADULT_AGE = 30
YOUNG_AGE = 25


class UserDirectory:
    """Call patterns for a ``users`` collection built on the path repository."""

    def __init__(self, repository: FirestoreDocumentRepository) -> None:
        self._repository = repository

    async def create_user(self, data: dict[str, Any], *, detail_id: str | None = None) -> list[Any]:
        paths = [COLLECTION_USERS]
        if detail_id:
            paths.append(f"{COLLECTION_USER_DETAILS}/{detail_id}")
        return await self._repository.create(paths, data)

    async def get_user(self, user_id: str, *, error_if_missing: bool = False) -> LookupResult:
        return await self._repository.get_one(
            f"{COLLECTION_USERS}/{user_id}",
            error_if_missing=error_if_missing,
        )

    async def list_users(self) -> list[dict[str, Any]]:
        return await self._repository.get_all(COLLECTION_USERS, {"order_by": "name"})

    async def update_user(self, user_id: str, data: dict[str, Any]) -> Any:
        """Update the user only while they are an adult."""
        return await self._repository.update_one(
            f"{COLLECTION_USERS}/{user_id}",
            {"where": ("age", ">=", ADULT_AGE)},
            data,
        )

    async def update_adults(self, data: dict[str, Any]) -> BatchResult:
        return await self._repository.update_many(
            COLLECTION_USERS,
            {"where": ("age", ">=", ADULT_AGE)},
            data,
        )

    async def delete_user(self, user_id: str) -> LookupResult:
        return await self._repository.delete_one(f"{COLLECTION_USERS}/{user_id}", error_if_missing=True)

    async def delete_young_users(self) -> BatchResult:
        return await self._repository.delete_many(
            COLLECTION_USERS,
            {"where": ("age", "<=", YOUNG_AGE)},
        )

    async def get_users_by_age_range(self, min_age: int, max_age: int) -> list[dict[str, Any]]:
        if min_age > max_age:
            raise ValueError(f"min_age must be <= max_age: {min_age} > {max_age}")
        return await self._repository.get_all(
            COLLECTION_USERS,
            {
                "where": [
                    ("age", ">=", min_age),
                    ("age", "<=", max_age),
                ],
                "order_by": "name",
            },
        )
