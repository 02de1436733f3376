from __future__ import annotations

import argparse
from typing import Any

import uvicorn

from firepath.api.app import create_app
from firepath.api.errors import UnauthorizedError
from firepath.storage.firestore_documents import FirestoreDocumentRepository
from firepath.storage.memory_store import InMemoryDocumentStore


class LocalTokenVerifier:
    def verify(self, token: str) -> dict[str, str]:
        if token in {"mock-token", "valid-token"}:
            return {"uid": "local-user"}
        raise UnauthorizedError("認証に失敗しました。")


def _seed_documents() -> dict[str, dict[str, Any]]:
    return {
        "users/alice": {"name": "Alice", "age": 34, "email": "alice@example.com"},
        "users/bob": {"name": "Bob", "age": 22, "email": "bob@example.com"},
        "users/carol": {"name": "Carol", "age": 41, "email": "carol@example.com"},
        "users/dave": {"name": "Dave", "age": 30, "email": "dave@example.com"},
        "users/alice/posts/p1": {"title": "Hello", "published": True},
        "users/alice/posts/p2": {"title": "Draft", "published": False},
        "userDetails/alice": {"name": "Alice", "age": 34, "email": "alice@example.com"},
    }


def create_local_app(*, batch_size: int | None = None) -> Any:
    store = InMemoryDocumentStore(docs=_seed_documents())
    repository = FirestoreDocumentRepository(store, batch_size=batch_size)
    return create_app(document_repository=repository, token_verifier=LocalTokenVerifier())


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the firepath API over a seeded in-memory store.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8100)
    parser.add_argument("--batch-size", type=int, default=None)
    args = parser.parse_args()

    app = create_local_app(batch_size=args.batch_size)
    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")


if __name__ == "__main__":
    main()
