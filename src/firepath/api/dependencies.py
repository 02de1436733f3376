from __future__ import annotations

from typing import Any

from fastapi import Request

from firepath.settings import AppSettings, load_settings
from firepath.storage.firestore_documents import FirestoreDocumentRepository


def create_firestore_client(settings: AppSettings | None = None) -> Any:
    settings = settings or load_settings()
    try:
        from google.cloud import firestore
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "google-cloud-firestore が未インストールです。`pip install -e '.[gcp]'` を実行してください。"
        ) from exc

    kwargs: dict[str, Any] = {"project": settings.firestore_project_id or None}
    if settings.firestore_database:
        kwargs["database"] = settings.firestore_database
    return firestore.AsyncClient(**kwargs)


def create_document_repository() -> FirestoreDocumentRepository:
    settings = load_settings()
    return FirestoreDocumentRepository(
        create_firestore_client(settings),
        batch_size=settings.batch_size,
        batch_limit=settings.batch_limit,
    )


def get_document_repository(request: Request) -> FirestoreDocumentRepository:
    repository = getattr(request.app.state, "document_repository", None)
    if repository is not None:
        return repository

    factory = getattr(request.app.state, "document_repository_factory", None)
    if factory is None:
        raise RuntimeError("document_repository が初期化されていません。")
    repository = factory()
    request.app.state.document_repository = repository
    return repository
