from __future__ import annotations

import os

from fastapi import FastAPI

from firepath.api.auth import TokenVerifier, parse_allowed_uids
from firepath.api.dependencies import create_document_repository
from firepath.api.errors import install_exception_handlers
from firepath.api.middleware import install_auth_middleware
from firepath.api.routes import api_router
from firepath.storage.firestore_documents import FirestoreDocumentRepository


def create_app(
    *,
    document_repository: FirestoreDocumentRepository | None = None,
    token_verifier: TokenVerifier | None = None,
    allowed_uids: set[str] | frozenset[str] | None = None,
) -> FastAPI:
    app = FastAPI(
        title="firepath Web API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    install_exception_handlers(app)

    app.state.document_repository = document_repository
    app.state.document_repository_factory = create_document_repository

    app.state.token_verifier = token_verifier
    app.state.allowed_uids = (
        frozenset(allowed_uids) if allowed_uids is not None else parse_allowed_uids(os.getenv("API_ALLOWED_UIDS"))
    )

    install_auth_middleware(app)
    app.include_router(api_router, prefix="/api/v1")
    return app
