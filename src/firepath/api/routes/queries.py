from __future__ import annotations

from fastapi import APIRouter, Depends

from firepath.api.dependencies import get_document_repository
from firepath.api.errors import to_api_error
from firepath.api.openapi import error_responses
from firepath.api.schemas import (
    BatchResultResponse,
    DeleteManyRequest,
    DocumentListResponse,
    DocumentResponse,
    ListDocumentsRequest,
    UpdateManyRequest,
    UpdateOneRequest,
    UpdateOneResponse,
)
from firepath.errors import FirepathError
from firepath.storage.firestore_documents import FirestoreDocumentRepository

router = APIRouter(
    prefix="/queries",
    tags=["queries"],
)


@router.post(
    "/list",
    response_model=DocumentListResponse,
    responses=error_responses(401, 403, 422, 500),
)
async def list_documents(
    payload: ListDocumentsRequest,
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> DocumentListResponse:
    try:
        items = await repository.list_found(payload.path, payload.query.to_options())
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return DocumentListResponse(items=[DocumentResponse.from_found(item) for item in items], total=len(items))


@router.post(
    "/update-one",
    response_model=UpdateOneResponse,
    responses=error_responses(401, 403, 404, 422, 500),
)
async def update_one_document(
    payload: UpdateOneRequest,
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> UpdateOneResponse:
    try:
        reference = await repository.update_one(payload.path, payload.query.to_options(), payload.data)
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return UpdateOneResponse(path=reference.path)


@router.post(
    "/update-many",
    response_model=BatchResultResponse,
    responses=error_responses(400, 401, 403, 422, 500, 502),
)
async def update_many_documents(
    payload: UpdateManyRequest,
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> BatchResultResponse:
    try:
        result = await repository.update_many(
            payload.path,
            payload.query.to_options(),
            payload.data,
            batch_size=payload.batch_size,
        )
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return BatchResultResponse.from_result(result)


@router.post(
    "/delete-many",
    response_model=BatchResultResponse,
    responses=error_responses(400, 401, 403, 422, 500, 502),
)
async def delete_many_documents(
    payload: DeleteManyRequest,
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> BatchResultResponse:
    try:
        result = await repository.delete_many(
            payload.path,
            payload.query.to_options(),
            batch_size=payload.batch_size,
        )
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return BatchResultResponse.from_result(result)
