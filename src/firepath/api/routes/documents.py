from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from firepath.api.dependencies import get_document_repository
from firepath.api.errors import to_api_error
from firepath.api.openapi import error_responses
from firepath.api.schemas import CreateDocumentsRequest, CreateDocumentsResponse, LookupResponse
from firepath.errors import FirepathError
from firepath.storage.firestore_documents import FirestoreDocumentRepository

router = APIRouter(
    prefix="/documents",
    tags=["documents"],
)


@router.post(
    "",
    response_model=CreateDocumentsResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403, 422, 500, 502),
)
async def create_documents(
    payload: CreateDocumentsRequest,
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> CreateDocumentsResponse:
    try:
        references = await repository.create(payload.paths, payload.data)
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return CreateDocumentsResponse(paths=[reference.path for reference in references])


@router.get(
    "/{document_path:path}",
    response_model=LookupResponse,
    responses=error_responses(401, 403, 404, 422, 500),
)
async def get_document(
    document_path: str,
    error_if_missing: bool = Query(default=False, description="存在しない場合に404を返す"),
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> LookupResponse:
    try:
        result = await repository.get_one(document_path, error_if_missing=error_if_missing)
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return LookupResponse.from_result(result)


@router.delete(
    "/{document_path:path}",
    response_model=LookupResponse,
    responses=error_responses(401, 403, 404, 422, 500),
)
async def delete_document(
    document_path: str,
    error_if_missing: bool = Query(default=False, description="存在しない場合に404を返す"),
    repository: FirestoreDocumentRepository = Depends(get_document_repository),
) -> LookupResponse:
    try:
        result = await repository.delete_one(document_path, error_if_missing=error_if_missing)
    except (FirepathError, ValueError, TypeError) as exc:
        raise to_api_error(exc) from exc
    return LookupResponse.from_result(result)
