from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from firepath.storage.firestore_batch import BatchResult
from firepath.storage.firestore_results import Found, LookupResult
from firepath.storage.firestore_query import QueryOptions


class HealthzResponse(BaseModel):
    status: str = Field(default="ok")


class QueryPayload(BaseModel):
    where: list[tuple[str, str, Any]] = Field(default_factory=list, description="(field, op, value) のAND条件")
    order_by: list[str | tuple[str, str]] = Field(default_factory=list, description="field または (field, asc|desc)")
    limit: int | None = Field(default=None, ge=1)
    offset: int | None = Field(default=None, ge=0)
    start_at: list[Any] | None = Field(default=None, description="order_by に対応するカーソル値")
    start_after: list[Any] | None = None
    end_at: list[Any] | None = None
    end_before: list[Any] | None = None

    def to_options(self) -> QueryOptions:
        return QueryOptions.build(
            where=[tuple(item) for item in self.where],
            order_by=[item if isinstance(item, str) else tuple(item) for item in self.order_by],
            limit=self.limit,
            offset=self.offset,
            start_at=self.start_at,
            start_after=self.start_after,
            end_at=self.end_at,
            end_before=self.end_before,
        )


class DocumentResponse(BaseModel):
    path: str
    id: str
    data: dict[str, Any]

    @classmethod
    def from_found(cls, found: Found) -> "DocumentResponse":
        return cls(path=_reference_path(found.reference), id=found.id or "", data=found.data)


class LookupResponse(BaseModel):
    found: bool
    document: DocumentResponse | None = None

    @classmethod
    def from_result(cls, result: LookupResult) -> "LookupResponse":
        if isinstance(result, Found):
            return cls(found=True, document=DocumentResponse.from_found(result))
        return cls(found=False)


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    total: int = Field(ge=0)


class CreateDocumentsRequest(BaseModel):
    paths: list[str] = Field(min_length=1, description="書き込み先パス (コレクションパスは自動ID)")
    data: dict[str, Any]


class CreateDocumentsResponse(BaseModel):
    paths: list[str]


class ListDocumentsRequest(BaseModel):
    path: str = Field(min_length=1)
    query: QueryPayload = Field(default_factory=QueryPayload)


class UpdateOneRequest(BaseModel):
    path: str = Field(min_length=1)
    query: QueryPayload = Field(default_factory=QueryPayload)
    data: dict[str, Any] = Field(min_length=1)


class UpdateOneResponse(BaseModel):
    path: str


class UpdateManyRequest(UpdateOneRequest):
    batch_size: int | None = Field(default=None, ge=1)


class DeleteManyRequest(BaseModel):
    path: str = Field(min_length=1)
    query: QueryPayload = Field(default_factory=QueryPayload)
    batch_size: int | None = Field(default=None, ge=1)


class BatchResultResponse(BaseModel):
    matched: int = Field(ge=0)
    chunks: int = Field(ge=0)
    chunk_sizes: list[int]

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResultResponse":
        return cls(matched=result.matched, chunks=result.chunk_count, chunk_sizes=list(result.chunk_sizes))


def _reference_path(reference: Any) -> str:
    return str(getattr(reference, "path", ""))
