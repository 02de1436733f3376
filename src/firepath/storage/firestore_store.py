from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Protocol


class DocumentSnapshot(Protocol):
    id: str
    exists: bool
    reference: Any

    def to_dict(self) -> dict[str, Any] | None:
        """Return document data, or None when the document does not exist."""


class Query(Protocol):
    def where(self, field_path: str, op_string: str, value: Any) -> "Query":
        """Narrow the query with one filter."""

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "Query":
        """Append an ordering clause."""

    def limit(self, count: int) -> "Query":
        """Cap the number of results."""

    def offset(self, num_to_skip: int) -> "Query":
        """Skip leading results."""

    def start_at(self, document_fields_or_snapshot: Any) -> "Query":
        """Start at a cursor (inclusive)."""

    def start_after(self, document_fields_or_snapshot: Any) -> "Query":
        """Start after a cursor (exclusive)."""

    def end_at(self, document_fields_or_snapshot: Any) -> "Query":
        """End at a cursor (inclusive)."""

    def end_before(self, document_fields_or_snapshot: Any) -> "Query":
        """End before a cursor (exclusive)."""

    def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Execute the query and yield snapshots in result order."""


class DocumentReference(Protocol):
    id: str
    path: str

    def collection(self, collection_id: str) -> "CollectionReference":
        """Open a sub-collection under this document."""

    async def get(self) -> DocumentSnapshot:
        """Read the document."""


class CollectionReference(Query, Protocol):
    id: str

    def document(self, document_id: str | None = None) -> DocumentReference:
        """Select a document. An omitted id allocates a new one."""


class WriteBatch(Protocol):
    def set(self, reference: DocumentReference, document_data: Mapping[str, Any]) -> Any:
        """Stage a full overwrite."""

    def update(self, reference: DocumentReference, field_updates: Mapping[str, Any]) -> Any:
        """Stage a partial update of an existing document."""

    def delete(self, reference: DocumentReference) -> Any:
        """Stage a delete."""

    async def commit(self) -> Any:
        """Apply all staged writes atomically."""


class DocumentClient(Protocol):
    """Store handle accepted by the repositories.

    ``google.cloud.firestore.AsyncClient`` satisfies this protocol, as does
    ``InMemoryDocumentStore``.
    """

    def collection(self, collection_id: str) -> CollectionReference:
        """Open a root collection."""

    def batch(self) -> WriteBatch:
        """Create an empty write batch."""
