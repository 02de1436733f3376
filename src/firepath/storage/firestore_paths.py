from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from firepath.errors import MalformedPathError
from firepath.storage.firestore_store import DocumentClient


PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class PathSegment:
    collection_id: str
    document_id: str | None = None


@dataclass(frozen=True)
class ReferenceChain:
    """Parsed collection/document path.

    Segments alternate collection and document ids. Only the last segment may
    lack a document id, in which case the chain addresses a collection.
    """

    segments: tuple[PathSegment, ...]

    @property
    def is_document(self) -> bool:
        return self.segments[-1].document_id is not None

    @property
    def is_collection(self) -> bool:
        return not self.is_document

    @property
    def tokens(self) -> tuple[str, ...]:
        values: list[str] = []
        for segment in self.segments:
            values.append(segment.collection_id)
            if segment.document_id is not None:
                values.append(segment.document_id)
        return tuple(values)

    @property
    def path(self) -> str:
        return PATH_SEPARATOR.join(self.tokens)

    @property
    def document_id(self) -> str | None:
        return self.segments[-1].document_id

    @property
    def collection_chain(self) -> "ReferenceChain":
        """Chain of the collection holding the target."""
        if self.is_collection:
            return self
        last = self.segments[-1]
        return ReferenceChain(self.segments[:-1] + (PathSegment(last.collection_id),))

    def __str__(self) -> str:
        return self.path


def parse_path(path: str) -> ReferenceChain:
    if not isinstance(path, str):
        raise MalformedPathError(f"Path must be a string: {path!r}")

    stripped = path.strip(PATH_SEPARATOR)
    if not stripped:
        raise MalformedPathError(f"Path must contain at least one segment: {path!r}")

    tokens = stripped.split(PATH_SEPARATOR)
    if any(not token for token in tokens):
        raise MalformedPathError(f"Path must not contain empty segments: {path!r}")
    if any(token != token.strip() for token in tokens):
        raise MalformedPathError(f"Path segments must not have surrounding whitespace: {path!r}")

    segments: list[PathSegment] = []
    for index in range(0, len(tokens), 2):
        document_id = tokens[index + 1] if index + 1 < len(tokens) else None
        segments.append(PathSegment(collection_id=tokens[index], document_id=document_id))
    return ReferenceChain(tuple(segments))


def parse_document_path(path: str) -> ReferenceChain:
    chain = parse_path(path)
    if not chain.is_document:
        raise MalformedPathError(f"Document path must have even segments: {path}")
    return chain


def build_reference(client: DocumentClient, chain: ReferenceChain) -> Any:
    """Return a document reference for document chains, else a collection reference."""

    ref: Any = client
    for segment in chain.segments:
        ref = ref.collection(segment.collection_id)
        if segment.document_id is not None:
            ref = ref.document(segment.document_id)
    return ref


def build_collection_reference(client: DocumentClient, chain: ReferenceChain) -> Any:
    return build_reference(client, chain.collection_chain)


def resolve_document_reference(client: DocumentClient, path: str | ReferenceChain) -> Any:
    """Resolve one write target.

    A collection path allocates a new document with a store-generated id.
    """

    chain = path if isinstance(path, ReferenceChain) else parse_path(path)
    ref = build_reference(client, chain)
    if chain.is_collection:
        return ref.document()
    return ref


def resolve_document_references(client: DocumentClient, paths: str | Iterable[str]) -> list[Any]:
    if isinstance(paths, str):
        paths = [paths]
    chains = [parse_path(path) for path in paths]
    if not chains:
        raise MalformedPathError("At least one path is required.")
    return [resolve_document_reference(client, chain) for chain in chains]
