from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Found:
    """Existing document read by the repository.

    ``snapshot`` keeps the store snapshot the data came from so the result can
    be passed back as a pagination cursor.
    """

    data: dict[str, Any]
    reference: Any = None
    snapshot: Any = field(default=None, repr=False, compare=False)

    exists = True

    @property
    def id(self) -> str | None:
        return getattr(self.reference, "id", None)

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> "Found":
        return cls(data=snapshot.to_dict() or {}, reference=snapshot.reference, snapshot=snapshot)


class NotFound:
    """Absent document tolerated by the caller (error_if_missing is False)."""

    exists = False

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()

LookupResult = Union[Found, NotFound]
