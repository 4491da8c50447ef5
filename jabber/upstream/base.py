"""Result type returned by every upstream client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from jabber.errors import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class UpstreamResult(Generic[T]):
    """Outcome of a single upstream call.

    Either ``value`` is set (ok) or ``kind`` names the failure category.
    ``detail`` carries provider status/message for the logs only; it is
    never shown to the end user.
    """

    value: T | None = None
    kind: ErrorKind | None = None
    detail: str = ""

    @property
    def success(self) -> bool:
        return self.kind is None

    @classmethod
    def ok(cls, value: T) -> UpstreamResult[T]:
        return cls(value=value)

    @classmethod
    def err(cls, kind: ErrorKind, detail: str = "") -> UpstreamResult[T]:
        return cls(kind=kind, detail=detail)


def truncate(text: str, limit: int = 200) -> str:
    """Shorten provider text before it goes into a log line."""
    text = " ".join(str(text).split())
    return text if len(text) <= limit else text[:limit] + "..."
