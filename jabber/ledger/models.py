"""MemoryNote and ScheduleEntry data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class MemoryNote:
    """Something the user asked Jabber to remember.

    Attributes:
        text: The note, trimmed.
        created_at: ISO 8601 timestamp.
        session_id: Session that added the note, if any.
    """

    text: str
    created_at: str = field(default_factory=_now)
    session_id: str | None = None

    def to_row(self) -> tuple:
        return (self.text, self.created_at, self.session_id)

    @classmethod
    def from_row(cls, row: tuple) -> MemoryNote:
        return cls(text=row[0], created_at=row[1], session_id=row[2])


@dataclass(frozen=True)
class ScheduleEntry:
    """A user-submitted event.

    ``when`` is kept exactly as typed (free-form or ISO 8601); it is never
    parsed, normalized or used to trigger anything.
    """

    title: str
    when: str
    created_at: str = field(default_factory=_now)
    session_id: str | None = None

    def to_row(self) -> tuple:
        return (self.title, self.when, self.created_at, self.session_id)

    @classmethod
    def from_row(cls, row: tuple) -> ScheduleEntry:
        return cls(title=row[0], when=row[1], created_at=row[2], session_id=row[3])

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "when": self.when, "createdAt": self.created_at}
