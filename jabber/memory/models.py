"""Conversation message and session models."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

ROLES = frozenset({"user", "assistant", "system"})


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class Message:
    """A single conversation turn. Never modified after it is appended."""

    role: str  # "user", "assistant" or "system"
    content: str
    timestamp: str = field(default_factory=_now)

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role!r}")

    def to_api(self) -> dict[str, str]:
        """Format for a chat-completion request."""
        return {"role": self.role, "content": self.content}


@dataclass
class Session:
    """Bounded message history for one client-identified conversation."""

    session_id: str
    max_messages: int = 100
    created_at: str = field(default_factory=_now)
    messages: deque[Message] = field(init=False)

    def __post_init__(self) -> None:
        if self.max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.messages = deque(maxlen=self.max_messages)
