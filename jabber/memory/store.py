"""In-process conversation memory with a per-session sliding window."""

from __future__ import annotations

import logging
from itertools import islice

from jabber.memory.models import Message, Session

logger = logging.getLogger(__name__)


class ConversationStore:
    """Per-session append log, capped by dropping the oldest messages.

    One instance is built per process and handed to the router. Every
    method is synchronous, so on the asyncio event loop appends for the
    same session are applied in arrival order.
    """

    def __init__(self, max_messages: int = 100) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._max_messages = max_messages
        self._sessions: dict[str, Session] = {}

    @property
    def max_messages(self) -> int:
        return self._max_messages

    def _get_or_create(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id, max_messages=self._max_messages)
            self._sessions[session_id] = session
            logger.info("New conversation session: %s", session_id)
        return session

    def append(self, session_id: str, message: Message) -> None:
        """Append a message, evicting the oldest once the cap is reached."""
        self._get_or_create(session_id).messages.append(message)

    def add(self, session_id: str, role: str, content: str) -> Message:
        """Build a message from *role* and *content* and append it."""
        message = Message(role=role, content=content)
        self.append(session_id, message)
        return message

    def recent(self, session_id: str, n: int) -> list[Message]:
        """Return the last *n* messages in insertion order.

        Unknown sessions and non-positive *n* give an empty list.
        """
        session = self._sessions.get(session_id)
        if session is None or n <= 0:
            return []
        messages = session.messages
        start = max(len(messages) - n, 0)
        return list(islice(messages, start, None))

    def history(self, session_id: str) -> list[Message]:
        """Return every retained message for a session."""
        session = self._sessions.get(session_id)
        return list(session.messages) if session else []

    def clear(self, session_id: str) -> int:
        """Drop all messages for a session. Returns the count removed."""
        session = self._sessions.get(session_id)
        if session is None:
            return 0
        count = len(session.messages)
        session.messages.clear()
        logger.info("Cleared %d message(s) from session %s", count, session_id)
        return count

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
