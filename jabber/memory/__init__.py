"""Conversation memory — messages, sessions and the bounded store."""

from jabber.memory.models import Message, Session
from jabber.memory.store import ConversationStore

__all__ = ["ConversationStore", "Message", "Session"]
