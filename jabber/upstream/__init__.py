"""Clients for the external chat, image and search providers."""

from jabber.upstream.base import UpstreamResult
from jabber.upstream.chat import (
    AnthropicChatClient,
    ChatClient,
    OpenAIChatClient,
    build_chat_client,
)
from jabber.upstream.image import ImageClient
from jabber.upstream.search import SearchClient

__all__ = [
    "AnthropicChatClient",
    "ChatClient",
    "ImageClient",
    "OpenAIChatClient",
    "SearchClient",
    "UpstreamResult",
    "build_chat_client",
]
