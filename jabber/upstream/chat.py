"""Chat-completion clients for OpenAI and Anthropic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import anthropic
import openai

from jabber.errors import ErrorKind
from jabber.upstream.base import UpstreamResult, truncate

if TYPE_CHECKING:
    from jabber.config import Settings

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    """Anything that turns an ordered message list into assistant text."""

    provider: str

    @property
    def configured(self) -> bool: ...

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
    ) -> UpstreamResult[str]: ...


def _unavailable(provider: str, env_var: str) -> UpstreamResult[str]:
    return UpstreamResult.err(
        ErrorKind.UPSTREAM_UNAVAILABLE,
        f"{provider} client not configured ({env_var} is empty)",
    )


class OpenAIChatClient:
    """Chat completions via the official ``openai`` SDK."""

    provider = "openai"

    def __init__(self, api_key: str, model: str, timeout: float = 30.0) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client: openai.AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        """Lazily initialize the SDK client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
    ) -> UpstreamResult[str]:
        if not self.configured:
            return _unavailable("OpenAI", "OPENAI_API_KEY")

        try:
            response = await self._get_client().chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError:
            logger.warning("OpenAI chat timed out after %.0fs", self._timeout)
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "timeout")
        except openai.APIStatusError as exc:
            logger.warning(
                "OpenAI chat returned %d: %s", exc.status_code, truncate(exc.message)
            )
            return UpstreamResult.err(
                ErrorKind.UPSTREAM_ERROR, f"status {exc.status_code}: {exc.message}"
            )
        except openai.APIError as exc:
            logger.exception("OpenAI chat request failed")
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, str(exc))

        return _normalize_openai(response)


def _normalize_openai(response: Any) -> UpstreamResult[str]:
    """Extract ``choices[0].message.content`` or fail closed."""
    choices = getattr(response, "choices", None) or []
    message = getattr(choices[0], "message", None) if choices else None
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        logger.error("Unexpected OpenAI completion shape: %s", truncate(repr(response), 500))
        return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "no completion text")
    return UpstreamResult.ok(content.strip())


class AnthropicChatClient:
    """Chat via the Anthropic messages API.

    System messages are lifted into the ``system`` parameter and any
    leading assistant turns are dropped, since the API requires the
    conversation to open with a user message.
    """

    provider = "anthropic"

    def __init__(self, api_key: str, model: str, timeout: float = 30.0) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazily initialize the SDK client."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
    ) -> UpstreamResult[str]:
        if not self.configured:
            return _unavailable("Anthropic", "ANTHROPIC_API_KEY")

        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        turns = [m for m in messages if m["role"] != "system"]
        while turns and turns[0]["role"] != "user":
            turns.pop(0)

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)

        try:
            response = await self._get_client().messages.create(**kwargs)
        except anthropic.APITimeoutError:
            logger.warning("Anthropic chat timed out after %.0fs", self._timeout)
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "timeout")
        except anthropic.APIStatusError as exc:
            logger.warning(
                "Anthropic chat returned %d: %s", exc.status_code, truncate(exc.message)
            )
            return UpstreamResult.err(
                ErrorKind.UPSTREAM_ERROR, f"status {exc.status_code}: {exc.message}"
            )
        except anthropic.APIError as exc:
            logger.exception("Anthropic chat request failed")
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, str(exc))

        texts = [
            block.text
            for block in getattr(response, "content", None) or []
            if getattr(block, "type", None) == "text"
        ]
        if not texts or not texts[0].strip():
            logger.error("Unexpected Anthropic response shape: %s", truncate(repr(response), 500))
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "no completion text")
        return UpstreamResult.ok(texts[0].strip())


def build_chat_client(cfg: Settings) -> ChatClient:
    """Construct the chat client selected by ``CHAT_PROVIDER``."""
    provider = cfg.chat_provider.strip().lower()
    api_key = cfg.chat_api_key()
    if provider == "anthropic":
        return AnthropicChatClient(api_key, cfg.claude_model, cfg.upstream_timeout_seconds)
    if provider != "openai":
        logger.warning("Unknown CHAT_PROVIDER %r, falling back to openai", cfg.chat_provider)
    return OpenAIChatClient(api_key, cfg.openai_chat_model, cfg.upstream_timeout_seconds)
