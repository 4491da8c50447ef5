"""Request router — picks an upstream per message and normalizes the result.

Every public coroutine on :class:`RequestRouter` returns a
:class:`RouterReply`; nothing raises past this module. Upstream failures
arrive as :class:`~jabber.upstream.base.UpstreamResult` values and are
collapsed into a short user-facing ``error`` string here, while the
provider detail only goes to the log.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from jabber.errors import ErrorKind, http_status
from jabber.prompt import build_system_prompt

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from jabber.config import Settings
    from jabber.ledger.store import LedgerStore
    from jabber.memory.store import ConversationStore
    from jabber.upstream.base import UpstreamResult
    from jabber.upstream.chat import ChatClient
    from jabber.upstream.image import ImageClient
    from jabber.upstream.search import SearchClient

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"
CHAT_MODES = {"chat", "ai"}
SEARCH_MODES = {"web", "search"}
MODES = CHAT_MODES | SEARCH_MODES | {"image", "remember", "schedule"}

NO_RESULTS = 'No instant answer found for "{query}".'

_ENV_HINTS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class RouteRequest(BaseModel):
    """Inbound widget payload. Keys arrive camelCased (``sessionId``)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: str | None = None
    mode: str = "chat"
    session_id: str | None = Field(default=None, alias="sessionId")
    remember: bool = False
    prompt: str | None = None
    query: str | None = None
    size: str | None = None
    text: str | None = None
    title: str | None = None
    when: str | None = None


@dataclass
class RouterReply:
    """Structured result handed back to the HTTP layer."""

    reply: str | None = None
    image_url: str | None = None
    results: list[str] | None = None
    ok: bool | None = None
    memories: list[str] | None = None
    schedule: list[dict[str, Any]] | None = None
    cleared: int | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def status(self) -> int:
        return http_status(self.kind)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSON response, omitting unset fields."""
        fields = {
            "reply": self.reply,
            "imageUrl": self.image_url,
            "results": self.results,
            "ok": self.ok,
            "memories": self.memories,
            "schedule": self.schedule,
            "cleared": self.cleared,
            "error": self.error,
        }
        return {k: v for k, v in fields.items() if v is not None}

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> RouterReply:
        return cls(error=message, kind=kind)


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _invalid(message: str) -> RouterReply:
    return RouterReply.failure(ErrorKind.INVALID_REQUEST, message)


def _guarded(category: str):
    """Turn any unexpected exception into a generic ``UpstreamError`` reply."""

    def decorator(
        func: Callable[..., Awaitable[RouterReply]],
    ) -> Callable[..., Awaitable[RouterReply]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> RouterReply:
            try:
                return await func(*args, **kwargs)
            except Exception:
                logger.exception("%s request failed unexpectedly", category)
                return RouterReply.failure(
                    ErrorKind.UPSTREAM_ERROR, f"{category} failed. Please try again."
                )

        return wrapper

    return decorator


class RequestRouter:
    """Routes chat, search, image, remember and schedule requests.

    The conversation store and ledger are injected so that one instance of
    each is shared by every request in the process.
    """

    def __init__(
        self,
        chat_client: ChatClient,
        image_client: ImageClient,
        search_client: SearchClient,
        conversations: ConversationStore,
        ledger: LedgerStore,
        *,
        context_window: int = 8,
        temperature: float = 0.2,
        max_tokens: int = 600,
        prompt_note_count: int = 6,
        assistant_name: str = "Jabber",
    ) -> None:
        self.chat_client = chat_client
        self.image_client = image_client
        self.search_client = search_client
        self.conversations = conversations
        self.ledger = ledger
        self.context_window = context_window
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.prompt_note_count = prompt_note_count
        self.assistant_name = assistant_name

    # -- Error mapping -------------------------------------------------------

    def _upstream_failure(
        self, category: str, result: UpstreamResult[Any], env_var: str = "OPENAI_API_KEY"
    ) -> RouterReply:
        """Map a failed upstream result to user-safe text."""
        kind = result.kind or ErrorKind.UPSTREAM_ERROR
        logger.warning("%s upstream failure: kind=%s detail=%s", category, kind, result.detail)
        if kind is ErrorKind.UPSTREAM_UNAVAILABLE:
            return RouterReply.failure(
                kind,
                f"{category} is not configured on the server. "
                f"Set {env_var} in the environment (or .env) and restart.",
            )
        if kind is ErrorKind.INVALID_REQUEST:
            # Produced by local validation in the client, safe to show.
            return RouterReply.failure(kind, result.detail)
        return RouterReply.failure(ErrorKind.UPSTREAM_ERROR, f"{category} failed. Please try again.")

    # -- Dispatch ------------------------------------------------------------

    async def dispatch(self, request: RouteRequest) -> RouterReply:
        """Route a request by its ``mode``."""
        mode = _clean(request.mode).lower() or "chat"
        if mode not in MODES:
            return _invalid(f"Unknown mode '{request.mode}'")

        session_id = request.session_id
        if mode in CHAT_MODES:
            return await self.chat(request.message, session_id, remember=request.remember)
        if mode in SEARCH_MODES:
            return await self.search(
                request.query or request.message, as_reply=True, remember=request.remember
            )
        if mode == "image":
            return await self.image(request.prompt or request.message, request.size)
        if mode == "remember":
            return await self.remember(request.text or request.message, session_id)
        return await self.schedule(request.title or request.message, request.when, session_id)

    # -- Modes ---------------------------------------------------------------

    @_guarded("Chat")
    async def chat(
        self, message: str | None, session_id: str | None = None, *, remember: bool = False
    ) -> RouterReply:
        """Send *message* with recent context to the chat provider.

        On success the user message and the reply are appended to the
        session history. Failed calls leave the history untouched.
        """
        text = _clean(message)
        if not text:
            return _invalid("No message provided")
        sid = _clean(session_id) or DEFAULT_SESSION

        if remember:
            await self.ledger.add_note(text, session_id=None)

        notes = await self.ledger.list_notes(limit=self.prompt_note_count)
        context = self.conversations.recent(sid, self.context_window)
        messages = [
            {"role": "system", "content": build_system_prompt(notes, self.assistant_name)},
            *(m.to_api() for m in context),
            {"role": "user", "content": text},
        ]
        logger.info(
            "Chat: session=%s context=%d notes=%d chars=%d",
            sid,
            len(context),
            len(notes),
            len(text),
        )

        result = await self.chat_client.complete(
            messages, temperature=self.temperature, max_tokens=self.max_tokens
        )
        if not result.success:
            env_var = _ENV_HINTS.get(self.chat_client.provider, "OPENAI_API_KEY")
            return self._upstream_failure("Chat", result, env_var)

        self.conversations.add(sid, "user", text)
        self.conversations.add(sid, "assistant", result.value)
        return RouterReply(reply=result.value)

    @_guarded("Web search")
    async def search(
        self, query: str | None, *, as_reply: bool = False, remember: bool = False
    ) -> RouterReply:
        """Look up *query*; an empty result list is a normal answer.

        With *as_reply* the first snippet (or a no-results line) is also
        returned as ``reply`` for display in the chat stream. With
        *remember* the query is recorded as a note before the lookup.
        """
        text = _clean(query)
        if not text:
            return _invalid("No query provided")

        if remember:
            await self.ledger.add_note(text, session_id=None)

        result = await self.search_client.search(text)
        if not result.success:
            return self._upstream_failure("Web search", result)

        snippets = list(result.value or [])
        reply = RouterReply(results=snippets)
        if as_reply:
            reply.reply = snippets[0] if snippets else NO_RESULTS.format(query=text)
        return reply

    @_guarded("Image generation")
    async def image(self, prompt: str | None, size: str | None = None) -> RouterReply:
        text = _clean(prompt)
        if not text:
            return _invalid("No prompt provided")

        logger.info("Image: size=%s chars=%d", size or "default", len(text))
        result = await self.image_client.generate(text, _clean(size) or None)
        if not result.success:
            return self._upstream_failure("Image generation", result)
        return RouterReply(image_url=result.value)

    @_guarded("Remember")
    async def remember(self, text: str | None, session_id: str | None = None) -> RouterReply:
        note_text = _clean(text)
        if not note_text:
            return _invalid("No text to remember")
        await self.ledger.add_note(note_text, session_id=_clean(session_id) or None)
        return RouterReply(ok=True)

    @_guarded("Schedule")
    async def schedule(
        self, title: str | None, when: str | None, session_id: str | None = None
    ) -> RouterReply:
        title_text = _clean(title)
        when_text = _clean(when)
        if not title_text or not when_text:
            return _invalid("Missing when or title")
        await self.ledger.add_schedule(
            title_text, when_text, session_id=_clean(session_id) or None
        )
        return RouterReply(ok=True)

    # -- Reads ---------------------------------------------------------------

    @_guarded("Memory lookup")
    async def memories(
        self, session_id: str | None = None, limit: int | None = None
    ) -> RouterReply:
        """Remembered note texts, oldest first. Unknown sessions give an empty list."""
        notes = await self.ledger.list_notes(_clean(session_id) or None, limit)
        return RouterReply(memories=[n.text for n in notes])

    @_guarded("Schedule lookup")
    async def scheduled(
        self, session_id: str | None = None, limit: int | None = None
    ) -> RouterReply:
        entries = await self.ledger.list_schedule(_clean(session_id) or None, limit)
        return RouterReply(schedule=[e.to_dict() for e in entries])

    @_guarded("Reset")
    async def reset(self, session_id: str | None = None) -> RouterReply:
        """Clear a session's conversation history (debug/reset flow)."""
        sid = _clean(session_id) or DEFAULT_SESSION
        return RouterReply(ok=True, cleared=self.conversations.clear(sid))

    async def status(self) -> dict[str, Any]:
        return {
            "ok": True,
            "provider": self.chat_client.provider,
            "chatConfigured": self.chat_client.configured,
            "imageConfigured": self.image_client.configured,
            "sessions": len(self.conversations),
            "memoryCount": self.ledger.note_count,
        }


def build_router(cfg: Settings) -> RequestRouter:
    """Wire the process-wide router from settings."""
    from jabber.ledger.store import LedgerStore
    from jabber.memory.store import ConversationStore
    from jabber.upstream.chat import build_chat_client
    from jabber.upstream.image import ImageClient
    from jabber.upstream.search import SearchClient

    return RequestRouter(
        chat_client=build_chat_client(cfg),
        image_client=ImageClient(
            cfg.openai_api_key,
            model=cfg.image_model,
            default_size=cfg.image_default_size,
            timeout=cfg.upstream_timeout_seconds,
        ),
        search_client=SearchClient(
            cfg.search_api_url,
            max_results=cfg.search_max_results,
            timeout=cfg.upstream_timeout_seconds,
        ),
        conversations=ConversationStore(max_messages=cfg.conversation_max_messages),
        ledger=LedgerStore(max_entries=cfg.ledger_max_entries, db_path=cfg.ledger_db_path),
        context_window=cfg.context_window,
        temperature=cfg.chat_temperature,
        max_tokens=cfg.chat_max_tokens,
        prompt_note_count=cfg.prompt_note_count,
        assistant_name=cfg.assistant_name,
    )
