"""Async HTTP API for the Jabber widget.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop. The
process-wide :class:`~jabber.router.RequestRouter` is stored on the
application under ``ROUTER_KEY``; handlers only parse the request,
call the router and serialize its reply.
"""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from jabber.config import settings
from jabber.router import RequestRouter, RouteRequest, RouterReply, build_router

logger = logging.getLogger(__name__)

ROUTER_KEY = web.AppKey("router", RequestRouter)


def _respond(reply: RouterReply) -> web.Response:
    return web.json_response(reply.to_dict(), status=reply.status)


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


async def _parse(request: web.Request, *, optional: bool = False) -> RouteRequest | web.Response:
    """Decode the JSON body into a ``RouteRequest`` or a 400 response."""
    if optional and not request.can_read_body:
        return RouteRequest()
    try:
        payload: Any = await request.json()
    except Exception:
        logger.warning("Bad request: invalid JSON (%s)", request.path)
        return _bad_request("Invalid JSON body")

    if not isinstance(payload, dict):
        return _bad_request("Request body must be a JSON object")

    try:
        return RouteRequest.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Bad request: %d validation error(s) (%s)", exc.error_count(), request.path)
        return _bad_request("Invalid request body")


def _query_limit(request: web.Request) -> int | None | web.Response:
    raw = request.query.get("limit", "").strip()
    if not raw:
        return None
    try:
        limit = int(raw)
    except ValueError:
        return _bad_request("limit must be an integer")
    if limit < 0:
        return _bad_request("limit must not be negative")
    return limit


# -- Handlers ----------------------------------------------------------------


async def _handle_chat(request: web.Request) -> web.Response:
    """POST /api/chat — chat by default, other modes via ``mode``."""
    parsed = await _parse(request)
    if isinstance(parsed, web.Response):
        return parsed
    reply = await request.app[ROUTER_KEY].dispatch(parsed)
    return _respond(reply)


async def _handle_image(request: web.Request) -> web.Response:
    parsed = await _parse(request)
    if isinstance(parsed, web.Response):
        return parsed
    reply = await request.app[ROUTER_KEY].image(parsed.prompt, parsed.size)
    return _respond(reply)


async def _handle_search(request: web.Request) -> web.Response:
    parsed = await _parse(request)
    if isinstance(parsed, web.Response):
        return parsed
    reply = await request.app[ROUTER_KEY].search(parsed.query)
    return _respond(reply)


async def _handle_remember(request: web.Request) -> web.Response:
    parsed = await _parse(request)
    if isinstance(parsed, web.Response):
        return parsed
    reply = await request.app[ROUTER_KEY].remember(parsed.text, parsed.session_id)
    return _respond(reply)


async def _handle_schedule(request: web.Request) -> web.Response:
    parsed = await _parse(request)
    if isinstance(parsed, web.Response):
        return parsed
    reply = await request.app[ROUTER_KEY].schedule(parsed.title, parsed.when, parsed.session_id)
    return _respond(reply)


async def _handle_list_memories(request: web.Request) -> web.Response:
    """GET /api/memories?sessionId=&limit="""
    limit = _query_limit(request)
    if isinstance(limit, web.Response):
        return limit
    reply = await request.app[ROUTER_KEY].memories(request.query.get("sessionId"), limit)
    return _respond(reply)


async def _handle_list_schedule(request: web.Request) -> web.Response:
    limit = _query_limit(request)
    if isinstance(limit, web.Response):
        return limit
    reply = await request.app[ROUTER_KEY].scheduled(request.query.get("sessionId"), limit)
    return _respond(reply)


async def _handle_reset(request: web.Request) -> web.Response:
    """POST /api/reset — clear one session's conversation history."""
    parsed = await _parse(request, optional=True)
    if isinstance(parsed, web.Response):
        return parsed
    reply = await request.app[ROUTER_KEY].reset(parsed.session_id)
    return _respond(reply)


async def _status(request: web.Request) -> web.Response:
    return web.json_response(await request.app[ROUTER_KEY].status())


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_app(router: RequestRouter | None = None) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[ROUTER_KEY] = router or build_router(settings)
    app.router.add_get("/health", _health)
    app.router.add_get("/status", _status)
    app.router.add_post("/api/chat", _handle_chat)
    app.router.add_post("/api/image", _handle_image)
    app.router.add_post("/api/search", _handle_search)
    app.router.add_post("/api/remember", _handle_remember)
    app.router.add_post("/api/schedule", _handle_schedule)
    app.router.add_get("/api/schedule", _handle_list_schedule)
    app.router.add_get("/api/memories", _handle_list_memories)
    app.router.add_post("/api/reset", _handle_reset)
    return app


class JabberServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        router: RequestRouter | None = None,
    ) -> None:
        self.host = host or settings.host
        self.port = port if port is not None else settings.port
        self._router = router
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for widget requests."""
        app = create_app(self._router)
        router = app[ROUTER_KEY]
        if not router.chat_client.configured:
            logger.warning(
                "No API key for chat provider %s; chat will return a configuration error",
                router.chat_client.provider,
            )

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Jabber server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Jabber server stopped")
