"""Web search client — DuckDuckGo Instant Answer API (no key required)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jabber.errors import ErrorKind
from jabber.upstream.base import UpstreamResult, truncate

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Jabber/1.0 (Instant Answer lookup)"


def _related_texts(topics: list[Any]) -> list[str]:
    """Flatten ``RelatedTopics``; grouped entries carry a nested ``Topics`` list.

    A topic's ``FirstURL`` is kept as a trailing ``Source:`` line.
    """
    texts: list[str] = []
    for topic in topics:
        if not isinstance(topic, dict):
            continue
        text = topic.get("Text")
        if isinstance(text, str) and text.strip():
            url = topic.get("FirstURL")
            if isinstance(url, str) and url.strip():
                texts.append(f"{text.strip()}\n\nSource: {url.strip()}")
            else:
                texts.append(text.strip())
        nested = topic.get("Topics")
        if isinstance(nested, list):
            texts.extend(_related_texts(nested))
    return texts


def extract_snippets(payload: dict[str, Any], limit: int = 5) -> list[str]:
    """Pick text snippets from an instant-answer payload.

    Order of preference: abstract, direct answer, definition, then
    related-topic text. Duplicates are dropped. An empty list means the
    provider had nothing for this query.
    """
    candidates: list[str] = []
    for key in ("AbstractText", "Answer", "Definition"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            candidates.append(value.strip())

    related = payload.get("RelatedTopics")
    if isinstance(related, list):
        candidates.extend(_related_texts(related))

    snippets: list[str] = []
    for text in candidates:
        if text not in snippets:
            snippets.append(text)
        if len(snippets) >= limit:
            break
    return snippets


class SearchClient:
    """Query the instant-answer endpoint and return short text snippets."""

    def __init__(
        self,
        base_url: str = "https://api.duckduckgo.com/",
        max_results: int = 5,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url
        self._max_results = max_results
        self._timeout = timeout

    async def search(self, query: str) -> UpstreamResult[list[str]]:
        params = {
            "q": query,
            "format": "json",
            "no_redirect": "1",
            "skip_disambig": "1",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
            ) as client:
                resp = await client.get(self._base_url, params=params)
        except httpx.TimeoutException:
            logger.warning("Instant answer search timed out after %.0fs", self._timeout)
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "timeout")
        except httpx.HTTPError as exc:
            logger.exception("Instant answer search failed")
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, str(exc))

        if resp.status_code != 200:
            logger.warning(
                "Instant answer API returned %d: %s", resp.status_code, truncate(resp.text)
            )
            return UpstreamResult.err(
                ErrorKind.UPSTREAM_ERROR, f"status {resp.status_code}"
            )

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("Instant answer API returned non-JSON: %s", truncate(resp.text))
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "malformed body")

        if not isinstance(payload, dict):
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "malformed body")

        snippets = extract_snippets(payload, limit=self._max_results)
        logger.info("Instant answer search: %d snippet(s)", len(snippets))
        return UpstreamResult.ok(snippets)
