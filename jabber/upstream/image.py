"""Image generation client — OpenAI images API."""

from __future__ import annotations

import logging
from typing import Any

import openai

from jabber.errors import ErrorKind
from jabber.upstream.base import UpstreamResult, truncate

logger = logging.getLogger(__name__)

VALID_SIZES = {"1024x1024", "1024x1536", "1536x1024"}


class ImageClient:
    """Generate one image per prompt and return it as a URL.

    The provider answers with either ``data[0].url`` or ``data[0].b64_json``;
    base64 payloads are turned into a ``data:`` URL so the widget can put
    either straight into an ``<img>`` tag.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-image-1",
        default_size: str = "1024x1024",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._default_size = default_size
        self._timeout = timeout
        self._client: openai.AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def generate(self, prompt: str, size: str | None = None) -> UpstreamResult[str]:
        size = size or self._default_size
        if size not in VALID_SIZES:
            valid = ", ".join(sorted(VALID_SIZES))
            return UpstreamResult.err(
                ErrorKind.INVALID_REQUEST, f"Invalid size '{size}'. Must be one of: {valid}"
            )

        if not self.configured:
            return UpstreamResult.err(
                ErrorKind.UPSTREAM_UNAVAILABLE,
                "OpenAI client not configured (OPENAI_API_KEY is empty)",
            )

        try:
            response = await self._get_client().images.generate(
                model=self._model,
                prompt=prompt,
                size=size,
                n=1,
            )
        except openai.APITimeoutError:
            logger.warning("OpenAI image generation timed out after %.0fs", self._timeout)
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "timeout")
        except openai.APIStatusError as exc:
            logger.warning(
                "OpenAI images returned %d: %s", exc.status_code, truncate(exc.message)
            )
            return UpstreamResult.err(
                ErrorKind.UPSTREAM_ERROR, f"status {exc.status_code}: {exc.message}"
            )
        except openai.APIError as exc:
            logger.exception("OpenAI image generation failed")
            return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, str(exc))

        return normalize_image(response)


def normalize_image(response: Any) -> UpstreamResult[str]:
    """Map an images response to a single displayable URL.

    Expected schema: ``data`` is a non-empty list whose first item has a
    non-empty ``url`` or ``b64_json`` string. Anything else is an error.
    """
    data = getattr(response, "data", None) or []
    first = data[0] if data else None
    url = getattr(first, "url", None)
    b64 = getattr(first, "b64_json", None)

    if isinstance(url, str) and url:
        return UpstreamResult.ok(url)
    if isinstance(b64, str) and b64:
        return UpstreamResult.ok(f"data:image/png;base64,{b64}")

    logger.error("Unexpected image response: %s", truncate(repr(response), 500))
    return UpstreamResult.err(ErrorKind.UPSTREAM_ERROR, "no image data in response")
