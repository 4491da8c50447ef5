"""Tests for the instant-answer search client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from jabber.errors import ErrorKind
from jabber.upstream.search import SearchClient, extract_snippets

DDG_URL = "https://api.duckduckgo.com/"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_httpx_client(mock_client_cls: MagicMock, response: httpx.Response) -> AsyncMock:
    """Wire up an AsyncClient context-manager mock that returns *response*."""
    mock_client = AsyncMock()
    mock_client.get.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def _ddg_response(payload: dict, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        json=payload,
        request=httpx.Request("GET", DDG_URL),
    )


# ---------------------------------------------------------------------------
# extract_snippets
# ---------------------------------------------------------------------------


def test_abstract_preferred_over_related() -> None:
    payload = {
        "AbstractText": "Paris is the capital of France.",
        "RelatedTopics": [{"Text": "Paris Metro", "FirstURL": "https://ddg.gg/Paris_Metro"}],
    }
    assert extract_snippets(payload) == [
        "Paris is the capital of France.",
        "Paris Metro\n\nSource: https://ddg.gg/Paris_Metro",
    ]


def test_nested_topics_flattened() -> None:
    payload = {
        "AbstractText": "",
        "RelatedTopics": [
            {"Name": "Places", "Topics": [{"Text": "Paris, Texas"}, {"Text": "Paris, Ontario"}]},
            {"Text": "Paris Hilton"},
        ],
    }
    assert extract_snippets(payload) == ["Paris, Texas", "Paris, Ontario", "Paris Hilton"]


def test_answer_and_definition_included() -> None:
    payload = {"Answer": "42", "Definition": "A number."}
    assert extract_snippets(payload) == ["42", "A number."]


def test_duplicates_dropped_and_limit_applied() -> None:
    payload = {
        "AbstractText": "same",
        "RelatedTopics": [{"Text": "same"}, {"Text": "a"}, {"Text": "b"}, {"Text": "c"}],
    }
    assert extract_snippets(payload, limit=3) == ["same", "a", "b"]


def test_empty_payload_gives_empty_list() -> None:
    assert extract_snippets({"AbstractText": "", "RelatedTopics": []}) == []


# ---------------------------------------------------------------------------
# SearchClient.search
# ---------------------------------------------------------------------------


async def test_search_success() -> None:
    resp = _ddg_response({"AbstractText": "Paris is the capital of France."})

    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        mock_client = _mock_httpx_client(mock_cls, resp)
        result = await SearchClient(DDG_URL).search("capital of france")

    assert result.success
    assert result.value == ["Paris is the capital of France."]
    args, kwargs = mock_client.get.call_args
    assert args[0] == DDG_URL
    assert kwargs["params"]["q"] == "capital of france"
    assert kwargs["params"]["format"] == "json"
    assert kwargs["params"]["skip_disambig"] == "1"


async def test_search_no_content_is_empty_not_error() -> None:
    resp = _ddg_response({"AbstractText": "", "RelatedTopics": []})

    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        result = await SearchClient(DDG_URL).search("xyzzy plugh")

    assert result.success
    assert result.value == []


async def test_search_respects_max_results() -> None:
    resp = _ddg_response({"RelatedTopics": [{"Text": f"t{i}"} for i in range(10)]})

    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        result = await SearchClient(DDG_URL, max_results=2).search("test")

    assert result.value == ["t0", "t1"]


async def test_search_non_200_is_upstream_error() -> None:
    resp = httpx.Response(
        status_code=503, text="Service Unavailable", request=httpx.Request("GET", DDG_URL)
    )

    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        result = await SearchClient(DDG_URL).search("test")

    assert result.kind is ErrorKind.UPSTREAM_ERROR
    assert "503" in result.detail


async def test_search_malformed_body_is_upstream_error() -> None:
    resp = httpx.Response(
        status_code=200, text="<html>nope</html>", request=httpx.Request("GET", DDG_URL)
    )

    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        result = await SearchClient(DDG_URL).search("test")

    assert result.kind is ErrorKind.UPSTREAM_ERROR


async def test_search_transport_error() -> None:
    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        mock_client = AsyncMock()
        mock_client.get.side_effect = httpx.ConnectError("Connection refused")
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        mock_cls.return_value = mock_client

        result = await SearchClient(DDG_URL).search("test")

    assert result.kind is ErrorKind.UPSTREAM_ERROR


async def test_search_timeout() -> None:
    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        mock_client = AsyncMock()
        mock_client.get.side_effect = httpx.ReadTimeout("slow")
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        mock_cls.return_value = mock_client

        result = await SearchClient(DDG_URL, timeout=1).search("test")

    assert result.kind is ErrorKind.UPSTREAM_ERROR
    assert result.detail == "timeout"


def test_nested_topic_source_url_kept() -> None:
    payload = {
        "RelatedTopics": [
            {
                "Name": "Places",
                "Topics": [{"Text": "Paris, Texas", "FirstURL": "https://ddg.gg/Paris,_Texas"}],
            },
        ],
    }
    assert extract_snippets(payload) == ["Paris, Texas\n\nSource: https://ddg.gg/Paris,_Texas"]


async def test_search_related_snippet_cites_source() -> None:
    topic = {"Text": "Eiffel Tower", "FirstURL": "https://ddg.gg/Eiffel"}
    resp = _ddg_response({"AbstractText": "", "RelatedTopics": [topic]})

    with patch("jabber.upstream.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        result = await SearchClient(DDG_URL).search("eiffel")

    assert result.value == ["Eiffel Tower\n\nSource: https://ddg.gg/Eiffel"]
