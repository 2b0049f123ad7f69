"""Web search gateway with a fixed table of provider backends.

Tavily is the default backend; Google results are fetched through SerpApi.
The remaining providers are recognised so their parameters can be filtered,
but selecting one fails loudly until a backend is written for it.

Environment variables:
    TAVILY-PYTHON-RESEARCH-API-KEY or TAVILY_API_KEY: Tavily API key
    SERPAPI_API_KEY: SerpApi API key (Google search)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Iterable, Mapping

from deep_report.configuration import SearchAPI

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS_PER_SOURCE = 4_000
CHARS_PER_TOKEN = 4
TAVILY_MAX_RESULTS = 5

# Accepted extra parameters per provider; anything else is dropped.
SEARCH_API_PARAMS: dict[SearchAPI, list[str]] = {
    SearchAPI.EXA: ["max_characters", "num_results", "include_domains", "exclude_domains", "subpages"],
    SearchAPI.TAVILY: [],
    SearchAPI.PERPLEXITY: [],
    SearchAPI.ARXIV: ["load_max_docs", "get_full_documents", "load_all_available_meta"],
    SearchAPI.PUBMED: ["top_k_results", "email", "api_key", "doc_content_chars_max"],
    SearchAPI.LINKUP: ["depth"],
    SearchAPI.DUCKDUCKGO: [],
    SearchAPI.GOOGLESEARCH: [],
}


class SearchError(RuntimeError):
    """A search provider call failed."""

    def __init__(self, message: str, provider: str):
        super().__init__(message)
        self.provider = provider


class UnsupportedSearchAPIError(SearchError):
    """The configured provider is unknown. Configuration error; not retried."""


class SearchProviderNotImplementedError(UnsupportedSearchAPIError):
    """The provider is known but has no backend yet."""


def _resolve_api(search_api: str | SearchAPI) -> SearchAPI | None:
    try:
        return SearchAPI(search_api)
    except ValueError:
        return None


def get_search_params(search_api: str | SearchAPI, search_api_config: Mapping[str, Any] | None) -> dict[str, Any]:
    """Filter `search_api_config` down to the provider's accepted parameters.

    Unknown keys are dropped silently; unknown providers yield an empty dict.
    """
    if not search_api_config:
        return {}
    api = _resolve_api(search_api)
    if api is None:
        return {}
    accepted = SEARCH_API_PARAMS[api]
    return {k: v for k, v in search_api_config.items() if k in accepted}


def _tavily_api_key() -> str | None:
    return os.getenv("TAVILY-PYTHON-RESEARCH-API-KEY") or os.getenv("TAVILY_API_KEY")


def deduplicate_sources(search_responses: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Flatten provider responses and keep the first result seen for each URL."""
    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for response in search_responses:
        for source in response.get("results") or []:
            url = source.get("url")
            if not url or url in seen:
                continue
            seen.add(url)
            unique.append(dict(source))
    return unique


def format_sources(
    sources: Iterable[Mapping[str, Any]],
    include_raw_content: bool = True,
    max_tokens_per_source: int = DEFAULT_MAX_TOKENS_PER_SOURCE,
) -> str:
    """Render sources into the text block handed to the drafting model.

    Raw content is truncated to roughly `max_tokens_per_source` tokens using
    four characters per token.
    """
    parts = ["Sources:\n\n"]
    char_limit = max_tokens_per_source * CHARS_PER_TOKEN
    for source in sources:
        parts.append(f"Source {source.get('title', '')}:\n===\n")
        parts.append(f"URL: {source.get('url', '')}\n===\n")
        parts.append(f"Most relevant content from source: {source.get('content', '')}\n===\n")
        if include_raw_content:
            raw_content = source.get("raw_content") or ""
            if len(raw_content) > char_limit:
                raw_content = f"{raw_content[:char_limit]}...[truncated]"
            parts.append(f"Full source content limited to {max_tokens_per_source} tokens: {raw_content}\n\n")
    return "".join(parts)


async def tavily_search(queries: list[str], params: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Run all queries against Tavily concurrently and return the raw responses."""
    from tavily import AsyncTavilyClient  # type: ignore[import-not-found]

    api_key = _tavily_api_key()
    if not api_key:
        raise SearchError("Missing Tavily credentials. Set TAVILY_API_KEY.", provider=SearchAPI.TAVILY.value)

    client = AsyncTavilyClient(api_key=api_key)
    tasks = [
        client.search(
            query,
            max_results=TAVILY_MAX_RESULTS,
            include_raw_content=True,
            topic="general",
            **params,
        )
        for query in queries
    ]
    return list(await asyncio.gather(*tasks))


def _google_search_sync(query: str, params: Mapping[str, Any]) -> dict[str, Any]:
    from serpapi import GoogleSearch  # type: ignore[import-not-found]

    api_key = os.getenv("SERPAPI_API_KEY")
    if not api_key:
        raise SearchError("Missing SerpApi credentials. Set SERPAPI_API_KEY.", provider=SearchAPI.GOOGLESEARCH.value)
    search = GoogleSearch(
        {
            "q": query,
            "hl": "en",
            "gl": "us",
            "google_domain": "google.com",
            "api_key": api_key,
            **params,
        }
    )
    payload = search.get_dict()
    results = [
        {
            "title": item.get("title", ""),
            "url": item.get("link"),
            "content": item.get("snippet", ""),
            "raw_content": None,
        }
        for item in payload.get("organic_results") or []
    ]
    return {"query": query, "results": results}


async def google_search(queries: list[str], params: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Run all queries through SerpApi's Google engine in worker threads."""
    return list(await asyncio.gather(*(asyncio.to_thread(_google_search_sync, q, params) for q in queries)))


async def _run_tavily(queries: list[str], params: Mapping[str, Any], max_tokens_per_source: int) -> str:
    responses = await tavily_search(queries, params)
    return format_sources(deduplicate_sources(responses), include_raw_content=True, max_tokens_per_source=max_tokens_per_source)


async def _run_google(queries: list[str], params: Mapping[str, Any], max_tokens_per_source: int) -> str:
    responses = await google_search(queries, params)
    return format_sources(deduplicate_sources(responses), include_raw_content=False, max_tokens_per_source=max_tokens_per_source)


SearchHandler = Callable[[list[str], Mapping[str, Any], int], Awaitable[str]]

_SEARCH_HANDLERS: dict[SearchAPI, SearchHandler | None] = {
    SearchAPI.TAVILY: _run_tavily,
    SearchAPI.GOOGLESEARCH: _run_google,
    SearchAPI.PERPLEXITY: None,
    SearchAPI.EXA: None,
    SearchAPI.ARXIV: None,
    SearchAPI.PUBMED: None,
    SearchAPI.LINKUP: None,
    SearchAPI.DUCKDUCKGO: None,
}


async def select_and_execute_search(
    search_api: str | SearchAPI,
    query_list: list[str],
    params_to_pass: Mapping[str, Any],
    max_tokens_per_source: int = DEFAULT_MAX_TOKENS_PER_SOURCE,
) -> str:
    """Dispatch `query_list` to the selected provider and return formatted source text.

    Raises:
        UnsupportedSearchAPIError: Unknown provider.
        SearchProviderNotImplementedError: Known provider without a backend.
        SearchError: The provider call itself failed.
    """
    api = _resolve_api(search_api)
    if api is None:
        logger.error("Unsupported search API: %s", search_api)
        raise UnsupportedSearchAPIError(f"Unsupported search API: {search_api}", provider=str(search_api))

    handler = _SEARCH_HANDLERS[api]
    if handler is None:
        logger.error("%s search not implemented yet. Called with queries: %s", api.value, query_list)
        raise SearchProviderNotImplementedError(f"{api.value} search not implemented yet.", provider=api.value)

    logger.debug("Executing %s search with params %s for queries: %s", api.value, dict(params_to_pass), query_list)
    try:
        return await handler(list(query_list), params_to_pass, max_tokens_per_source)
    except SearchError:
        raise
    except Exception as exc:
        logger.error("Error executing %s search: %s", api.value, exc)
        raise SearchError(f"{api.value} search failed: {exc}", provider=api.value) from exc
