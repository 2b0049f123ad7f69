"""Tools module - Tool implementations for agent use."""

from deep_report.tools.search import (
    SearchError,
    SearchProviderNotImplementedError,
    UnsupportedSearchAPIError,
    deduplicate_sources,
    format_sources,
    get_search_params,
    select_and_execute_search,
)

__all__ = [
    "SearchError",
    "SearchProviderNotImplementedError",
    "UnsupportedSearchAPIError",
    "deduplicate_sources",
    "format_sources",
    "get_search_params",
    "select_and_execute_search",
]
