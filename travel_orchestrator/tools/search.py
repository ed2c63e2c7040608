"""
Web search through the Tavily API.

This module wraps Tavily's search endpoint as a tool the stages can request
to look up destination and local information.
"""

import os
from typing import Any, Literal

from travel_orchestrator.tools.base import Tool
from travel_orchestrator.utils.error_handling import APIError
from travel_orchestrator.utils.logging import get_logger
from travel_orchestrator.utils.rate_limiting import APIClient

logger = get_logger(__name__)

TAVILY_BASE_URL = "https://api.tavily.com"


class TavilySearchTool(APIClient, Tool):
    """Search tool backed by Tavily AI search."""

    name = "search"
    description = "Search the web for current travel information"

    def __init__(self, api_key: str | None = None, base_url: str = TAVILY_BASE_URL):
        """
        Initialize the Tavily search tool.

        A missing key is not an error until the tool is used, so a pipeline
        without search access still runs and records failed lookups.

        Args:
            api_key: Tavily API key (defaults to TAVILY_API_KEY environment variable)
            base_url: API base URL
        """
        super().__init__(
            service_name="tavily",
            base_url=base_url,
            api_key=api_key or os.getenv("TAVILY_API_KEY") or None,
        )

    async def run(
        self,
        query: str,
        search_depth: Literal["basic", "advanced"] = "basic",
        topic: Literal["general", "news"] = "general",
        max_results: int = 5,
        include_domains: list[str] | None = None,
        exclude_domains: list[str] | None = None,
    ) -> dict[str, Any]:
        """
        Perform a Tavily search.

        Args:
            query: Search query
            search_depth: Depth of search ("basic" or "advanced")
            topic: Search topic ("general" or "news")
            max_results: Maximum number of results to return
            include_domains: Domains to restrict the search to
            exclude_domains: Domains to exclude

        Returns:
            ``{"query", "results": [{title, url, content, score}], "response_time"}``

        Raises:
            APIError: If no API key is configured or the request fails
        """
        if not self.api_key:
            raise APIError("Tavily API key is not configured", self.service_name)
        if not query or not query.strip():
            raise ValueError("Search query must not be empty")

        logger.info(f"Performing Tavily search: {query}")
        payload: dict[str, Any] = {
            "query": query,
            "search_depth": search_depth,
            "topic": topic,
            "max_results": max_results,
        }
        if include_domains:
            payload["include_domains"] = include_domains
        if exclude_domains:
            payload["exclude_domains"] = exclude_domains

        response = await self.post_json("/search", payload)
        results = [
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "content": item.get("content", ""),
                "score": item.get("score", 0.0),
            }
            for item in response.get("results", [])
        ]
        return {
            "query": response.get("query", query),
            "results": results,
            "response_time": response.get("response_time"),
        }
