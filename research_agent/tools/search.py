# =============================================================================
# Web Search — Tavily
# =============================================================================
#
# General web search for questions the structured finance sources cannot
# answer (macro news, regulatory events, company announcements). Only
# registered when TAVILY_API_KEY resolves; see tools/registry.py.
# =============================================================================

from __future__ import annotations

from pydantic import BaseModel, Field

from research_agent.tools.base import ToolCapabilities, ToolOutcome, ToolSpec, ToolSuccess
from research_agent.tools.http import post_json

TAVILY_URL = "https://api.tavily.com/search"
TAVILY_KEY = "TAVILY_API_KEY"


class WebSearchInput(BaseModel):
    query: str = Field(..., min_length=1, description="The search query.")
    max_results: int = Field(default=5, ge=1, le=10, description="Results to return.")


def create_web_search(api_key: str) -> ToolSpec:
    """Build the web_search tool bound to a Tavily key."""

    async def web_search(params: WebSearchInput, capabilities: ToolCapabilities) -> ToolOutcome:
        payload = await post_json(TAVILY_URL, {
            "api_key": api_key,
            "query": params.query,
            "max_results": params.max_results,
        })
        results = [
            {
                "title": item.get("title"),
                "url": item.get("url"),
                "content": item.get("content"),
            }
            for item in payload.get("results", [])
        ]
        urls = tuple(item["url"] for item in results if item["url"])
        return ToolSuccess(data={"results": results}, source_urls=urls)

    return ToolSpec(
        name="web_search",
        description=(
            "Search the web for current information: news, announcements, "
            "macro events, or anything the financial data tools do not cover."
        ),
        input_schema=WebSearchInput,
        invoke=web_search,
    )
