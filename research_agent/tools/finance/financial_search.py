# =============================================================================
# financial_search — Meta-Router over the Finance Sub-Tools
# =============================================================================
#
# The main agent sees ONE finance tool. Inside it, a nested one-shot
# reasoning step decides which concrete data tools to call:
#
#   query ──▶ routing LLM call (sub-tools bound) ──▶ selected tool calls
#                                                        │
#                      ┌─────────────┬─────────────┬─────┘
#                      ▼             ▼             ▼
#                  sub-tool A    sub-tool B    sub-tool C   (concurrent)
#                      └─────────────┴─────────────┘
#                                    ▼
#                        merged payload + deduped URLs
#
# Merge rules:
#   success → key "{tool}" or "{tool}_{ticker}" when the call had a ticker,
#             so the same tool called for two tickers does not collide
#   failure → key "{tool}_error" with the failure message, or
#             "{tool}_{ticker}_error" when that tool failed more than once
#   URLs    → all successful sub-results, deduplicated, first-seen order
#
# "No sub-tool selected" is a ToolSuccess with an explanatory payload,
# not a failure: it tells the main agent something useful about the query.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from research_agent.agent.prompts import build_router_prompt
from research_agent.agent.types import ToolCallRequest
from research_agent.credentials import CredentialResolver
from research_agent.services.llm import LLMProvider, call_llm, create_provider
from research_agent.tools.base import (
    ToolCapabilities,
    ToolFailure,
    ToolOutcome,
    ToolSpec,
    ToolSuccess,
    invoke_tool,
)
from research_agent.tools.finance.alpha_vantage import build_alpha_vantage_tools
from research_agent.tools.finance.financial_datasets import build_financial_datasets_tools
from research_agent.tools.finance.yahoo import build_yahoo_tools

logger = logging.getLogger(__name__)


FINANCIAL_SEARCH_DESCRIPTION = (
    "Intelligent meta-tool for financial data research. Takes a natural "
    "language query and automatically routes to appropriate financial data "
    "sources for prices, company fundamentals, income statements, and news, "
    "including Indian (NSE/BSE) listings."
)


class FinancialSearchInput(BaseModel):
    query: str = Field(
        ...,
        min_length=1,
        description="Natural language query about financial data",
    )


@dataclass(frozen=True)
class SubToolResult:
    """Outcome of one routed sub-tool call."""

    call: ToolCallRequest
    outcome: ToolOutcome


# ---------------------------------------------------------------------------
# Sub-Tool Set
# ---------------------------------------------------------------------------


def build_finance_sub_tools(credentials: CredentialResolver) -> list[ToolSpec]:
    """Every data tool the router may select, in prompt order."""
    return [
        *build_financial_datasets_tools(credentials),
        *build_alpha_vantage_tools(credentials),
        *build_yahoo_tools(),
    ]


def format_sub_tool_name(name: str) -> str:
    """snake_case → Title Case, for progress messages."""
    return " ".join(word.capitalize() for word in name.split("_"))


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def merge_sub_tool_results(
    results: Sequence[SubToolResult],
) -> tuple[dict[str, Any], list[str]]:
    """Combine sub-tool outcomes into one payload and a deduplicated URL list."""
    combined: dict[str, Any] = {}
    urls: list[str] = []
    seen: set[str] = set()
    failures = Counter(
        result.call.name for result in results if isinstance(result.outcome, ToolFailure)
    )

    for result in results:
        name = result.call.name
        outcome = result.outcome
        ticker = result.call.arguments.get("ticker")
        key = f"{name}_{ticker}" if ticker else name
        if isinstance(outcome, ToolFailure):
            # A sub-tool failing for several tickers keeps one entry per ticker
            error_key = f"{key}_error" if failures[name] > 1 else f"{name}_error"
            combined[error_key] = outcome.message
            continue

        combined[key] = outcome.data
        for url in outcome.source_urls:
            if url not in seen:
                seen.add(url)
                urls.append(url)

    return combined, urls


# ---------------------------------------------------------------------------
# Tool Factory
# ---------------------------------------------------------------------------


def create_financial_search(
    model: str,
    credentials: CredentialResolver,
    llm: LLMProvider | None = None,
    provider_id: str | None = None,
    sub_tools: Sequence[ToolSpec] | None = None,
) -> ToolSpec:
    """
    Build the financial_search ToolSpec.

    Args:
        model: Model used for the routing call.
        credentials: Resolver for the routing model's key and sub-tool keys.
        llm: Pre-built provider. When None, one is created on first use so a
            missing LLM key surfaces as a ToolFailure, not a registry error.
        provider_id: Provider hint for models without a routing prefix.
        sub_tools: Override the routed tool set (tests).
    """
    tools = list(sub_tools) if sub_tools is not None else build_finance_sub_tools(credentials)
    tool_map = {tool.name: tool for tool in tools}
    router_llm = llm

    def _get_llm() -> LLMProvider:
        nonlocal router_llm
        if router_llm is None:
            router_llm = create_provider(model, credentials, provider_id)
        return router_llm

    async def _run_sub_tool(
        call: ToolCallRequest, capabilities: ToolCapabilities,
    ) -> SubToolResult:
        tool = tool_map.get(call.name)
        if tool is None:
            return SubToolResult(call, ToolFailure(f"Tool '{call.name}' not found"))
        try:
            outcome = await invoke_tool(tool, call.arguments, capabilities)
        except Exception as e:
            outcome = ToolFailure(str(e))
        return SubToolResult(call, outcome)

    async def financial_search(
        params: FinancialSearchInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        # 1. Route: ask the model which sub-tools apply
        capabilities.report("Searching...")
        response = await call_llm(
            _get_llm(),
            prompt=params.query,
            system_prompt=build_router_prompt(),
            tools=tools,
        )

        # 2. Nothing selected is an informative result, not a failure
        if not response.tool_calls:
            logger.info("financial_search: router selected no tools for '%s'", params.query[:80])
            return ToolSuccess(data={
                "error": "No tools selected for query",
                "message": response.content or "Router did not select tools",
            })

        # 3. Fan out
        names = ", ".join(format_sub_tool_name(call.name) for call in response.tool_calls)
        capabilities.report(f"Fetching from {names}...")
        logger.info(
            "financial_search: routing '%s' to %d sub-tools (%s)",
            params.query[:80], len(response.tool_calls), names,
        )

        sub_capabilities = ToolCapabilities(
            credentials=capabilities.credentials,
            cancellation=capabilities.cancellation,
        )
        results = await asyncio.gather(*(
            _run_sub_tool(call, sub_capabilities) for call in response.tool_calls
        ))

        # 4. Merge
        combined, urls = merge_sub_tool_results(results)
        return ToolSuccess(data=combined, source_urls=tuple(urls))

    return ToolSpec(
        name="financial_search",
        description=FINANCIAL_SEARCH_DESCRIPTION,
        input_schema=FinancialSearchInput,
        invoke=financial_search,
    )
