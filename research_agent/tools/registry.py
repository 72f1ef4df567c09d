# =============================================================================
# Tool Registry — Per-Run Name → ToolSpec Mapping
# =============================================================================
#
# build_registry() is called once at the start of every agent run. It is a
# pure function of (model, credentials): nothing global is read or written
# besides settings defaults behind the resolver, so concurrent runs with
# different client keys never see each other's tools.
#
# Availability policy:
#   financial_search — always registered; each sub-tool degrades on its own
#                      when its data key is missing
#   web_search       — registered only when TAVILY_API_KEY resolves
#
# Construction never raises. The routing LLM behind financial_search is
# created lazily, so a missing LLM key shows up later as a ToolFailure.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from research_agent.credentials import CredentialResolver
from research_agent.services.llm import LLMProvider
from research_agent.tools.base import ToolSpec
from research_agent.tools.finance.financial_search import create_financial_search
from research_agent.tools.search import TAVILY_KEY, create_web_search

logger = logging.getLogger(__name__)


def get_tools(
    model: str,
    credentials: CredentialResolver,
    llm: LLMProvider | None = None,
    provider_id: str | None = None,
) -> list[ToolSpec]:
    """Tools available to the main agent, in the order the model sees them."""
    tools = [
        create_financial_search(model, credentials, llm=llm, provider_id=provider_id),
    ]

    tavily_key = credentials.resolve(TAVILY_KEY)
    if tavily_key:
        tools.append(create_web_search(tavily_key))
    else:
        logger.info("%s not configured; web_search omitted", TAVILY_KEY)

    return tools


def build_registry(
    model: str,
    credentials: CredentialResolver,
    llm: LLMProvider | None = None,
    provider_id: str | None = None,
) -> Mapping[str, ToolSpec]:
    """
    Build the read-only registry for one run.

    Args:
        model: Model identifier; the meta-router routes with the same model.
        credentials: The run's resolver.
        llm: Optional pre-built provider shared with the meta-router.
        provider_id: Provider hint for models without a routing prefix.
    """
    registry: dict[str, ToolSpec] = {}
    for tool in get_tools(model, credentials, llm=llm, provider_id=provider_id):
        if tool.name in registry:
            logger.warning("Duplicate tool name %s; keeping the first", tool.name)
            continue
        registry[tool.name] = tool

    logger.info("Tool registry built: %s", ", ".join(registry))
    return MappingProxyType(registry)
