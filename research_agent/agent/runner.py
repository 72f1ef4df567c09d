# =============================================================================
# run_agent — Entry Point for One Query
# =============================================================================
#
# Wraps Agent.create() + Agent.run() so callers get a single async
# iterator. Construction problems (unknown provider key, bad config) are
# reported as a terminal ErrorEvent(code="configuration_error") instead of
# an exception, so a streaming transport can forward them like any other
# event.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from research_agent.agent.agent import Agent
from research_agent.agent.history import ChatHistory
from research_agent.agent.types import AgentConfig, AgentEvent, ErrorEvent

logger = logging.getLogger(__name__)


async def run_agent(
    query: str,
    config: AgentConfig | None = None,
    history: ChatHistory | None = None,
) -> AsyncIterator[AgentEvent]:
    """Create an agent for `config` and stream its events for `query`."""
    config = config or AgentConfig()
    try:
        agent = Agent.create(config)
    except ValueError as e:
        logger.warning("Agent configuration error: %s", e)
        yield ErrorEvent(error=str(e), code="configuration_error")
        return

    async for event in agent.run(query, history):
        yield event
