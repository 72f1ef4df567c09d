# =============================================================================
# Research Agent — Iterative Tool-Calling Loop
# =============================================================================
#
# One Agent per run. Each iteration:
#
#   check cancellation ──▶ build prompt ──▶ model call ──┬──▶ no tool calls → done
#                                                         └──▶ tool calls
#                                                              ▼
#                                          ToolExecutor (concurrent batch)
#                                                              ▼
#                                                  next iteration (≤ max)
#
# The model never sees raw tool-call/tool-result message pairs. Every
# iteration sends a single synthesized user message (see
# prompts.build_iteration_prompt) that re-renders the scratchpad, so any
# provider that can do one round of tool calling works with this loop.
#
# DESIGN DECISION: Tool calls win over text.
# When a response carries both, the text is kept as thinking and the tools
# run. Only a response with no tool calls ends the run.
#
# Terminal events (exactly one per run):
#   DoneEvent                      — final answer, or budget exhausted
#   ErrorEvent(code="model_error") — model call failed after retries
#   ErrorEvent(code="cancelled")   — cancellation token fired
# =============================================================================

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Mapping

from research_agent.agent.history import ChatHistory
from research_agent.agent.prompts import (
    build_iteration_prompt,
    build_system_prompt,
    load_soul_document,
)
from research_agent.agent.scratchpad import RunContext, create_run_context
from research_agent.agent.tool_executor import ToolExecutor
from research_agent.agent.types import (
    AgentConfig,
    AgentEvent,
    DoneEvent,
    ErrorEvent,
    ThinkingEvent,
    TokenUsage,
)
from research_agent.config import settings
from research_agent.credentials import CredentialResolver, as_resolver
from research_agent.errors import AgentCancelledError, ModelInvocationError
from research_agent.services.llm import (
    LLMProvider,
    LLMResponse,
    complete_with_retry,
    create_provider,
)
from research_agent.services.pricing import estimate_cost
from research_agent.tools.base import ToolSpec
from research_agent.tools.registry import build_registry

logger = logging.getLogger(__name__)


class Agent:
    """
    Runs the research loop for a single query.

    Use Agent.create() in application code. The constructor takes
    already-built collaborators so tests can inject a fake model and tools.
    """

    def __init__(
        self,
        config: AgentConfig,
        llm: LLMProvider,
        tools: Mapping[str, ToolSpec],
        credentials: CredentialResolver,
        system_prompt: str,
    ) -> None:
        self.config = config
        self.llm = llm
        self.tools = tools
        self.credentials = credentials
        self.system_prompt = system_prompt
        self._input_tokens = 0
        self._output_tokens = 0

    @classmethod
    def create(cls, config: AgentConfig) -> Agent:
        """
        Build an agent: resolve credentials, create the model, build tools.

        Raises:
            ValueError: The model's API key is not configured.
        """
        credentials = as_resolver(config.credentials)
        model = config.model or settings.default_model
        llm = create_provider(model, credentials, provider_id=config.model_provider)
        tools = build_registry(
            model, credentials, llm=llm, provider_id=config.model_provider,
        )
        return cls(
            config=config,
            llm=llm,
            tools=tools,
            credentials=credentials,
            system_prompt=build_system_prompt(model, load_soul_document()),
        )

    async def run(
        self,
        query: str,
        history: ChatHistory | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """
        Answer `query`, yielding events as work happens.

        Always ends with exactly one DoneEvent or ErrorEvent. Not
        restartable: call run() again for a new query.
        """
        start = time.monotonic()
        self._input_tokens = self._output_tokens = 0
        context = create_run_context(query)
        executor = ToolExecutor(
            tools=self.tools,
            credentials=self.credentials,
            cancellation_token=self.config.cancellation_token,
            approval_callback=self.config.approval_callback,
            session_approved_tools=self.config.session_approved_tools,
        )

        logger.info(
            "Agent run started (model=%s, max_iterations=%d, tools=%s)",
            self.llm.model, self.config.max_iterations, ", ".join(self.tools),
        )

        try:
            while context.iteration < self.config.max_iterations:
                context.iteration += 1
                self._raise_if_cancelled()

                yield ThinkingEvent(
                    "Analyzing query..." if context.iteration == 1 else "Analyzing results..."
                )

                response = await self._call_model(context, history)
                if response.reasoning:
                    context.scratchpad.add_thinking(response.reasoning)
                if response.content:
                    context.scratchpad.add_thinking(response.content)

                if not response.has_tool_calls:
                    logger.info("Final answer after %d iterations", context.iteration)
                    yield self._done(context, response.content or "", start)
                    return

                logger.info(
                    "Iteration %d: %d tool calls (%s)",
                    context.iteration, len(response.tool_calls),
                    ", ".join(call.name for call in response.tool_calls),
                )
                async for event in executor.execute_all(response.tool_calls, context):
                    yield event

            logger.warning(
                "Iteration budget exhausted (%d) without a final answer",
                self.config.max_iterations,
            )
            yield self._done(
                context,
                self._budget_exhausted_answer(context),
                start,
                budget_exhausted=True,
            )

        except AgentCancelledError as e:
            logger.info("Agent run cancelled at iteration %d: %s", context.iteration, e)
            yield ErrorEvent(error=str(e), code=e.code)
        except ModelInvocationError as e:
            logger.error("Agent run failed at iteration %d: %s", context.iteration, e)
            yield ErrorEvent(error=str(e), code=e.code)

    # -- Helpers -------------------------------------------------------------

    async def _call_model(
        self,
        context: RunContext,
        history: ChatHistory | None,
    ) -> LLMResponse:
        messages: list[dict[str, str]] = []
        if history is not None:
            messages.extend(turn.to_message() for turn in history.get_recent_turns())
        messages.append({
            "role": "user",
            "content": build_iteration_prompt(
                context.query,
                context.scratchpad.render_tool_results_for_prompt(),
                context.scratchpad.render_tool_usage_summary_for_prompt(),
            ),
        })

        call = complete_with_retry(
            self.llm,
            messages,
            system=self.system_prompt,
            tools=list(self.tools.values()),
        )
        token = self.config.cancellation_token
        response = await (token.guard(call) if token is not None else call)

        self._input_tokens += response.input_tokens
        self._output_tokens += response.output_tokens
        return response

    def _raise_if_cancelled(self) -> None:
        if self.config.cancellation_token is not None:
            self.config.cancellation_token.raise_if_cancelled()

    def _budget_exhausted_answer(self, context: RunContext) -> str:
        answer = (
            f"I've reached the maximum number of iterations "
            f"({self.config.max_iterations}) before reaching a final answer. "
            f"Here is the data gathered so far:"
        )
        if not context.scratchpad.has_tool_results():
            return answer
        return f"{answer}\n\n{context.scratchpad.render_tool_results_for_prompt()}"

    def _token_usage(self) -> TokenUsage:
        provider_id = getattr(self.llm, "provider_id", "")
        return TokenUsage(
            input_tokens=self._input_tokens,
            output_tokens=self._output_tokens,
            estimated_cost_usd=estimate_cost(
                provider_id, self.llm.model, self._input_tokens, self._output_tokens,
            ),
        )

    def _done(
        self,
        context: RunContext,
        answer: str,
        start: float,
        budget_exhausted: bool = False,
    ) -> DoneEvent:
        return DoneEvent(
            answer=answer,
            tool_calls=context.scratchpad.tool_call_records,
            iterations=context.iteration,
            total_time_ms=int((time.monotonic() - start) * 1000),
            token_usage=self._token_usage(),
            budget_exhausted=budget_exhausted,
        )
