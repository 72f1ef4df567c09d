# =============================================================================
# Unit Tests — Tool Executor
# =============================================================================
#
# Batch semantics without any network or LLM: fake tools built from plain
# coroutines, a real CancellationToken, and a real scratchpad.
# =============================================================================

from __future__ import annotations

import asyncio
from types import MappingProxyType
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel, ConfigDict

from research_agent.agent.cancellation import CancellationToken
from research_agent.agent.scratchpad import create_run_context
from research_agent.agent.tool_executor import ToolExecutor
from research_agent.agent.types import (
    ApprovalDecision,
    ToolCallRequest,
    ToolEndEvent,
    ToolProgressEvent,
    ToolStartEvent,
)
from research_agent.credentials import CredentialResolver
from research_agent.errors import AgentCancelledError
from research_agent.tools.base import ToolFailure, ToolSpec, ToolSuccess


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class AnyArgs(BaseModel):
    model_config = ConfigDict(extra="allow")


def _tool(name, invoke):
    return ToolSpec(name=name, description=f"{name} tool", input_schema=AnyArgs, invoke=invoke)


def _returning(name, outcome):
    async def invoke(params, capabilities):
        return outcome
    return _tool(name, invoke)


def _raising(name, error):
    async def invoke(params, capabilities):
        raise error
    return _tool(name, invoke)


def _executor(tools, **kwargs):
    return ToolExecutor(
        tools=MappingProxyType({tool.name: tool for tool in tools}),
        credentials=CredentialResolver({}),
        **kwargs,
    )


async def _collect(executor, calls, context):
    return [event async for event in executor.execute_all(calls, context)]


def _calls(*names):
    return [ToolCallRequest(id=f"call_{i}", name=name) for i, name in enumerate(names)]


# ---------------------------------------------------------------------------
# Test: Batch Accounting
# ---------------------------------------------------------------------------


class TestBatchAccounting:
    """Every request yields one record and one start/end pair."""

    def test_mixed_batch_records_every_call(self):
        tools = [
            _returning("good", ToolSuccess({"price": 1.0})),
            _returning("soft_fail", ToolFailure("rate limited")),
            _raising("boom", RuntimeError("connection reset")),
        ]
        context = create_run_context("q")
        calls = _calls("good", "soft_fail", "boom", "missing")

        events = _run(_collect(_executor(tools), calls, context))

        records = context.scratchpad.tool_call_records
        assert len(records) == 4
        assert [r.request.id for r in records if r.request.name == "good"] == ["call_0"]
        assert sum(isinstance(e, ToolStartEvent) for e in events) == 4
        assert sum(isinstance(e, ToolEndEvent) for e in events) == 4

        by_name = {r.request.name: r.outcome for r in records}
        assert by_name["good"].ok
        assert by_name["soft_fail"] == ToolFailure("rate limited")
        assert by_name["boom"].message == "boom failed: connection reset"
        assert by_name["missing"].message == "tool not found: missing"

    def test_all_starts_precede_ends_in_request_order(self):
        tools = [_returning(name, ToolSuccess(name)) for name in ("a", "b", "c")]
        events = _run(_collect(_executor(tools), _calls("a", "b", "c"), create_run_context("q")))

        starts = [i for i, e in enumerate(events) if isinstance(e, ToolStartEvent)]
        ends = [i for i, e in enumerate(events) if isinstance(e, ToolEndEvent)]
        assert max(starts) < min(ends)
        assert [events[i].tool for i in starts] == ["a", "b", "c"]

    def test_empty_batch_yields_nothing(self):
        context = create_run_context("q")
        events = _run(_collect(_executor([]), [], context))
        assert events == []
        assert context.scratchpad.tool_call_records == ()

    def test_invalid_arguments_become_failure(self):
        class TickerArgs(BaseModel):
            ticker: str

        async def invoke(params, capabilities):
            return ToolSuccess(params.ticker)

        tool = ToolSpec("quote", "quote", TickerArgs, invoke)
        context = create_run_context("q")
        _run(_collect(_executor([tool]), [ToolCallRequest("c1", "quote", {})], context))

        outcome = context.scratchpad.tool_call_records[0].outcome
        assert not outcome.ok
        assert outcome.message.startswith("invalid arguments for quote")


# ---------------------------------------------------------------------------
# Test: Concurrency & Ordering
# ---------------------------------------------------------------------------


class TestConcurrency:
    """Approved calls run concurrently; tool_end follows completion order."""

    def test_calls_overlap(self):
        async def scenario():
            ready = asyncio.Event()

            async def waits(params, capabilities):
                await asyncio.wait_for(ready.wait(), timeout=1.0)
                return ToolSuccess("waited")

            async def signals(params, capabilities):
                ready.set()
                return ToolSuccess("signalled")

            context = create_run_context("q")
            executor = _executor([_tool("waits", waits), _tool("signals", signals)])
            await _collect(executor, _calls("waits", "signals"), context)
            return context

        context = _run(scenario())
        assert all(r.outcome.ok for r in context.scratchpad.tool_call_records)

    def test_end_events_follow_completion_order(self):
        async def slow(params, capabilities):
            await asyncio.sleep(0.05)
            return ToolSuccess("slow")

        async def fast(params, capabilities):
            return ToolSuccess("fast")

        context = create_run_context("q")
        executor = _executor([_tool("slow", slow), _tool("fast", fast)])
        events = _run(_collect(executor, _calls("slow", "fast"), context))

        ends = [e for e in events if isinstance(e, ToolEndEvent)]
        assert [e.tool for e in ends] == ["fast", "slow"]
        assert [e.call_id for e in ends] == ["call_1", "call_0"]

    def test_records_keep_request_order(self):
        async def slow(params, capabilities):
            await asyncio.sleep(0.05)
            return ToolSuccess("slow")

        async def fast(params, capabilities):
            return ToolSuccess("fast")

        context = create_run_context("q")
        executor = _executor([_tool("slow", slow), _tool("fast", fast)])
        calls = [
            ToolCallRequest("a", "slow"),
            ToolCallRequest("b", "missing"),
            ToolCallRequest("c", "fast"),
        ]
        events = _run(_collect(executor, calls, context))

        assert [e.call_id for e in events if isinstance(e, ToolEndEvent)] == ["b", "c", "a"]
        assert [r.request.id for r in context.scratchpad.tool_call_records] == ["a", "b", "c"]
        assert context.scratchpad.render_tool_results_for_prompt().startswith("### 1. slow")

    def test_progress_events_are_tagged(self):
        async def reports(params, capabilities):
            capabilities.report("Fetching...")
            return ToolSuccess("done")

        events = _run(_collect(
            _executor([_tool("reports", reports)]), _calls("reports"), create_run_context("q"),
        ))

        assert [type(e) for e in events] == [ToolStartEvent, ToolProgressEvent, ToolEndEvent]
        assert events[1].message == "Fetching..."
        assert events[1].call_id == "call_0"
        assert events[1].to_dict()["type"] == "tool_progress"


# ---------------------------------------------------------------------------
# Test: Approval Policy
# ---------------------------------------------------------------------------


class TestApproval:
    """Approval callback gating and session grants."""

    def test_unknown_tool_skips_approval(self):
        callback = MagicMock(return_value=ApprovalDecision.ALLOW_ONCE)
        context = create_run_context("q")
        _run(_collect(
            _executor([], approval_callback=callback),
            [ToolCallRequest("c1", "unknown_tool", {"x": 1})],
            context,
        ))

        (record,) = context.scratchpad.tool_call_records
        assert record.outcome == ToolFailure("tool not found: unknown_tool")
        callback.assert_not_called()

    def test_denied_call_is_not_invoked(self):
        invoke = AsyncMock(return_value=ToolSuccess("never"))
        callback = MagicMock(return_value=ApprovalDecision.DENY)
        context = create_run_context("q")
        events = _run(_collect(
            _executor([_tool("trade", invoke)], approval_callback=callback),
            [ToolCallRequest("c1", "trade", {"qty": 10})],
            context,
        ))

        invoke.assert_not_awaited()
        callback.assert_called_once_with("trade", {"qty": 10})
        assert context.scratchpad.tool_call_records[0].outcome == ToolFailure("not approved: trade")
        assert [e.type for e in events] == ["tool_start", "tool_end"]

    def test_allow_session_remembers_tool(self):
        callback = MagicMock(return_value=ApprovalDecision.ALLOW_SESSION)
        approved: set[str] = set()
        executor = _executor(
            [_returning("quote", ToolSuccess(1))],
            approval_callback=callback,
            session_approved_tools=approved,
        )
        context = create_run_context("q")

        _run(_collect(executor, _calls("quote", "quote"), context))
        _run(_collect(executor, _calls("quote"), context))

        callback.assert_called_once()
        assert approved == {"quote"}
        assert len(context.scratchpad.tool_call_records) == 3

    def test_async_callback_allow_once_asks_every_time(self):
        callback = AsyncMock(return_value=ApprovalDecision.ALLOW_ONCE)
        executor = _executor([_returning("quote", ToolSuccess(1))], approval_callback=callback)
        context = create_run_context("q")

        _run(_collect(executor, _calls("quote", "quote"), context))

        assert callback.await_count == 2
        assert executor.session_approved_tools == set()
        assert all(r.outcome.ok for r in context.scratchpad.tool_call_records)

    def test_preapproved_tool_skips_callback(self):
        callback = MagicMock(return_value=ApprovalDecision.DENY)
        executor = _executor(
            [_returning("quote", ToolSuccess(1))],
            approval_callback=callback,
            session_approved_tools={"quote"},
        )
        context = create_run_context("q")
        _run(_collect(executor, _calls("quote"), context))

        callback.assert_not_called()
        assert context.scratchpad.tool_call_records[0].outcome.ok

    def test_failing_callback_denies(self):
        callback = MagicMock(side_effect=RuntimeError("prompt closed"))
        context = create_run_context("q")
        _run(_collect(
            _executor([_returning("quote", ToolSuccess(1))], approval_callback=callback),
            _calls("quote"),
            context,
        ))
        assert context.scratchpad.tool_call_records[0].outcome == ToolFailure("not approved: quote")


# ---------------------------------------------------------------------------
# Test: Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    """Cancelling the token abandons the whole batch."""

    def test_cancelled_before_dispatch(self):
        token = CancellationToken()
        token.cancel("stop")
        invoke = AsyncMock(return_value=ToolSuccess(1))
        executor = _executor([_tool("quote", invoke)], cancellation_token=token)
        events = []

        async def scenario():
            async for event in executor.execute_all(_calls("quote"), create_run_context("q")):
                events.append(event)

        with pytest.raises(AgentCancelledError, match="stop"):
            _run(scenario())
        assert events == []
        invoke.assert_not_awaited()

    def test_cancelled_during_batch_abandons_in_flight_calls(self):
        async def scenario():
            token = CancellationToken()
            abandoned = asyncio.Event()

            async def blocks(params, capabilities):
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    abandoned.set()
                    raise

            async def cancels(params, capabilities):
                capabilities.cancellation.cancel("user pressed stop")
                return ToolSuccess("done")

            executor = _executor(
                [_tool("blocks", blocks), _tool("cancels", cancels)],
                cancellation_token=token,
            )
            events = []
            with pytest.raises(AgentCancelledError):
                async for event in executor.execute_all(
                    _calls("blocks", "cancels"), create_run_context("q"),
                ):
                    events.append(event)

            await asyncio.wait_for(abandoned.wait(), timeout=1.0)
            return events

        events = _run(scenario())
        assert [e.type for e in events[:2]] == ["tool_start", "tool_start"]
        assert not [e for e in events if isinstance(e, ToolEndEvent) and e.tool == "blocks"]
