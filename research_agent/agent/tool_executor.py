# =============================================================================
# Tool Executor — Approval, Concurrent Dispatch, Batch Cancellation
# =============================================================================
#
# Takes the tool calls from one model response and runs them:
#
#   1. PLAN (request order, sequential)
#      unknown tool      → ToolFailure("tool not found"), no approval asked
#      approval required → await the callback; DENY → ToolFailure("not approved")
#   2. ANNOUNCE  tool_start for every request, in request order
#   3. DISPATCH  approved calls as concurrent asyncio tasks
#   4. COLLECT   tool_end in COMPLETION order, each tagged with tool name and
#                call id; tool_progress events interleave as tools report
#
# Every request produces exactly one ToolCallRecord on the scratchpad,
# whatever its outcome. A failing tool never affects its siblings. Records
# are appended in REQUEST order once the batch finishes, so the transcript
# the model sees does not depend on which tool returned first.
#
# Cancellation is the only batch-level failure: if the run's token fires
# before or during dispatch, outstanding tasks are cancelled and
# AgentCancelledError propagates to the agent loop.
#
# DESIGN DECISION: One queue per batch.
# Finished records and progress messages from all tasks funnel into a
# single asyncio.Queue. The executor drains it while racing the
# cancellation token, so events reach the caller as soon as they happen.
# =============================================================================

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from research_agent.agent.cancellation import CancellationToken
from research_agent.agent.scratchpad import RunContext, summarise_records
from research_agent.agent.types import (
    AgentEvent,
    ApprovalCallback,
    ApprovalDecision,
    ToolCallRecord,
    ToolCallRequest,
    ToolEndEvent,
    ToolProgressEvent,
    ToolStartEvent,
)
from research_agent.credentials import CredentialResolver
from research_agent.tools.base import (
    ToolCapabilities,
    ToolFailure,
    ToolOutcome,
    ToolSpec,
    invoke_tool,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class _PlannedCall:
    """A request after resolution and approval."""

    request: ToolCallRequest
    tool: ToolSpec | None
    planned_at: datetime
    rejection: ToolOutcome | None = None  # Set when the call must not run


@dataclass(frozen=True)
class _Finished:
    """A dispatched call's record, tagged with its position in the batch."""

    position: int
    record: ToolCallRecord


class ToolExecutor:
    """Runs batches of tool calls for one agent run."""

    def __init__(
        self,
        tools: Mapping[str, ToolSpec],
        credentials: CredentialResolver,
        cancellation_token: CancellationToken | None = None,
        approval_callback: ApprovalCallback | None = None,
        session_approved_tools: set[str] | None = None,
    ) -> None:
        self._tools = tools
        self._credentials = credentials
        self._cancellation_token = cancellation_token
        self._approval_callback = approval_callback
        # Shared with AgentConfig: ALLOW_SESSION grants outlive the batch
        self.session_approved_tools = (
            session_approved_tools if session_approved_tools is not None else set()
        )

    async def execute_all(
        self,
        tool_calls: Sequence[ToolCallRequest],
        context: RunContext,
    ) -> AsyncIterator[AgentEvent]:
        """
        Execute every call in `tool_calls`, yielding events as they happen.

        Side effect: appends one ToolCallRecord per call to
        context.scratchpad, in request order, once every call has finished.
        A cancelled batch records nothing.

        Raises:
            AgentCancelledError: The token fired before or during the batch.
        """
        self._raise_if_cancelled()
        if not tool_calls:
            return

        planned = [await self._plan(request) for request in tool_calls]
        self._raise_if_cancelled()

        for call in planned:
            yield ToolStartEvent(
                tool=call.request.name,
                args=call.request.arguments,
                call_id=call.request.id,
            )

        queue: asyncio.Queue[_Finished | ToolProgressEvent] = asyncio.Queue()
        tasks = [
            asyncio.create_task(
                self._dispatch(position, call, queue), name=f"tool:{call.request.name}",
            )
            for position, call in enumerate(planned)
            if call.rejection is None
        ]
        records: list[ToolCallRecord | None] = [None] * len(planned)

        batch_start = _now()
        try:
            for position, call in enumerate(planned):
                if call.rejection is not None:
                    record = ToolCallRecord(
                        request=call.request,
                        outcome=call.rejection,
                        started_at=call.planned_at,
                        finished_at=_now(),
                    )
                    records[position] = record
                    yield self._end_event(record)

            remaining = len(tasks)
            while remaining:
                item = await self._next_item(queue)
                if isinstance(item, ToolProgressEvent):
                    yield item
                    continue
                remaining -= 1
                records[item.position] = item.record
                yield self._end_event(item.record)
        finally:
            abandoned = [task for task in tasks if not task.done()]
            for task in abandoned:
                task.cancel()
            if abandoned:
                logger.warning("Abandoned %d in-flight tool calls", len(abandoned))

        for record in records:
            context.scratchpad.record_tool_call(record)

        logger.info(
            "Tool batch complete in %.0fms: %s",
            (_now() - batch_start).total_seconds() * 1000,
            summarise_records(records),
        )

    # -- Planning ------------------------------------------------------------

    async def _plan(self, request: ToolCallRequest) -> _PlannedCall:
        planned_at = _now()
        tool = self._tools.get(request.name)
        if tool is None:
            logger.warning("Model requested unknown tool %s", request.name)
            return _PlannedCall(
                request, None, planned_at,
                rejection=ToolFailure(f"tool not found: {request.name}"),
            )

        if not await self._is_approved(request):
            logger.info("Tool call %s denied by approval policy", request.name)
            return _PlannedCall(
                request, tool, planned_at,
                rejection=ToolFailure(f"not approved: {request.name}"),
            )

        return _PlannedCall(request, tool, planned_at)

    async def _is_approved(self, request: ToolCallRequest) -> bool:
        if self._approval_callback is None:
            return True
        if request.name in self.session_approved_tools:
            return True

        try:
            decision = self._approval_callback(request.name, request.arguments)
            if inspect.isawaitable(decision):
                decision = await decision
        except Exception as e:
            logger.warning("Approval callback failed for %s: %s", request.name, e)
            return False

        if decision is ApprovalDecision.ALLOW_SESSION:
            self.session_approved_tools.add(request.name)
            return True
        return decision is ApprovalDecision.ALLOW_ONCE

    # -- Dispatch ------------------------------------------------------------

    async def _dispatch(
        self,
        position: int,
        call: _PlannedCall,
        queue: asyncio.Queue[_Finished | ToolProgressEvent],
    ) -> None:
        request = call.request

        def on_progress(message: str) -> None:
            queue.put_nowait(ToolProgressEvent(
                tool=request.name, message=message, call_id=request.id,
            ))

        capabilities = ToolCapabilities(
            credentials=self._credentials,
            cancellation=self._cancellation_token,
            on_progress=on_progress,
        )

        started_at = _now()
        outcome = await invoke_tool(call.tool, request.arguments, capabilities)
        queue.put_nowait(_Finished(position, ToolCallRecord(
            request=request,
            outcome=outcome,
            started_at=started_at,
            finished_at=_now(),
        )))

    async def _next_item(
        self,
        queue: asyncio.Queue[_Finished | ToolProgressEvent],
    ) -> _Finished | ToolProgressEvent:
        """Next queued item, or AgentCancelledError if the token fires first."""
        if self._cancellation_token is None:
            return await queue.get()
        return await self._cancellation_token.guard(queue.get())

    def _raise_if_cancelled(self) -> None:
        if self._cancellation_token is not None:
            self._cancellation_token.raise_if_cancelled()

    @staticmethod
    def _end_event(record: ToolCallRecord) -> ToolEndEvent:
        return ToolEndEvent(
            tool=record.request.name,
            result=record.outcome,
            call_id=record.request.id,
            duration_ms=record.duration_ms,
        )
