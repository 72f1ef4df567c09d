# =============================================================================
# Event Channel — Bounded Queue Between Agent and Transport
# =============================================================================
#
# The agent produces events in a background task; the transport (SSE
# response, CLI) consumes them from a bounded asyncio.Queue. A slow
# consumer applies backpressure: once the queue is full the agent suspends
# on put() instead of buffering without limit.
#
#   agent.run() ──▶ producer task ──▶ Queue(maxsize) ──▶ consumer (yield)
#
# Closing the consumer early (client disconnect) cancels the producer,
# which closes the agent generator and abandons any in-flight tool calls.
# =============================================================================

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from research_agent.agent.types import AgentEvent, ErrorEvent
from research_agent.config import settings

logger = logging.getLogger(__name__)

_END = object()


async def stream_events(
    events: AsyncIterator[AgentEvent],
    maxsize: int | None = None,
) -> AsyncIterator[AgentEvent]:
    """
    Re-yield `events` through a bounded single-consumer channel.

    An unexpected exception in the producer is logged and surfaced as a
    final ErrorEvent(code="internal_error") so the consumer always sees a
    terminal event.
    """
    queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize or settings.event_channel_size)

    async def produce() -> None:
        try:
            async with contextlib.aclosing(events):
                async for event in events:
                    await queue.put(event)
        except Exception as e:
            logger.exception("Agent event producer failed")
            await queue.put(ErrorEvent(error=f"Internal error: {e}", code="internal_error"))
        await queue.put(_END)

    producer = asyncio.create_task(produce(), name="agent-events")
    try:
        while True:
            item = await queue.get()
            if item is _END:
                break
            yield item
    finally:
        if not producer.done():
            producer.cancel()
            logger.info("Event consumer closed early; agent run cancelled")
