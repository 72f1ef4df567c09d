# =============================================================================
# Cooperative Cancellation Token
# =============================================================================
#
# One token per agent run. The caller (HTTP handler, CLI, test) calls
# cancel(); the agent loop checks it at every iteration boundary and the
# tool executor races it against an in-flight batch.
#
# Cancellation is cooperative: a tool call already running is not
# interrupted mid-await unless the executor abandons its task. Tools that
# loop internally can poll `token.cancelled` themselves.
# =============================================================================

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from research_agent.errors import AgentCancelledError

T = TypeVar("T")


class CancellationToken:
    """Signal that a run should stop issuing new work."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Signal cancellation. Idempotent; the first reason wins."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AgentCancelledError(self._reason or "Agent execution cancelled")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the token fires first.

        On cancellation the pending work is cancelled and
        AgentCancelledError is raised.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, waiter}, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()

        if work in done:
            return work.result()
        raise AgentCancelledError(self._reason or "Agent execution cancelled")
