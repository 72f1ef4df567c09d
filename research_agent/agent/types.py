# =============================================================================
# Agent Types — Requests, Records, Config, and Events
# =============================================================================
#
# Data that crosses component boundaries inside a run:
#   ToolCallRequest → what the model asked for (from the LLM layer)
#   ToolCallRecord  → what actually happened (appended to the scratchpad)
#   AgentConfig     → per-run settings, credentials, approval policy
#   AgentEvent      → what the caller sees, streamed in real time
#
# Events are plain frozen dataclasses with a `type` discriminator and a
# to_dict() that produces the JSON shape sent over SSE.
# =============================================================================

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from research_agent.agent.cancellation import CancellationToken
from research_agent.config import settings
from research_agent.credentials import CredentialResolver
from research_agent.tools.base import ToolOutcome


# ---------------------------------------------------------------------------
# Tool Calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCallRecord:
    """One executed (or rejected) tool call. Never mutated once created."""

    request: ToolCallRequest
    outcome: ToolOutcome
    started_at: datetime
    finished_at: datetime

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.request.id,
            "tool": self.request.name,
            "args": self.request.arguments,
            "result": self.outcome.to_dict(),
            "ok": self.outcome.ok,
            "durationMs": self.duration_ms,
        }


# ---------------------------------------------------------------------------
# Approval Policy
# ---------------------------------------------------------------------------


class ApprovalDecision(enum.Enum):
    """Answer from an approval callback for one tool invocation."""

    ALLOW_ONCE = "allow_once"
    ALLOW_SESSION = "allow_session"  # Also pre-approves the tool for the run
    DENY = "deny"


# Called with (tool_name, arguments). May be sync or async.
ApprovalCallback = Callable[
    [str, Mapping[str, Any]],
    ApprovalDecision | Awaitable[ApprovalDecision],
]


# ---------------------------------------------------------------------------
# Agent Config
# ---------------------------------------------------------------------------


@dataclass
class AgentConfig:
    """
    Settings for one agent run.

    `credentials` may be a CredentialResolver or a plain mapping of
    overrides ({"OPENAI_API_KEY": "..."}); either way settings act as the
    fallback. `session_approved_tools` is owned by the run: the executor
    adds to it when a callback answers ALLOW_SESSION.
    """

    model: str | None = None
    model_provider: str | None = None
    max_iterations: int = field(default_factory=lambda: settings.max_iterations)
    credentials: CredentialResolver | Mapping[str, str] | None = None
    cancellation_token: CancellationToken | None = None
    approval_callback: ApprovalCallback | None = None
    session_approved_tools: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )


# ---------------------------------------------------------------------------
# Token Accounting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenUsage:
    """Tokens consumed across every model call of a run."""

    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_usd: float | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "estimatedCostUsd": self.estimated_cost_usd,
        }


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThinkingEvent:
    message: str
    type: str = field(default="thinking", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


@dataclass(frozen=True)
class ToolStartEvent:
    tool: str
    args: dict[str, Any]
    call_id: str
    type: str = field(default="tool_start", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "tool": self.tool, "args": self.args, "id": self.call_id}


@dataclass(frozen=True)
class ToolProgressEvent:
    tool: str
    message: str
    call_id: str
    type: str = field(default="tool_progress", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type, "tool": self.tool,
            "message": self.message, "id": self.call_id,
        }


@dataclass(frozen=True)
class ToolEndEvent:
    tool: str
    result: ToolOutcome
    call_id: str
    duration_ms: int
    type: str = field(default="tool_end", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "tool": self.tool,
            "id": self.call_id,
            "ok": self.result.ok,
            "result": self.result.to_dict(),
            "durationMs": self.duration_ms,
        }


@dataclass(frozen=True)
class DoneEvent:
    answer: str
    tool_calls: tuple[ToolCallRecord, ...]
    iterations: int
    total_time_ms: int
    token_usage: TokenUsage | None = None
    budget_exhausted: bool = False
    type: str = field(default="done", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "answer": self.answer,
            "toolCalls": [record.to_dict() for record in self.tool_calls],
            "iterations": self.iterations,
            "totalTime": self.total_time_ms,
            "tokenUsage": self.token_usage.to_dict() if self.token_usage else None,
            "budgetExhausted": self.budget_exhausted,
        }


@dataclass(frozen=True)
class ErrorEvent:
    error: str
    code: str = "agent_error"
    type: str = field(default="error", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "error": self.error, "code": self.code}


AgentEvent = (
    ThinkingEvent
    | ToolStartEvent
    | ToolProgressEvent
    | ToolEndEvent
    | DoneEvent
    | ErrorEvent
)
