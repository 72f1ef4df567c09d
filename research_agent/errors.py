# =============================================================================
# Agent Error Types
# =============================================================================
#
# Only two conditions are allowed to end a run early:
#   ModelInvocationError — the LLM backend kept failing after all retries
#   AgentCancelledError  — the run's cancellation token was signalled
#
# Tool failures and "no sub-tool matched" routing results are NOT
# exceptions. They travel as ToolFailure / ToolSuccess data so the model can
# reason about them on the next iteration.
# =============================================================================

from __future__ import annotations


class AgentError(Exception):
    """Base class for errors that terminate an agent run."""

    code = "agent_error"


class ModelInvocationError(AgentError):
    """The language-model call failed after exhausting its retry budget."""

    code = "model_error"

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class AgentCancelledError(AgentError):
    """The run's cancellation token was signalled."""

    code = "cancelled"

    def __init__(self, message: str = "Agent execution cancelled") -> None:
        super().__init__(message)
