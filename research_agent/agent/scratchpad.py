# =============================================================================
# Run Context & Scratchpad — Per-Run Working Memory
# =============================================================================
#
# One RunContext per agent run, owned by the loop and discarded when the
# run ends. The scratchpad only grows:
#   - tool call records, in invocation (insertion) order
#   - thinking fragments (model text that was not a final answer)
#
# Rendering is a pure function of what has been recorded. Reading twice
# without new records gives byte-identical prompt text, and the loop only
# renders between iterations, so results from iteration N first appear in
# the prompt of iteration N+1.
# =============================================================================

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from research_agent.agent.types import ToolCallRecord
from research_agent.config import settings
from research_agent.tools.base import ToolFailure

_TRUNCATION_MARKER = "\n... [truncated {omitted} characters]"


def _dump(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)


class Scratchpad:
    """Append-only history of tool calls and model thinking for one run."""

    def __init__(self, max_result_chars: int | None = None) -> None:
        self._records: list[ToolCallRecord] = []
        self._thinking: list[str] = []
        self._max_result_chars = max_result_chars or settings.tool_result_max_chars

    # -- Writes --------------------------------------------------------------

    def add_thinking(self, text: str) -> None:
        if text:
            self._thinking.append(text)

    def record_tool_call(self, record: ToolCallRecord) -> None:
        self._records.append(record)

    # -- Reads ---------------------------------------------------------------

    @property
    def tool_call_records(self) -> tuple[ToolCallRecord, ...]:
        return tuple(self._records)

    @property
    def thinking(self) -> tuple[str, ...]:
        return tuple(self._thinking)

    def has_tool_results(self) -> bool:
        return bool(self._records)

    # -- Rendering -----------------------------------------------------------

    def render_tool_results_for_prompt(self) -> str:
        """
        Every tool call so far, in invocation order.

        Example:
            ### 1. financial_search {"query": "price of RELIANCE.BSE"}
            Status: success
            Sources: https://www.alphavantage.co
            {"financial_search": ...}
        """
        sections = []
        for index, record in enumerate(self._records, 1):
            header = f"### {index}. {record.request.name} {_dump(record.request.arguments)}"
            outcome = record.outcome
            if isinstance(outcome, ToolFailure):
                sections.append(f"{header}\nStatus: failed\nError: {outcome.message}")
                continue

            lines = [header, "Status: success"]
            if outcome.source_urls:
                lines.append(f"Sources: {', '.join(outcome.source_urls)}")
            lines.append(self._truncate(_dump(outcome.data)))
            sections.append("\n".join(lines))
        return "\n\n".join(sections)

    def render_tool_usage_summary_for_prompt(self) -> str:
        """Per-tool call counts in first-use order."""
        counts: dict[str, list[int]] = {}
        for record in self._records:
            ok_failed = counts.setdefault(record.request.name, [0, 0])
            ok_failed[0 if record.outcome.ok else 1] += 1

        lines = []
        for name, (succeeded, failed) in counts.items():
            total = succeeded + failed
            noun = "call" if total == 1 else "calls"
            lines.append(f"- {name}: {total} {noun} ({succeeded} succeeded, {failed} failed)")
        return "\n".join(lines)

    def _truncate(self, text: str) -> str:
        if len(text) <= self._max_result_chars:
            return text
        omitted = len(text) - self._max_result_chars
        return text[: self._max_result_chars] + _TRUNCATION_MARKER.format(omitted=omitted)


@dataclass
class RunContext:
    """Mutable state of one agent run."""

    query: str
    iteration: int = 0
    scratchpad: Scratchpad = field(default_factory=Scratchpad)


def create_run_context(query: str) -> RunContext:
    return RunContext(query=query)


def summarise_records(records: Sequence[ToolCallRecord]) -> str:
    """One line per record, used in log output."""
    return ", ".join(
        f"{r.request.name}={'ok' if r.outcome.ok else 'failed'}" for r in records
    )
