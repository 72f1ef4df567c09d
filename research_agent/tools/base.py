# =============================================================================
# Tool Contract — Specs, Outcomes, and the Invocation Boundary
# =============================================================================
#
# A tool is a frozen ToolSpec: a name, a description the model reads, a
# pydantic model validating its arguments, and an async `invoke` callable.
#
# Tools report results as data, never as exceptions:
#   ToolSuccess(data, source_urls) — structured payload plus provenance
#   ToolFailure(message)           — human-readable reason, visible to the model
#
# invoke_tool() is the single boundary every dispatch goes through. It
# validates the raw arguments, calls the tool, and converts anything the
# tool raises (including argument validation errors) into ToolFailure.
# Only asyncio.CancelledError is allowed through, so an abandoned batch
# can still be torn down.
#
# DESIGN DECISION: Pydantic models as input schemas.
# The same class validates arguments at the boundary and produces the JSON
# schema handed to the LLM for tool binding, so the two cannot drift.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from research_agent.credentials import CredentialResolver

if TYPE_CHECKING:
    from research_agent.agent.cancellation import CancellationToken

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolSuccess:
    """A tool produced data."""

    data: Any
    source_urls: tuple[str, ...] = ()
    kind: str = field(default="success", init=False)

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "sourceUrls": list(self.source_urls)}


@dataclass(frozen=True)
class ToolFailure:
    """A tool could not produce data. Recorded, never raised."""

    message: str
    kind: str = field(default="failure", init=False)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


ToolOutcome = ToolSuccess | ToolFailure


# ---------------------------------------------------------------------------
# Capability Bag
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCapabilities:
    """
    What a tool may use while running.

    credentials: read-only resolver for API keys
    cancellation: the run's token, for tools that poll between steps
    on_progress: short status strings surfaced to the caller as events
    """

    credentials: CredentialResolver = field(default_factory=CredentialResolver)
    cancellation: CancellationToken | None = None
    on_progress: Callable[[str], None] | None = None

    def report(self, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(message)


# ---------------------------------------------------------------------------
# Tool Spec
# ---------------------------------------------------------------------------

ToolInvoke = Callable[[BaseModel, ToolCapabilities], Awaitable[ToolOutcome]]


@dataclass(frozen=True)
class ToolSpec:
    """A named, schema-validated unit of work."""

    name: str
    description: str
    input_schema: type[BaseModel]
    invoke: ToolInvoke

    def parameters_json_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, as sent to the LLM."""
        schema = self.input_schema.model_json_schema()
        schema.pop("title", None)
        return schema


def degraded_tool(spec: ToolSpec, message: str) -> ToolSpec:
    """
    Same name, description and schema as `spec`, but every call fails with
    `message`. Used when a tool's credential is missing.
    """

    async def _unavailable(params: BaseModel, capabilities: ToolCapabilities) -> ToolOutcome:
        return ToolFailure(message)

    return ToolSpec(
        name=spec.name,
        description=spec.description,
        input_schema=spec.input_schema,
        invoke=_unavailable,
    )


async def invoke_tool(
    spec: ToolSpec,
    arguments: dict[str, Any] | None,
    capabilities: ToolCapabilities,
) -> ToolOutcome:
    """
    Validate `arguments` against the tool's input schema and run it.

    Never raises except for asyncio.CancelledError (which is a
    BaseException and therefore not caught here).
    """
    try:
        params = spec.input_schema.model_validate(arguments or {})
    except ValidationError as e:
        logger.warning("Invalid arguments for tool %s: %s", spec.name, e)
        return ToolFailure(f"invalid arguments for {spec.name}: {_summarise_validation(e)}")

    try:
        outcome = await spec.invoke(params, capabilities)
    except Exception as e:
        logger.warning("Tool %s raised: %s", spec.name, e)
        return ToolFailure(f"{spec.name} failed: {e}")

    if not isinstance(outcome, (ToolSuccess, ToolFailure)):
        # Tolerate tools that return bare payloads
        return ToolSuccess(data=outcome)
    return outcome


def _summarise_validation(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
