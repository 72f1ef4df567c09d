# =============================================================================
# Chat API — Streaming Research Agent Endpoint
# =============================================================================
#
# POST /api/chat runs one agent query and streams its events as
# Server-Sent Events:
#
#   data: {"type": "thinking", "message": "Analyzing query..."}
#   data: {"type": "tool_start", "tool": "financial_search", ...}
#   data: {"type": "tool_end", ...}
#   data: {"type": "done", "answer": "...", "toolCalls": [...], ...}
#
# FLOW:
#   1. Validate the body (ChatRequest)
#   2. Build an AgentConfig: model, provider hint, per-request API keys
#   3. run_agent() → stream_events() bounded channel → SSE frames
#
# DESIGN DECISION: Errors are frames, not status codes.
# Once the 200 and headers are sent the stream cannot switch to an error
# status, so configuration errors, model failures, and unexpected
# exceptions all arrive as a final {"type": "error"} frame.
#
# A client disconnect closes the generator, which cancels the producer
# task and with it the agent run.
# =============================================================================

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from research_agent.agent.channel import stream_events
from research_agent.agent.history import ConversationTurn, InMemoryChatHistory
from research_agent.agent.runner import run_agent
from research_agent.agent.types import AgentConfig
from research_agent.config import settings
from research_agent.credentials import CredentialResolver
from research_agent.models.requests import ChatRequest
from research_agent.models.responses import (
    ProviderModelResponse,
    ProviderResponse,
    ProvidersResponse,
)
from research_agent.providers import PROVIDERS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Research Agent"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def format_sse(payload: dict[str, Any]) -> str:
    """Encode one SSE frame."""
    return f"data: {json.dumps(payload, default=str, ensure_ascii=False)}\n\n"


def build_agent_config(request: ChatRequest) -> AgentConfig:
    kwargs: dict[str, Any] = {
        "model": request.model,
        "model_provider": request.provider,
        "credentials": request.api_keys,
    }
    if request.max_iterations is not None:
        kwargs["max_iterations"] = request.max_iterations
    return AgentConfig(**kwargs)


def build_history(request: ChatRequest) -> InMemoryChatHistory:
    return InMemoryChatHistory(turns=[
        ConversationTurn(message.role, message.content)
        for message in request.history or []
    ])


# ---------------------------------------------------------------------------
# POST /api/chat — Stream an agent run
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    summary="Ask the research agent a question",
    description=(
        "Runs the tool-calling research loop and streams thinking, tool "
        "activity, and the final answer as Server-Sent Events."
    ),
    response_class=StreamingResponse,
)
async def chat_endpoint(request: ChatRequest) -> StreamingResponse:
    logger.info(
        "Chat request: query='%s', model=%s, client_keys=%s",
        request.query[:80],
        request.model or settings.default_model,
        sorted(request.api_keys or {}),
    )

    config = build_agent_config(request)
    history = build_history(request)

    async def generate() -> AsyncIterator[str]:
        try:
            async for event in stream_events(run_agent(request.query, config, history)):
                yield format_sse(event.to_dict())
        except Exception as e:
            logger.exception("Chat stream failed: %s", e)
            yield format_sse({
                "type": "error",
                "error": f"Internal error: {e}",
                "code": "internal_error",
            })

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# ---------------------------------------------------------------------------
# GET /api/providers — Provider catalogue
# ---------------------------------------------------------------------------


@router.get(
    "/providers",
    response_model=ProvidersResponse,
    summary="List model providers",
)
async def list_providers() -> ProvidersResponse:
    """Providers, their listed models, and whether the server holds a key."""
    credentials = CredentialResolver()
    return ProvidersResponse(
        default_model=settings.default_model,
        providers=[
            ProviderResponse(
                id=provider.id,
                display_name=provider.display_name,
                configured=(
                    provider.api_key_env_var is None
                    or credentials.has_credential(provider.api_key_env_var)
                ),
                api_key_env_var=provider.api_key_env_var,
                models=[
                    ProviderModelResponse(id=model.id, display_name=model.display_name)
                    for model in provider.models
                ],
            )
            for provider in PROVIDERS
        ],
    )
