# =============================================================================
# Multi-Provider LLM Abstraction — Tool-Calling Chat Models
# =============================================================================
#
# Provides a common interface for chat completions with tool binding, with
# concrete implementations for Anthropic (Claude) and OpenAI-compatible APIs
# (OpenAI, Google, xAI, DeepSeek, Moonshot, OpenRouter, Ollama).
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Any object with the right `complete()` coroutine works, which is what the
# tests rely on when they inject fake models.
#
# DESIGN DECISION: Native SDKs over LangChain wrappers.
# The anthropic and openai SDKs are used directly. Each adapter converts
# our neutral inputs (role/content messages + ToolSpecs) to the provider's
# wire format and normalises the reply into an LLMResponse carrying text,
# tool calls, optional reasoning, and token counts.
#
# DESIGN DECISION: Retries live here, not in the agent loop.
# complete_with_retry() retries any failure with exponential backoff
# (base_delay * 2**attempt) and raises ModelInvocationError once the
# attempt budget is spent. Tool failures are never retried by this layer.
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── AnthropicProvider        — system prompt as top-level kwarg,
#   │                              tool_use / thinking content blocks
#   ├── OpenAICompatibleProvider — system prompt as a message,
#   │                              function tool_calls, reasoning_content
#   ├── create_provider()        — per-run factory, routes by model prefix
#   ├── complete_with_retry()    — exponential backoff wrapper
#   └── call_llm()               — one-shot prompt helper (meta-router)
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from research_agent.agent.types import ToolCallRequest
from research_agent.config import settings
from research_agent.credentials import CredentialResolver
from research_agent.errors import ModelInvocationError
from research_agent.providers import (
    ProviderDef,
    get_provider_by_id,
    resolve_provider,
    strip_model_prefix,
)
from research_agent.tools.base import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """
    Standardised response from any LLM provider.

    `content` is the visible text; `reasoning` is any separate thinking the
    provider returned (Anthropic thinking blocks, DeepSeek reasoning_content).
    """

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    reasoning: str | None = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class LLMProvider(Protocol):
    """Interface every chat backend implements."""

    provider_id: str
    model: str

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        tools: Sequence[ToolSpec] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion, optionally with tools bound.

        Args:
            messages: Conversation messages as dicts with "role" and "content".
                Roles: "user", "assistant" (system goes in `system`).
            system: System prompt.
            tools: Tools the model may call. Their calls come back in
                LLMResponse.tool_calls; nothing is executed here.
            temperature: Override sampling temperature.
            max_tokens: Override max output tokens.
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native SDK.

    KEY API DIFFERENCE: Anthropic takes the system prompt as a top-level
    `system=` kwarg and returns tool calls as `tool_use` content blocks
    interleaved with text.
    """

    provider_id = "anthropic"

    def __init__(self, api_key: str, model: str) -> None:
        from anthropic import AsyncAnthropic

        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=settings.llm_request_timeout,
            max_retries=0,  # complete_with_retry owns retries
        )
        self.model = model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self.model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        tools: Sequence[ToolSpec] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using Claude."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters_json_schema(),
                }
                for tool in tools
            ]

        response = await self._client.messages.create(**kwargs)

        text_parts: list[str] = []
        thinking_parts: list[str] = []
        tool_calls: list[ToolCallRequest] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "thinking":
                thinking_parts.append(block.thinking)
            elif block.type == "tool_use":
                tool_calls.append(ToolCallRequest(
                    id=block.id,
                    name=block.name,
                    arguments=dict(block.input or {}),
                ))

        return LLMResponse(
            content="".join(text_parts),
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            tool_calls=tool_calls,
            reasoning="\n".join(thinking_parts) or None,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-Compatible (OpenAI, Google, xAI, DeepSeek, ...)
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Provider for any API that follows the OpenAI chat-completions spec.

    Switching backends is only a base_url and key change; the catalogue in
    providers.py carries the base URL for each.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        provider_id: str = "openai",
    ) -> None:
        from openai import AsyncOpenAI

        client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": settings.llm_request_timeout,
            "max_retries": 0,  # complete_with_retry owns retries
        }
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self.model = model
        self.provider_id = provider_id
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (provider=%s, model=%s, base_url=%s)",
            provider_id, self.model, base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        tools: Sequence[ToolSpec] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using an OpenAI-compatible API."""
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": all_messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters_json_schema(),
                    },
                }
                for tool in tools
            ]
            kwargs["tool_choice"] = "auto"

        response = await self._client.chat.completions.create(**kwargs)

        message = response.choices[0].message
        tool_calls = [
            ToolCallRequest(
                id=call.id,
                name=call.function.name,
                arguments=_parse_arguments(call.function.arguments),
            )
            for call in message.tool_calls or []
        ]

        usage = response.usage
        return LLMResponse(
            content=message.content or "",
            model=response.model or self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            tool_calls=tool_calls,
            reasoning=getattr(message, "reasoning_content", None) or None,
        )


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    """Decode a function-call argument string; malformed JSON becomes {}."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Model returned non-JSON tool arguments: %.200s", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------
# DESIGN DECISION: No module-level singleton. Each run may carry its own
# API keys (sent by the chat client), so providers are built per run from
# that run's CredentialResolver.
# ---------------------------------------------------------------------------


def create_provider(
    model: str,
    credentials: CredentialResolver,
    provider_id: str | None = None,
) -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Build a provider for `model`.

    The model's prefix decides the backend. When the name carries no
    recognised prefix, an explicit `provider_id` (e.g., "deepseek") is
    honoured instead of the OpenAI default.

    Raises:
        ValueError: If the backend's API key is not configured.
    """
    provider = resolve_provider(model)
    if not provider.model_prefix and provider_id:
        provider = get_provider_by_id(provider_id) or provider

    api_key = _resolve_api_key(provider, credentials)
    model_name = strip_model_prefix(model, provider)

    if provider.id == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model_name)

    base_url = provider.base_url
    if provider.id == "ollama":
        base_url = settings.ollama_base_url
    return OpenAICompatibleProvider(
        api_key=api_key,
        model=model_name,
        base_url=base_url,
        provider_id=provider.id,
    )


def _resolve_api_key(provider: ProviderDef, credentials: CredentialResolver) -> str:
    if provider.api_key_env_var is None:
        # Local servers (Ollama) ignore the key but the SDK requires one
        return "ollama"
    api_key = credentials.resolve(provider.api_key_env_var)
    if not api_key:
        raise ValueError(
            f"{provider.api_key_env_var} not found in environment variables "
            f"or client overrides ({provider.display_name})"
        )
    return api_key


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


async def complete_with_retry(
    llm: LLMProvider,
    messages: list[dict[str, str]],
    system: str | None = None,
    tools: Sequence[ToolSpec] | None = None,
    max_attempts: int | None = None,
    base_delay: float | None = None,
) -> LLMResponse:
    """
    Call `llm.complete()` with exponential backoff.

    Sleeps base_delay, 2*base_delay, 4*base_delay, ... between attempts.

    Raises:
        ModelInvocationError: After the final attempt fails.
    """
    attempts = max_attempts or settings.llm_max_attempts
    delay = settings.llm_retry_base_delay if base_delay is None else base_delay

    start = time.monotonic()
    for attempt in range(attempts):
        try:
            response = await llm.complete(messages, system=system, tools=tools)
        except Exception as e:
            if attempt == attempts - 1:
                logger.error(
                    "LLM call failed after %d attempts (%.0fms): %s",
                    attempts, (time.monotonic() - start) * 1000, e,
                )
                raise ModelInvocationError(
                    f"Model invocation failed after {attempts} attempts: {e}",
                    attempts=attempts,
                ) from e
            wait = delay * 2 ** attempt
            logger.warning(
                "LLM call failed (attempt %d/%d): %s. Retrying in %.2fs",
                attempt + 1, attempts, e, wait,
            )
            await asyncio.sleep(wait)
            continue

        logger.info(
            "LLM result received in %.0fms (model=%s, tool_calls=%d)",
            (time.monotonic() - start) * 1000,
            response.model, len(response.tool_calls),
        )
        return response

    raise ModelInvocationError("Model invocation was not attempted", attempts=0)


async def call_llm(
    llm: LLMProvider,
    prompt: str,
    system_prompt: str,
    tools: Sequence[ToolSpec] | None = None,
) -> LLMResponse:
    """One-shot call: a system prompt plus a single user message."""
    logger.info(
        "Calling model %s with %d tools", llm.model, len(tools or ()),
    )
    return await complete_with_retry(
        llm,
        messages=[{"role": "user", "content": prompt}],
        system=system_prompt,
        tools=tools,
    )
