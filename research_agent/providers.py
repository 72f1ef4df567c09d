# =============================================================================
# Provider Catalogue — Single Source of Truth for LLM Backends
# =============================================================================
#
# Every supported LLM backend is one ProviderDef entry. The rest of the
# package derives from this table:
#   - services/llm.py routes a model name to a backend by prefix
#   - credentials.py maps a provider to the env var holding its key
#   - api/chat.py lists providers and their models for clients
#
# Adding a provider means adding one entry here. List its models in
# `models` if clients should see them in a picker.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ModelInfo:
    """A selectable model for a provider."""

    id: str
    display_name: str


@dataclass(frozen=True)
class ProviderDef:
    """Static metadata for one LLM backend."""

    id: str                          # Slug used in config (e.g., "anthropic")
    display_name: str                # Human-readable name
    model_prefix: str                # Routing prefix ("" = default backend)
    api_key_env_var: str | None = None  # None for local providers (Ollama)
    base_url: str | None = None      # OpenAI-compatible endpoint, if not OpenAI
    models: tuple[ModelInfo, ...] = field(default_factory=tuple)


PROVIDERS: tuple[ProviderDef, ...] = (
    ProviderDef(
        id="openai",
        display_name="OpenAI",
        model_prefix="",
        api_key_env_var="OPENAI_API_KEY",
        models=(
            ModelInfo("gpt-4o", "GPT-4o"),
            ModelInfo("gpt-4o-mini", "GPT-4o Mini"),
            ModelInfo("o1-preview", "O1 Preview"),
            ModelInfo("o1-mini", "O1 Mini"),
        ),
    ),
    ProviderDef(
        id="anthropic",
        display_name="Anthropic",
        model_prefix="claude-",
        api_key_env_var="ANTHROPIC_API_KEY",
        models=(
            ModelInfo("claude-sonnet-4-6", "Claude Sonnet 4.6"),
            ModelInfo("claude-opus-4-6", "Claude Opus 4.6"),
            ModelInfo("claude-haiku-4-5", "Claude Haiku 4.5"),
        ),
    ),
    ProviderDef(
        id="google",
        display_name="Google",
        model_prefix="gemini-",
        api_key_env_var="GOOGLE_API_KEY",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
        models=(
            ModelInfo("gemini-1.5-pro-latest", "Gemini 1.5 Pro"),
            ModelInfo("gemini-1.5-flash-latest", "Gemini 1.5 Flash"),
            ModelInfo("gemini-2.0-flash-exp", "Gemini 2.0 Flash (Exp)"),
        ),
    ),
    ProviderDef(
        id="xai",
        display_name="xAI",
        model_prefix="grok-",
        api_key_env_var="XAI_API_KEY",
        base_url="https://api.x.ai/v1",
        models=(
            ModelInfo("grok-beta", "Grok Beta"),
            ModelInfo("grok-vision-beta", "Grok Vision Beta"),
        ),
    ),
    ProviderDef(
        id="moonshot",
        display_name="Moonshot",
        model_prefix="kimi-",
        api_key_env_var="MOONSHOT_API_KEY",
        base_url="https://api.moonshot.cn/v1",
        models=(ModelInfo("moonshot-v1-8k", "Moonshot V1 8K"),),
    ),
    ProviderDef(
        id="deepseek",
        display_name="DeepSeek",
        model_prefix="deepseek-",
        api_key_env_var="DEEPSEEK_API_KEY",
        base_url="https://api.deepseek.com/v1",
        models=(
            ModelInfo("deepseek-chat", "DeepSeek V3"),
            ModelInfo("deepseek-reasoner", "DeepSeek R1"),
        ),
    ),
    ProviderDef(
        id="openrouter",
        display_name="OpenRouter",
        model_prefix="openrouter:",
        api_key_env_var="OPENROUTER_API_KEY",
        base_url="https://openrouter.ai/api/v1",
    ),
    ProviderDef(
        id="ollama",
        display_name="Ollama",
        model_prefix="ollama:",
    ),
)

_DEFAULT_PROVIDER = PROVIDERS[0]


def get_provider_by_id(provider_id: str) -> ProviderDef | None:
    """Look up a provider by its slug (e.g., "anthropic")."""
    for provider in PROVIDERS:
        if provider.id == provider_id:
            return provider
    return None


def resolve_provider(model: str) -> ProviderDef:
    """
    Resolve the backend for a model name by its prefix.

    Prefixes ending in ":" also accept the "/" separator, so both
    "openrouter:anthropic/claude-3" and "openrouter/anthropic/claude-3"
    route to OpenRouter. Unmatched names fall back to OpenAI.
    """
    for provider in PROVIDERS:
        prefix = provider.model_prefix
        if not prefix:
            continue
        if prefix.endswith(":"):
            stem = prefix[:-1]
            if model.startswith(f"{stem}:") or model.startswith(f"{stem}/"):
                return provider
        elif model.startswith(prefix):
            return provider
    return _DEFAULT_PROVIDER


def strip_model_prefix(model: str, provider: ProviderDef) -> str:
    """Remove a routing-only prefix ("ollama:", "openrouter/") from a model name."""
    prefix = provider.model_prefix
    if prefix.endswith(":"):
        stem = prefix[:-1]
        for candidate in (f"{stem}:", f"{stem}/"):
            if model.startswith(candidate):
                return model[len(candidate):]
    return model
