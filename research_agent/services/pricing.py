# =============================================================================
# Provider Pricing Registry — Cost Estimation for Agent Runs
# =============================================================================
#
# Maps (provider_id, model_name) → per-token costs in USD. The agent loop
# sums token counts over every model call in a run and attaches the
# estimate to the final `done` event.
#
# Costs are stored as USD per TOKEN (not per 1M tokens):
#   cost = input_cost_per_token * input_tokens
#
# estimate_cost() returns None for unknown models rather than 0.0.
# Unknown cost != zero cost.
#
# Source: provider pricing pages. Update this dict when prices change.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelPricing:
    """Per-token costs for a model."""

    input_cost_per_token: float    # USD per input token
    output_cost_per_token: float   # USD per output token
    provider_label: str            # Human-readable provider name


# ---------------------------------------------------------------------------
# Pricing Registry
# ---------------------------------------------------------------------------
# provider_id matches ProviderDef.id in providers.py.
# ---------------------------------------------------------------------------

PRICING_REGISTRY: dict[tuple[str, str], ModelPricing] = {
    # --- Anthropic ---
    ("anthropic", "claude-sonnet-4-6"): ModelPricing(
        3.00 / 1_000_000, 15.00 / 1_000_000, "Anthropic",
    ),
    ("anthropic", "claude-opus-4-6"): ModelPricing(
        15.00 / 1_000_000, 75.00 / 1_000_000, "Anthropic",
    ),
    ("anthropic", "claude-haiku-4-5"): ModelPricing(
        0.80 / 1_000_000, 4.00 / 1_000_000, "Anthropic",
    ),

    # --- OpenAI ---
    ("openai", "gpt-4o"): ModelPricing(
        2.50 / 1_000_000, 10.00 / 1_000_000, "OpenAI",
    ),
    ("openai", "gpt-4o-mini"): ModelPricing(
        0.15 / 1_000_000, 0.60 / 1_000_000, "OpenAI",
    ),

    # --- DeepSeek ---
    ("deepseek", "deepseek-chat"): ModelPricing(
        0.14 / 1_000_000, 0.28 / 1_000_000, "DeepSeek",
    ),
    ("deepseek", "deepseek-reasoner"): ModelPricing(
        0.55 / 1_000_000, 2.19 / 1_000_000, "DeepSeek",
    ),

    # --- Moonshot AI (Kimi) ---
    ("moonshot", "moonshot-v1-8k"): ModelPricing(
        0.60 / 1_000_000, 2.50 / 1_000_000, "Moonshot AI",
    ),

    # --- Google ---
    ("google", "gemini-1.5-flash-latest"): ModelPricing(
        0.075 / 1_000_000, 0.30 / 1_000_000, "Google",
    ),
    ("google", "gemini-1.5-pro-latest"): ModelPricing(
        1.25 / 1_000_000, 5.00 / 1_000_000, "Google",
    ),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def estimate_cost(
    provider_id: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
) -> float | None:
    """
    Calculate estimated cost in USD for a number of tokens.

    Returns None if the model is not in the registry (unknown pricing).
    """
    pricing = PRICING_REGISTRY.get((provider_id, model))
    if pricing is None:
        return None
    return (
        pricing.input_cost_per_token * input_tokens
        + pricing.output_cost_per_token * output_tokens
    )


def get_pricing(provider_id: str, model: str) -> ModelPricing | None:
    """Look up pricing for a specific provider+model combination."""
    return PRICING_REGISTRY.get((provider_id, model))
