# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming INTO the API. FastAPI uses
# them for body validation (automatic 422 errors) and the OpenAPI docs.
#
# DESIGN DECISION: Client-supplied API keys ride in the request body.
# `api_keys` overrides server settings for this run only; see
# credentials.CredentialResolver. Keys are never logged or echoed back.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class HistoryMessage(BaseModel):
    """One prior turn of the conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=20000)


class ChatRequest(BaseModel):
    """
    Request body for POST /api/chat — Ask the research agent a question.

    Example:
        {
            "query": "What is the current price of RELIANCE.BSE?",
            "model": "claude-sonnet-4-6",
            "api_keys": {"ANTHROPIC_API_KEY": "sk-ant-..."}
        }
    """

    query: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="The research question",
        examples=["Compare Apple and Microsoft revenue for the last 4 quarters"],
    )

    # Optional: model identifier, routed to a provider by prefix
    # ("claude-", "gemini-", "ollama:", ...). Defaults to settings.default_model.
    model: str | None = Field(
        default=None,
        description="Model identifier. If omitted, the server default is used.",
        examples=["gpt-4o", "claude-sonnet-4-6", "ollama:llama3.1"],
    )

    # Only consulted when `model` carries no routing prefix
    provider: str | None = Field(
        default=None,
        description="Provider id for models without a prefix (e.g., 'deepseek').",
    )

    api_keys: dict[str, str] | None = Field(
        default=None,
        description=(
            "Per-request credentials keyed by environment variable name, "
            "e.g. OPENAI_API_KEY or FINANCIAL_DATASETS_API_KEY."
        ),
    )

    max_iterations: int | None = Field(
        default=None,
        ge=1,
        le=25,
        description="Upper bound on agent loop iterations.",
    )

    history: list[HistoryMessage] | None = Field(
        default=None,
        description="Prior conversation turns, oldest first.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "query": "What is the current price of RELIANCE.BSE?",
                },
                {
                    "query": "How did that compare with last quarter?",
                    "model": "gpt-4o",
                    "history": [
                        {"role": "user", "content": "Price of AAPL?"},
                        {"role": "assistant", "content": "AAPL is trading at $227.52."},
                    ],
                },
            ]
        }
    )
