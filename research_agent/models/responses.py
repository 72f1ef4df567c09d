# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of the JSON endpoints. POST /api/chat streams SSE frames instead;
# each frame is an AgentEvent.to_dict().
# =============================================================================

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


class ProviderModelResponse(BaseModel):
    id: str
    display_name: str


class ProviderResponse(BaseModel):
    """One entry of the provider catalogue."""

    id: str
    display_name: str
    # Whether the server has a key for this provider. Clients may still
    # send their own key in ChatRequest.api_keys.
    configured: bool
    api_key_env_var: str | None = None
    models: list[ProviderModelResponse] = Field(default_factory=list)


class ProvidersResponse(BaseModel):
    """Response for GET /api/providers."""

    default_model: str
    providers: list[ProviderResponse]
