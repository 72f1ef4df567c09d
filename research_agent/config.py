# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# All tunables for the agent loop, the LLM layer, and the data tools live
# here. Values load in this priority order (highest first):
#   1. Environment variables (e.g., `OPENAI_API_KEY=...`)
#   2. Values from the .env file
#   3. Default values defined below
#
# Secrets read here are only the process-wide fallback. Each agent run
# resolves credentials through a CredentialResolver (credentials.py), which
# checks per-request overrides first and never writes back into settings.
#
# USAGE:
#   from research_agent.config import settings
#   print(settings.max_iterations)
# =============================================================================

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults are sized for local development against hosted LLM APIs.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "Financial Research Agent"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Agent Loop
    # -------------------------------------------------------------------------
    # max_iterations: ceiling on reason/act passes per run. Hitting it ends
    #   the run with a best-effort answer, not an error.
    # history_max_turns: how many prior user/assistant turns are replayed
    #   ahead of the current iteration prompt.
    # event_channel_size: bound on the queue between the agent producer and
    #   the transport consumer (SSE). A slow client applies backpressure.
    # tool_result_max_chars: per-record cap when tool output is rendered
    #   into the prompt. The stored record is never truncated.
    # soul_document_path: optional markdown file appended to the system
    #   prompt (persona / house style). Missing file is ignored.
    # -------------------------------------------------------------------------
    max_iterations: int = 10
    history_max_turns: int = 10
    event_channel_size: int = 64
    tool_result_max_chars: int = 20_000
    soul_document_path: str | None = None

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    # The model name selects the backend by prefix (see providers.py):
    #   "claude-..."        → Anthropic (native SDK)
    #   "gemini-..."        → Google (OpenAI-compatible endpoint)
    #   "grok-..."          → xAI
    #   "kimi-..."          → Moonshot
    #   "deepseek-..."      → DeepSeek
    #   "openrouter:..."    → OpenRouter
    #   "ollama:..."        → local Ollama server
    #   anything else       → OpenAI
    #
    # Retries: every model call is retried up to llm_max_attempts times,
    # sleeping llm_retry_base_delay * 2**attempt seconds between attempts.
    # -------------------------------------------------------------------------
    default_model: str = "gpt-4o"
    llm_temperature: float = 0.0
    llm_max_tokens: int = 4096
    llm_max_attempts: int = 3
    llm_retry_base_delay: float = 0.5
    llm_request_timeout: float = 120.0

    # -------------------------------------------------------------------------
    # API Keys — LLM Providers
    # -------------------------------------------------------------------------
    # Empty string means "not configured". Clients may also send keys with
    # each chat request; those take precedence for that request only.
    # -------------------------------------------------------------------------
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    xai_api_key: str = ""
    moonshot_api_key: str = ""
    deepseek_api_key: str = ""
    openrouter_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434/v1"

    # -------------------------------------------------------------------------
    # API Keys — Financial Data Sources
    # -------------------------------------------------------------------------
    # A data tool whose key is missing still registers, but in degraded mode:
    # every call returns a failure the model can read and route around.
    # Web search is the exception; without TAVILY_API_KEY it is omitted.
    # -------------------------------------------------------------------------
    alpha_vantage_api_key: str = ""
    financial_datasets_api_key: str = ""
    tavily_api_key: str = ""
    data_request_timeout: float = 30.0

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, construct Settings(...) directly or patch attributes on the
    module-level `settings` object.
    """
    return Settings()


settings = Settings()
