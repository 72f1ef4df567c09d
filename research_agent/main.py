# =============================================================================
# FastAPI Application — Entry Point
# =============================================================================
#
# Run locally:
#   uvicorn research_agent.main:app --reload
#
# Routes:
#   POST /api/chat       — streaming agent run (SSE)
#   GET  /api/providers  — provider/model catalogue
#   GET  /health         — liveness
# =============================================================================

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI

from research_agent.api.chat import router as chat_router
from research_agent.config import Settings, get_settings, settings
from research_agent.models.responses import HealthResponse

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    description=(
        "Tool-calling financial research agent. Answers questions by "
        "iteratively calling market-data and web-search tools and streams "
        "its progress as Server-Sent Events."
    ),
)

app.include_router(chat_router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health(app_settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        version=app_settings.app_version,
        service=app_settings.app_name,
    )


logger.info("%s v%s ready", settings.app_name, settings.app_version)
