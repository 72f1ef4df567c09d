# =============================================================================
# HTTP Helpers for Data Tools
# =============================================================================
#
# Thin wrappers over httpx.AsyncClient shared by every remote data tool.
# One client per call: concurrent agent runs share no connection state.
#
# HTTP errors propagate as httpx exceptions. The tool invocation boundary
# (tools/base.py) turns them into ToolFailure.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import httpx

from research_agent.config import settings

logger = logging.getLogger(__name__)


async def get_json(
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """GET `url` and decode the JSON body. Raises on non-2xx responses."""
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.data_request_timeout, connect=10.0),
        follow_redirects=True,
    ) as client:
        response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
    logger.debug("GET %s → %d", url, response.status_code)
    return response.json()


async def post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> Any:
    """POST a JSON payload to `url` and decode the JSON body."""
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.data_request_timeout, connect=10.0),
    ) as client:
        response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
    logger.debug("POST %s → %d", url, response.status_code)
    return response.json()
