# =============================================================================
# Alpha Vantage — Price Snapshots and Company Overviews
# =============================================================================
#
# Primary source for Indian listings (RELIANCE.BSE, TCS.NSE). Two tools:
#   get_alpha_vantage_price_snapshot — GLOBAL_QUOTE endpoint
#   get_alpha_vantage_overview       — OVERVIEW endpoint (fundamentals)
#
# Alpha Vantage reports errors inside a 200 response:
#   {"Error Message": "..."}  → bad symbol / bad request
#   {"Note": "..."}           → rate limit hit (free tier: 25 req/day)
#   {"Information": "..."}    → premium endpoint or rate limit
# All three become ToolFailure, as does an empty quote object.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from research_agent.credentials import CredentialResolver
from research_agent.tools.base import (
    ToolCapabilities,
    ToolFailure,
    ToolOutcome,
    ToolSpec,
    ToolSuccess,
    degraded_tool,
)
from research_agent.tools.http import get_json

logger = logging.getLogger(__name__)

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
ALPHA_VANTAGE_KEY = "ALPHA_VANTAGE_API_KEY"


class AlphaVantageTickerInput(BaseModel):
    ticker: str = Field(
        ...,
        min_length=1,
        description=(
            "The stock ticker symbol. For Indian stocks on NSE use the .NSE "
            "suffix (e.g., RELIANCE.NSE); for BSE use .BSE (e.g., TCS.BSE)."
        ),
    )


def _api_error(payload: dict[str, Any]) -> str | None:
    if payload.get("Error Message"):
        return str(payload["Error Message"])
    if payload.get("Note"):
        return f"Alpha Vantage API Limit: {payload['Note']}"
    if payload.get("Information"):
        return f"Alpha Vantage: {payload['Information']}"
    return None


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_global_quote(quote: dict[str, Any]) -> dict[str, Any]:
    """Flatten Alpha Vantage's numbered GLOBAL_QUOTE keys."""
    return {
        "symbol": quote.get("01. symbol"),
        "price": _to_float(quote.get("05. price")),
        "open": _to_float(quote.get("02. open")),
        "high": _to_float(quote.get("03. high")),
        "low": _to_float(quote.get("04. low")),
        "volume": _to_int(quote.get("06. volume")),
        "latestTradingDay": quote.get("07. latest trading day"),
        "previousClose": _to_float(quote.get("08. previous close")),
        "change": _to_float(quote.get("09. change")),
        "changePercent": quote.get("10. change percent"),
    }


def build_alpha_vantage_tools(credentials: CredentialResolver) -> list[ToolSpec]:
    """Alpha Vantage tools, degraded when ALPHA_VANTAGE_API_KEY is missing."""
    api_key = credentials.resolve(ALPHA_VANTAGE_KEY)

    async def price_snapshot(
        params: AlphaVantageTickerInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        payload = await get_json(ALPHA_VANTAGE_URL, params={
            "function": "GLOBAL_QUOTE",
            "symbol": params.ticker,
            "apikey": api_key,
        })
        error = _api_error(payload)
        if error:
            return ToolFailure(f"Failed to fetch price for {params.ticker}: {error}")

        quote = payload.get("Global Quote") or {}
        if not quote:
            return ToolFailure(f"No data found for {params.ticker}. Check the symbol.")

        return ToolSuccess(
            data=_parse_global_quote(quote),
            source_urls=("https://www.alphavantage.co",),
        )

    async def overview(
        params: AlphaVantageTickerInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        payload = await get_json(ALPHA_VANTAGE_URL, params={
            "function": "OVERVIEW",
            "symbol": params.ticker,
            "apikey": api_key,
        })
        error = _api_error(payload)
        if error:
            return ToolFailure(f"Failed to fetch overview for {params.ticker}: {error}")
        if not payload:
            return ToolFailure(f"No overview data found for {params.ticker}.")

        return ToolSuccess(data=payload, source_urls=("https://www.alphavantage.co",))

    tools = [
        ToolSpec(
            name="get_alpha_vantage_price_snapshot",
            description=(
                "Fetches the latest price snapshot for a stock using Alpha "
                "Vantage. Best for Indian stocks (NSE/BSE)."
            ),
            input_schema=AlphaVantageTickerInput,
            invoke=price_snapshot,
        ),
        ToolSpec(
            name="get_alpha_vantage_overview",
            description=(
                "Fetches company overview and basic fundamentals for a stock "
                "using Alpha Vantage."
            ),
            input_schema=AlphaVantageTickerInput,
            invoke=overview,
        ),
    ]

    if api_key is None:
        logger.info("%s not configured; Alpha Vantage tools degraded", ALPHA_VANTAGE_KEY)
        message = f"{ALPHA_VANTAGE_KEY} is not configured; Alpha Vantage data is unavailable."
        return [degraded_tool(tool, message) for tool in tools]
    return tools
