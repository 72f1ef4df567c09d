# =============================================================================
# Yahoo Finance — Quotes, Fundamentals and News (no API key)
# =============================================================================
#
# Secondary source for Indian listings, using Yahoo's suffixes:
#   RELIANCE.NS → NSE,  TCS.BO → BSE
#
# Three tools:
#   get_yahoo_price_snapshot — Ticker.info quote fields
#   get_yahoo_fundamentals   — key statistics + annual statements
#   get_yahoo_news           — latest headlines for the ticker
#
# DESIGN DECISION: yfinance is synchronous.
# Each fetch runs in a worker thread via asyncio.to_thread so a slow Yahoo
# response never blocks the event loop (and the other sub-tools the
# meta-router fans out alongside it). Any exception from yfinance becomes a
# ToolFailure naming the ticker.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

import yfinance as yf
from pydantic import BaseModel, Field

from research_agent.tools.base import (
    ToolCapabilities,
    ToolFailure,
    ToolOutcome,
    ToolSpec,
    ToolSuccess,
)

logger = logging.getLogger(__name__)

YAHOO_QUOTE_URL = "https://finance.yahoo.com/quote/{ticker}"
NEWS_LIMIT = 5

# (output key, Ticker.info key)
_QUOTE_FIELDS = [
    ("symbol", "symbol"),
    ("price", "regularMarketPrice"),
    ("currency", "currency"),
    ("exchange", "exchange"),
    ("open", "regularMarketOpen"),
    ("high", "regularMarketDayHigh"),
    ("low", "regularMarketDayLow"),
    ("previousClose", "regularMarketPreviousClose"),
    ("volume", "regularMarketVolume"),
    ("marketCap", "marketCap"),
]

_VALUATION_FIELDS = [
    "trailingPE", "forwardPE", "priceToBook", "enterpriseValue",
    "profitMargins", "returnOnEquity", "totalRevenue", "totalDebt",
    "freeCashflow", "dividendYield", "beta",
]


class YahooTickerInput(BaseModel):
    ticker: str = Field(
        ...,
        min_length=1,
        description=(
            "The stock ticker symbol. For Indian stocks on NSE append '.NS' "
            "(e.g., RELIANCE.NS); for BSE append '.BO' (e.g., TCS.BO)."
        ),
    )


# ---------------------------------------------------------------------------
# Fetchers (blocking; run in a thread)
# ---------------------------------------------------------------------------


def _clean(value: Any) -> Any:
    """numpy scalars → float, NaN → None."""
    if isinstance(value, (int, float)) or hasattr(value, "item"):
        number = float(value)
        return None if math.isnan(number) else number
    return value


def _frame_to_dict(frame: Any) -> dict[str, dict[str, Any]]:
    """Statement DataFrame (line items × period columns) → {period: {item: value}}."""
    if frame is None or frame.empty:
        return {}
    return {
        str(column.date()) if hasattr(column, "date") else str(column): {
            str(item): _clean(value) for item, value in frame[column].items()
        }
        for column in frame.columns
    }


def _fetch_quote(ticker: str) -> dict[str, Any]:
    info = yf.Ticker(ticker).info or {}
    return {key: info.get(source) for key, source in _QUOTE_FIELDS}


def _fetch_fundamentals(ticker: str) -> dict[str, Any]:
    stock = yf.Ticker(ticker)
    info = stock.info or {}
    return {
        "valuation": {field: info.get(field) for field in _VALUATION_FIELDS},
        "incomeStatement": _frame_to_dict(stock.income_stmt),
        "balanceSheet": _frame_to_dict(stock.balance_sheet),
        "cashFlow": _frame_to_dict(stock.cashflow),
    }


def _parse_news_item(item: dict[str, Any]) -> dict[str, Any]:
    # Newer yfinance releases nest the article under "content"
    content = item.get("content")
    if isinstance(content, dict):
        return {
            "title": content.get("title"),
            "link": (content.get("canonicalUrl") or {}).get("url"),
            "publisher": (content.get("provider") or {}).get("displayName"),
            "published": content.get("pubDate"),
        }
    return {
        "title": item.get("title"),
        "link": item.get("link"),
        "publisher": item.get("publisher"),
        "published": item.get("providerPublishTime"),
    }


def _fetch_news(ticker: str) -> list[dict[str, Any]]:
    items = yf.Ticker(ticker).news or []
    return [_parse_news_item(item) for item in items[:NEWS_LIMIT]]


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


def build_yahoo_tools() -> list[ToolSpec]:
    """Yahoo Finance tools. No credential, so never degraded."""

    async def price_snapshot(
        params: YahooTickerInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        try:
            quote = await asyncio.to_thread(_fetch_quote, params.ticker)
        except Exception as e:
            logger.warning("Yahoo quote failed for %s: %s", params.ticker, e)
            return ToolFailure(f"Failed to fetch price for {params.ticker}: {e}")

        if quote.get("price") is None:
            return ToolFailure(f"No data found for {params.ticker}. Check the symbol.")
        return ToolSuccess(
            data={params.ticker: quote},
            source_urls=(YAHOO_QUOTE_URL.format(ticker=params.ticker),),
        )

    async def fundamentals(
        params: YahooTickerInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        try:
            data = await asyncio.to_thread(_fetch_fundamentals, params.ticker)
        except Exception as e:
            logger.warning("Yahoo fundamentals failed for %s: %s", params.ticker, e)
            return ToolFailure(f"Failed to fetch fundamentals for {params.ticker}: {e}")

        return ToolSuccess(
            data={params.ticker: data},
            source_urls=(YAHOO_QUOTE_URL.format(ticker=params.ticker) + "/financials",),
        )

    async def news(
        params: YahooTickerInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        try:
            items = await asyncio.to_thread(_fetch_news, params.ticker)
        except Exception as e:
            logger.warning("Yahoo news failed for %s: %s", params.ticker, e)
            return ToolFailure(f"Failed to fetch news for {params.ticker}: {e}")

        links = tuple(item["link"] for item in items if item.get("link"))
        return ToolSuccess(
            data={params.ticker: {"news": items}},
            source_urls=links or (YAHOO_QUOTE_URL.format(ticker=params.ticker),),
        )

    return [
        ToolSpec(
            name="get_yahoo_price_snapshot",
            description=(
                "Fetches the latest price snapshot for a stock using Yahoo "
                "Finance. Works for Indian stocks (NSE/BSE) without an API key."
            ),
            input_schema=YahooTickerInput,
            invoke=price_snapshot,
        ),
        ToolSpec(
            name="get_yahoo_fundamentals",
            description=(
                "Fetches valuation statistics and annual income statement, "
                "balance sheet and cash flow for a stock using Yahoo Finance."
            ),
            input_schema=YahooTickerInput,
            invoke=fundamentals,
        ),
        ToolSpec(
            name="get_yahoo_news",
            description="Fetches the latest news for a stock ticker using Yahoo Finance.",
            input_schema=YahooTickerInput,
            invoke=news,
        ),
    ]
