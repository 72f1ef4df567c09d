# =============================================================================
# Financial Datasets — US Equities: Prices, Income Statements, News
# =============================================================================
#
# REST API at api.financialdatasets.ai, authenticated with an X-API-KEY
# header. Each tool returns the relevant slice of the JSON payload plus the
# request URL as provenance.
# =============================================================================

from __future__ import annotations

import logging
from typing import Literal

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

FINANCIAL_DATASETS_URL = "https://api.financialdatasets.ai"
FINANCIAL_DATASETS_KEY = "FINANCIAL_DATASETS_API_KEY"

_TICKER_DESCRIPTION = "The stock ticker symbol, e.g. AAPL for Apple."


class StockPriceInput(BaseModel):
    ticker: str = Field(..., min_length=1, description=_TICKER_DESCRIPTION)


class IncomeStatementsInput(BaseModel):
    ticker: str = Field(..., min_length=1, description=_TICKER_DESCRIPTION)
    period: Literal["annual", "quarterly", "ttm"] = Field(
        default="annual",
        description="Reporting period of the statements.",
    )
    limit: int = Field(
        default=4, ge=1, le=20,
        description="Number of most recent statements to return.",
    )


class CompanyNewsInput(BaseModel):
    ticker: str = Field(..., min_length=1, description=_TICKER_DESCRIPTION)
    limit: int = Field(
        default=5, ge=1, le=50,
        description="Number of most recent articles to return.",
    )


def build_financial_datasets_tools(credentials: CredentialResolver) -> list[ToolSpec]:
    """Financial Datasets tools, degraded when the API key is missing."""
    api_key = credentials.resolve(FINANCIAL_DATASETS_KEY)
    headers = {"X-API-KEY": api_key or ""}

    async def stock_price(
        params: StockPriceInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        url = f"{FINANCIAL_DATASETS_URL}/prices/snapshot/"
        payload = await get_json(url, params={"ticker": params.ticker}, headers=headers)
        snapshot = payload.get("snapshot")
        if not snapshot:
            return ToolFailure(f"No price snapshot found for {params.ticker}.")
        return ToolSuccess(data=snapshot, source_urls=(f"{url}?ticker={params.ticker}",))

    async def income_statements(
        params: IncomeStatementsInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        url = f"{FINANCIAL_DATASETS_URL}/financials/income-statements/"
        query = {"ticker": params.ticker, "period": params.period, "limit": params.limit}
        payload = await get_json(url, params=query, headers=headers)
        statements = payload.get("income_statements") or []
        if not statements:
            return ToolFailure(f"No income statements found for {params.ticker}.")
        return ToolSuccess(
            data=statements,
            source_urls=(f"{url}?ticker={params.ticker}&period={params.period}",),
        )

    async def company_news(
        params: CompanyNewsInput, capabilities: ToolCapabilities,
    ) -> ToolOutcome:
        url = f"{FINANCIAL_DATASETS_URL}/news/"
        payload = await get_json(
            url, params={"ticker": params.ticker, "limit": params.limit}, headers=headers,
        )
        news = payload.get("news") or []
        links = tuple(item["url"] for item in news if item.get("url"))
        return ToolSuccess(data={"news": news}, source_urls=links)

    tools = [
        ToolSpec(
            name="get_stock_price",
            description=(
                "Fetches the current price snapshot for a US-listed stock: "
                "price, day change, volume and market cap."
            ),
            input_schema=StockPriceInput,
            invoke=stock_price,
        ),
        ToolSpec(
            name="get_income_statements",
            description=(
                "Fetches income statements (revenue, gross profit, operating "
                "income, net income, EPS) for a company."
            ),
            input_schema=IncomeStatementsInput,
            invoke=income_statements,
        ),
        ToolSpec(
            name="get_company_news",
            description="Fetches recent news articles about a company.",
            input_schema=CompanyNewsInput,
            invoke=company_news,
        ),
    ]

    if api_key is None:
        logger.info("%s not configured; Financial Datasets tools degraded", FINANCIAL_DATASETS_KEY)
        message = (
            f"{FINANCIAL_DATASETS_KEY} is not configured; "
            "Financial Datasets data is unavailable."
        )
        return [degraded_tool(tool, message) for tool in tools]
    return tools
