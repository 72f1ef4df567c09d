# =============================================================================
# Unit Tests — Remote Data Tools
# =============================================================================
#
# The HTTP layer is patched with AsyncMock (and yfinance.Ticker with a
# MagicMock); these tests cover request parameters and response parsing only.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pandas as pd

from research_agent.credentials import CredentialResolver
from research_agent.tools.base import ToolCapabilities, ToolFailure, ToolSuccess, invoke_tool
from research_agent.tools.finance.alpha_vantage import build_alpha_vantage_tools
from research_agent.tools.finance.financial_datasets import build_financial_datasets_tools
from research_agent.tools.finance.yahoo import build_yahoo_tools
from research_agent.tools.search import create_web_search


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _call(tool, arguments):
    return _run(invoke_tool(tool, arguments, ToolCapabilities()))


def _alpha_vantage():
    tools = build_alpha_vantage_tools(CredentialResolver({"ALPHA_VANTAGE_API_KEY": "av-test"}))
    return {tool.name: tool for tool in tools}


def _financial_datasets():
    tools = build_financial_datasets_tools(
        CredentialResolver({"FINANCIAL_DATASETS_API_KEY": "fd-test"}),
    )
    return {tool.name: tool for tool in tools}


GLOBAL_QUOTE = {
    "Global Quote": {
        "01. symbol": "RELIANCE.BSE",
        "02. open": "2875.00",
        "03. high": "2901.10",
        "04. low": "2860.35",
        "05. price": "2890.50",
        "06. volume": "412345",
        "07. latest trading day": "2026-10-16",
        "08. previous close": "2870.15",
        "09. change": "20.35",
        "10. change percent": "0.7090%",
    }
}


# ---------------------------------------------------------------------------
# Test: Alpha Vantage
# ---------------------------------------------------------------------------


class TestAlphaVantage:

    def test_price_snapshot_parsed(self):
        tools = _alpha_vantage()
        with patch(
            "research_agent.tools.finance.alpha_vantage.get_json",
            new_callable=AsyncMock, return_value=GLOBAL_QUOTE,
        ) as mock_get:
            outcome = _call(tools["get_alpha_vantage_price_snapshot"], {"ticker": "RELIANCE.BSE"})

        assert isinstance(outcome, ToolSuccess)
        assert outcome.data["price"] == 2890.5
        assert outcome.data["volume"] == 412345
        assert outcome.data["changePercent"] == "0.7090%"
        params = mock_get.await_args.kwargs["params"]
        assert params == {"function": "GLOBAL_QUOTE", "symbol": "RELIANCE.BSE", "apikey": "av-test"}

    def test_rate_limit_note_is_failure(self):
        tools = _alpha_vantage()
        with patch(
            "research_agent.tools.finance.alpha_vantage.get_json",
            new_callable=AsyncMock,
            return_value={"Note": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day."},
        ):
            outcome = _call(tools["get_alpha_vantage_price_snapshot"], {"ticker": "TCS.BSE"})

        assert isinstance(outcome, ToolFailure)
        assert "Alpha Vantage API Limit" in outcome.message

    def test_empty_quote_is_failure(self):
        tools = _alpha_vantage()
        with patch(
            "research_agent.tools.finance.alpha_vantage.get_json",
            new_callable=AsyncMock, return_value={"Global Quote": {}},
        ):
            outcome = _call(tools["get_alpha_vantage_price_snapshot"], {"ticker": "NOPE.BSE"})

        assert outcome == ToolFailure("No data found for NOPE.BSE. Check the symbol.")

    def test_overview_error_message(self):
        tools = _alpha_vantage()
        with patch(
            "research_agent.tools.finance.alpha_vantage.get_json",
            new_callable=AsyncMock, return_value={"Error Message": "Invalid API call."},
        ):
            outcome = _call(tools["get_alpha_vantage_overview"], {"ticker": "XYZ"})

        assert outcome == ToolFailure("Failed to fetch overview for XYZ: Invalid API call.")

    def test_http_error_becomes_failure(self):
        tools = _alpha_vantage()
        with patch(
            "research_agent.tools.finance.alpha_vantage.get_json",
            new_callable=AsyncMock, side_effect=TimeoutError("read timeout"),
        ):
            outcome = _call(tools["get_alpha_vantage_overview"], {"ticker": "INFY.BSE"})

        assert outcome == ToolFailure("get_alpha_vantage_overview failed: read timeout")


# ---------------------------------------------------------------------------
# Test: Financial Datasets
# ---------------------------------------------------------------------------


class TestFinancialDatasets:

    def test_stock_price_uses_api_key_header(self):
        tools = _financial_datasets()
        with patch(
            "research_agent.tools.finance.financial_datasets.get_json",
            new_callable=AsyncMock,
            return_value={"snapshot": {"ticker": "AAPL", "price": 227.52}},
        ) as mock_get:
            outcome = _call(tools["get_stock_price"], {"ticker": "AAPL"})

        assert outcome.data == {"ticker": "AAPL", "price": 227.52}
        assert mock_get.await_args.kwargs["headers"] == {"X-API-KEY": "fd-test"}
        assert outcome.source_urls[0].endswith("?ticker=AAPL")

    def test_income_statements_defaults(self):
        tools = _financial_datasets()
        with patch(
            "research_agent.tools.finance.financial_datasets.get_json",
            new_callable=AsyncMock,
            return_value={"income_statements": [{"revenue": 94_930_000_000}]},
        ) as mock_get:
            outcome = _call(tools["get_income_statements"], {"ticker": "AAPL"})

        assert outcome.ok
        assert mock_get.await_args.kwargs["params"] == {
            "ticker": "AAPL", "period": "annual", "limit": 4,
        }

    def test_invalid_period_rejected(self):
        tools = _financial_datasets()
        outcome = _call(tools["get_income_statements"], {"ticker": "AAPL", "period": "weekly"})
        assert isinstance(outcome, ToolFailure)
        assert outcome.message.startswith("invalid arguments for get_income_statements")

    def test_news_links_become_sources(self):
        tools = _financial_datasets()
        news = [
            {"title": "Apple beats", "url": "https://news.example.com/1"},
            {"title": "No link"},
        ]
        with patch(
            "research_agent.tools.finance.financial_datasets.get_json",
            new_callable=AsyncMock, return_value={"news": news},
        ):
            outcome = _call(tools["get_company_news"], {"ticker": "AAPL"})

        assert outcome.source_urls == ("https://news.example.com/1",)
        assert len(outcome.data["news"]) == 2


# ---------------------------------------------------------------------------
# Test: Web Search
# ---------------------------------------------------------------------------


class TestWebSearch:

    def test_results_and_sources(self):
        tool = create_web_search("tvly-test")
        payload = {"results": [
            {"title": "RBI holds rates", "url": "https://example.com/rbi", "content": "..."},
        ]}
        with patch(
            "research_agent.tools.search.post_json",
            new_callable=AsyncMock, return_value=payload,
        ) as mock_post:
            outcome = _call(tool, {"query": "RBI policy decision"})

        assert outcome.source_urls == ("https://example.com/rbi",)
        assert outcome.data["results"][0]["title"] == "RBI holds rates"
        sent = mock_post.await_args.args[1]
        assert sent == {"api_key": "tvly-test", "query": "RBI policy decision", "max_results": 5}


# ---------------------------------------------------------------------------
# Test: Yahoo Finance
# ---------------------------------------------------------------------------


def _yahoo():
    return {tool.name: tool for tool in build_yahoo_tools()}


def _ticker(**attributes):
    return patch(
        "research_agent.tools.finance.yahoo.yf.Ticker",
        return_value=MagicMock(**attributes),
    )


class TestYahooFinance:

    def test_price_snapshot_keyed_by_ticker(self):
        info = {
            "symbol": "RELIANCE.NS",
            "regularMarketPrice": 2890.5,
            "currency": "INR",
            "exchange": "NSI",
            "regularMarketVolume": 412345,
        }
        with _ticker(info=info) as mock_ticker:
            outcome = _call(_yahoo()["get_yahoo_price_snapshot"], {"ticker": "RELIANCE.NS"})

        assert isinstance(outcome, ToolSuccess)
        quote = outcome.data["RELIANCE.NS"]
        assert quote["price"] == 2890.5
        assert quote["currency"] == "INR"
        assert quote["marketCap"] is None
        assert outcome.source_urls == ("https://finance.yahoo.com/quote/RELIANCE.NS",)
        mock_ticker.assert_called_once_with("RELIANCE.NS")

    def test_unknown_symbol_is_failure(self):
        with _ticker(info={"symbol": "NOPE.NS"}):
            outcome = _call(_yahoo()["get_yahoo_price_snapshot"], {"ticker": "NOPE.NS"})

        assert outcome == ToolFailure("No data found for NOPE.NS. Check the symbol.")

    def test_yfinance_exception_is_failure(self):
        with patch(
            "research_agent.tools.finance.yahoo.yf.Ticker",
            side_effect=RuntimeError("Too Many Requests"),
        ):
            outcome = _call(_yahoo()["get_yahoo_news"], {"ticker": "TCS.BO"})

        assert outcome == ToolFailure("Failed to fetch news for TCS.BO: Too Many Requests")

    def test_fundamentals_statements_by_period(self):
        income = pd.DataFrame({
            pd.Timestamp("2026-03-31"): {"Total Revenue": 9.8e12, "Net Income": float("nan")},
        })
        with _ticker(
            info={"trailingPE": 24.1},
            income_stmt=income,
            balance_sheet=pd.DataFrame(),
            cashflow=pd.DataFrame(),
        ):
            outcome = _call(_yahoo()["get_yahoo_fundamentals"], {"ticker": "TCS.BO"})

        data = outcome.data["TCS.BO"]
        assert data["valuation"]["trailingPE"] == 24.1
        assert data["incomeStatement"] == {
            "2026-03-31": {"Total Revenue": 9.8e12, "Net Income": None},
        }
        assert data["balanceSheet"] == {}
        assert outcome.source_urls == ("https://finance.yahoo.com/quote/TCS.BO/financials",)

    def test_news_handles_both_item_shapes(self):
        news = [
            {"content": {
                "title": "Reliance Q2 beats estimates",
                "canonicalUrl": {"url": "https://finance.yahoo.com/news/reliance-q2"},
                "provider": {"displayName": "Reuters"},
                "pubDate": "2026-10-17T09:30:00Z",
            }},
            {"title": "Jio tariff hike", "link": "https://example.com/jio", "publisher": "Mint"},
            {"content": {"title": "No link here"}},
        ]
        with _ticker(news=news):
            outcome = _call(_yahoo()["get_yahoo_news"], {"ticker": "RELIANCE.NS"})

        items = outcome.data["RELIANCE.NS"]["news"]
        assert [item["publisher"] for item in items] == ["Reuters", "Mint", None]
        assert outcome.source_urls == (
            "https://finance.yahoo.com/news/reliance-q2",
            "https://example.com/jio",
        )
