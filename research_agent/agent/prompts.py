# =============================================================================
# Prompts — System Prompt and Per-Iteration Prompt
# =============================================================================
#
# The agent never replays raw tool messages to the model. Each iteration it
# sends one synthesized user message containing:
#   1. The original query
#   2. Every tool result gathered so far (in invocation order)
#   3. A compact summary of which tools were used and how they fared
# so the model sees the same transcript shape regardless of provider.
# =============================================================================

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from research_agent.config import settings

logger = logging.getLogger(__name__)


def get_current_date(today: date | None = None) -> str:
    """Human-readable date, e.g. 'Monday, October 19, 2026'."""
    today = today or date.today()
    return today.strftime("%A, %B %d, %Y").replace(" 0", " ")


def load_soul_document(path: str | None = None) -> str | None:
    """
    Read the optional persona document appended to the system prompt.

    Returns None when no path is configured or the file cannot be read.
    """
    path = path or settings.soul_document_path
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8").strip() or None
    except OSError as e:
        logger.warning("Could not read soul document %s: %s", path, e)
        return None


def build_system_prompt(model: str, soul_content: str | None = None) -> str:
    """System prompt for the main research loop."""
    prompt = f"""You are a financial research agent.
Current date: {get_current_date()}
Model: {model}

You answer questions about companies, markets, and financial data by calling
tools and reasoning over their results.

## How to work

- Call tools whenever the answer depends on data you do not already have in
  the tool results below. You may call several tools at once.
- Tool results from earlier steps are shown to you in the user message under
  "Data gathered so far". Do not call the same tool with the same arguments
  again unless the previous call failed.
- If a tool failed, decide whether a different tool or different arguments
  could work. Do not retry the identical call more than once.
- When you have enough information, reply WITHOUT calling any tool. That
  reply is your final answer to the user.

## Final answer

- Lead with the direct answer, then the supporting figures.
- Quote numbers exactly as the tools returned them and state the currency.
- Mention the data source for key figures.
- If data was unavailable, say what is missing instead of guessing."""

    if soul_content:
        prompt += f"\n\n## Identity\n\n{soul_content}"
    return prompt


def build_iteration_prompt(
    query: str,
    tool_results: str,
    tool_usage_summary: str,
) -> str:
    """The synthesized user message for one loop iteration."""
    sections = [f"## User query\n\n{query}"]

    if tool_results:
        sections.append(f"## Data gathered so far\n\n{tool_results}")
    if tool_usage_summary:
        sections.append(f"## Tools used so far\n\n{tool_usage_summary}")

    if tool_results:
        sections.append(
            "Decide whether the data above answers the query. If it does, "
            "write the final answer without calling tools. If not, call the "
            "tools needed to fill the gaps."
        )
    else:
        sections.append(
            "No data has been gathered yet. Call the tools you need, or answer "
            "directly if no data is required."
        )
    return "\n\n".join(sections)


def build_router_prompt() -> str:
    """System prompt for the financial_search meta-router's routing call."""
    return f"""You are a financial data routing assistant.
Current date: {get_current_date()}

Given a user's natural language query about financial data, call the appropriate financial tool(s).

## Guidelines

1. **Ticker Resolution**: Convert company names to ticker symbols:
   - Apple → AAPL, Tesla → TSLA, Microsoft → MSFT, Amazon → AMZN
   - **INDIAN STOCKS**: Use ".BSE" for Indian stocks (e.g., RELIANCE.BSE).

2. **Tool Selection**:
   - For a current stock quote/snapshot → get_stock_price
   - For revenue, earnings, profitability → get_income_statements
   - For news, catalysts, announcements → get_company_news
   - **Indian Market Routing**: For any ticker ending in .BSE or .NSE, or for Indian companies, ALWAYS use:
     - get_alpha_vantage_price_snapshot (for prices)
     - get_alpha_vantage_overview (for fundamentals)
   - **Yahoo Finance** (no API key): tickers with Yahoo suffixes (.NS, .BO), or
     when Alpha Vantage reports it is unavailable or rate limited:
     - get_yahoo_price_snapshot, get_yahoo_fundamentals, get_yahoo_news

3. When a query mentions several companies, call the tool once per ticker.

Call the appropriate tool(s) now."""
