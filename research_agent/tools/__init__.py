# =============================================================================
# Tools Package — Tool Contract, Registry, and Data Fetchers
# =============================================================================
#   - base.py: ToolSpec, ToolSuccess/ToolFailure, the invocation boundary
#   - registry.py: builds the per-run name → ToolSpec mapping
#   - search.py: Tavily web search
#   - finance/: financial data fetchers and the financial_search meta-router
# =============================================================================
