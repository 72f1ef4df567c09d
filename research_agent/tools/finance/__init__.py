# =============================================================================
# Finance Tools
# =============================================================================
#   - financial_datasets.py: US prices, income statements, company news
#   - alpha_vantage.py: price snapshots and overviews (Indian listings)
#   - financial_search.py: meta-router that picks and runs the tools above
# =============================================================================
