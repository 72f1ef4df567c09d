# =============================================================================
# Services Package — LLM Access and Accounting
# =============================================================================
#   - llm.py: multi-provider chat models with tool binding and retry
#   - pricing.py: per-token pricing registry for run cost estimates
# =============================================================================
