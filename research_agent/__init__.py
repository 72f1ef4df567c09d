# =============================================================================
# Financial Research Agent
# =============================================================================
# A conversational research assistant that answers financial questions by
# iterating between an LLM and a set of data-fetching tools until it reaches
# a final answer or exhausts its iteration budget.
#
# Package structure:
#   research_agent/
#   ├── agent/        → Agent loop, tool executor, scratchpad, prompts,
#   │                    cancellation, conversation history, event channel
#   ├── api/          → FastAPI route handlers (SSE chat, provider listing)
#   ├── models/       → Pydantic V2 request/response schemas
#   ├── services/     → LLM provider adapters with retry, token pricing
#   └── tools/        → Tool contract, registry, financial data fetchers,
#                        and the financial_search meta-router
# =============================================================================
