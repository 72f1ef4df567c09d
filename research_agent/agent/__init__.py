# =============================================================================
# Agent Package — Iterative Reason/Act Loop
# =============================================================================
#   - agent.py: the loop itself (prompt assembly, model call, tool dispatch),
#     termination on a tool-free answer or the iteration ceiling
#   - tool_executor.py: approval gating and concurrent tool dispatch with
#     batch-level cancellation
#   - scratchpad.py: per-run history of tool calls and model thinking
#   - prompts.py: system prompt and per-iteration prompt builders
#   - types.py: requests, records, config, and the AgentEvent union
#   - cancellation.py: cooperative cancellation token
#   - history.py: in-memory conversation history
#   - channel.py / runner.py: bounded event channel and run entry point
# =============================================================================
