# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - chat.py: POST /api/chat (SSE agent stream), GET /api/providers
# =============================================================================
