# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the HTTP API. Agent events are dataclasses
# (research_agent/agent/types.py) and are serialised with to_dict(); only
# the request body and the JSON endpoints use pydantic models.
# =============================================================================
