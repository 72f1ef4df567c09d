# =============================================================================
# Credential Resolution — Per-Run, Read-Only
# =============================================================================
#
# A CredentialResolver answers "is key X available?" and "what is key X?"
# for a single agent run. Lookup order:
#   1. Per-request overrides (e.g., keys a chat client sent with the query)
#   2. Process-wide settings (environment / .env via pydantic-settings)
#
# Blank values and template placeholders ("your-api-key-here") count as
# absent, so a half-filled .env behaves like a missing key.
#
# The resolver is immutable: two concurrent runs with different overrides
# each hold their own resolver and never see each other's keys.
# =============================================================================

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from research_agent.config import Settings, settings as default_settings

_PLACEHOLDER_PREFIX = "your-"


def _clean(value: str | None) -> str | None:
    """Strip whitespace and surrounding quotes; None for blank or placeholder."""
    if value is None:
        return None
    cleaned = value.strip().strip("\"'").strip()
    if not cleaned or cleaned.startswith(_PLACEHOLDER_PREFIX):
        return None
    return cleaned


class CredentialResolver:
    """
    Read-only view over credentials for one agent run.

    Credential names are env-var style ("OPENAI_API_KEY"). Settings fields
    are the lower-cased names ("openai_api_key").
    """

    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._overrides: Mapping[str, str] = MappingProxyType(
            dict(overrides or {})
        )
        self._settings = settings if settings is not None else default_settings

    def resolve(self, name: str) -> str | None:
        """Return the secret for `name`, or None when it is not configured."""
        override = _clean(self._overrides.get(name))
        if override is not None:
            return override
        return _clean(getattr(self._settings, name.lower(), None))

    def has_credential(self, name: str) -> bool:
        return self.resolve(name) is not None

    def __repr__(self) -> str:
        # Never print secrets, only which overrides exist
        return f"CredentialResolver(overrides={sorted(self._overrides)})"


def as_resolver(
    credentials: CredentialResolver | Mapping[str, str] | None,
) -> CredentialResolver:
    """Accept either a resolver or a plain mapping of overrides."""
    if isinstance(credentials, CredentialResolver):
        return credentials
    return CredentialResolver(credentials)
