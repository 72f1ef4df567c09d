# =============================================================================
# Unit Tests — Credential Resolution
# =============================================================================

from __future__ import annotations

import pytest

from research_agent.config import Settings
from research_agent.credentials import CredentialResolver, as_resolver


def _settings(**values):
    return Settings(_env_file=None, **{
        "openai_api_key": "",
        "tavily_api_key": "",
        "alpha_vantage_api_key": "",
        **values,
    })


class TestCredentialResolver:

    def test_override_wins_over_settings(self):
        resolver = CredentialResolver(
            {"OPENAI_API_KEY": "sk-client"}, settings=_settings(openai_api_key="sk-server"),
        )
        assert resolver.resolve("OPENAI_API_KEY") == "sk-client"

    def test_falls_back_to_settings(self):
        resolver = CredentialResolver({}, settings=_settings(tavily_api_key="tvly-server"))
        assert resolver.resolve("TAVILY_API_KEY") == "tvly-server"
        assert resolver.has_credential("TAVILY_API_KEY")

    @pytest.mark.parametrize("value", ["", "   ", "your-api-key-here", '""', "'your-key'"])
    def test_blank_and_placeholder_count_as_absent(self, value):
        resolver = CredentialResolver({"ALPHA_VANTAGE_API_KEY": value}, settings=_settings())
        assert resolver.resolve("ALPHA_VANTAGE_API_KEY") is None
        assert not resolver.has_credential("ALPHA_VANTAGE_API_KEY")

    def test_quotes_and_whitespace_stripped(self):
        resolver = CredentialResolver({"OPENAI_API_KEY": ' "sk-quoted" '}, settings=_settings())
        assert resolver.resolve("OPENAI_API_KEY") == "sk-quoted"

    def test_unknown_name_is_none(self):
        assert CredentialResolver({}, settings=_settings()).resolve("NOT_A_KEY") is None

    def test_overrides_are_copied(self):
        overrides = {"OPENAI_API_KEY": "sk-one"}
        resolver = CredentialResolver(overrides, settings=_settings())
        overrides["OPENAI_API_KEY"] = "sk-two"
        assert resolver.resolve("OPENAI_API_KEY") == "sk-one"

    def test_repr_hides_secrets(self):
        resolver = CredentialResolver({"OPENAI_API_KEY": "sk-secret"})
        assert "sk-secret" not in repr(resolver)
        assert "OPENAI_API_KEY" in repr(resolver)


class TestAsResolver:

    def test_passes_resolver_through(self):
        resolver = CredentialResolver({})
        assert as_resolver(resolver) is resolver

    def test_wraps_mapping_and_none(self):
        assert as_resolver({"OPENAI_API_KEY": "sk-x"}).resolve("OPENAI_API_KEY") == "sk-x"
        assert isinstance(as_resolver(None), CredentialResolver)
