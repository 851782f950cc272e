"""Unit tests for core.config module.

Tests cover:
- Defaults and environment loading
- SIGNING_SECRET alias for the webhook secret
- allowed_origins computed property with deduplication
- get_settings / clear_settings_cache lru_cache behavior
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, clear_settings_cache, get_settings

pytestmark = pytest.mark.unit


class TestSettingsLoading:
    def test_missing_values_do_not_fail_at_load(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("CLERK_WEBHOOK_SIGNING_SECRET", raising=False)
        monkeypatch.delenv("SIGNING_SECRET", raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url == ""
        assert settings.clerk_webhook_signing_secret == ""

    def test_reads_webhook_secret_from_env(self, monkeypatch):
        monkeypatch.delenv("SIGNING_SECRET", raising=False)
        monkeypatch.setenv("CLERK_WEBHOOK_SIGNING_SECRET", "whsec_primary")

        assert Settings(_env_file=None).clerk_webhook_signing_secret == "whsec_primary"

    def test_accepts_signing_secret_alias(self, monkeypatch):
        monkeypatch.delenv("CLERK_WEBHOOK_SIGNING_SECRET", raising=False)
        monkeypatch.setenv("SIGNING_SECRET", "whsec_alias")

        assert Settings(_env_file=None).clerk_webhook_signing_secret == "whsec_alias"

    def test_accepts_field_name_as_kwarg(self):
        settings = Settings(_env_file=None, clerk_webhook_signing_secret="whsec_kw")
        assert settings.clerk_webhook_signing_secret == "whsec_kw"

    def test_settings_are_frozen(self):
        settings = Settings(_env_file=None)
        with pytest.raises(ValidationError):
            settings.database_url = "sqlite+aiosqlite:///:memory:"


class TestAllowedOrigins:
    def test_frontend_url_only_by_default(self):
        settings = Settings(
            _env_file=None, debug=False, frontend_url="https://app.example.com"
        )
        assert settings.allowed_origins == ["https://app.example.com"]

    def test_debug_adds_localhost(self):
        settings = Settings(
            _env_file=None, debug=True, frontend_url="https://app.example.com"
        )
        assert settings.allowed_origins == [
            "http://localhost:3000",
            "https://app.example.com",
        ]

    def test_extra_origins_are_split_and_deduplicated(self):
        settings = Settings(
            _env_file=None,
            frontend_url="https://app.example.com",
            cors_allowed_origins=(
                " https://staging.example.com ,https://app.example.com,,"
            ),
        )
        assert settings.allowed_origins == [
            "https://app.example.com",
            "https://staging.example.com",
        ]


class TestGetSettings:
    def test_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache_picks_up_env_changes(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///first.db")
        clear_settings_cache()
        assert get_settings().database_url == "sqlite+aiosqlite:///first.db"

        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///second.db")
        assert get_settings().database_url == "sqlite+aiosqlite:///first.db"

        clear_settings_cache()
        assert get_settings().database_url == "sqlite+aiosqlite:///second.db"
