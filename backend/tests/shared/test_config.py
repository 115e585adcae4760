"""Tests for shared/config.py."""

import os
from unittest.mock import patch

from shared.config import Settings, get_settings


class TestSettings:
    def test_default_values(self):
        """Settings should have sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)
        assert settings.app_name == "Salesdesk API"
        assert settings.debug is False
        assert settings.port == 8000
        assert settings.storage_backend == "supabase"
        assert settings.rate_limit_store_timeout_seconds == 0.5
        assert settings.trusted_proxy_count == 1
        assert settings.job_retention_seconds == 3600
        assert settings.max_spreadsheet_bytes == 10 * 1024 * 1024
        assert settings.max_image_bytes == 5 * 1024 * 1024
        assert settings.stripe_currency == "myr"

    def test_loads_from_env(self):
        """Settings should load environment variables case-insensitively."""
        with patch.dict(os.environ, {"DEBUG": "true", "PORT": "9000", "storage_backend": "memory"}):
            settings = Settings(_env_file=None)
            assert settings.debug is True
            assert settings.port == 9000
            assert settings.storage_backend == "memory"

    def test_loads_api_keys_from_env(self):
        with patch.dict(os.environ, {
            "ANTHROPIC_API_KEY": "test-anthropic-key",
            "OPENAI_API_KEY": "test-openai-key",
            "STRIPE_SECRET_KEY": "sk_test_123",
        }):
            settings = Settings(_env_file=None)
            assert settings.anthropic_api_key == "test-anthropic-key"
            assert settings.openai_api_key == "test-openai-key"
            assert settings.stripe_secret_key == "sk_test_123"

    def test_is_production(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "Production"}):
            assert Settings(_env_file=None).is_production is True
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}):
            assert Settings(_env_file=None).is_production is False


class TestGetSettings:
    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()

    def test_cache_clear_reloads(self):
        get_settings.cache_clear()
        first = get_settings()
        get_settings.cache_clear()
        assert get_settings() is not first
