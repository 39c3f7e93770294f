"""
Unit tests for application settings.

Tests cover:
- Defaults
- Environment variable overrides
- Validators (log level, environment, storage backend, JWT algorithm)
- Settings caching
"""

import pytest
from pydantic import ValidationError

from users_api.src.config import Settings, clear_settings_cache, get_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        """Test defaults match the documented API contract."""
        monkeypatch.delenv("USERS_API_STORAGE_BACKEND", raising=False)
        settings = Settings(_env_file=None)

        assert settings.storage_backend == "memory"
        assert settings.token_header_name == "Authorization"
        assert settings.token_prefix == "Bearer "
        assert settings.user_id_header_name == "UserID"
        assert settings.password_min_length == 8
        assert settings.jwt_access_token_expire_seconds == settings.jwt_access_token_expire_minutes * 60

    def test_environment_override(self, monkeypatch):
        """Test USERS_API_ prefixed variables override defaults."""
        monkeypatch.setenv("USERS_API_PORT", "9090")
        monkeypatch.setenv("USERS_API_STORAGE_BACKEND", "POSTGRES")
        monkeypatch.setenv("USERS_API_LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.port == 9090
        assert settings.storage_backend == "postgres"
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("log_level", "VERBOSE"),
            ("environment", "qa"),
            ("storage_backend", "redis"),
            ("jwt_algorithm", "none"),
            ("log_format", "xml"),
            ("jwt_secret_key", "too-short"),
            ("port", 0),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        """Test invalid settings fail validation."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_is_production(self):
        """Test environment helpers."""
        assert Settings(_env_file=None, environment="production").is_production
        assert Settings(_env_file=None, environment="development").is_development

    def test_get_settings_is_cached(self):
        """Test get_settings returns one shared instance until the cache is cleared."""
        clear_settings_cache()
        first = get_settings()

        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first
        clear_settings_cache()
