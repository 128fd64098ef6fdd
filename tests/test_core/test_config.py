"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from tussles.core.config import Settings


class TestSettings:
    def test_defaults_leave_backend_unconfigured(self):
        settings = Settings(_env_file=None)

        assert settings.database_url is None
        assert settings.service_key is None
        assert not settings.store_configured
        assert not settings.storage_configured
        assert settings.api_prefix == "/api"
        assert settings.port == 3000
        assert settings.storage_bucket == "tussle-images"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("APP_SERVICE_KEY", "secret")
        monkeypatch.setenv("APP_DATABASE_URL", "postgresql://u:p@db:5432/tussles")
        monkeypatch.setenv("APP_CORS_ORIGINS", "https://a.example.com, https://b.example.com")

        settings = Settings(_env_file=None)

        assert settings.store_configured
        assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]

    def test_cors_origins_json_list(self, monkeypatch):
        monkeypatch.setenv("APP_CORS_ORIGINS", '["https://a.example.com", "https://b.example.com"]')

        settings = Settings(_env_file=None)

        assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]

    def test_postgres_scheme_normalised(self):
        settings = Settings(_env_file=None, database_url="postgres://u:p@db:5432/tussles")
        assert settings.database_url == "postgresql://u:p@db:5432/tussles"

    def test_blank_values_are_unset(self):
        settings = Settings(_env_file=None, database_url="  ", service_key="")
        assert settings.database_url is None
        assert settings.service_key is None

    def test_malformed_url_leaves_store_unconfigured(self):
        settings = Settings(
            _env_file=None, database_url="mysql://u:p@db/tussles", service_key="secret"
        )

        assert settings.database_url is None
        assert not settings.store_configured

    def test_storage_configured(self):
        settings = Settings(
            _env_file=None,
            storage_access_key_id="key",
            storage_secret_access_key="secret",
        )
        assert settings.storage_configured

    def test_port_out_of_range(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, port=70000)
