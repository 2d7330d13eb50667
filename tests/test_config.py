"""Tests for lexhub._config settings loading."""

import pytest
from pydantic import ValidationError

from lexhub._config import DEFAULT_DATABASE_URL, Settings, get_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("DATABASE_URL", "LEXHUB_DATABASE_URL", "LEXHUB_INGEST_SECRET", "LEXHUB_STORE_BACKEND"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.store_backend == "postgres"
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.ingest_secret is None
        assert settings.dns_timeout == 3.0
        assert settings.resolver_cache_ttl == 3600
        assert settings.resolver_negative_ttl == 300
        assert settings.resolver_cache_size == 10_000
        assert settings.store_timeout == 5.0

    def test_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("LEXHUB_STORE_BACKEND", "sqlite")
        monkeypatch.setenv("LEXHUB_DNS_TIMEOUT", "1.5")
        settings = Settings(_env_file=None)
        assert settings.store_backend == "sqlite"
        assert settings.dns_timeout == 1.5

    def test_plain_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/lexhub")
        assert Settings(_env_file=None).database_url == "postgresql://db/lexhub"

    def test_prefixed_database_url(self, monkeypatch):
        monkeypatch.setenv("LEXHUB_DATABASE_URL", "postgresql://one/lexhub")
        monkeypatch.setenv("DATABASE_URL", "postgresql://two/lexhub")
        assert Settings(_env_file=None).database_url == "postgresql://one/lexhub"

    def test_secret_is_masked(self, monkeypatch):
        monkeypatch.setenv("LEXHUB_INGEST_SECRET", "s3cret")
        settings = Settings(_env_file=None)
        assert settings.ingest_secret.get_secret_value() == "s3cret"
        assert "s3cret" not in repr(settings)

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("LEXHUB_STORE_BACKEND", "mongodb")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
