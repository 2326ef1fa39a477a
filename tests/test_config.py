"""Tests for settings loading."""

from config import Settings, get_settings_for_testing


def test_defaults():
    settings = get_settings_for_testing()

    assert settings.port == 8000
    assert settings.jwt_algorithm == "HS256"
    assert settings.jwt_expires_in == 15 * 60
    assert settings.refresh_expires_in == 7 * 24 * 60 * 60
    assert settings.rate_limit_storage_uri == "memory://"


def test_reads_unprefixed_environment(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("JWT_EXPIRES_IN", "60")
    monkeypatch.setenv("PORT", "9000")

    settings = Settings()

    assert settings.jwt_secret == "from-env"
    assert settings.jwt_expires_in == 60
    assert settings.port == 9000


def test_cors_origins_are_split():
    settings = get_settings_for_testing(allowed_origins="http://a.test, http://b.test,")
    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_log_level_follows_environment():
    assert get_settings_for_testing(environment="development").effective_log_level == "DEBUG"
    assert get_settings_for_testing(environment="production").effective_log_level == "INFO"
    assert get_settings_for_testing(environment="production", log_level="warning").effective_log_level == "WARNING"
