from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import DEFAULT_MOCK_API_URL, Settings

ENV_VARS = (
    "MOCK_API_URL",
    "PORT",
    "HOST",
    "UPSTREAM_TIMEOUT",
    "PRESERVE_UPSTREAM_STATUS",
    "RATE_LIMIT",
    "CORS_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture()
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env(load_dotenv_file=False)
    assert settings.upstream_url == DEFAULT_MOCK_API_URL
    assert settings.port == 8080
    assert settings.upstream_timeout == 10.0
    assert settings.preserve_upstream_status is False
    assert settings.rate_limit is None
    assert settings.cors_origins == ["*"]
    assert settings.log_level == "INFO"


def test_reads_environment(clean_env):
    clean_env.setenv("MOCK_API_URL", "http://example.test/api/expenses/")
    clean_env.setenv("PORT", "9000")
    clean_env.setenv("UPSTREAM_TIMEOUT", "2.5")
    clean_env.setenv("PRESERVE_UPSTREAM_STATUS", "true")
    clean_env.setenv("RATE_LIMIT", "15/minute")
    clean_env.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env(load_dotenv_file=False)
    assert settings.base_url == "http://example.test/api/expenses"
    assert settings.port == 9000
    assert settings.upstream_timeout == 2.5
    assert settings.preserve_upstream_status is True
    assert settings.rate_limit == "15/minute"
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"


def test_settings_are_immutable():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.port = 1


@pytest.mark.parametrize(("name", "value"), [("PORT", "eighty"), ("UPSTREAM_TIMEOUT", "soon"), ("UPSTREAM_TIMEOUT", "0")])
def test_invalid_numbers_are_reported_by_validation(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings.from_env(load_dotenv_file=False)
