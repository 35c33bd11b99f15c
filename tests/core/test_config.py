from __future__ import annotations

import pytest

from lms.core.config import AppEnv, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "PROGRESS_CACHE_TTL",
    "QUIZ_PASS_POLICY",
    "QUIZ_COMPLETION_COUNT",
    "CORS_ORIGINS",
    "JWT_PUBLIC_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---- valid values ----


def test_load_settings_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 8000
    assert settings.progress_cache_ttl == 300
    assert settings.quiz_pass_policy == "any"
    assert settings.quiz_completion_count == "distinct"
    assert settings.cors_origins == ("http://localhost:3000",)
    assert settings.jwt_public_key is None


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  PROD ")
    monkeypatch.setenv("LOG_LEVEL", "Warning")
    monkeypatch.setenv("QUIZ_PASS_POLICY", " LATEST")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "warning"
    assert settings.quiz_pass_policy == "latest"


def test_load_settings_parses_typed_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "yes")
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("PROGRESS_CACHE_TTL", "0")
    monkeypatch.setenv("QUIZ_COMPLETION_COUNT", "attempts")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    settings = load_settings()
    assert settings.log_json is True
    assert settings.port == 9100
    assert settings.progress_cache_ttl == 0
    assert settings.quiz_completion_count == "attempts"
    assert settings.cors_origins == ("https://a.example", "https://b.example")


def test_jwt_public_key_unescapes_newlines(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_PUBLIC_KEY", "-----BEGIN-----\\nabc\\n-----END-----")
    assert load_settings().jwt_public_key == "-----BEGIN-----\nabc\n-----END-----"


# ---- invalid values ----


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("PROGRESS_CACHE_TTL", "-1", "PROGRESS_CACHE_TTL must be >= 0"),
        ("QUIZ_PASS_POLICY", "best", "QUIZ_PASS_POLICY must be any|latest"),
        ("QUIZ_COMPLETION_COUNT", "all", "QUIZ_COMPLETION_COUNT must be"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message.replace("|", r"\|")):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        database_url=None,
        redis_url=None,
    )


@pytest.mark.parametrize("env", ["dev", "test", "prod"])
def test_settings_env_flags(env: AppEnv) -> None:
    s = _make_settings(env)
    assert (s.is_dev, s.is_test, s.is_prod) == (
        env == "dev",
        env == "test",
        env == "prod",
    )


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.progress_cache_ttl = 0  # type: ignore[misc]
