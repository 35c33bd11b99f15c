from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
QuizPassPolicy = Literal["any", "latest"]
QuizCompletionCount = Literal["distinct", "attempts"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getint(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    jwt_public_key: str | None = None
    progress_cache_ttl: int = 300
    quiz_pass_policy: QuizPassPolicy = "any"
    quiz_completion_count: QuizCompletionCount = "distinct"
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getint("PORT", 8000)

    cache_ttl = _getint("PROGRESS_CACHE_TTL", 300)
    if cache_ttl < 0:
        raise ValueError(f"PROGRESS_CACHE_TTL must be >= 0 (got {cache_ttl})")

    pass_policy = _getenv("QUIZ_PASS_POLICY", "any").lower()
    if pass_policy not in ("any", "latest"):
        raise ValueError(f"QUIZ_PASS_POLICY must be any|latest (got {pass_policy!r})")

    completion_count = _getenv("QUIZ_COMPLETION_COUNT", "distinct").lower()
    if completion_count not in ("distinct", "attempts"):
        raise ValueError(
            "QUIZ_COMPLETION_COUNT must be distinct|attempts "
            f"(got {completion_count!r})"
        )

    cors_raw = _getenv("CORS_ORIGINS", "http://localhost:3000")
    cors_origins = tuple(o.strip() for o in cors_raw.split(",") if o.strip())

    # PEM blocks arrive with literal "\n" when passed through a single env var
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        jwt_public_key=jwt_public_key,
        progress_cache_ttl=cache_ttl,
        quiz_pass_policy=pass_policy,
        quiz_completion_count=completion_count,
        cors_origins=cors_origins,
    )


SETTINGS = load_settings()
