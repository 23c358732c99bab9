from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    default_model: str
    gemini_api_key: str | None
    openai_api_key: str | None
    openai_base_url: str | None
    provider_timeout_s: float
    analysis_timeout_s: float
    scrape_timeout_s: float
    cache_backend: str
    cache_db_path: str
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    max_upload_bytes: int


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "10/minute") or "10/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
    ),
    default_model=(_get_env("DEFAULT_MODEL", "gemini-2.5-flash") or "gemini-2.5-flash").strip(),
    gemini_api_key=_get_env("GEMINI_API_KEY"),
    openai_api_key=_get_env("OPENAI_API_KEY"),
    openai_base_url=_get_env("OPENAI_BASE_URL"),
    provider_timeout_s=_get_env_float("PROVIDER_TIMEOUT_S", 45.0),
    analysis_timeout_s=_get_env_float("ANALYSIS_TIMEOUT_S", 60.0),
    scrape_timeout_s=_get_env_float("SCRAPE_TIMEOUT_S", 12.0),
    cache_backend=(_get_env("CACHE_BACKEND", "sqlite") or "sqlite").strip().lower(),
    cache_db_path=_get_env("CACHE_DB_PATH", "data/analysis_cache.db") or "data/analysis_cache.db",
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 180),
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
)

if settings.cache_backend not in {"sqlite", "memory"}:
    raise RuntimeError("CACHE_BACKEND must be either 'sqlite' or 'memory'.")

if settings.analysis_timeout_s <= 0:
    raise RuntimeError("ANALYSIS_TIMEOUT_S must be a positive number of seconds.")
