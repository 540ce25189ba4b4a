# surveyhub/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


def _require(env: Mapping[str, str], key: str) -> str:
    v = env.get(key)
    if v is None or not v.strip():
        raise RuntimeError(f"Missing required environment variable: {key}")
    return v.strip()


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    return _to_int(raw, key)


def _normalize_database_url(url: str) -> str:
    """
    Hosted Postgres providers hand out postgres:// URLs.
    The async engine needs an explicit driver.
    """
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


def _resolve_redis_url(env: Mapping[str, str]) -> Optional[str]:
    """
    REDIS_URL wins. Otherwise build one from REDIS_HOST/REDIS_PORT/REDIS_PASSWORD.
    None means the cache is disabled.
    """
    url = (env.get("REDIS_URL") or "").strip()
    if url:
        return url

    host = (env.get("REDIS_HOST") or "").strip()
    if not host:
        return None

    port = (env.get("REDIS_PORT") or "6379").strip() or "6379"
    _to_int(port, "REDIS_PORT")
    password = (env.get("REDIS_PASSWORD") or "").strip()
    if password:
        return f"redis://:{password}@{host}:{port}"
    return f"redis://{host}:{port}"


@dataclass(frozen=True, slots=True)
class Settings:
    # --- required ---
    jwt_secret: str

    # --- storage ---
    database_url: str = "sqlite+aiosqlite:///./surveyhub.db"
    redis_url: Optional[str] = None

    # --- http ---
    host: str = "0.0.0.0"
    port: int = 3001
    public_base_url: str = "http://localhost:3000"

    # --- cache ttl (seconds) ---
    survey_cache_ttl: int = 3600
    analytics_cache_ttl: int = 30

    # --- rate limits (per source address, fixed window) ---
    vote_rate_limit: int = 50
    api_rate_limit: int = 200
    rate_limit_window_seconds: int = 15 * 60

    # --- scheduler ---
    survey_expiry_interval_seconds: int = 60

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast for required fields.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        jwt_secret = _require(env, "JWT_SECRET")

        database_url = _normalize_database_url(
            (env.get("DATABASE_URL") or "sqlite+aiosqlite:///./surveyhub.db").strip()
        )

        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            jwt_secret=jwt_secret,
            database_url=database_url,
            redis_url=_resolve_redis_url(env),
            host=(env.get("HOST") or "0.0.0.0").strip() or "0.0.0.0",
            port=_int_env(env, "PORT", 3001),
            public_base_url=(env.get("PUBLIC_BASE_URL") or "http://localhost:3000").strip().rstrip("/"),
            survey_cache_ttl=_int_env(env, "SURVEY_CACHE_TTL", 3600),
            analytics_cache_ttl=_int_env(env, "ANALYTICS_CACHE_TTL", 30),
            vote_rate_limit=_int_env(env, "VOTE_RATE_LIMIT", 50),
            api_rate_limit=_int_env(env, "API_RATE_LIMIT", 200),
            rate_limit_window_seconds=_int_env(env, "RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
            survey_expiry_interval_seconds=_int_env(env, "SURVEY_EXPIRY_INTERVAL_SECONDS", 60),
            environment=environment,
        )
