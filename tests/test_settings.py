from __future__ import annotations

import pytest

from surveyhub.config import Settings


def test_defaults():
    s = Settings.load({"JWT_SECRET": "x"})
    assert s.jwt_secret == "x"
    assert s.database_url.startswith("sqlite+aiosqlite://")
    assert s.redis_url is None
    assert s.port == 3001
    assert s.survey_cache_ttl == 3600
    assert s.analytics_cache_ttl == 30
    assert (s.vote_rate_limit, s.api_rate_limit, s.rate_limit_window_seconds) == (50, 200, 900)
    assert not s.is_dev


def test_missing_secret_fails_fast():
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        Settings.load({"JWT_SECRET": "   "})


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
    ],
)
def test_database_url_gets_async_driver(raw, expected):
    assert Settings.load({"JWT_SECRET": "x", "DATABASE_URL": raw}).database_url == expected


def test_redis_url_from_parts():
    s = Settings.load({"JWT_SECRET": "x", "REDIS_HOST": "cache", "REDIS_PASSWORD": "pw"})
    assert s.redis_url == "redis://:pw@cache:6379"

    s = Settings.load({"JWT_SECRET": "x", "REDIS_URL": "redis://r:1/0", "REDIS_HOST": "ignored"})
    assert s.redis_url == "redis://r:1/0"


def test_integers_are_validated():
    with pytest.raises(RuntimeError, match="PORT"):
        Settings.load({"JWT_SECRET": "x", "PORT": "eighty"})

    s = Settings.load({"JWT_SECRET": "x", "VOTE_RATE_LIMIT": "5", "ENVIRONMENT": "development"})
    assert s.vote_rate_limit == 5
    assert s.is_dev
