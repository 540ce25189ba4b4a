from __future__ import annotations

from aiohttp import web

from surveyhub.cache import Cache
from surveyhub.config import Settings
from surveyhub.database.session import Database
from surveyhub.realtime import BroadcastHub
from surveyhub.services.analytics import AnalyticsService
from surveyhub.services.auth import AuthService
from surveyhub.services.surveys import SurveyService
from surveyhub.services.votes import VoteService
from surveyhub.utils.ratelimit import FixedWindowLimiter
from surveyhub.web import keys
from surveyhub.web.middleware import db_session_middleware, error_middleware, rate_limit_middleware
from surveyhub.web.routes import analytics, health, realtime, surveys, votes


def create_app(
    settings: Settings,
    db: Database,
    cache: Cache,
    hub: BroadcastHub,
    *,
    vote_limiter: FixedWindowLimiter | None = None,
    api_limiter: FixedWindowLimiter | None = None,
) -> web.Application:
    """
    Wires already-constructed services into an aiohttp application.
    Lifecycles (open/close) belong to the caller.
    """
    app = web.Application(
        middlewares=[error_middleware, rate_limit_middleware, db_session_middleware],
    )

    app[keys.SETTINGS] = settings
    app[keys.DB] = db
    app[keys.CACHE] = cache
    app[keys.HUB] = hub
    app[keys.AUTH] = AuthService(settings.jwt_secret)
    app[keys.VOTES] = VoteService(cache, notifier=hub)
    app[keys.SURVEYS] = SurveyService(cache, ttl_seconds=settings.survey_cache_ttl)
    app[keys.ANALYTICS] = AnalyticsService(cache, ttl_seconds=settings.analytics_cache_ttl)
    app[keys.VOTE_LIMITER] = vote_limiter or FixedWindowLimiter(
        settings.vote_rate_limit, settings.rate_limit_window_seconds
    )
    app[keys.API_LIMITER] = api_limiter or FixedWindowLimiter(
        settings.api_rate_limit, settings.rate_limit_window_seconds
    )

    app.add_routes(votes.routes)
    app.add_routes(surveys.routes)
    app.add_routes(analytics.routes)
    app.add_routes(realtime.routes)
    app.add_routes(health.routes)

    return app
